"""Event handlers for rental order domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCompleted,
    OrderCreated,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.created_event_handled",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.status_changed_event_handled",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderCompletedHandler(IEventHandler[OrderCompleted]):
    def handle(self, event: OrderCompleted) -> None:
        logger.info(
            "order.completed_event_handled",
            order_id=str(event.aggregate_id),
            adjusted_amount=event.adjusted_amount,
            difference=event.difference,
            early=event.is_early_return,
            late=event.is_late_return,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.cancelled_event_handled",
            order_id=str(event.aggregate_id),
            adjusted_amount=event.adjusted_amount,
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_completed_handler = OrderCompletedHandler()
order_cancelled_handler = OrderCancelledHandler()

"""Unit tests for rental order event handlers and the in-memory bus."""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from modules.orders.events import (
    OrderCancelled,
    OrderCompleted,
    OrderCreated,
    OrderStatusChanged,
)
from modules.orders.handlers import (
    OrderCancelledHandler,
    OrderCompletedHandler,
    OrderCreatedHandler,
    OrderStatusChangedHandler,
)
from shared.infrastructure.bus import InMemoryEventBus, event_bus

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "handler, event, message",
    [
        (
            OrderCreatedHandler(),
            OrderCreated(aggregate_id=uuid4(), order_number="RNT-20240110-ABC123"),
            "order.created_event_handled",
        ),
        (
            OrderStatusChangedHandler(),
            OrderStatusChanged(
                aggregate_id=uuid4(), old_status="pending", new_status="confirmed"
            ),
            "order.status_changed_event_handled",
        ),
        (
            OrderCompletedHandler(),
            OrderCompleted(aggregate_id=uuid4(), adjusted_amount="4000"),
            "order.completed_event_handled",
        ),
        (
            OrderCancelledHandler(),
            OrderCancelled(aggregate_id=uuid4(), adjusted_amount="100"),
            "order.cancelled_event_handled",
        ),
    ],
)
def test_handlers_log(caplog, handler, event, message):
    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        handler.handle(event)

    assert any(message in record.getMessage() for record in caplog.records)


def test_in_memory_event_bus_routes_events():
    bus = InMemoryEventBus()
    handled = []

    class CapturingHandler:
        def handle(self, event) -> None:
            handled.append(event)

    handler = CapturingHandler()
    event = OrderCreated(aggregate_id=uuid4())

    bus.subscribe(OrderCreated, handler)
    bus.subscribe(OrderCreated, handler)
    bus.publish(event)
    bus.publish(OrderCancelled(aggregate_id=uuid4()))

    assert handled == [event]
    assert bus.event_class_for("OrderCreated") is OrderCreated
    assert bus.event_class_for("Unknown") is None


def test_app_ready_subscribes_every_order_event():
    for name in ("OrderCreated", "OrderStatusChanged", "OrderCompleted", "OrderCancelled"):
        assert event_bus.event_class_for(name) is not None

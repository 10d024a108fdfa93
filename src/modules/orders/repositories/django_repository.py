"""Django ORM implementation of the Order repository.

All write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems + history) is persisted atomically.

Status changes read the order through ``get_for_update()``
(``select_for_update``); there is no ``version`` field on the model.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from modules.workers.models import Worker

logger = structlog.get_logger(__name__)

ORDER_RELATIONS = ("items", "workers", "status_history")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            client_name=data["client_name"],
            rental_start_date=data["rental_start_date"],
            rental_end_date=data["rental_end_date"],
            default_chargeable_days=data["default_chargeable_days"],
            idempotency_key=data.get("idempotency_key"),
            notes=data.get("notes") or "",
        )
        order.save()

        daily_total = Decimal("0.00")
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                product_name=item_data["product_name"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            )
            item.save()
            daily_total += item.subtotal

        order.total_amount = daily_total * order.default_chargeable_days
        order.save(update_fields=["total_amount", "updated_at"])

        logger.bind(order_id=str(order.id), item_count=len(items)).info(
            "order.created"
        )
        return order

    @transaction.atomic
    def set_workers(self, order: Order, workers: Iterable[Worker]) -> None:
        workers = list(workers)
        order.workers.set(workers)
        logger.info(
            "order.workers_assigned",
            order_id=str(order.id),
            worker_count=len(workers),
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an alive order with its relations prefetched.

        Returns ``None`` for non-existent, soft-deleted or malformed IDs.
        """
        try:
            return (
                Order.objects.alive()
                .prefetch_related(*ORDER_RELATIONS)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = Order.objects.alive().prefetch_related(*ORDER_RELATIONS)
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside a transaction.  Returns ``None`` for
        non-existent, soft-deleted or malformed IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .alive()
                .prefetch_related(*ORDER_RELATIONS)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return (
            Order.objects.prefetch_related(*ORDER_RELATIONS)
            .filter(idempotency_key=key)
            .first()
        )

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and write its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic="orders",
            )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        actual_date: Optional[date] = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            actual_date=actual_date,
            notes=notes,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    return json.loads(json.dumps(_normalize_for_json(data)))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value

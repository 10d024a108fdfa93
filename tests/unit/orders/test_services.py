"""Service-level tests for OrderService against the Django repositories.

Covers:
- create_order: derived default days, totals, idempotency, history, outbox.
- change_status: write-back of the recomputed charge, crew replacement,
  return date, history, domain events.
- Rejections: invalid transition, future / pre-rental dates, empty crew,
  unknown workers, missing order.
- preview_calculation and allowed_statuses.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    StatusChangeDTO,
    WorkerPresenceDTO,
)
from modules.orders.exceptions import (
    EmptyWorkerSet,
    InvalidActualDate,
    InvalidTransition,
    OrderNotFound,
)
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.pricing import PricingRules
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.workers.exceptions import WorkerNotFound
from modules.workers.repositories.django_repository import WorkerDjangoRepository

pytestmark = pytest.mark.unit

TODAY = date(2024, 1, 20)


@pytest.fixture()
def service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        worker_repository=WorkerDjangoRepository(),
    )


def _change(status, actual_date, workers, **extra) -> StatusChangeDTO:
    return StatusChangeDTO(
        status=status,
        actual_date=actual_date,
        workers=[WorkerPresenceDTO(worker_id=w.id) for w in workers],
        **extra,
    )


# ---------------------------------------------------------------------------
# create_order
# ---------------------------------------------------------------------------


class TestCreateOrder:
    def _dto(self, **overrides) -> CreateOrderDTO:
        data = {
            "client_name": "Amani Church",
            "rental_start_date": date(2024, 1, 10),
            "rental_end_date": date(2024, 1, 12),
            "items": [
                CreateOrderItemDTO(
                    product_name="Plastic chair", quantity=100, unit_price=Decimal("15")
                ),
                CreateOrderItemDTO(
                    product_name="Tent 10x20", quantity=1, unit_price=Decimal("3500")
                ),
            ],
        }
        data.update(overrides)
        return CreateOrderDTO(**data)

    def test_derives_default_days_from_period(self, service):
        order = service.create_order(self._dto())

        assert order.status == OrderStatus.PENDING
        assert order.default_chargeable_days == 3
        assert order.total_amount == Decimal("15000.00")
        assert order.items.count() == 2

    def test_explicit_default_days(self, service):
        order = service.create_order(self._dto(default_chargeable_days=1))
        assert order.default_chargeable_days == 1
        assert order.total_amount == Decimal("5000.00")

    def test_records_history_and_event(self, service):
        order = service.create_order(self._dto())

        history = list(order.status_history.all())
        assert len(history) == 1
        assert history[0].new_status == OrderStatus.PENDING
        assert history[0].old_status is None

        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.event_type == "OrderCreated"
        assert event.payload["order_number"] == order.order_number

    def test_idempotency_key_returns_existing(self, service):
        first = service.create_order(self._dto(idempotency_key="abc"))
        second = service.create_order(self._dto(idempotency_key="abc"))

        assert first.id == second.id
        assert Order.objects.count() == 1


# ---------------------------------------------------------------------------
# change_status
# ---------------------------------------------------------------------------


class TestChangeStatus:
    def test_confirm_keeps_full_charge(self, service, make_order, make_worker):
        order = make_order()
        worker = make_worker()

        updated = service.change_status(
            order.id, _change("confirmed", date(2024, 1, 10), [worker]), today=TODAY
        )

        assert updated.status == OrderStatus.CONFIRMED
        assert updated.adjusted_amount == Decimal("1000.00")
        assert updated.chargeable_days == 1
        assert updated.actual_return_date is None
        assert list(updated.workers.all()) == [worker]
        assert updated.calculation["adjusted_amount"] == "1000"

    def test_late_completion(self, service, make_order, make_worker):
        worker = make_worker()
        order = make_order(status=OrderStatus.IN_PROGRESS, workers=[worker])

        updated = service.change_status(
            order.id, _change("completed", date(2024, 1, 13), [worker]), today=TODAY
        )

        assert updated.status == OrderStatus.COMPLETED
        assert updated.chargeable_days == 3
        assert updated.adjusted_amount == Decimal("4000.00")
        assert updated.actual_return_date == date(2024, 1, 13)
        assert updated.calculation["is_late_return"] is True

    def test_cancellation_fee(self, service, make_order, make_worker):
        order = make_order(status=OrderStatus.CONFIRMED)
        worker = make_worker()

        updated = service.change_status(
            order.id, _change("cancelled", date(2024, 1, 10), [worker]), today=TODAY
        )

        assert updated.adjusted_amount == Decimal("100.00")
        assert updated.actual_return_date == date(2024, 1, 10)

    def test_configured_rules_apply(self, make_order, make_worker):
        service = OrderService(
            OrderDjangoRepository(),
            WorkerDjangoRepository(),
            rules=PricingRules(cancellation_fee=Decimal("0.5")),
        )
        order = make_order()
        updated = service.change_status(
            order.id, _change("cancelled", date(2024, 1, 10), [make_worker()]), today=TODAY
        )
        assert updated.adjusted_amount == Decimal("500.00")

    def test_server_figure_wins_over_client(self, service, make_order, make_worker):
        worker = make_worker()
        order = make_order(status=OrderStatus.IN_PROGRESS)

        updated = service.change_status(
            order.id,
            _change(
                "completed",
                date(2024, 1, 13),
                [worker],
                adjusted_amount=Decimal("1"),
            ),
            today=TODAY,
        )

        assert updated.adjusted_amount == Decimal("4000.00")

    def test_worker_set_replaced_by_present_workers(
        self, service, make_order, make_worker
    ):
        kept, dropped, added = make_worker(), make_worker(), make_worker()
        order = make_order(workers=[kept, dropped])

        dto = StatusChangeDTO(
            status="confirmed",
            actual_date=date(2024, 1, 10),
            workers=[
                WorkerPresenceDTO(worker_id=kept.id),
                WorkerPresenceDTO(worker_id=dropped.id, present=False),
                WorkerPresenceDTO(worker_id=added.id),
            ],
        )
        updated = service.change_status(order.id, dto, today=TODAY)

        assert set(updated.workers.all()) == {kept, added}

    def test_records_history_and_events(self, service, make_order, make_worker):
        order = make_order(status=OrderStatus.IN_PROGRESS)

        service.change_status(
            order.id,
            _change("completed", date(2024, 1, 11), [make_worker()], notes="All back"),
            today=TODAY,
        )

        history = OrderStatusHistory.objects.get(order=order)
        assert history.old_status == OrderStatus.IN_PROGRESS
        assert history.new_status == OrderStatus.COMPLETED
        assert history.actual_date == date(2024, 1, 11)
        assert history.notes == "All back"

        event_types = set(
            OutboxEvent.objects.filter(aggregate_id=str(order.id)).values_list(
                "event_type", flat=True
            )
        )
        assert event_types == {"OrderStatusChanged", "OrderCompleted"}
        changed = OutboxEvent.objects.get(
            aggregate_id=str(order.id), event_type="OrderStatusChanged"
        )
        assert changed.payload["old_status"] == "in_progress"
        assert changed.payload["new_status"] == "completed"

    def test_invalid_transition_changes_nothing(self, service, make_order, make_worker):
        order = make_order()

        with pytest.raises(InvalidTransition) as exc_info:
            service.change_status(
                order.id, _change("completed", date(2024, 1, 12), [make_worker()]), today=TODAY
            )

        assert exc_info.value.allowed == ("confirmed", "cancelled")
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert not OrderStatusHistory.objects.filter(order=order).exists()

    def test_terminal_order_rejected(self, service, make_order, make_worker):
        order = make_order(status=OrderStatus.COMPLETED)
        with pytest.raises(InvalidTransition):
            service.change_status(
                order.id, _change("cancelled", date(2024, 1, 12), [make_worker()]), today=TODAY
            )

    def test_future_date_rejected(self, service, make_order, make_worker):
        order = make_order()
        with pytest.raises(InvalidActualDate, match="future"):
            service.change_status(
                order.id, _change("confirmed", date(2024, 1, 21), [make_worker()]), today=TODAY
            )

    def test_return_before_rental_start_rejected(self, service, make_order, make_worker):
        order = make_order(status=OrderStatus.IN_PROGRESS)
        with pytest.raises(InvalidActualDate, match="precedes"):
            service.change_status(
                order.id, _change("completed", date(2024, 1, 9), [make_worker()]), today=TODAY
            )

    @pytest.mark.parametrize(
        "current, requested",
        [
            (OrderStatus.IN_PROGRESS, "cancelled"),
            (OrderStatus.PENDING, "confirmed"),
            (OrderStatus.PENDING, "cancelled"),
        ],
    )
    def test_any_change_before_rental_start_rejected(
        self, service, make_order, make_worker, current, requested
    ):
        order = make_order(status=current)
        with pytest.raises(InvalidActualDate, match="precedes"):
            service.change_status(
                order.id, _change(requested, date(2024, 1, 1), [make_worker()]), today=TODAY
            )

        order.refresh_from_db()
        assert order.status == current
        assert order.actual_return_date is None
        assert not order.status_history.exists()

    def test_change_on_rental_start_accepted(self, service, make_order, make_worker):
        order = make_order()
        updated = service.change_status(
            order.id, _change("confirmed", date(2024, 1, 10), [make_worker()]), today=TODAY
        )
        assert updated.status == OrderStatus.CONFIRMED

    def test_empty_crew_rejected(self, service, make_order, make_worker):
        order = make_order()
        worker = make_worker()
        dto = StatusChangeDTO(
            status="confirmed",
            actual_date=date(2024, 1, 10),
            workers=[WorkerPresenceDTO(worker_id=worker.id, present=False)],
        )
        with pytest.raises(EmptyWorkerSet):
            service.change_status(order.id, dto, today=TODAY)

    def test_unknown_worker_rejected(self, service, make_order):
        order = make_order()
        dto = StatusChangeDTO(
            status="confirmed",
            actual_date=date(2024, 1, 10),
            workers=[WorkerPresenceDTO(worker_id=uuid4())],
        )
        with pytest.raises(WorkerNotFound):
            service.change_status(order.id, dto, today=TODAY)

    def test_inactive_worker_rejected(self, service, make_order, make_worker):
        order = make_order()
        worker = make_worker(is_active=False)
        with pytest.raises(WorkerNotFound):
            service.change_status(
                order.id, _change("confirmed", date(2024, 1, 10), [worker]), today=TODAY
            )

    def test_missing_order(self, service, make_worker):
        with pytest.raises(OrderNotFound):
            service.change_status(
                uuid4(), _change("confirmed", date(2024, 1, 10), [make_worker()]), today=TODAY
            )

    def test_soft_deleted_order_not_found(self, service, make_order, make_worker):
        order = make_order()
        order.delete()
        with pytest.raises(OrderNotFound):
            service.change_status(
                order.id, _change("confirmed", date(2024, 1, 10), [make_worker()]), today=TODAY
            )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_preview_does_not_persist(self, service, make_order):
        order = make_order(status=OrderStatus.IN_PROGRESS)

        result = service.preview_calculation(str(order.id), "completed", "2024-01-13")

        assert result.adjusted_amount == Decimal("4000")
        order.refresh_from_db()
        assert order.status == OrderStatus.IN_PROGRESS
        assert order.adjusted_amount is None

    def test_preview_validates_transition(self, service, make_order):
        order = make_order()
        with pytest.raises(InvalidTransition):
            service.preview_calculation(str(order.id), "completed", "2024-01-13")

    def test_allowed_statuses(self, service, make_order):
        order = make_order(status=OrderStatus.CONFIRMED)
        assert service.allowed_statuses(str(order.id)) == ("in_progress", "cancelled")

    def test_get_snapshot(self, service, make_order, make_worker):
        worker = make_worker()
        order = make_order(workers=[worker])

        snapshot = service.get_snapshot(str(order.id))

        assert snapshot.id == order.id
        assert snapshot.worker_ids == [worker.id]
        assert snapshot.total_amount == Decimal("1000.00")

    def test_get_order_missing(self, service):
        with pytest.raises(OrderNotFound):
            service.get_order(str(uuid4()))

    def test_get_order_malformed_id(self, service):
        with pytest.raises(OrderNotFound):
            service.get_order("not-a-uuid")

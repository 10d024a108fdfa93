"""Integration tests for OrderDjangoRepository.

Covers:
- Create: order + items persisted atomically, total over the agreed days.
- Read: relations prefetched, soft-deleted and malformed ids yield None.
- Locking: get_for_update.
- Crew replacement, history rows with the actual date.
- Outbox rows written on save.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCompleted, OrderStatusChanged
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.integration


@pytest.fixture()
def repo():
    return OrderDjangoRepository()


@pytest.fixture()
def order_data():
    return {
        "client_name": "Imani Weddings",
        "rental_start_date": date(2024, 2, 1),
        "rental_end_date": date(2024, 2, 3),
        "default_chargeable_days": 3,
        "items": [
            {"product_name": "Plastic chair", "quantity": 200, "unit_price": Decimal("15")},
            {"product_name": "Tent 10x20", "quantity": 2, "unit_price": Decimal("3500")},
        ],
        "notes": "Garden reception",
    }


@pytest.fixture()
def created_order(repo, order_data):
    return repo.create(order_data)


class TestCreate:
    def test_persists_order_and_items(self, repo, order_data):
        order = repo.create(order_data)

        assert order.status == OrderStatus.PENDING
        assert order.order_number.startswith("RNT-")
        assert order.notes == "Garden reception"
        subtotals = sorted(i.subtotal for i in order.items.all())
        assert subtotals == [Decimal("3000.00"), Decimal("7000.00")]

    def test_total_covers_agreed_days(self, created_order):
        assert created_order.total_amount == Decimal("30000.00")

    def test_rolls_back_on_item_failure(self, repo, order_data):
        with patch.object(OrderItem, "save", side_effect=RuntimeError("forced error")):
            with pytest.raises(RuntimeError, match="forced error"):
                repo.create(order_data)

        assert not Order.objects.exists()


class TestRead:
    def test_get_by_id_prefetches_relations(
        self, repo, created_order, django_assert_num_queries
    ):
        with django_assert_num_queries(4):
            order = repo.get_by_id(str(created_order.id))
            list(order.items.all())
            list(order.workers.all())
            list(order.status_history.all())

    def test_get_by_id_missing_malformed_or_deleted(self, repo, created_order):
        assert repo.get_by_id(str(uuid4())) is None
        assert repo.get_by_id("not-a-uuid") is None
        created_order.delete()
        assert repo.get_by_id(str(created_order.id)) is None

    def test_get_for_update(self, repo, created_order):
        order = repo.get_for_update(str(created_order.id))
        assert order.id == created_order.id
        assert repo.get_for_update("not-a-uuid") is None

    def test_list_with_filters(self, repo, created_order):
        assert [o.id for o in repo.list()] == [created_order.id]
        assert repo.list({"status": OrderStatus.CONFIRMED}) == []

    def test_idempotency_key_lookup(self, repo, order_data):
        order = repo.create({**order_data, "idempotency_key": "key-42"})
        assert repo.get_by_idempotency_key("key-42").id == order.id
        assert repo.get_by_idempotency_key("missing") is None


class TestWorkers:
    def test_set_workers_replaces_crew(self, repo, created_order, make_worker):
        old, new = make_worker(), make_worker()
        repo.set_workers(created_order, [old])
        repo.set_workers(created_order, [new])
        assert list(created_order.workers.all()) == [new]


class TestHistory:
    def test_add_history_records_actual_date(self, repo, created_order):
        history = repo.add_history(
            order_id=created_order.id,
            status=OrderStatus.CANCELLED,
            old_status=OrderStatus.PENDING,
            actual_date=date(2024, 1, 30),
            notes="Client postponed",
        )

        stored = OrderStatusHistory.objects.get(pk=history.pk)
        assert stored.old_status == OrderStatus.PENDING
        assert stored.new_status == OrderStatus.CANCELLED
        assert stored.actual_date == date(2024, 1, 30)
        assert stored.notes == "Client postponed"


class TestOutbox:
    def test_save_writes_pending_events_and_clears_them(self, repo, created_order):
        created_order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=created_order.id,
                old_status="in_progress",
                new_status="completed",
                actual_date="2024-02-04",
            )
        )
        created_order.add_domain_event(
            OrderCompleted(
                aggregate_id=created_order.id,
                adjusted_amount="40000",
                difference="10000",
                is_late_return=True,
            )
        )

        repo.save(created_order)

        events = OutboxEvent.objects.filter(aggregate_id=str(created_order.id))
        assert {e.event_type for e in events} == {"OrderStatusChanged", "OrderCompleted"}
        assert all(e.status == EventStatus.PENDING for e in events)
        assert all(e.topic == "orders" for e in events)
        completed = events.get(event_type="OrderCompleted")
        assert completed.payload["aggregate_id"] == str(created_order.id)
        assert completed.payload["is_late_return"] is True
        assert created_order.domain_events == []

    def test_save_without_events_writes_nothing(self, repo, created_order):
        repo.save(created_order)
        assert not OutboxEvent.objects.exists()

from datetime import date
from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model
from django.core.cache import cache

from rest_framework.test import APIClient

from modules.orders.models import Order, OrderItem
from modules.workers.models import Worker, WorkerRole


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Reset throttle counters between tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def auth_client():
    client = APIClient()
    user = get_user_model().objects.create_user(
        username="clerk", password="testpass123"
    )
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def make_worker():
    """Factory persisting roster workers."""
    counter = iter(range(1, 1000))

    def _make(**overrides) -> Worker:
        n = next(counter)
        defaults = {
            "name": f"Worker {n:03d}",
            "phone": f"07{n:08d}",
            "role": WorkerRole.LOADER,
            "standard_daily_rate": Decimal("800.00"),
        }
        defaults.update(overrides)
        return Worker.objects.create(**defaults)

    return _make


@pytest.fixture()
def make_order():
    """Factory persisting a rental order with items.

    Defaults: 2024-01-10 to 2024-01-12, one agreed day, 10 x 100 per day,
    so the full amount is 1000.
    """

    def _make(
        status=Order._meta.get_field("status").default,
        items=((10, "100.00"),),
        workers=(),
        **overrides,
    ) -> Order:
        defaults = {
            "client_name": "Wanjiru Events",
            "rental_start_date": date(2024, 1, 10),
            "rental_end_date": date(2024, 1, 12),
            "default_chargeable_days": 1,
            "status": status,
        }
        defaults.update(overrides)
        order = Order.objects.create(**defaults)
        daily_total = Decimal("0")
        for quantity, price in items:
            item = OrderItem.objects.create(
                order=order,
                product_name="Plastic chair",
                quantity=quantity,
                unit_price=Decimal(price),
            )
            daily_total += item.subtotal
        if "total_amount" not in overrides:
            order.total_amount = daily_total * order.default_chargeable_days
            order.save(update_fields=["total_amount"])
        if workers:
            order.workers.set(workers)
        return order

    return _make

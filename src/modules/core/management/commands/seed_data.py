from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    StatusChangeDTO,
    WorkerPresenceDTO,
)
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.workers.models import Worker, WorkerRole
from modules.workers.repositories.django_repository import WorkerDjangoRepository

CATALOG = [
    ("Plastic chair", Decimal("15.00")),
    ("Banquet table", Decimal("120.00")),
    ("Tent 10x20", Decimal("3500.00")),
    ("Table cloth", Decimal("50.00")),
    ("Chafing dish", Decimal("250.00")),
    ("Sound system", Decimal("4000.00")),
    ("Generator 5kVA", Decimal("6000.00")),
]

CLIENTS = [
    "Wanjiru Events",
    "Otieno & Sons",
    "Baraka Catering",
    "Amani Church",
    "Kamau Weddings",
    "Nyota School",
]

# Status paths walked from pending; the last entry is the seeded status.
STATUS_PATHS = [
    (),
    (OrderStatus.CONFIRMED,),
    (OrderStatus.CONFIRMED, OrderStatus.IN_PROGRESS),
    (OrderStatus.CONFIRMED, OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED),
    (OrderStatus.CANCELLED,),
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        workers = self._seed_workers()
        orders_created = self._seed_orders(workers)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"workers={len(workers)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="clerk").exists():
            User.objects.create_user("clerk", password="clerk123", is_staff=True)
            created += 1
        return created

    def _seed_workers(self) -> list[Worker]:
        self.stdout.write("Creating workers...")
        crew = [
            ("Peter Mwangi", "0712345678", WorkerRole.SUPERVISOR, Decimal("1500.00")),
            ("John Ochieng", "0723456789", WorkerRole.DRIVER, Decimal("1200.00")),
            ("Mary Akinyi", "0734567890", WorkerRole.LOADER, Decimal("800.00")),
            ("James Kiprop", "0745678901", WorkerRole.LOADER, Decimal("800.00")),
            ("Grace Njeri", "0756789012", WorkerRole.TECHNICIAN, Decimal("1300.00")),
        ]
        workers: list[Worker] = []
        for name, phone, role, rate in crew:
            worker, _ = Worker.objects.get_or_create(
                name=name,
                defaults={"phone": phone, "role": role, "standard_daily_rate": rate},
            )
            workers.append(worker)
        self.stdout.write(self.style.SUCCESS("Creating workers... Done!"))
        return workers

    def _seed_orders(self, workers: list[Worker]) -> int:
        self.stdout.write("Creating orders...")
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            worker_repository=WorkerDjangoRepository(),
        )
        today = timezone.localdate()
        created = 0

        for i in range(20):
            start = today - timedelta(days=random.randint(0, 20))
            end = start + timedelta(days=random.randint(0, 6))
            order = service.create_order(
                CreateOrderDTO(
                    client_name=random.choice(CLIENTS),
                    rental_start_date=start,
                    rental_end_date=end,
                    items=[
                        CreateOrderItemDTO(
                            product_name=name,
                            quantity=random.randint(1, 50),
                            unit_price=price,
                        )
                        for name, price in random.sample(CATALOG, k=random.randint(1, 3))
                    ],
                    notes=f"Seed order {i + 1}",
                    idempotency_key=f"seed-order-{i + 1}",
                )
            )
            if order.status == OrderStatus.PENDING:
                self._walk(service, order.id, random.choice(STATUS_PATHS), workers, today)
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created

    def _walk(self, service, order_id, path, workers, today) -> None:
        for status in path:
            crew = random.sample(workers, k=random.randint(1, 3))
            service.change_status(
                order_id,
                StatusChangeDTO(
                    status=status,
                    actual_date=today,
                    workers=[WorkerPresenceDTO(worker_id=w.id) for w in crew],
                    notes="Seeded transition",
                ),
                today=today,
            )

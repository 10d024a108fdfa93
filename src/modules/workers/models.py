"""Worker model: the casual crew attached to rental orders.

Workers are assigned to an order when it changes status (delivery,
pick-up, return).  Only workers marked present on a transition stay
attached to the order.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel


class WorkerRole(models.TextChoices):
    LOADER = "loader", "Loader"
    DRIVER = "driver", "Driver"
    SUPERVISOR = "supervisor", "Supervisor"
    TECHNICIAN = "technician", "Technician"


class Worker(SoftDeleteModel):
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20)
    role = models.CharField(
        max_length=20,
        choices=WorkerRole.choices,
        default=WorkerRole.LOADER,
    )
    standard_daily_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "workers"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="workers_active_idx"),
            models.Index(fields=["role"], name="workers_role_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.role})"

"""Rental Order, OrderItem, and OrderStatusHistory models.

- Order number auto-generated as human-readable identifier.
- Idempotency via ``idempotency_key`` unique constraint.
- ``rental_start_date`` / ``rental_end_date`` are plain dates; the agreed
  billing period is ``default_chargeable_days``.
- ``chargeable_days``, ``adjusted_amount``, ``calculation`` and
  ``actual_return_date`` are written back by the last accepted status change.
- OrderItem subtotal is always ``quantity * unit_price`` (calculated on save).
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import ORDER_NUMBER_MAX_RETRIES, OrderStatus
from modules.orders.transitions import allowed_next_statuses, can_transition, is_terminal
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, SoftDeleteModel):
    """Rental order aggregate root.

    ``order_number`` is generated on first save (``RNT-YYYYMMDD-XXXXXX``);
    the UUIDv7 ``id`` is used for all internal references and API lookups.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    client_name: models.CharField = models.CharField(max_length=255)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    rental_start_date: models.DateField = models.DateField()
    rental_end_date: models.DateField = models.DateField()
    actual_return_date: models.DateField = models.DateField(null=True, blank=True)
    default_chargeable_days: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    chargeable_days: models.PositiveIntegerField = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    adjusted_amount: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
    )
    calculation: models.JSONField = models.JSONField(null=True, blank=True)
    workers: models.ManyToManyField = models.ManyToManyField(
        "workers.Worker",
        related_name="orders",
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "rental_orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="rental_orders_status_idx"),
            models.Index(fields=["-created_at"], name="rental_orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(rental_end_date__gte=models.F("rental_start_date")),
                name="rental_orders_period_ordered",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    @property
    def allowed_statuses(self) -> tuple[str, ...]:
        return allowed_next_statuses(self.status)

    def can_transition_to(self, new_status: str) -> bool:
        return can_transition(self.status, new_status)

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"RNT-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(SoftDeleteModel):
    """Rented line item.  ``subtotal`` is the per-day charge of the line."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_name: models.CharField = models.CharField(max_length=255)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "rental_order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="rental_order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.unit_price is None:
            raise ValidationError({"unit_price": "Unit price is required."})
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} ({self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    Audit records are immutable, hence ``BaseModel`` and not
    ``SoftDeleteModel``.  ``user`` is ``None`` for system changes (seed data,
    management commands).
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    actual_date: models.DateField = models.DateField(null=True, blank=True)
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "rental_order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="rosh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"

"""Rental order DTOs for the Service Layer and the pure core.

Framework-agnostic data transfer objects using Pydantic v2.  DTOs are
immutable (``frozen=True``).

- ``OrderItemSnapshot`` / ``OrderSnapshot``: read-only view of an order
  consumed by the proration calculator and the status-change workflow.
- ``WorkerPresenceDTO``: one ``{worker_id, present}`` pair of a transition.
- ``StatusChangeDTO``: the order-update payload of a status change.
- ``CreateOrderItemDTO`` / ``CreateOrderDTO``: order creation input.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

if TYPE_CHECKING:
    from modules.orders.models import Order


def _require_positive_quantity(v: int) -> int:
    if v < 1:
        raise ValueError("Quantity must be at least 1.")
    return v


def _require_non_negative(v: Optional[Decimal]) -> Optional[Decimal]:
    if v is not None and v < 0:
        raise ValueError("Amount cannot be negative.")
    return v


# ---------------------------------------------------------------------------
# Snapshots (input of the pure core)
# ---------------------------------------------------------------------------


class OrderItemSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    quantity: int
    unit_price: Decimal

    check_quantity = field_validator("quantity")(_require_positive_quantity)
    check_price = field_validator("unit_price")(_require_non_negative)


class OrderSnapshot(BaseModel):
    """Everything the status-change core needs to know about an order."""

    model_config = ConfigDict(frozen=True)

    id: Optional[UUID] = None
    status: str
    rental_start_date: Optional[date] = None
    rental_end_date: Optional[date] = None
    actual_return_date: Optional[date] = None
    default_chargeable_days: Optional[int] = None
    chargeable_days: Optional[int] = None
    total_amount: Decimal = Decimal("0")
    items: List[OrderItemSnapshot] = []
    worker_ids: List[UUID] = []

    check_total = field_validator("total_amount")(_require_non_negative)

    @field_validator("worker_ids")
    @classmethod
    def unique_workers(cls, v: List[UUID]) -> List[UUID]:
        return list(dict.fromkeys(v))

    @classmethod
    def from_entity(cls, order: Order) -> OrderSnapshot:
        """Build a snapshot from an Order model instance.

        Assumes ``items`` and ``workers`` are prefetched.
        """
        return cls(
            id=order.id,
            status=order.status,
            rental_start_date=order.rental_start_date,
            rental_end_date=order.rental_end_date,
            actual_return_date=order.actual_return_date,
            default_chargeable_days=order.default_chargeable_days,
            chargeable_days=order.chargeable_days,
            total_amount=order.total_amount,
            items=[
                OrderItemSnapshot(quantity=item.quantity, unit_price=item.unit_price)
                for item in order.items.all()
            ],
            worker_ids=[worker.id for worker in order.workers.all()],
        )


# ---------------------------------------------------------------------------
# Status change (order-update payload)
# ---------------------------------------------------------------------------


class WorkerPresenceDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    worker_id: UUID
    present: bool = True


class StatusChangeDTO(BaseModel):
    """Immutable payload of a status change.

    ``adjusted_amount`` and ``calculation`` are what the client displayed;
    the service recomputes both and keeps its own figures.
    """

    model_config = ConfigDict(frozen=True)

    status: str
    actual_date: date
    chargeable_days: Optional[int] = None
    adjusted_amount: Optional[Decimal] = None
    calculation: Optional[Dict[str, Any]] = None
    workers: List[WorkerPresenceDTO] = []
    notes: str = ""

    check_amount = field_validator("adjusted_amount")(_require_non_negative)

    @field_validator("status")
    @classmethod
    def canonical_status(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("chargeable_days")
    @classmethod
    def chargeable_days_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("Chargeable days must be at least 1.")
        return v

    @property
    def present_worker_ids(self) -> List[UUID]:
        return list(dict.fromkeys(w.worker_id for w in self.workers if w.present))


# ---------------------------------------------------------------------------
# Order creation
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_name: str
    quantity: int
    unit_price: Decimal

    check_quantity = field_validator("quantity")(_require_positive_quantity)
    check_price = field_validator("unit_price")(_require_non_negative)

    @field_validator("product_name")
    @classmethod
    def product_name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Product name is required.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for rental order creation requests.

    Validates:
    - ``items`` must contain at least one item.
    - ``rental_end_date`` must not precede ``rental_start_date``.
    """

    model_config = ConfigDict(frozen=True)

    client_name: str
    rental_start_date: date
    rental_end_date: date
    items: List[CreateOrderItemDTO]
    default_chargeable_days: Optional[int] = None
    notes: Optional[str] = ""
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("default_chargeable_days")
    @classmethod
    def default_days_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("Default chargeable days must be at least 1.")
        return v

    @model_validator(mode="after")
    def rental_period_is_ordered(self):
        if self.rental_end_date < self.rental_start_date:
            raise ValueError("Rental end date cannot precede the start date.")
        return self

"""Domain events for the rental Orders bounded context.

Extra fields carry defaults so they can follow the defaulted base fields.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when a rental order is created."""

    order_number: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every accepted status transition."""

    old_status: str = ""
    new_status: str = ""
    actual_date: str = ""


@dataclass(frozen=True)
class OrderCompleted(DomainEvent):
    """Raised when the rented items come back."""

    adjusted_amount: str = ""
    difference: str = ""
    is_early_return: bool = False
    is_late_return: bool = False


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when a rental order is cancelled."""

    adjusted_amount: str = ""

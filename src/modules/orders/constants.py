"""Rental order domain constants.

Status choices and the ordered transition table of the order
state machine.  Keys and values are canonical lowercase strings.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending (Awaiting Confirmation)"
    CONFIRMED = "confirmed", "Confirmed (Ready for Pickup)"
    IN_PROGRESS = "in_progress", "In Progress (Items Rented Out)"
    COMPLETED = "completed", "Completed (Items Returned)"
    CANCELLED = "cancelled", "Cancelled"


# Ordered: the first entry is the default suggestion when a change is opened.
VALID_TRANSITIONS: dict[str, tuple[str, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED),
    OrderStatus.IN_PROGRESS: (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

# Statuses that record the date the items actually came back.
RETURN_DATE_STATES: frozenset[str] = TERMINAL_STATES

ORDER_NUMBER_MAX_RETRIES = 5

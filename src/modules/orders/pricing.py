"""Rental charge proration for order status changes.

Recomputes what an order is worth when it is completed (early, on time or
late) or cancelled:

- Early return: charge the used days at the daily rate, never less than
  ``early_return_floor`` of the full amount.
- Late return: every day past the agreed period costs the daily rate times
  ``late_surcharge``.
- Cancellation: the total charge becomes ``cancellation_fee`` of the full
  amount.

All functions are pure.  Dates are calendar dates (time of day ignored);
money is ``Decimal`` and rounded once, to whole currency units, on the final
figures.  A calculation that cannot be carried out (unparseable date,
degenerate day count) never raises: it returns the order's agreed total with
``degenerate=True`` and logs a warning.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from modules.orders.constants import OrderStatus
from modules.orders.dtos import OrderSnapshot
from modules.orders.exceptions import CalculationDegenerate
from modules.orders.transitions import normalize_status

logger = structlog.get_logger(__name__)

WHOLE_UNIT = Decimal("1")
HALF_UNIT = Decimal("0.5")


@dataclass(frozen=True)
class PricingRules:
    early_return_floor: Decimal = Decimal("0.5")
    late_surcharge: Decimal = Decimal("1.5")
    cancellation_fee: Decimal = Decimal("0.10")

    @classmethod
    def from_settings(cls) -> PricingRules:
        from django.conf import settings

        return cls(
            early_return_floor=settings.RENTAL_EARLY_RETURN_FLOOR,
            late_surcharge=settings.RENTAL_LATE_SURCHARGE,
            cancellation_fee=settings.RENTAL_CANCELLATION_FEE,
        )


DEFAULT_RULES = PricingRules()


class CalculationResult(BaseModel):
    """Outcome of one proration run.

    ``planned_period_days``, ``daily_rate`` and ``actual_date`` are ``None``
    on a degenerate (fallback) result.
    """

    model_config = ConfigDict(frozen=True)

    planned_period_days: Optional[int] = None
    default_chargeable_days: Optional[int] = None
    chargeable_days: int
    daily_rate: Optional[Decimal] = None
    original_amount: Decimal
    adjusted_amount: Decimal
    difference: Decimal
    is_early_return: bool = False
    is_late_return: bool = False
    actual_date: Optional[date] = None
    degenerate: bool = False

    def as_payload(self) -> dict[str, Any]:
        """JSON-safe dict (ISO dates, decimal strings)."""
        return self.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def parse_calendar_date(value: Any) -> date:
    """Coerce *value* to a ``date``, dropping any time-of-day component.

    Accepts ``date``, ``datetime``, ``YYYY-MM-DD`` and ISO datetime strings.

    Raises:
        ValueError: for anything else, including ``None`` and empty strings.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        head = value.strip().split("T", 1)[0].split(" ", 1)[0]
        return date.fromisoformat(head)
    raise ValueError(f"Unparseable calendar date: {value!r}")


def calculate_chargeable_days(start: Any, end: Any, minimum_days: int = 1) -> int:
    """Inclusive number of billable days between two rental dates.

    A same-day rental counts as one day; otherwise both the start and the
    end day are charged.  Missing or invalid dates yield *minimum_days*.
    """
    try:
        start_date = parse_calendar_date(start)
        end_date = parse_calendar_date(end)
    except ValueError:
        return minimum_days
    span = (end_date - start_date).days
    days = 1 if span == 0 else span + 1
    return max(minimum_days, days)


def round_money(value: Decimal) -> Decimal:
    """Round to whole units, halves toward positive infinity (-2.5 -> -2)."""
    return (value + HALF_UNIT).quantize(WHOLE_UNIT, rounding=ROUND_FLOOR)


# ---------------------------------------------------------------------------
# Proration
# ---------------------------------------------------------------------------


def calculate_adjustment(
    order: OrderSnapshot,
    requested_status: str,
    actual_date: Any,
    chargeable_days_override: Optional[int] = None,
    rules: Optional[PricingRules] = None,
) -> CalculationResult:
    """Compute the chargeable days and adjusted amount of a status change.

    *actual_date* is the day the return or cancellation happened and may be
    a raw boundary value (ISO string); *chargeable_days_override* is the
    operator's day count, ignored when absent or not positive.
    """
    status = normalize_status(requested_status)
    override = (
        chargeable_days_override
        if chargeable_days_override and chargeable_days_override > 0
        else None
    )
    try:
        return _prorate(order, status, actual_date, override, rules or DEFAULT_RULES)
    except (CalculationDegenerate, ValueError, ArithmeticError) as exc:
        logger.warning(
            "order.calculation_degenerate",
            order_id=str(order.id) if order.id else None,
            requested_status=status,
            actual_date=str(actual_date),
            error=str(exc),
        )
        return _fallback(order, override)


def _full_amount(order: OrderSnapshot, default_days: int) -> Decimal:
    """Planned charge for the whole agreed period."""
    if not order.items:
        return order.total_amount
    return sum(
        (
            Decimal(item.quantity) * item.unit_price * default_days
            for item in order.items
        ),
        Decimal("0"),
    )


def _prorate(
    order: OrderSnapshot,
    status: str,
    actual_date: Any,
    override: Optional[int],
    rules: PricingRules,
) -> CalculationResult:
    start = parse_calendar_date(order.rental_start_date)
    end = parse_calendar_date(order.rental_end_date)
    event_date = parse_calendar_date(actual_date)

    planned_period_days = (end - start).days + 1
    default_days = (
        order.default_chargeable_days or order.chargeable_days or planned_period_days
    )
    if default_days < 1:
        raise CalculationDegenerate(
            f"Default chargeable days resolved to {default_days}."
        )

    full_amount = _full_amount(order, default_days)
    daily_rate = full_amount / default_days
    if daily_rate == 0 or not daily_rate.is_finite():
        daily_rate = full_amount

    if status == OrderStatus.COMPLETED:
        if override is None or override == default_days:
            chargeable_days = max(1, (event_date - start).days)
        else:
            chargeable_days = override

        if chargeable_days < default_days:
            adjusted_amount = max(
                full_amount * rules.early_return_floor,
                chargeable_days * daily_rate,
            )
        elif chargeable_days > default_days:
            extra_days = chargeable_days - default_days
            adjusted_amount = full_amount + extra_days * daily_rate * rules.late_surcharge
        else:
            adjusted_amount = full_amount
    elif status == OrderStatus.CANCELLED:
        chargeable_days = override or default_days
        adjusted_amount = full_amount * rules.cancellation_fee
    else:
        chargeable_days = override or default_days
        adjusted_amount = full_amount

    if not adjusted_amount.is_finite():
        raise CalculationDegenerate("Adjusted amount is not finite.")

    completed = status == OrderStatus.COMPLETED
    return CalculationResult(
        planned_period_days=planned_period_days,
        default_chargeable_days=default_days,
        chargeable_days=chargeable_days,
        daily_rate=round_money(daily_rate),
        original_amount=round_money(full_amount),
        adjusted_amount=round_money(adjusted_amount),
        difference=round_money(adjusted_amount - full_amount),
        is_early_return=completed and chargeable_days < default_days,
        is_late_return=completed and chargeable_days > default_days,
        actual_date=event_date,
    )


def _fallback(order: OrderSnapshot, override: Optional[int]) -> CalculationResult:
    return CalculationResult(
        default_chargeable_days=order.default_chargeable_days,
        chargeable_days=max(1, override or order.default_chargeable_days or 1),
        original_amount=order.total_amount,
        adjusted_amount=order.total_amount,
        difference=Decimal("0"),
        degenerate=True,
    )

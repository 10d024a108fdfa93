"""Order status transition validation.

Pure functions over the ``VALID_TRANSITIONS`` table; input statuses are
matched case-insensitively and results are canonical lowercase values.
"""

from __future__ import annotations

from typing import Optional

from modules.orders.constants import TERMINAL_STATES, VALID_TRANSITIONS
from modules.orders.exceptions import InvalidTransition


def normalize_status(status: Optional[str]) -> str:
    return (status or "").strip().lower()


def allowed_next_statuses(current: Optional[str]) -> tuple[str, ...]:
    """Statuses reachable from *current* in exactly one step, in display order.

    Unknown statuses have no successors.
    """
    return tuple(str(s) for s in VALID_TRANSITIONS.get(normalize_status(current), ()))


def can_transition(current: Optional[str], requested: Optional[str]) -> bool:
    return normalize_status(requested) in allowed_next_statuses(current)


def ensure_transition(current: Optional[str], requested: Optional[str]) -> str:
    """Return the canonical *requested* status or raise ``InvalidTransition``."""
    allowed = allowed_next_statuses(current)
    target = normalize_status(requested)
    if target not in allowed:
        raise InvalidTransition(normalize_status(current), target, allowed)
    return target


def is_terminal(status: Optional[str]) -> bool:
    return normalize_status(status) in TERMINAL_STATES

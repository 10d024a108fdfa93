"""Rental order domain exceptions.

Raised by the pure core and the Service Layer when business rules are
violated.  The API layer (Views) catches these and translates them into
HTTP responses.
"""

from __future__ import annotations

from typing import Sequence


class OrderNotFound(Exception):
    """The requested order does not exist or has been soft-deleted."""


class InvalidTransition(Exception):
    """The requested status is not reachable in one step from the current one.

    ``allowed`` carries the statuses the caller should offer instead.
    """

    def __init__(self, current: str, requested: str, allowed: Sequence[str]) -> None:
        self.current = current
        self.requested = requested
        self.allowed = tuple(allowed)
        options = ", ".join(self.allowed) or "none"
        super().__init__(
            f"Cannot transition from {current or 'unknown'} to {requested or 'empty'}. "
            f"Allowed: {options}."
        )


class InvalidActualDate(Exception):
    """The actual event date precedes the rental start or lies in the future."""


class CalculationDegenerate(Exception):
    """Dates or amounts produced a non-finite or meaningless intermediate value."""


class EmptyWorkerSet(Exception):
    """A status change was submitted without any worker marked present."""


class WorkerNotInRoster(Exception):
    """A worker was added to a crew selection but is absent from the roster."""


class WorkflowError(Exception):
    """A status-change workflow step was attempted from the wrong state."""


class SubmissionFailed(Exception):
    """The order-update collaborator rejected or failed the status change."""

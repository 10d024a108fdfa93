"""Status change orchestration.

``StatusChangeWorkflow`` drives one status change of one order through its
two steps: pick status and date (with a live calculation preview), then
confirm the worker crew and submit.  The order-update collaborator is
injected into ``submit`` as a plain callable ``updater(order_id, dto)``.

States::

    idle -> awaiting_status_and_date -> awaiting_workers -> submitting -> done
                                             ^                  |
                                             +---- failed <-----+
"""

from __future__ import annotations

import enum
from datetime import date
from typing import Any, Callable, List, Optional, Sequence
from uuid import UUID

import structlog

from modules.orders.crew import CrewMember, CrewSelection
from modules.orders.dtos import OrderSnapshot, StatusChangeDTO
from modules.orders.exceptions import EmptyWorkerSet, SubmissionFailed, WorkflowError
from modules.orders.pricing import (
    CalculationResult,
    PricingRules,
    calculate_adjustment,
    parse_calendar_date,
)
from modules.orders.transitions import allowed_next_statuses, ensure_transition
from modules.workers.dtos import RosterWorkerDTO

logger = structlog.get_logger(__name__)

Updater = Callable[[UUID, StatusChangeDTO], Any]


class WorkflowState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_STATUS_AND_DATE = "awaiting_status_and_date"
    AWAITING_WORKERS = "awaiting_workers"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class StatusChangeWorkflow:
    def __init__(self, rules: Optional[PricingRules] = None) -> None:
        self.rules = rules
        self._reset()

    def _reset(self) -> None:
        self.state = WorkflowState.IDLE
        self.order: Optional[OrderSnapshot] = None
        self.crew: Optional[CrewSelection] = None
        self.requested_status = ""
        self.actual_date: Any = None
        self.chargeable_days: Optional[int] = None
        self.notes = ""
        self.last_error: Optional[str] = None
        self.result: Any = None

    def _require(self, *states: WorkflowState) -> None:
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise WorkflowError(
                f"Workflow is {self.state.value}; expected one of: {expected}."
            )

    # ------------------------------------------------------------------
    # Step 1: status and date
    # ------------------------------------------------------------------

    def open(
        self,
        order: OrderSnapshot,
        roster: Sequence[RosterWorkerDTO],
        today: date,
    ) -> None:
        """Start a status change for *order*.

        The first allowed next status is preselected and the date defaults to
        the order's recorded return date, else *today*.
        """
        if self.state == WorkflowState.SUBMITTING:
            raise WorkflowError("Cannot reopen while a submission is in flight.")
        self._reset()
        self.order = order
        allowed = allowed_next_statuses(order.status)
        self.requested_status = allowed[0] if allowed else ""
        self.actual_date = order.actual_return_date or today
        self.crew = CrewSelection.for_order(roster, order.worker_ids)
        self.state = WorkflowState.AWAITING_STATUS_AND_DATE

    @property
    def allowed_statuses(self) -> tuple[str, ...]:
        if self.order is None:
            return ()
        return allowed_next_statuses(self.order.status)

    def select_status(self, status: str) -> None:
        self._require(WorkflowState.AWAITING_STATUS_AND_DATE)
        self.requested_status = ensure_transition(self.order.status, status)

    def set_actual_date(self, value: Any) -> None:
        self._require(WorkflowState.AWAITING_STATUS_AND_DATE)
        self.actual_date = value

    def set_chargeable_days(self, days: Optional[int]) -> None:
        self._require(WorkflowState.AWAITING_STATUS_AND_DATE)
        self.chargeable_days = days

    @property
    def calculation(self) -> Optional[CalculationResult]:
        """Live preview for the current inputs, ``None`` before a status is set."""
        if self.order is None or not self.requested_status:
            return None
        return calculate_adjustment(
            self.order,
            self.requested_status,
            self.actual_date,
            self.chargeable_days,
            self.rules,
        )

    @property
    def can_proceed(self) -> bool:
        if not self.requested_status or self.actual_date in (None, ""):
            return False
        try:
            parse_calendar_date(self.actual_date)
        except ValueError:
            return False
        return True

    def proceed_to_workers(self) -> None:
        self._require(WorkflowState.AWAITING_STATUS_AND_DATE)
        if not self.can_proceed:
            raise WorkflowError("A status and a valid actual date are required.")
        self.state = WorkflowState.AWAITING_WORKERS

    def back(self) -> None:
        self._require(WorkflowState.AWAITING_WORKERS)
        self.state = WorkflowState.AWAITING_STATUS_AND_DATE

    # ------------------------------------------------------------------
    # Step 2: workers and submission
    # ------------------------------------------------------------------

    def available_workers(self) -> List[RosterWorkerDTO]:
        return self.crew.available() if self.crew else []

    def add_worker(self, worker_id: UUID) -> CrewMember:
        self._require(WorkflowState.AWAITING_WORKERS)
        return self.crew.add(worker_id)

    def toggle_worker(self, worker_id: UUID) -> bool:
        self._require(WorkflowState.AWAITING_WORKERS)
        return self.crew.toggle(worker_id)

    @property
    def can_submit(self) -> bool:
        return (
            self.state == WorkflowState.AWAITING_WORKERS
            and self.crew is not None
            and self.crew.can_submit
        )

    def submit(self, updater: Updater) -> Any:
        """Recompute the calculation and hand the change to *updater*.

        Raises:
            WorkflowError: not on the worker step.
            EmptyWorkerSet: no worker is marked present.
            SubmissionFailed: *updater* raised; the workflow is back on the
                worker step with every input kept.
        """
        self._require(WorkflowState.AWAITING_WORKERS)
        if not self.crew.can_submit:
            raise EmptyWorkerSet("At least one worker must be marked present.")

        self.state = WorkflowState.SUBMITTING
        calculation = self.calculation
        dto = StatusChangeDTO(
            status=self.requested_status,
            actual_date=parse_calendar_date(self.actual_date),
            chargeable_days=calculation.chargeable_days,
            adjusted_amount=calculation.adjusted_amount,
            calculation=calculation.as_payload(),
            workers=self.crew.payload(),
            notes=self.notes,
        )
        log = logger.bind(order_id=str(self.order.id), status=self.requested_status)

        try:
            result = updater(self.order.id, dto)
        except Exception as exc:
            self.state = WorkflowState.FAILED
            self.last_error = str(exc)
            log.warning("order.status_change_failed", error=self.last_error)
            self.state = WorkflowState.AWAITING_WORKERS
            raise SubmissionFailed(self.last_error) from exc

        self.state = WorkflowState.DONE
        self.last_error = None
        self.result = result
        log.info("order.status_change_submitted")
        return result

    def close(self) -> None:
        if self.state == WorkflowState.SUBMITTING:
            raise WorkflowError("Cannot close while a submission is in flight.")
        self._reset()

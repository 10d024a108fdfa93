"""Rental order service layer (Use Cases).

Orchestrates order creation and status changes.  All write operations are
atomic: the service defines the unit-of-work boundary.

Business rules enforced:
- Status transitions validated against the transition table.
- The actual date of a change never lies in the future and never precedes
  the rental start.
- A status change needs at least one present worker; the order's worker set
  becomes exactly the present workers.
- Charges are recomputed server-side; the client's figure is advisory.
- History recorded and domain events written on every accepted change.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.orders.constants import RETURN_DATE_STATES, OrderStatus
from modules.orders.dtos import OrderSnapshot
from modules.orders.events import (
    OrderCancelled,
    OrderCompleted,
    OrderCreated,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    EmptyWorkerSet,
    InvalidActualDate,
    InvalidTransition,
    OrderNotFound,
)
from modules.orders.pricing import (
    CalculationResult,
    PricingRules,
    calculate_adjustment,
    calculate_chargeable_days,
    parse_calendar_date,
)
from modules.orders.transitions import allowed_next_statuses, ensure_transition
from modules.workers.services import WorkerService

if TYPE_CHECKING:
    from modules.orders.dtos import CreateOrderDTO, StatusChangeDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.workers.repositories.interfaces import IWorkerRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for rental Order use-cases.

    Receives repositories via constructor injection (DIP).  ``rules``
    defaults to the proration rates configured in settings.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        worker_repository: IWorkerRepository,
        rules: Optional[PricingRules] = None,
    ) -> None:
        self._order_repo = order_repository
        self._workers = WorkerService(worker_repository)
        self._rules = rules

    @property
    def rules(self) -> PricingRules:
        if self._rules is None:
            self._rules = PricingRules.from_settings()
        return self._rules

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create a rental order with its items.

        ``default_chargeable_days`` is derived from the rental period when
        not given; ``total_amount`` covers the whole agreed period.
        """
        log = logger.bind(client_name=dto.client_name)
        log.info("order.creation_started")

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing

        default_days = dto.default_chargeable_days or calculate_chargeable_days(
            dto.rental_start_date, dto.rental_end_date
        )
        order = self._order_repo.create(
            {
                "client_name": dto.client_name,
                "rental_start_date": dto.rental_start_date,
                "rental_end_date": dto.rental_end_date,
                "default_chargeable_days": default_days,
                "items": [item.model_dump() for item in dto.items],
                "notes": dto.notes or "",
                "idempotency_key": dto.idempotency_key,
            }
        )

        order.add_domain_event(
            OrderCreated(aggregate_id=order.id, order_number=order.order_number)
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PENDING,
            notes="Order created",
        )

        log.info(
            "order.created",
            order_id=str(order.id),
            default_chargeable_days=default_days,
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def change_status(
        self,
        order_id: UUID,
        dto: StatusChangeDTO,
        today: Optional[date] = None,
    ) -> Order:
        """Apply one status transition to an order.

        Acquires a row-level lock (``SELECT FOR UPDATE``) before validating,
        so concurrent changes of the same order are serialised.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: the status is not reachable from the current one.
            InvalidActualDate: the date is in the future or precedes the rental.
            EmptyWorkerSet: no worker is marked present.
            WorkerNotFound: a present worker is unknown or inactive.
        """
        today = today or timezone.localdate()
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order_id),
            current_status=order.status,
            new_status=dto.status,
        )

        try:
            new_status = ensure_transition(order.status, dto.status)
        except InvalidTransition:
            log.warning("order.invalid_transition")
            raise

        self._check_actual_date(order, dto.actual_date, today)

        present_ids = dto.present_worker_ids
        if not present_ids:
            raise EmptyWorkerSet("At least one worker must be marked present.")
        workers = self._workers.resolve(present_ids)

        calculation = calculate_adjustment(
            OrderSnapshot.from_entity(order),
            new_status,
            dto.actual_date,
            dto.chargeable_days,
            self.rules,
        )
        if (
            dto.adjusted_amount is not None
            and dto.adjusted_amount != calculation.adjusted_amount
        ):
            log.warning(
                "order.calculation_mismatch",
                client_amount=str(dto.adjusted_amount),
                server_amount=str(calculation.adjusted_amount),
            )

        old_status = order.status
        order.status = new_status
        order.chargeable_days = calculation.chargeable_days
        order.adjusted_amount = calculation.adjusted_amount
        order.calculation = calculation.as_payload()
        if new_status in RETURN_DATE_STATES:
            order.actual_return_date = dto.actual_date
        self._record_events(order, old_status, dto.actual_date, calculation)
        self._order_repo.save(order)
        self._order_repo.set_workers(order, workers)

        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            notes=dto.notes,
            old_status=old_status,
            actual_date=dto.actual_date,
        )

        log.info(
            "order.status_changed",
            chargeable_days=calculation.chargeable_days,
            adjusted_amount=str(calculation.adjusted_amount),
            degenerate=calculation.degenerate,
            worker_count=len(workers),
        )
        return self._order_repo.get_by_id(str(order_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def preview_calculation(
        self,
        order_id: str,
        status: str,
        actual_date: Any,
        chargeable_days: Optional[int] = None,
    ) -> CalculationResult:
        """Compute the charge a status change would produce, without saving.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: the status is not reachable from the current one.
        """
        order = self.get_order(str(order_id))
        new_status = ensure_transition(order.status, status)
        return calculate_adjustment(
            OrderSnapshot.from_entity(order),
            new_status,
            actual_date,
            chargeable_days,
            self.rules,
        )

    def allowed_statuses(self, order_id: str) -> tuple[str, ...]:
        return allowed_next_statuses(self.get_order(str(order_id)).status)

    def get_order(self, order_id: str) -> Order:
        """Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_snapshot(self, order_id: str) -> OrderSnapshot:
        return OrderSnapshot.from_entity(self.get_order(str(order_id)))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_actual_date(order: Order, actual_date: date, today: date) -> None:
        actual_date = parse_calendar_date(actual_date)
        if actual_date > today:
            raise InvalidActualDate(
                f"Actual date {actual_date.isoformat()} is in the future."
            )
        start = parse_calendar_date(order.rental_start_date)
        if actual_date < start:
            raise InvalidActualDate(
                f"Actual date {actual_date.isoformat()} precedes the rental "
                f"start {start.isoformat()}."
            )

    @staticmethod
    def _record_events(
        order: Order,
        old_status: str,
        actual_date: date,
        calculation: CalculationResult,
    ) -> None:
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=old_status,
                new_status=order.status,
                actual_date=actual_date.isoformat(),
            )
        )
        if order.status == OrderStatus.COMPLETED:
            order.add_domain_event(
                OrderCompleted(
                    aggregate_id=order.id,
                    adjusted_amount=str(calculation.adjusted_amount),
                    difference=str(calculation.difference),
                    is_early_return=calculation.is_early_return,
                    is_late_return=calculation.is_late_return,
                )
            )
        elif order.status == OrderStatus.CANCELLED:
            order.add_domain_event(
                OrderCancelled(
                    aggregate_id=order.id,
                    adjusted_amount=str(calculation.adjusted_amount),
                )
            )

from __future__ import annotations

from uuid import UUID

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from modules.orders.exceptions import (
    EmptyWorkerSet,
    InvalidTransition,
    OrderNotFound,
    SubmissionFailed,
    WorkerNotInRoster,
    WorkflowError,
)
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.orders.workflow import StatusChangeWorkflow
from modules.workers.repositories.django_repository import WorkerDjangoRepository
from modules.workers.services import WorkerService


def _worker_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise CommandError(f"Invalid worker id: {value}") from exc


class Command(BaseCommand):
    help = (
        "Change the status of a rental order: preview the recomputed charge, "
        "confirm the crew and submit."
    )

    def add_arguments(self, parser):
        parser.add_argument("order_id")
        parser.add_argument(
            "--status", help="Target status (defaults to the first allowed one)."
        )
        parser.add_argument("--date", help="Actual date, YYYY-MM-DD (defaults to today).")
        parser.add_argument("--days", type=int, help="Chargeable days override.")
        parser.add_argument(
            "--worker",
            action="append",
            default=[],
            help="Add a roster worker to the crew (repeatable).",
        )
        parser.add_argument(
            "--absent",
            action="append",
            default=[],
            help="Mark a selected worker as absent (repeatable).",
        )
        parser.add_argument("--notes", default="")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only print the calculation preview.",
        )

    def handle(self, *args, **options):
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            worker_repository=WorkerDjangoRepository(),
        )
        roster = WorkerService(WorkerDjangoRepository()).get_roster()
        today = timezone.localdate()

        try:
            snapshot = service.get_snapshot(options["order_id"])
        except OrderNotFound as exc:
            raise CommandError(str(exc)) from exc

        workflow = StatusChangeWorkflow(rules=service.rules)
        workflow.open(snapshot, roster, today)
        if not workflow.allowed_statuses:
            raise CommandError(f"Order is {snapshot.status}; no further changes allowed.")

        try:
            if options["status"]:
                workflow.select_status(options["status"])
            if options["date"]:
                workflow.set_actual_date(options["date"])
            if options["days"] is not None:
                workflow.set_chargeable_days(options["days"])
        except InvalidTransition as exc:
            raise CommandError(str(exc)) from exc

        self._print_preview(workflow)
        if options["dry_run"]:
            return

        try:
            workflow.proceed_to_workers()
            for value in options["worker"]:
                workflow.add_worker(_worker_id(value))
            for value in options["absent"]:
                workflow.toggle_worker(_worker_id(value))
            order = workflow.submit(
                lambda order_id, dto: service.change_status(order_id, dto, today=today)
            )
        except (WorkflowError, WorkerNotInRoster, EmptyWorkerSet) as exc:
            raise CommandError(str(exc)) from exc
        except SubmissionFailed as exc:
            raise CommandError(f"Status change rejected: {exc}") from exc

        self.stdout.write(
            self.style.SUCCESS(
                f"{order.order_number}: {snapshot.status} -> {order.status} "
                f"(charged {order.adjusted_amount}, crew {order.workers.count()})"
            )
        )

    def _print_preview(self, workflow: StatusChangeWorkflow) -> None:
        result = workflow.calculation
        self.stdout.write(f"Status: {workflow.requested_status}")
        self.stdout.write(f"Actual date: {workflow.actual_date}")
        if result is None:
            return
        if result.degenerate:
            self.stdout.write(
                self.style.WARNING("Dates could not be used; charging the agreed total.")
            )
        self.stdout.write(
            f"Chargeable days: {result.chargeable_days} "
            f"(agreed {result.default_chargeable_days})"
        )
        self.stdout.write(f"Original amount: {result.original_amount}")
        self.stdout.write(f"Adjusted amount: {result.adjusted_amount}")
        self.stdout.write(f"Difference: {result.difference}")
        if result.is_early_return:
            self.stdout.write("Early return")
        if result.is_late_return:
            self.stdout.write("Late return")

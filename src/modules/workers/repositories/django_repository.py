"""Django ORM implementation of the Worker repository.

Missing or malformed IDs yield ``None`` / are skipped; the Service Layer
decides how to report them.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.workers.models import Worker
from modules.workers.repositories.interfaces import IWorkerRepository

logger = structlog.get_logger(__name__)


class WorkerDjangoRepository(IWorkerRepository):
    """Concrete Worker repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Worker]:
        try:
            return Worker.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Worker]:
        queryset = Worker.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def roster(self, active_only: bool = True) -> List[Worker]:
        queryset = Worker.objects.alive()
        if active_only:
            queryset = queryset.filter(is_active=True)
        return list(queryset.order_by("name"))

    def get_many(self, ids: Iterable[UUID]) -> List[Worker]:
        return list(
            Worker.objects.alive().filter(id__in=list(ids), is_active=True)
        )

    @transaction.atomic
    def save(self, entity: Worker) -> Worker:
        is_new = entity._state.adding
        entity.save()
        logger.info("worker.saved", worker_id=str(entity.id), is_new=is_new)
        return entity

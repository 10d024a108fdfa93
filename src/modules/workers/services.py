"""Worker service layer: roster queries used by the order workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List
from uuid import UUID

import structlog

from modules.workers.dtos import RosterWorkerDTO
from modules.workers.exceptions import WorkerNotFound

if TYPE_CHECKING:
    from modules.workers.models import Worker
    from modules.workers.repositories.interfaces import IWorkerRepository

logger = structlog.get_logger(__name__)


class WorkerService:
    def __init__(self, repository: IWorkerRepository) -> None:
        self._repo = repository

    def get_roster(self, active_only: bool = True) -> List[RosterWorkerDTO]:
        """Return the worker roster as ``{id, name, role}`` entries."""
        roster = [RosterWorkerDTO.from_entity(w) for w in self._repo.roster(active_only)]
        logger.info("worker.roster_fetched", count=len(roster))
        return roster

    def get_worker(self, id: str) -> Worker:
        """Raises:
            WorkerNotFound: if the worker does not exist.
        """
        worker = self._repo.get_by_id(id)
        if not worker:
            raise WorkerNotFound(f"Worker {id} not found.")
        return worker

    def resolve(self, ids: Iterable[UUID]) -> List[Worker]:
        """Load every worker in *ids*, failing on the first unknown one.

        Raises:
            WorkerNotFound: an ID is unknown, inactive or soft-deleted.
        """
        wanted = list(dict.fromkeys(ids))
        found = {w.id: w for w in self._repo.get_many(wanted)}
        missing = [str(i) for i in wanted if i not in found]
        if missing:
            raise WorkerNotFound(f"Workers not found: {', '.join(missing)}.")
        return [found[i] for i in wanted]

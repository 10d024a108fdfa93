"""Worker repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, List
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.workers.models import Worker


class IWorkerRepository(IRepository["Worker"]):
    """Repository contract for the Worker roster."""

    @abstractmethod
    def get_many(self, ids: Iterable[UUID]) -> List[Worker]:
        """Return the active, non-deleted workers among *ids*."""

    @abstractmethod
    def roster(self, active_only: bool = True) -> List[Worker]:
        """Return the full roster ordered by name."""

"""Worker DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from modules.workers.models import Worker


class RosterWorkerDTO(BaseModel):
    """One entry of the worker roster: ``{id, name, role}``."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    role: str

    @classmethod
    def from_entity(cls, worker: Worker) -> RosterWorkerDTO:
        return cls(id=worker.id, name=worker.name, role=worker.role)

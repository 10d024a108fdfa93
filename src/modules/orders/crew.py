"""Worker presence for a status change.

A ``CrewSelection`` starts from the workers already assigned to the order
(all marked present) and lets the operator add roster workers or toggle
presence.  Only present workers go into the update payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence
from uuid import UUID

from modules.orders.dtos import WorkerPresenceDTO
from modules.orders.exceptions import WorkerNotInRoster
from modules.workers.dtos import RosterWorkerDTO


@dataclass
class CrewMember:
    worker: RosterWorkerDTO
    present: bool = True

    @property
    def worker_id(self) -> UUID:
        return self.worker.id


@dataclass
class CrewSelection:
    roster: Sequence[RosterWorkerDTO]
    members: Dict[UUID, CrewMember] = field(default_factory=dict)

    @classmethod
    def for_order(
        cls, roster: Sequence[RosterWorkerDTO], assigned_ids: Iterable[UUID]
    ) -> CrewSelection:
        """Seed the selection with the roster workers assigned to the order.

        Assigned ids missing from the roster are dropped.
        """
        assigned = set(assigned_ids)
        selection = cls(roster=tuple(roster))
        for worker in selection.roster:
            if worker.id in assigned:
                selection.members[worker.id] = CrewMember(worker=worker)
        return selection

    @property
    def selected(self) -> List[CrewMember]:
        return list(self.members.values())

    def available(self) -> List[RosterWorkerDTO]:
        """Roster workers not yet in the selection."""
        return [w for w in self.roster if w.id not in self.members]

    def _roster_worker(self, worker_id: UUID) -> RosterWorkerDTO:
        for worker in self.roster:
            if worker.id == worker_id:
                return worker
        raise WorkerNotInRoster(f"Worker {worker_id} is not in the roster.")

    def add(self, worker_id: UUID) -> CrewMember:
        if worker_id in self.members:
            return self.members[worker_id]
        member = CrewMember(worker=self._roster_worker(worker_id))
        self.members[worker_id] = member
        return member

    def toggle(self, worker_id: UUID) -> bool:
        """Flip presence of a selected worker and return the new value."""
        member = self.members.get(worker_id)
        if member is None:
            raise WorkerNotInRoster(f"Worker {worker_id} is not selected.")
        member.present = not member.present
        return member.present

    @property
    def present_count(self) -> int:
        return sum(1 for m in self.members.values() if m.present)

    @property
    def can_submit(self) -> bool:
        return self.present_count > 0

    def payload(self) -> List[WorkerPresenceDTO]:
        return [
            WorkerPresenceDTO(worker_id=m.worker_id, present=True)
            for m in self.members.values()
            if m.present
        ]

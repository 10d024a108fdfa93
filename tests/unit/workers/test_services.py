"""Unit tests for WorkerService with a mocked repository."""

from __future__ import annotations

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from modules.workers.dtos import RosterWorkerDTO
from modules.workers.exceptions import WorkerNotFound
from modules.workers.services import WorkerService

pytestmark = pytest.mark.unit


def _worker(name="Otieno", role="driver"):
    worker = MagicMock()
    worker.id = uuid4()
    worker.name = name
    worker.role = role
    return worker


@pytest.fixture()
def repo():
    return MagicMock()


class TestGetRoster:
    def test_maps_entities_to_dtos(self, repo):
        otieno = _worker()
        repo.roster.return_value = [otieno]

        roster = WorkerService(repo).get_roster()

        assert roster == [RosterWorkerDTO(id=otieno.id, name="Otieno", role="driver")]
        repo.roster.assert_called_once_with(True)

    def test_can_include_inactive(self, repo):
        repo.roster.return_value = []
        assert WorkerService(repo).get_roster(active_only=False) == []
        repo.roster.assert_called_once_with(False)


class TestGetWorker:
    def test_found(self, repo):
        worker = _worker()
        repo.get_by_id.return_value = worker
        assert WorkerService(repo).get_worker(str(worker.id)) is worker

    def test_missing(self, repo):
        repo.get_by_id.return_value = None
        with pytest.raises(WorkerNotFound):
            WorkerService(repo).get_worker(str(uuid4()))


class TestResolve:
    def test_keeps_requested_order_and_drops_duplicates(self, repo):
        a, b = _worker("Achieng"), _worker("Baraka")
        repo.get_many.return_value = [b, a]

        resolved = WorkerService(repo).resolve([a.id, b.id, a.id])

        assert resolved == [a, b]
        repo.get_many.assert_called_once_with([a.id, b.id])

    def test_unknown_id_names_missing_worker(self, repo):
        known = _worker()
        unknown = uuid4()
        repo.get_many.return_value = [known]

        with pytest.raises(WorkerNotFound, match=str(unknown)):
            WorkerService(repo).resolve([known.id, unknown])

    def test_empty_ids(self, repo):
        repo.get_many.return_value = []
        assert WorkerService(repo).resolve([]) == []

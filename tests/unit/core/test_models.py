"""Unit tests for BaseModel and SoftDeleteModel.

Exercised through ``Worker``, the smallest concrete soft-deletable model.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from freezegun import freeze_time

from modules.core.models import SoftDeleteManager, SoftDeleteQuerySet
from modules.workers.models import Worker

pytestmark = pytest.mark.unit


class TestBaseModel:
    def test_id_is_uuid_version_7(self, make_worker):
        worker = make_worker()
        assert isinstance(worker.id, uuid.UUID)
        assert worker.id.version == 7

    def test_ids_are_time_ordered(self, make_worker):
        first = make_worker()
        second = make_worker()
        assert str(first.id) < str(second.id)

    def test_id_is_not_editable(self):
        assert Worker._meta.get_field("id").editable is False

    def test_timestamps_set_on_create(self, make_worker):
        worker = make_worker()
        assert worker.created_at is not None
        assert worker.updated_at is not None

    def test_save_with_update_fields_touches_updated_at(self, make_worker):
        with freeze_time("2024-01-10 08:00:00"):
            worker = make_worker()
        with freeze_time("2024-01-11 08:00:00"):
            worker.phone = "0711000000"
            worker.save(update_fields=["phone"])

        worker.refresh_from_db()
        assert worker.updated_at == datetime(2024, 1, 11, 8, tzinfo=timezone.utc)
        assert worker.created_at == datetime(2024, 1, 10, 8, tzinfo=timezone.utc)


class TestSoftDeleteModel:
    def test_new_instance_is_alive(self, make_worker):
        worker = make_worker()
        assert worker.is_deleted is False
        assert worker.deleted_at is None

    @freeze_time("2024-03-01 12:00:00")
    def test_delete_records_timestamp(self, make_worker):
        worker = make_worker()
        result = worker.delete()

        worker.refresh_from_db()
        assert worker.deleted_at == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
        assert result == (1, {"workers.Worker": 1})

    def test_second_delete_is_noop(self, make_worker):
        worker = make_worker()
        worker.delete()
        assert worker.delete() == (0, {})

    def test_row_survives_and_leaves_alive_set(self, make_worker):
        kept = make_worker()
        gone = make_worker()
        gone.delete()

        assert Worker.objects.filter(pk=gone.pk).exists()
        assert set(Worker.objects.alive()) == {kept}
        assert set(Worker.objects.all().dead()) == {gone}


class TestSoftDeleteQuerySet:
    def test_bulk_delete_skips_already_deleted(self, make_worker):
        a = make_worker()
        b = make_worker()
        a.delete()

        count, details = Worker.objects.filter(pk__in=[a.pk, b.pk]).delete()

        assert count == 1
        assert details == {"workers.Worker": 1}
        b.refresh_from_db()
        assert b.is_deleted

    def test_manager_and_queryset_types(self):
        assert isinstance(Worker.objects, SoftDeleteManager)
        assert isinstance(Worker.objects.all(), SoftDeleteQuerySet)

"""Worker roster API (read-only)."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.workers.exceptions import WorkerNotFound
from modules.workers.filters import WorkerFilter
from modules.workers.models import Worker
from modules.workers.repositories.django_repository import WorkerDjangoRepository
from modules.workers.serializers import WorkerSerializer
from modules.workers.services import WorkerService


class WorkerViewSet(ListModelMixin, GenericViewSet):
    """GET /api/v1/workers/, /api/v1/workers/roster/ and /api/v1/workers/{pk}/"""

    filterset_class = WorkerFilter
    search_fields = ["name"]
    ordering_fields = ["name", "created_at"]
    ordering = ["name"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Worker.objects.alive()
    serializer_class = WorkerSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = WorkerService(repository=WorkerDjangoRepository())

    def get_queryset(self):
        return Worker.objects.alive()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            worker = self._service.get_worker(pk or "")
        except WorkerNotFound:
            return Response(
                {"detail": "Worker not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(WorkerSerializer(worker).data)

    @action(detail=False, methods=["get"], pagination_class=None)
    def roster(self, request: Request) -> Response:
        """Active workers as ``{id, name, role}``, for crew pickers."""
        roster = self._service.get_roster()
        return Response([entry.model_dump(mode="json") for entry in roster])

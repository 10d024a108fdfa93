"""Rental order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from uuid import UUID

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    StatusChangeDTO,
    WorkerPresenceDTO,
)
from modules.orders.exceptions import (
    EmptyWorkerSet,
    InvalidActualDate,
    InvalidTransition,
    OrderNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import (
    ORDER_RELATIONS,
    OrderDjangoRepository,
)
from modules.orders.serializers import (
    CalculationPreviewSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    StatusChangeSerializer,
)
from modules.orders.services import OrderService
from modules.workers.exceptions import WorkerNotFound
from modules.workers.repositories.django_repository import WorkerDjangoRepository

ORDER_NOT_FOUND = {"detail": "Order not found."}


def _invalid_transition(exc: InvalidTransition) -> Response:
    return Response(
        {
            "detail": str(exc),
            "current_status": exc.current,
            "allowed_statuses": list(exc.allowed),
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


def _dto_errors(exc: DTOValidationError) -> Response:
    return Response(
        {"detail": [err["msg"] for err in exc.errors()]},
        status=status.HTTP_400_BAD_REQUEST,
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for rental Order operations.

    Uses ``OrderService`` with injected repositories (DIP).  Does **not**
    extend ``ModelViewSet``: writes go through the service/repository layer.
    """

    queryset = Order.objects.alive()
    filterset_class = OrderFilter
    search_fields = ["order_number", "client_name"]
    ordering_fields = ["created_at", "rental_start_date", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            worker_repository=WorkerDjangoRepository(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        if self.action == "create":
            self.throttle_scope = "order_creation"
        elif self.action == "partial_update":
            self.throttle_scope = "order_status_change"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    def get_queryset(self):
        return Order.objects.alive().prefetch_related(*ORDER_RELATIONS).distinct()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = CreateOrderDTO(
                client_name=data["client_name"],
                rental_start_date=data["rental_start_date"],
                rental_end_date=data["rental_end_date"],
                default_chargeable_days=data.get("default_chargeable_days"),
                items=[CreateOrderItemDTO(**item) for item in data["items"]],
                notes=data.get("notes", ""),
                idempotency_key=request.headers.get("Idempotency-Key"),
            )
        except DTOValidationError as exc:
            return _dto_errors(exc)

        order = self._service.create_order(dto)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/"""
        queryset = self.filter_queryset(self.get_queryset())
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk or "")
        except OrderNotFound:
            return Response(ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status change
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Applies one status transition with its recomputed charge and the
        crew of present workers.
        """
        try:
            order_id = UUID(str(pk))
        except ValueError:
            return Response(ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)

        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = StatusChangeDTO(
                status=data["status"],
                actual_date=data["actual_date"],
                chargeable_days=data.get("chargeable_days"),
                adjusted_amount=data.get("adjusted_amount"),
                calculation=data.get("calculation"),
                workers=[WorkerPresenceDTO(**w) for w in data.get("workers", [])],
                notes=data.get("notes", ""),
            )
        except DTOValidationError as exc:
            return _dto_errors(exc)

        try:
            order = self._service.change_status(order_id, dto)
        except OrderNotFound:
            return Response(ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InvalidTransition as exc:
            return _invalid_transition(exc)
        except (InvalidActualDate, EmptyWorkerSet) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except WorkerNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"])
    def transitions(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/transitions/"""
        try:
            order = self._service.get_order(pk or "")
        except OrderNotFound:
            return Response(ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(
            {
                "current_status": order.status,
                "allowed_statuses": list(order.allowed_statuses),
            }
        )

    @action(detail=True, methods=["post"])
    def calculate(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/calculate/

        Previews the charge of a status change without saving anything.
        """
        serializer = CalculationPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self._service.preview_calculation(
                pk or "",
                data["status"],
                data["actual_date"],
                data.get("chargeable_days"),
            )
        except OrderNotFound:
            return Response(ORDER_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InvalidTransition as exc:
            return _invalid_transition(exc)

        return Response(result.as_payload())

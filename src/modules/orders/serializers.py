"""Rental order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.workers.models import Worker

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    product_name = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0")
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the rental order creation request payload."""

    client_name = serializers.CharField(max_length=255)
    rental_start_date = serializers.DateField()
    rental_end_date = serializers.DateField()
    default_chargeable_days = serializers.IntegerField(
        min_value=1, required=False, allow_null=True
    )
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, default="", allow_blank=True)

    def validate(self, attrs):
        if attrs["rental_end_date"] < attrs["rental_start_date"]:
            raise serializers.ValidationError(
                {"rental_end_date": "Rental end date cannot precede the start date."}
            )
        return attrs


class WorkerPresenceSerializer(serializers.Serializer):
    worker_id = serializers.UUIDField()
    present = serializers.BooleanField(default=True)


class StatusChangeSerializer(serializers.Serializer):
    """Validates the ``PATCH /orders/{id}/`` status change payload.

    ``status`` is free text here: whether it is reachable is a domain rule
    answered with the allowed statuses.
    """

    status = serializers.CharField(max_length=20)
    actual_date = serializers.DateField()
    chargeable_days = serializers.IntegerField(
        min_value=1, required=False, allow_null=True
    )
    adjusted_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0"),
        required=False,
        allow_null=True,
    )
    calculation = serializers.JSONField(required=False, allow_null=True)
    workers = WorkerPresenceSerializer(many=True, required=False, default=list)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class CalculationPreviewSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    actual_date = serializers.DateField()
    chargeable_days = serializers.IntegerField(
        min_value=1, required=False, allow_null=True
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_name",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class OrderWorkerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Worker
        fields = ["id", "name", "role"]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "actual_date",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items, crew and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    workers = OrderWorkerSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    allowed_statuses = serializers.ListField(
        child=serializers.CharField(), read_only=True
    )

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "client_name",
            "status",
            "allowed_statuses",
            "rental_start_date",
            "rental_end_date",
            "actual_return_date",
            "default_chargeable_days",
            "chargeable_days",
            "total_amount",
            "adjusted_amount",
            "calculation",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "workers",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "client_name",
            "status",
            "rental_start_date",
            "rental_end_date",
            "total_amount",
            "adjusted_amount",
            "created_at",
        ]
        read_only_fields = fields

from __future__ import annotations

from rest_framework import serializers

from modules.workers.models import Worker


class WorkerSerializer(serializers.ModelSerializer):
    """Read serializer for roster entries (phone is never exposed)."""

    class Meta:
        model = Worker
        fields = [
            "id",
            "name",
            "role",
            "standard_daily_rate",
            "is_active",
        ]
        read_only_fields = fields

"""Serializers for package passes."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import ServicePass


class ServicePassSerializer(serializers.ModelSerializer):
    class Meta:
        model = ServicePass
        fields = [
            "id",
            "package_size",
            "remaining_count",
            "status",
            "issued_at",
            "expires_at",
        ]
        read_only_fields = fields

"""Serializers for the scheduling API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    required_units = serializers.IntegerField(min_value=1, max_value=99, default=1)

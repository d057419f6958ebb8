"""Serializers for courts and their slot board."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Court, RateBand

TIME_FORMAT = "%H:%M"


class RateBandSerializer(serializers.ModelSerializer):
    from_time = serializers.TimeField(format=TIME_FORMAT)
    until_time = serializers.TimeField(format=TIME_FORMAT)

    class Meta:
        model = RateBand
        fields = ["from_time", "until_time", "base_price", "role_prices"]


class CourtSerializer(serializers.ModelSerializer):
    available_from = serializers.TimeField(format=TIME_FORMAT)
    available_until = serializers.TimeField(format=TIME_FORMAT)
    rate_bands = RateBandSerializer(many=True, read_only=True)

    class Meta:
        model = Court
        fields = [
            "id",
            "name",
            "surface",
            "indoor",
            "status",
            "available_from",
            "available_until",
            "time_slot_interval",
            "hourly_rate",
            "heating_cost",
            "lighting_cost",
            "rate_bands",
        ]
        read_only_fields = fields


class SlotBoardQuerySerializer(serializers.Serializer):
    date = serializers.DateField()

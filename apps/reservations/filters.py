"""FilterSet definitions for reservation listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Reservation


class ReservationFilterSet(django_filters.FilterSet):
    court = django_filters.NumberFilter(field_name="court_id", lookup_expr="exact")
    date_from = django_filters.DateFilter(field_name="date", lookup_expr="gte")
    date_until = django_filters.DateFilter(field_name="date", lookup_expr="lte")
    status = django_filters.ChoiceFilter(choices=Reservation.Status.choices)
    bulk_group_name = django_filters.CharFilter(field_name="bulk_group_name", lookup_expr="icontains")
    user = django_filters.NumberFilter(field_name="user_id", lookup_expr="exact")
    batch_id = django_filters.UUIDFilter(field_name="batch_id")

    class Meta:
        model = Reservation
        fields = [
            "court",
            "status",
            "user",
        ]

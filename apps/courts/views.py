"""API views for courts."""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.domain.value_objects import add_minutes, format_time
from apps.reservations.conf import reservation_settings
from apps.reservations.domain.slots import slot_statuses
from apps.reservations.repositories import DjangoReservationRepository

from .domain import CourtConfigurationError
from .models import Court
from .repositories import schedule_from_model
from .serializers import CourtSerializer, SlotBoardQuerySerializer


class CourtViewSet(viewsets.ReadOnlyModelViewSet):
    """Courts with their daily slot board."""

    queryset = Court.objects.prefetch_related("rate_bands", "discounts").order_by("name")
    serializer_class = CourtSerializer
    permission_classes = [permissions.IsAuthenticated]

    @action(detail=True, methods=["get"])
    def slots(self, request, pk=None):  # type: ignore
        court: Court = self.get_object()  # type: ignore
        query = SlotBoardQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        on_date = query.validated_data["date"]

        try:
            schedule = schedule_from_model(court, reservation_settings().currency)
        except CourtConfigurationError as exc:
            return Response(
                {"code": "court_misconfigured", "detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        reserved = DjangoReservationRepository().occupied_slots(court.pk, on_date)
        board = slot_statuses(schedule, reserved, on_date, timezone.localtime())
        return Response(
            {
                "court": court.pk,
                "date": on_date,
                "interval": schedule.interval,
                "slots": [
                    {
                        "time": format_time(slot),
                        "end_time": format_time(add_minutes(slot, schedule.interval)),
                        "status": slot_status.value,
                    }
                    for slot, slot_status in board
                ],
            },
            status=status.HTTP_200_OK,
        )

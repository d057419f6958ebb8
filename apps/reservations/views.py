"""API views for the reservation engine."""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus
from shared.domain.value_objects import format_time
from apps.courts.models import Court

from .application.command_handlers import CreateReservationBatchCommand, QuoteReservationCommand
from .domain.exceptions import (
    CommitError,
    CourtNotFoundError,
    ReservationError,
    SlotConflictError,
)
from .domain.slots import end_of_block, is_contiguous, toggle_slot
from .filters import ReservationFilterSet
from .models import Reservation
from .serializers import (
    BatchResultSerializer,
    BookingRequestSerializer,
    BulkReservationSerializer,
    QuoteResultSerializer,
    ReservationSerializer,
    SingleReservationSerializer,
    SlotSelectionSerializer,
)

logger = logging.getLogger(__name__)


def error_status(exc: ReservationError) -> int:
    if isinstance(exc, CourtNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, SlotConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, CommitError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_400_BAD_REQUEST


def error_response(exc: ReservationError) -> Response:
    return Response(exc.to_dict(), status=error_status(exc))


class ReservationViewSet(viewsets.ReadOnlyModelViewSet):
    """Reservation listing plus the batch, quote and selection endpoints."""

    queryset = Reservation.objects.select_related("court").all()
    serializer_class = ReservationSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = ReservationFilterSet

    def create(self, request, *args, **kwargs):  # type: ignore
        return self._create_batch(SingleReservationSerializer(data=request.data))

    @action(detail=False, methods=["post"])
    def bulk(self, request):  # type: ignore
        return self._create_batch(BulkReservationSerializer(data=request.data))

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            quote = message_bus.handle_command(QuoteReservationCommand(request=serializer.to_request()))
        except ReservationError as exc:
            return error_response(exc)
        return Response(QuoteResultSerializer(quote).data)

    @action(detail=False, methods=["post"])
    def selection(self, request):  # type: ignore
        serializer = SlotSelectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        court = Court.objects.filter(pk=serializer.validated_data["court"]).first()
        if court is None:
            return Response({"code": "court_not_found", "detail": "Court not found."}, status=status.HTTP_404_NOT_FOUND)

        interval = court.time_slot_interval
        selection = toggle_slot(
            serializer.validated_data["selection"],
            serializer.validated_data["clicked"],
            interval,
        )
        return Response(
            {
                "selection": [format_time(slot) for slot in selection],
                "is_contiguous": is_contiguous(selection, interval),
                "start_time": format_time(selection[0]) if selection else None,
                "end_time": format_time(end_of_block(selection, interval)) if selection else None,
                "duration": len(selection) * interval,
            }
        )

    def _create_batch(self, serializer: BookingRequestSerializer) -> Response:
        serializer.is_valid(raise_exception=True)
        booking_request = serializer.to_request()
        try:
            result = message_bus.handle_command(CreateReservationBatchCommand(request=booking_request))
        except ReservationError as exc:
            return error_response(exc)
        response_status = status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED
        return Response(BatchResultSerializer(result).data, status=response_status)

"""Reservation persistence."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Iterable, List, Optional

from shared.domain.value_objects import format_time

from .domain.entities import ReservationBatch, ReservationDraft
from .models import Reservation, ReservationSlot

logger = logging.getLogger(__name__)


class DjangoReservationRepository:
    """Writes batch sessions and answers occupancy questions."""

    def find_conflicts(
        self,
        court_id,
        dates: Iterable[date],
        slots: Iterable[time],
        lock: bool = False,
    ) -> List[ReservationSlot]:
        """Active occupied slots clashing with any requested (date, slot)."""
        queryset = ReservationSlot.objects.filter(
            court_id=court_id,
            date__in=list(dates),
            start_time__in=list(slots),
            is_active=True,
        )
        if lock:
            queryset = queryset.select_for_update()
        return list(queryset.order_by("date", "start_time"))

    def occupied_slots(self, court_id, on_date: date) -> List[time]:
        return list(
            ReservationSlot.objects.filter(court_id=court_id, date=on_date, is_active=True)
            .values_list("start_time", flat=True)
        )

    def create_session(
        self,
        batch: ReservationBatch,
        session: ReservationDraft,
        user_id: Optional[int] = None,
    ) -> Reservation:
        request = batch.request
        reservation = Reservation.objects.create(
            court_id=request.court_id,
            date=session.date,
            start_time=session.start_time,
            end_time=session.end_time,
            slots=[format_time(slot) for slot in session.slots],
            duration=session.duration,
            user_id=user_id,
            username=request.payer.display_name,
            is_guest_reservation=request.payer.is_guest,
            total_cost=session.total_cost.amount,
            amount_paid=session.amount_paid.amount,
            original_price=session.original_price.amount if session.original_price else None,
            discount_percentage=session.discount_percentage,
            heater=request.heater,
            light=request.light,
            allow_overdraft=request.allow_overdraft,
            overdraft_used=session.overdraft_used,
            bulk_group_name=batch.bulk_group_name,
            batch_id=batch.batch_id,
            request_id=request.request_id,
            created_by=request.created_by,
        )
        ReservationSlot.objects.bulk_create(
            ReservationSlot(
                reservation=reservation,
                court_id=request.court_id,
                date=session.date,
                start_time=slot,
            )
            for slot in session.slots
        )
        logger.debug(f"Reservation {reservation.pk} written for {session.date} ({len(session.slots)} slots)")
        return reservation

    def find_by_request_id(self, request_id: Optional[str]) -> List[Reservation]:
        if not request_id:
            return []
        return list(Reservation.objects.filter(request_id=request_id).order_by("date", "start_time"))

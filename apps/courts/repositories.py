"""Read access to courts for the reservation engine."""

from __future__ import annotations

from typing import Optional

from shared.domain.value_objects import TimeWindow

from .domain import CourtDiscount, CourtSchedule, RateBand
from .models import Court, CourtDiscount as CourtDiscountModel, RateBand as RateBandModel


def band_from_model(band: RateBandModel) -> RateBand:
    return RateBand(
        window=TimeWindow(band.from_time, band.until_time),
        base_price=band.base_price,
        role_prices=band.role_prices or {},
    )


def discount_from_model(discount: CourtDiscountModel) -> CourtDiscount:
    window = None
    if not discount.is_all_hours:
        window = TimeWindow(discount.from_time, discount.until_time)
    return CourtDiscount(
        percentage=discount.percentage,
        window=window,
        is_all_hours=discount.is_all_hours,
    )


def schedule_from_model(court: Court, currency: str = "TRY") -> CourtSchedule:
    """Map a court row (with prefetched bands and discounts) into a schedule."""

    return CourtSchedule(
        court_id=court.pk,
        name=court.name,
        opening=TimeWindow(court.available_from, court.available_until),
        interval=court.time_slot_interval,
        rate_bands=tuple(band_from_model(band) for band in court.rate_bands.all()),
        discounts=tuple(discount_from_model(discount) for discount in court.discounts.all()),
        hourly_rate=court.hourly_rate,
        heating_cost=court.heating_cost,
        lighting_cost=court.lighting_cost,
        currency=currency,
        is_active=court.is_active,
    )


class DjangoCourtRepository:
    """Loads court schedules; courts are never written from here."""

    def __init__(self, currency: str = "TRY"):
        self.currency = currency

    def get_schedule(self, court_id) -> Optional[CourtSchedule]:
        court = (
            Court.objects.prefetch_related("rate_bands", "discounts")
            .filter(pk=court_id)
            .first()
        )
        if court is None:
            return None
        return schedule_from_model(court, self.currency)

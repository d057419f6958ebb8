"""
Rate Calculator

Prices one contiguous slot block on a court. Every slot is charged the
hourly price of the rate band its start falls in, pro-rated to the slot
interval; role overrides replace the band's base price, an attached court
discount reduces the court fee, and heater/light addons are charged per
hour of play.
"""

from dataclasses import dataclass
from datetime import time
from decimal import Decimal
from typing import Optional, Sequence
import logging

from shared.domain.base import ValueObject
from shared.domain.value_objects import Money
from apps.courts.domain import CourtSchedule
from apps.reservations.domain.exceptions import PricingError

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal('60')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class PriceBreakdown(ValueObject):
    """Price of one session, every component quantized to cents"""
    court_fee: Money
    heater_fee: Money
    light_fee: Money
    discount_amount: Money
    discount_percentage: Decimal
    slot_count: int

    @property
    def original_price(self) -> Money:
        """Court fee before the discount"""
        return self.court_fee + self.discount_amount

    @property
    def total(self) -> Money:
        return self.court_fee + self.heater_fee + self.light_fee

    def to_dict(self) -> dict:
        return {
            'court_fee': str(self.court_fee.amount),
            'heater_fee': str(self.heater_fee.amount),
            'light_fee': str(self.light_fee.amount),
            'discount_amount': str(self.discount_amount.amount),
            'discount_percentage': str(self.discount_percentage),
            'original_price': str(self.original_price.amount),
            'total': str(self.total.amount),
            'currency': self.total.currency,
        }


class RateCalculator:
    """
    Deterministic pricing for a court

    Usage:
        calculator = RateCalculator(schedule)
        price = calculator.price(slots, heater=True, light=False, role_id='member')
        price.total  # Money
    """

    def __init__(self, court: CourtSchedule):
        self.court = court

    def hourly_price(self, slot: time, role_id: Optional[str] = None) -> Decimal:
        """Hourly price for a slot start: band (with role override) or the court fallback"""
        band = self.court.band_for(slot)
        if band is not None:
            return band.hourly_price_for(role_id)
        if self.court.hourly_rate is not None:
            logger.debug(f"Slot {slot:%H:%M} on {self.court.name} outside every band, using fallback rate")
            return self.court.hourly_rate
        raise PricingError(
            f"No rate band covers {slot:%H:%M} on court {self.court.name} and the court has no hourly rate",
            details={'court_id': str(self.court.court_id), 'slot': slot.strftime('%H:%M')},
        )

    def price(
        self,
        slots: Sequence[time],
        heater: bool = False,
        light: bool = False,
        role_id: Optional[str] = None,
    ) -> PriceBreakdown:
        interval = Decimal(self.court.interval)
        currency = self.court.currency

        court_fee = Decimal('0')
        discount_amount = Decimal('0')
        discount_percentage = Decimal('0')

        for slot in slots:
            slot_fee = self.hourly_price(slot, role_id) / MINUTES_PER_HOUR * interval
            discount = self.court.discount_for(slot)
            if discount is not None and discount.percentage:
                reduction = slot_fee * discount.percentage / HUNDRED
                slot_fee -= reduction
                discount_amount += reduction
                discount_percentage = max(discount_percentage, discount.percentage)
            court_fee += slot_fee

        slot_count = len(slots)
        heater_fee = Decimal('0')
        light_fee = Decimal('0')
        if heater:
            heater_fee = self.court.heating_cost / MINUTES_PER_HOUR * interval * slot_count
        if light:
            light_fee = self.court.lighting_cost / MINUTES_PER_HOUR * interval * slot_count

        return PriceBreakdown(
            court_fee=Money(court_fee, currency).quantize(),
            heater_fee=Money(heater_fee, currency).quantize(),
            light_fee=Money(light_fee, currency).quantize(),
            discount_amount=Money(discount_amount, currency).quantize(),
            discount_percentage=discount_percentage,
            slot_count=slot_count,
        )

"""
Court Domain Value Objects

Immutable projection of a court used by slot generation and pricing:
- RateBand: hourly price for a half-open time window, with role overrides
- CourtDiscount: percentage discount for all hours or a time window
- CourtSchedule: operating window, slot interval, bands, addons
"""

from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal
from typing import Dict, Optional, Tuple
from uuid import UUID

from shared.domain.base import ValueObject
from shared.domain.value_objects import TimeWindow, to_decimal

ALLOWED_INTERVALS = (15, 30, 60)


class CourtConfigurationError(ValueError):
    """Court data that no schedule can be built from, e.g. overlapping bands"""


@dataclass(frozen=True)
class RateBand(ValueObject):
    """Hourly base price for slots starting inside `window`"""
    window: TimeWindow
    base_price: Decimal
    role_prices: Dict[str, Decimal] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, 'base_price', to_decimal(self.base_price))
        object.__setattr__(
            self,
            'role_prices',
            {str(role): to_decimal(price) for role, price in (self.role_prices or {}).items()},
        )
        if self.window.is_empty:
            raise CourtConfigurationError(f"Rate band {self.window} is empty")
        if self.base_price < 0:
            raise CourtConfigurationError("Base price cannot be negative")
        if any(price < 0 for price in self.role_prices.values()):
            raise CourtConfigurationError("Role prices cannot be negative")

    def covers(self, slot: time) -> bool:
        return self.window.contains(slot)

    def hourly_price_for(self, role_id: Optional[str]) -> Decimal:
        """Role override when one exists for the role, base price otherwise"""
        if role_id is not None and role_id in self.role_prices:
            return self.role_prices[role_id]
        return self.base_price


@dataclass(frozen=True)
class CourtDiscount(ValueObject):
    """Discount applied on the court, either all day or inside a window"""
    percentage: Decimal
    window: Optional[TimeWindow] = None
    is_all_hours: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'percentage', to_decimal(self.percentage))
        if not Decimal('0') <= self.percentage <= Decimal('100'):
            raise CourtConfigurationError("Discount percentage must be between 0 and 100")
        if not self.is_all_hours and self.window is None:
            raise CourtConfigurationError("Discount needs a time window unless it applies to all hours")

    def applies_to(self, slot: time) -> bool:
        if self.is_all_hours:
            return True
        return self.window.contains(slot)


@dataclass(frozen=True)
class CourtSchedule(ValueObject):
    """
    Everything the reservation engine needs to know about one court

    Key invariants:
    - Slot interval is one of 15, 30 or 60 minutes
    - Rate bands never overlap
    - Costs are non-negative hourly amounts
    """
    court_id: UUID | int
    name: str
    opening: TimeWindow
    interval: int
    rate_bands: Tuple[RateBand, ...] = ()
    discounts: Tuple[CourtDiscount, ...] = ()
    hourly_rate: Optional[Decimal] = None
    heating_cost: Decimal = Decimal('0')
    lighting_cost: Decimal = Decimal('0')
    currency: str = 'TRY'
    is_active: bool = True

    def __post_init__(self):
        if self.interval not in ALLOWED_INTERVALS:
            raise CourtConfigurationError(
                f"Slot interval {self.interval} is not supported, expected one of {ALLOWED_INTERVALS}"
            )
        object.__setattr__(self, 'rate_bands', tuple(sorted(self.rate_bands, key=lambda b: b.window.start)))
        object.__setattr__(self, 'discounts', tuple(self.discounts))
        object.__setattr__(self, 'heating_cost', to_decimal(self.heating_cost or 0))
        object.__setattr__(self, 'lighting_cost', to_decimal(self.lighting_cost or 0))
        if self.hourly_rate is not None:
            object.__setattr__(self, 'hourly_rate', to_decimal(self.hourly_rate))

        for previous, current in zip(self.rate_bands, self.rate_bands[1:]):
            if previous.window.overlaps_with(current.window):
                raise CourtConfigurationError(
                    f"Rate bands {previous.window} and {current.window} overlap on court {self.name}"
                )
        if self.heating_cost < 0 or self.lighting_cost < 0:
            raise CourtConfigurationError("Addon costs cannot be negative")
        if self.hourly_rate is not None and self.hourly_rate < 0:
            raise CourtConfigurationError("Fallback hourly rate cannot be negative")

    @property
    def available_from(self) -> time:
        return self.opening.start

    @property
    def available_until(self) -> time:
        return self.opening.end

    def band_for(self, slot: time) -> Optional[RateBand]:
        """The band whose [from, until) contains the slot start, if any"""
        return next((band for band in self.rate_bands if band.covers(slot)), None)

    def discount_for(self, slot: time) -> Optional[CourtDiscount]:
        """First attached discount covering the slot, in attachment order"""
        return next((discount for discount in self.discounts if discount.applies_to(slot)), None)

    def __str__(self):
        return f"{self.name} ({self.opening}, every {self.interval} min)"

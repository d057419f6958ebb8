"""
Common Value Objects

Value objects used across the court, wallet and reservation domains:
- Money: Non-negative monetary amount with currency
- DateRange: Inclusive span of calendar days (recurring batches)
- TimeWindow: Half-open time-of-day interval (operating hours, rate bands)
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator

from shared.domain.base import ValueObject

CENT = Decimal('0.01')
SUPPORTED_CURRENCIES = ('TRY', 'USD', 'EUR', 'GBP')


def to_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to Decimal without binary float noise"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a charge or price. Always non-negative; signed quantities
    such as wallet balances stay plain Decimals.
    """
    amount: Decimal
    currency: str = 'TRY'

    def __post_init__(self):
        object.__setattr__(self, 'amount', to_decimal(self.amount))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'TRY') -> 'Money':
        return cls(Decimal('0'), currency)

    def _check_currency(self, other: 'Money', operation: str):
        if not isinstance(other, Money):
            raise TypeError(f"Can only {operation} Money and Money")
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {operation} different currencies: {self.currency} and {other.currency}"
            )

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, 'add')
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, 'subtract')
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * to_decimal(factor), self.currency)

    def __truediv__(self, factor) -> 'Money':
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only divide Money by number")
        if factor == 0:
            raise ValueError("Cannot divide by zero")
        return Money(self.amount / to_decimal(factor), self.currency)

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, 'compare')
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, 'compare')
        return self.amount <= other.amount

    def quantize(self, places: Decimal = CENT) -> 'Money':
        """Round half-up to the smallest currency unit"""
        return Money(self.amount.quantize(places, rounding=ROUND_HALF_UP), self.currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents the days from start_date to end_date, both inclusive, as
    chosen for a recurring reservation batch.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must not be after end date ({self.end_date})")

    def days(self) -> Iterator[date]:
        """Iterate every calendar day in the range, in order"""
        current = self.start_date
        while current <= self.end_date:
            yield current
            current += timedelta(days=1)

    def contains(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    def __len__(self) -> int:
        """Number of calendar days covered (inclusive)"""
        return (self.end_date - self.start_date).days + 1

    def __str__(self):
        return f"{self.start_date.strftime('%d.%m.%Y')} - {self.end_date.strftime('%d.%m.%Y')}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"


def minutes_of(value: time) -> int:
    """Minutes since midnight for a time of day"""
    return value.hour * 60 + value.minute


MIDNIGHT = 24 * 60


def end_minutes_of(value: time) -> int:
    """Like minutes_of(), but an end time of 00:00 reads as midnight (1440)"""
    if value == time(0, 0):
        return MIDNIGHT
    return minutes_of(value)


def time_from_minutes(minutes: int) -> time:
    """Inverse of minutes_of(); 24:00 is not representable and is rejected"""
    if not 0 <= minutes < 24 * 60:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def add_minutes(value: time, minutes: int) -> time:
    """Shift a time of day; landing exactly on midnight gives 00:00"""
    total = minutes_of(value) + minutes
    if total == MIDNIGHT:
        return time(0, 0)
    return time_from_minutes(total)


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Half-open time-of-day interval [start, end)

    Used for court operating hours, rate bands and discount windows.
    An end of 00:00 means "until midnight".
    """
    start: time
    end: time

    @property
    def start_minutes(self) -> int:
        return minutes_of(self.start)

    @property
    def end_minutes(self) -> int:
        return end_minutes_of(self.end)

    def contains(self, moment: time) -> bool:
        return self.start_minutes <= minutes_of(moment) < self.end_minutes

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")
        return self.start_minutes < other.end_minutes and self.end_minutes > other.start_minutes

    @property
    def is_empty(self) -> bool:
        return self.start_minutes >= self.end_minutes

    @property
    def minutes(self) -> int:
        if self.is_empty:
            return 0
        return self.end_minutes - self.start_minutes

    def __str__(self):
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


def parse_time(value) -> time:
    """Accept time objects or "HH:MM" strings from serialized payloads"""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, datetime):
        return value.time().replace(second=0, microsecond=0)
    return datetime.strptime(str(value).strip(), '%H:%M').time()


def format_time(value: time) -> str:
    return value.strftime('%H:%M')

"""Recurring batch expansion: weekdays over an inclusive date range."""

from datetime import date
from enum import IntEnum
from typing import Iterable, List

from shared.domain.value_objects import DateRange


class Weekday(IntEnum):
    """Python weekday numbering (date.weekday())"""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


def expand_recurrence(start_date: date, end_date: date, weekdays: Iterable[int]) -> List[date]:
    """
    Every date in [start_date, end_date] falling on one of `weekdays`

    Returns an empty list rather than raising when nothing matches,
    including an inverted range; callers decide whether that is an error.
    """
    wanted = {int(day) for day in weekdays}
    if start_date > end_date or not wanted:
        return []
    return [day for day in DateRange(start_date, end_date).days() if day.weekday() in wanted]

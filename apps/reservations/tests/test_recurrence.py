"""Recurring batch expansion."""

from __future__ import annotations

from datetime import date

from apps.reservations.domain.recurrence import Weekday, expand_recurrence


def test_mondays_of_january_2024() -> None:
    dates = expand_recurrence(date(2024, 1, 1), date(2024, 1, 31), {Weekday.MONDAY})

    assert dates == [date(2024, 1, day) for day in (1, 8, 15, 22, 29)]


def test_several_weekdays_are_kept_in_date_order() -> None:
    dates = expand_recurrence(date(2024, 1, 1), date(2024, 1, 7), [Weekday.SUNDAY, Weekday.WEDNESDAY])

    assert dates == [date(2024, 1, 3), date(2024, 1, 7)]


def test_bounds_are_inclusive() -> None:
    dates = expand_recurrence(date(2024, 1, 1), date(2024, 1, 1), [Weekday.MONDAY])

    assert dates == [date(2024, 1, 1)]


def test_no_matching_weekday_gives_empty_list() -> None:
    # 2 Jan 2024 to 6 Jan 2024 is Tuesday to Saturday
    assert expand_recurrence(date(2024, 1, 2), date(2024, 1, 6), [Weekday.MONDAY]) == []


def test_inverted_range_gives_empty_list() -> None:
    assert expand_recurrence(date(2024, 2, 1), date(2024, 1, 1), [Weekday.MONDAY]) == []

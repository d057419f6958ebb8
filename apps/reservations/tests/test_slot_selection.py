"""Slot calendar and contiguous selection."""

from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest

from shared.domain.value_objects import TimeWindow
from apps.courts.domain import CourtSchedule
from apps.reservations.domain.exceptions import ReservationValidationError
from apps.reservations.domain.slots import (
    SlotStatus,
    end_of_block,
    generate_slots,
    is_contiguous,
    require_contiguous,
    slot_statuses,
    toggle_slot,
)


def make_court(opens: time = time(8, 0), closes: time = time(22, 0), interval: int = 60) -> CourtSchedule:
    return CourtSchedule(court_id=1, name="Court 1", opening=TimeWindow(opens, closes), interval=interval)


def test_hourly_court_has_fourteen_slots() -> None:
    slots = generate_slots(make_court())

    assert len(slots) == 14
    assert slots[0] == time(8, 0)
    assert slots[-1] == time(21, 0)


def test_last_slot_must_end_by_closing_time() -> None:
    slots = generate_slots(make_court(closes=time(21, 30)))

    assert slots[-1] == time(20, 0)


def test_half_hour_interval() -> None:
    slots = generate_slots(make_court(opens=time(9, 0), closes=time(11, 0), interval=30))

    assert slots == [time(9, 0), time(9, 30), time(10, 0), time(10, 30)]


@pytest.mark.parametrize("opens,closes", [(time(22, 0), time(8, 0)), (time(10, 0), time(10, 0))])
def test_inverted_or_empty_window_yields_no_slots(opens: time, closes: time) -> None:
    assert generate_slots(make_court(opens=opens, closes=closes)) == []


def test_unsupported_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        make_court(interval=45)


def test_contiguity() -> None:
    assert is_contiguous([], 60)
    assert is_contiguous([time(9, 0)], 60)
    assert is_contiguous([time(10, 0), time(9, 0), time(11, 0)], 60)
    assert not is_contiguous([time(9, 0), time(11, 0)], 60)
    assert not is_contiguous([time(9, 0), time(9, 30)], 60)


def test_toggle_extends_adjacent_slot() -> None:
    selection = toggle_slot([time(9, 0)], time(10, 0), 60)

    assert selection == (time(9, 0), time(10, 0))


def test_toggle_non_adjacent_slot_starts_new_block() -> None:
    selection = toggle_slot([time(9, 0), time(10, 0)], time(14, 0), 60)

    assert selection == (time(14, 0),)


def test_toggle_prepends_slot_before_block() -> None:
    selection = toggle_slot([time(10, 0), time(11, 0)], time(9, 0), 60)

    assert selection == (time(9, 0), time(10, 0), time(11, 0))


def test_toggle_removes_end_slots() -> None:
    block = (time(9, 0), time(10, 0), time(11, 0))

    assert toggle_slot(block, time(11, 0), 60) == (time(9, 0), time(10, 0))
    assert toggle_slot(block, time(9, 0), 60) == (time(10, 0), time(11, 0))


def test_toggle_interior_slot_clears_selection() -> None:
    block = (time(9, 0), time(10, 0), time(11, 0))

    assert toggle_slot(block, time(10, 0), 60) == ()


def test_toggle_only_slot_empties_selection() -> None:
    assert toggle_slot([time(9, 0)], time(9, 0), 60) == ()


def test_require_contiguous_rejects_gaps_and_empty_selection() -> None:
    with pytest.raises(ReservationValidationError) as excinfo:
        require_contiguous([time(9, 0), time(11, 0)], 60)
    assert excinfo.value.code == "non_contiguous"

    with pytest.raises(ReservationValidationError):
        require_contiguous([], 60)


def test_end_of_block() -> None:
    assert end_of_block([time(9, 0), time(9, 30)], 30) == time(10, 0)


def test_slot_statuses_marks_reserved_and_past() -> None:
    court = make_court(opens=time(8, 0), closes=time(12, 0))
    now = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)

    board = dict(slot_statuses(court, [time(10, 0)], date(2024, 1, 15), now))

    assert board[time(8, 0)] is SlotStatus.PAST
    assert board[time(9, 0)] is SlotStatus.PAST
    assert board[time(10, 0)] is SlotStatus.RESERVED
    assert board[time(11, 0)] is SlotStatus.AVAILABLE


def test_court_closing_at_midnight_keeps_last_slot() -> None:
    court = make_court(opens=time(20, 0), closes=time(0, 0))

    slots = generate_slots(court)

    assert slots == [time(20, 0), time(21, 0), time(22, 0), time(23, 0)]
    assert end_of_block((time(23, 0),), 60) == time(0, 0)

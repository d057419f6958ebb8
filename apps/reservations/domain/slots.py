"""
Slot calendar and contiguous selection

Pure functions over a court's daily slot grid:
- generate_slots: bookable start times for one day
- is_contiguous / require_contiguous: one unbroken block at the interval
- toggle_slot: incremental click selection
- slot_statuses: available / reserved / past board for a date
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from shared.domain.value_objects import add_minutes, end_minutes_of, minutes_of, time_from_minutes
from apps.courts.domain import CourtSchedule
from apps.reservations.domain.exceptions import ReservationValidationError


class SlotStatus(Enum):
    AVAILABLE = 'available'
    RESERVED = 'reserved'
    PAST = 'past'


def generate_slots(court: CourtSchedule) -> List[time]:
    """
    Start times from available_from every `interval` minutes

    A slot is emitted only while its whole interval fits before
    available_until (00:00 closes at midnight). An inverted or empty
    window yields no slots.
    """
    start = minutes_of(court.available_from)
    until = end_minutes_of(court.available_until)
    slots = []
    current = start
    while current < until and current + court.interval <= until:
        slots.append(time_from_minutes(current))
        current += court.interval
    return slots


def normalize_slots(slots: Iterable[time]) -> Tuple[time, ...]:
    return tuple(sorted(set(slots)))


def is_contiguous(slots: Iterable[time], interval: int) -> bool:
    """Every adjacent pair (sorted) is exactly `interval` minutes apart"""
    ordered = sorted(slots)
    return all(
        minutes_of(current) - minutes_of(previous) == interval
        for previous, current in zip(ordered, ordered[1:])
    )


def require_contiguous(slots: Sequence[time], interval: int) -> Tuple[time, ...]:
    ordered = tuple(sorted(slots))
    if not ordered:
        raise ReservationValidationError("Select at least one time slot", code='empty_selection')
    if len(set(ordered)) != len(ordered) or not is_contiguous(ordered, interval):
        raise ReservationValidationError(
            "Selected time slots must form one continuous block",
            code='non_contiguous',
            details={'slots': [slot.strftime('%H:%M') for slot in ordered], 'interval': interval},
        )
    return ordered


def toggle_slot(selection: Iterable[time], clicked: time, interval: int) -> Tuple[time, ...]:
    """
    Apply one click to the current selection

    Clicking an unselected slot extends the block when the result stays
    contiguous and otherwise starts a new block with the clicked slot alone.
    Clicking a selected slot at either end of the block removes it; clicking
    one in the middle clears the whole selection.
    """
    current = normalize_slots(selection)

    if clicked in current:
        if clicked == current[0]:
            return current[1:]
        if clicked == current[-1]:
            return current[:-1]
        return ()

    candidate = normalize_slots(current + (clicked,))
    if is_contiguous(candidate, interval):
        return candidate
    return (clicked,)


def end_of_block(slots: Sequence[time], interval: int) -> time:
    """End time of a contiguous block (start of the last slot plus one interval)"""
    if not slots:
        raise ValueError("An empty selection has no end time")
    return add_minutes(max(slots), interval)


def block_duration(slots: Sequence[time], interval: int) -> int:
    return len(slots) * interval


def slot_statuses(
    court: CourtSchedule,
    reserved: Iterable[time],
    on_date: date,
    now: datetime,
) -> List[Tuple[time, SlotStatus]]:
    """Status of every generated slot on `on_date`; reserved wins over past"""
    taken = set(reserved)
    board = []
    for slot in generate_slots(court):
        if slot in taken:
            status = SlotStatus.RESERVED
        elif datetime.combine(on_date, slot, tzinfo=now.tzinfo) < now:
            status = SlotStatus.PAST
        else:
            status = SlotStatus.AVAILABLE
        board.append((slot, status))
    return board

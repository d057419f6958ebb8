"""
Reservation Domain Entities

- Payer: who pays (member with a wallet, or a guest/group)
- Recurrence / BookingRequest: validated, immutable input of one batch
- BatchState: FSM of a batch request
- ReservationDraft: one session about to be written
- ReservationBatch: aggregate committed as a single unit
"""

import datetime
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple
from uuid import UUID

from shared.domain.base import Aggregate, ValueObject
from shared.domain.value_objects import Money, parse_time
from apps.reservations.domain.exceptions import ReservationValidationError
from apps.reservations.domain.ledger import Allocation
from apps.reservations.domain.pricing import PriceBreakdown
from apps.reservations.domain.slots import normalize_slots


class BatchState(Enum):
    """
    Batch request lifecycle

    State transitions:
    - VALIDATING -> REJECTED (bad input, nothing written)
    - VALIDATING -> PRICING
    - PRICING -> ALLOCATING
    - PRICING -> REJECTED (no price for a slot)
    - ALLOCATING -> COMMITTING
    - ALLOCATING -> REJECTED (insufficient funds, blocked wallet)
    - ALLOCATING -> ROLLED_BACK (database failure while reading the wallet)
    - COMMITTING -> COMMITTED
    - COMMITTING -> ROLLED_BACK (conflict or database failure)
    """
    VALIDATING = 'validating'
    REJECTED = 'rejected'
    PRICING = 'pricing'
    ALLOCATING = 'allocating'
    COMMITTING = 'committing'
    COMMITTED = 'committed'
    ROLLED_BACK = 'rolled_back'

    @property
    def is_terminal(self) -> bool:
        return self in (BatchState.REJECTED, BatchState.COMMITTED, BatchState.ROLLED_BACK)


BATCH_TRANSITIONS = {
    BatchState.VALIDATING: {BatchState.PRICING, BatchState.REJECTED},
    BatchState.PRICING: {BatchState.ALLOCATING, BatchState.REJECTED},
    BatchState.ALLOCATING: {BatchState.COMMITTING, BatchState.REJECTED, BatchState.ROLLED_BACK},
    BatchState.COMMITTING: {BatchState.COMMITTED, BatchState.ROLLED_BACK},
}


@dataclass(frozen=True)
class Payer(ValueObject):
    """Member (user_id set) or guest/group payer (no wallet)"""
    user_id: Optional[int] = None
    role_id: Optional[str] = None
    display_name: str = ''

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


@dataclass(frozen=True)
class Recurrence(ValueObject):
    start_date: date
    end_date: date
    weekdays: Tuple[int, ...]

    def __post_init__(self):
        days = tuple(sorted({int(day) for day in self.weekdays}))
        if not days:
            raise ReservationValidationError("Pick at least one weekday", code='no_weekdays')
        if any(day < 0 or day > 6 for day in days):
            raise ReservationValidationError(
                "Weekdays are numbered 0 (Monday) to 6 (Sunday)",
                code='invalid_weekday',
                details={'weekdays': list(days)},
            )
        if self.start_date > self.end_date:
            raise ReservationValidationError(
                "Start date must not be after end date",
                code='invalid_date_range',
            )
        object.__setattr__(self, 'weekdays', days)


@dataclass(frozen=True)
class BookingRequest(ValueObject):
    """
    One batch request, validated on construction

    Exactly one of `date` (single session) or `recurrence` (bulk batch).
    Slots are sorted and deduplicated; contiguity is checked against the
    court's interval by the handler, which knows the court.
    """
    court_id: int
    payer: Payer
    slots: Tuple[time, ...]
    date: Optional[datetime.date] = None
    recurrence: Optional[Recurrence] = None
    heater: bool = False
    light: bool = False
    allow_overdraft: bool = False
    group_name: str = ''
    request_id: Optional[str] = None
    created_by: str = 'admin'

    def __post_init__(self):
        object.__setattr__(self, 'slots', normalize_slots(parse_time(slot) for slot in self.slots))
        if not self.slots:
            raise ReservationValidationError("Select at least one time slot", code='empty_selection')
        if (self.date is None) == (self.recurrence is None):
            raise ReservationValidationError(
                "Give either a single date or a recurrence, not both",
                code='invalid_schedule',
            )
        if self.recurrence is not None and not self.group_name.strip():
            raise ReservationValidationError(
                "Recurring reservations need a group name",
                code='group_name_required',
            )

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None


@dataclass
class ReservationDraft:
    """One session of a batch, with cost fields frozen at pricing time"""
    date: datetime.date
    slots: Tuple[time, ...]
    start_time: time
    end_time: time
    duration: int
    total_cost: Money
    amount_paid: Money
    overdraft_used: Decimal = Decimal('0.00')
    original_price: Optional[Money] = None
    discount_percentage: Decimal = Decimal('0')
    reservation_id: Optional[int] = None


@dataclass
class ReservationBatch(Aggregate):
    """
    Reservation Batch Aggregate Root

    All sessions produced by one BookingRequest. The batch id links the
    reservations, the wallet write and the ledger entry.

    Key invariants:
    - Every session has the same contiguous slot block
    - Sum of per-session overdraft equals the allocation's overdraft total
    - State only moves along BATCH_TRANSITIONS
    """
    request: BookingRequest = None
    court_name: str = ''
    price: Optional[PriceBreakdown] = None
    sessions: List[ReservationDraft] = field(default_factory=list)
    allocation: Optional[Allocation] = None
    wallet_id: Optional[int] = None
    state: BatchState = BatchState.VALIDATING
    history: List[BatchState] = field(default_factory=list)

    def __post_init__(self):
        super().__post_init__()
        if self.request is None:
            raise ValueError("A reservation batch needs its request")
        if not self.history:
            self.history.append(self.state)

    @property
    def batch_id(self) -> UUID:
        return self.id

    @property
    def bulk_group_name(self) -> str:
        return self.request.group_name.strip() if self.request.is_recurring else ''

    @property
    def total_cost(self) -> Money:
        currency = self.price.total.currency if self.price else 'TRY'
        total = Money.zero(currency)
        for session in self.sessions:
            total = total + session.total_cost
        return total

    @property
    def overdraft_total(self) -> Decimal:
        return sum((session.overdraft_used for session in self.sessions), Decimal('0.00'))

    def transition_to(self, state: BatchState):
        if state not in BATCH_TRANSITIONS.get(self.state, set()):
            raise ValueError(f"Cannot move batch {self.id} from {self.state.value} to {state.value}")
        self.state = state
        self.history.append(state)

    def apply_allocation(self, allocation: Allocation):
        """Attribute the allocation's overdraft shares to the sessions in date order"""
        if len(allocation.per_session_overdraft) != len(self.sessions):
            raise ValueError("Allocation does not match the number of sessions")
        self.allocation = allocation
        for session, share in zip(self.sessions, allocation.per_session_overdraft):
            session.overdraft_used = share

    def record_sessions(self, reservation_ids: List[int]):
        """
        Attach the written reservation ids and raise the batch events

        Runs inside the open transaction; the state stays COMMITTING until
        mark_committed() once the database has committed.
        """
        from apps.reservations.domain.events import ReservationBatchCreated, WalletCharged

        if self.state != BatchState.COMMITTING:
            raise ValueError(f"Batch {self.id} is {self.state.value}, not committing")
        for session, reservation_id in zip(self.sessions, reservation_ids):
            session.reservation_id = reservation_id

        first = self.sessions[0]
        self.add_event(ReservationBatchCreated(
            aggregate_id=self.id,
            batch_id=self.id,
            court_id=self.request.court_id,
            dates=[session.date for session in self.sessions],
            start_time=first.start_time,
            end_time=first.end_time,
            reservation_ids=list(reservation_ids),
            total_cost=self.total_cost.amount,
            bulk_group_name=self.bulk_group_name,
            user_id=self.request.payer.user_id,
        ))
        if self.wallet_id is not None and self.allocation is not None and self.allocation.total_charge > 0:
            self.add_event(WalletCharged(
                aggregate_id=self.id,
                batch_id=self.id,
                wallet_id=self.wallet_id,
                amount=self.allocation.total_charge,
                new_balance=self.allocation.new_balance,
                overdraft_used=self.allocation.overdraft_total,
            ))

    def mark_committed(self):
        self.transition_to(BatchState.COMMITTED)

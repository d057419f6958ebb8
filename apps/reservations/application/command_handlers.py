"""
Reservation Command Handlers

Use cases of the reservation engine. They run the batch pipeline
validating -> pricing -> allocating -> committing inside a
BookingTransaction.

Commands:
- CreateReservationBatchCommand: Create one session or a recurring batch
- QuoteReservationCommand: Price and affordability preview, no writes
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
import logging

from django.db import DatabaseError, IntegrityError

from shared.domain.value_objects import Money
from apps.courts.domain import CourtConfigurationError, CourtSchedule
from apps.reservations.application.transaction import BookingTransaction
from apps.reservations.conf import ReservationSettings, reservation_settings
from apps.reservations.domain.entities import (
    BATCH_TRANSITIONS,
    BatchState,
    BookingRequest,
    ReservationBatch,
    ReservationDraft,
)
from apps.reservations.domain.exceptions import (
    CommitError,
    CourtNotFoundError,
    InsufficientFundsError,
    PricingError,
    ReservationError,
    ReservationValidationError,
    SlotConflictError,
    WalletBlockedError,
)
from apps.reservations.domain.ledger import Allocation, LedgerAllocator, WalletSnapshot
from apps.reservations.domain.pricing import PriceBreakdown, RateCalculator
from apps.reservations.domain.recurrence import expand_recurrence
from apps.reservations.domain.slots import block_duration, end_of_block, generate_slots, require_contiguous

logger = logging.getLogger(__name__)

SERVICE_RESERVATION = 'walletScreen.activityLog.reservationCreated'
SERVICE_BULK_RESERVATION = 'walletScreen.activityLog.bulkReservationCreated'


# ===== Commands =====

@dataclass
class CreateReservationBatchCommand:
    """Command to create the reservations of one booking request"""
    request: BookingRequest


@dataclass
class QuoteReservationCommand:
    """Command to price a request and check the payer can afford it"""
    request: BookingRequest


# ===== Results =====

@dataclass
class BatchResult:
    batch_id: UUID
    state: BatchState
    reservation_ids: List[int]
    dates: List[date]
    total_cost: Decimal
    amount_per_session: Decimal
    overdraft_sessions: List[Decimal] = field(default_factory=list)
    new_balance: Optional[Decimal] = None
    ledger_activity_id: Optional[int] = None
    replayed: bool = False
    history: List[BatchState] = field(default_factory=list)

    @property
    def overdraft_total(self) -> Decimal:
        return sum(self.overdraft_sessions, Decimal('0.00'))


@dataclass
class QuoteResult:
    price: PriceBreakdown
    dates: List[date]
    total: Money
    allocation: Optional[Allocation] = None
    can_afford: bool = True
    reason: str = ''
    has_wallet: bool = False

    @property
    def session_count(self) -> int:
        return len(self.dates)


# ===== Shared steps =====

class _BatchPlanner:
    """Validation and pricing shared by the create and quote handlers"""

    def __init__(self, court_repo, settings: ReservationSettings):
        self.court_repo = court_repo
        self.settings = settings

    def load_court(self, court_id) -> CourtSchedule:
        try:
            court = self.court_repo.get_schedule(court_id)
        except CourtConfigurationError as e:
            raise PricingError(
                f"Court {court_id} cannot be priced: {e}",
                code='court_misconfigured',
                details={'court_id': court_id},
            ) from e
        if court is None:
            raise CourtNotFoundError(f"Court {court_id} not found", details={'court_id': court_id})
        if not court.is_active:
            raise CourtNotFoundError(
                f"Court {court.name} is not accepting reservations",
                code='court_inactive',
                details={'court_id': court_id},
            )
        return court

    def validate(self, request: BookingRequest, court: CourtSchedule) -> List[date]:
        """Contiguous selection on the court's grid and at least one session date"""
        require_contiguous(request.slots, court.interval)

        offered = set(generate_slots(court))
        outside = [slot for slot in request.slots if slot not in offered]
        if outside:
            raise ReservationValidationError(
                f"{len(outside)} selected slot(s) are outside the court's schedule",
                code='slot_outside_schedule',
                details={'slots': [slot.strftime('%H:%M') for slot in outside]},
            )

        if request.recurrence is None:
            return [request.date]

        dates = expand_recurrence(
            request.recurrence.start_date,
            request.recurrence.end_date,
            request.recurrence.weekdays,
        )
        if not dates:
            raise ReservationValidationError("No valid days in range", code='no_valid_days')
        return dates

    def price(self, request: BookingRequest, court: CourtSchedule) -> PriceBreakdown:
        role_id = request.payer.role_id or self.settings.default_role_id
        return RateCalculator(court).price(request.slots, request.heater, request.light, role_id)


# ===== Command Handlers =====

class CreateReservationBatchHandler:
    """
    Handler for CreateReservationBatch command

    Strategy:
    1. Validate request against the court (outside the transaction)
    2. Price one session; every session in a batch has the same price
    3. Open BookingTransaction, read wallet with SELECT FOR UPDATE
    4. Allocate balance/overdraft (rejects before any write)
    5. Check occupied slots with SELECT FOR UPDATE
    6. Stage N reservations, one wallet write, one ledger entry
    7. Commit; events are published after the database commit
    8. Partial unique index on active slots as final safety net
    """

    def __init__(
        self,
        court_repo,
        reservation_repo,
        wallet_repo,
        ledger_repo,
        allocator: Optional[LedgerAllocator] = None,
        settings: Optional[ReservationSettings] = None,
    ):
        self.settings = settings or reservation_settings()
        self.planner = _BatchPlanner(court_repo, self.settings)
        self.reservation_repo = reservation_repo
        self.wallet_repo = wallet_repo
        self.ledger_repo = ledger_repo
        self.allocator = allocator or LedgerAllocator()

    def __call__(self, command: CreateReservationBatchCommand) -> BatchResult:
        return self.handle(command)

    def handle(self, command: CreateReservationBatchCommand) -> BatchResult:
        request = command.request
        logger.info(
            f"Creating reservation batch on court {request.court_id} for "
            f"{request.payer.display_name or request.payer.user_id or 'guest'}"
        )

        replay = self._replay(request)
        if replay is not None:
            return replay

        batch = ReservationBatch(request=request)
        try:
            court = self.planner.load_court(request.court_id)
            batch.court_name = court.name
            dates = self.planner.validate(request, court)
            self._advance(batch, BatchState.PRICING)

            batch.price = self.planner.price(request, court)
            batch.sessions = self._draft_sessions(request, court, batch.price, dates)
            self._advance(batch, BatchState.ALLOCATING)
        except ReservationValidationError as e:
            self._reject(batch, e)
            raise

        try:
            with BookingTransaction() as tx:
                wallet = self._charge_wallet(batch, tx)
                self._advance(batch, BatchState.COMMITTING)
                self._check_conflicts(batch, dates)

                for session in batch.sessions:
                    tx.stage_reservation(
                        lambda session=session: self.reservation_repo.create_session(
                            batch, session, user_id=request.payer.user_id
                        )
                    )
                if wallet is not None:
                    self._stage_wallet(batch, wallet, tx)

                results = tx.commit()
                reservations = results[:len(batch.sessions)]
                batch.record_sessions([reservation.pk for reservation in reservations])
                tx.collect_events(batch)
        except ReservationValidationError as e:
            self._reject(batch, e)
            raise
        except ReservationError as e:
            self._roll_back(batch, e)
            raise
        except IntegrityError as e:
            error = SlotConflictError(
                "One of the requested slots was booked by another request",
                details={'reason': str(e)},
            )
            self._roll_back(batch, error)
            raise error from e
        except DatabaseError as e:
            logger.error(f"Batch {batch.id} hit a database failure: {e}", exc_info=True)
            error = CommitError("Reservation batch could not be saved", details={'reason': str(e)})
            self._roll_back(batch, error)
            raise error from e

        batch.mark_committed()
        self._log_transition(batch)

        ledger = results[len(batch.sessions) + 1] if len(results) > len(batch.sessions) + 1 else None
        logger.info(
            f"Batch {batch.id} committed: {len(batch.sessions)} reservations, "
            f"total {batch.total_cost}"
        )
        return BatchResult(
            batch_id=batch.id,
            state=batch.state,
            reservation_ids=[session.reservation_id for session in batch.sessions],
            dates=[session.date for session in batch.sessions],
            total_cost=batch.total_cost.amount,
            amount_per_session=batch.price.total.amount,
            overdraft_sessions=[session.overdraft_used for session in batch.sessions],
            new_balance=batch.allocation.new_balance if batch.allocation else None,
            ledger_activity_id=ledger.pk if ledger is not None else None,
            history=list(batch.history),
        )

    def _replay(self, request: BookingRequest) -> Optional[BatchResult]:
        """Result of an already committed request with the same request_id"""
        existing = self.reservation_repo.find_by_request_id(request.request_id)
        if not existing:
            return None

        ledger = self.ledger_repo.find_by_request_id(request.request_id)
        logger.info(f"Request {request.request_id} already committed as batch {existing[0].batch_id}, replaying")
        return BatchResult(
            batch_id=existing[0].batch_id,
            state=BatchState.COMMITTED,
            reservation_ids=[reservation.pk for reservation in existing],
            dates=[reservation.date for reservation in existing],
            total_cost=sum((reservation.total_cost for reservation in existing), Decimal('0.00')),
            amount_per_session=existing[0].total_cost,
            overdraft_sessions=[reservation.overdraft_used for reservation in existing],
            new_balance=None,
            ledger_activity_id=ledger.pk if ledger is not None else None,
            replayed=True,
            history=[BatchState.COMMITTED],
        )

    def _draft_sessions(self, request, court, price: PriceBreakdown, dates) -> List[ReservationDraft]:
        start = request.slots[0]
        end = end_of_block(request.slots, court.interval)
        duration = block_duration(request.slots, court.interval)
        return [
            ReservationDraft(
                date=session_date,
                slots=request.slots,
                start_time=start,
                end_time=end,
                duration=duration,
                total_cost=price.total,
                amount_paid=price.total,
                original_price=price.original_price if price.discount_amount.amount else None,
                discount_percentage=price.discount_percentage,
            )
            for session_date in dates
        ]

    def _charge_wallet(self, batch: ReservationBatch, tx: BookingTransaction):
        """Lock the payer's wallet and allocate the batch total; None when nobody is charged"""
        request = batch.request
        if request.payer.is_guest:
            logger.debug(f"Batch {batch.id} has a guest payer, skipping wallet")
            batch.apply_allocation(self._no_charge(batch))
            return None

        wallet = self.wallet_repo.get_for_user(request.payer.user_id, lock=self.settings.lock_rows)
        if wallet is None:
            logger.debug(f"User {request.payer.user_id} has no wallet, skipping allocation")
            batch.apply_allocation(self._no_charge(batch))
            return None

        allocation = self.allocator.allocate(
            batch.total_cost.amount,
            WalletSnapshot.from_model(wallet),
            request.allow_overdraft,
            len(batch.sessions),
        )
        batch.apply_allocation(allocation)
        batch.wallet_id = wallet.pk
        if allocation.uses_overdraft:
            logger.info(f"Batch {batch.id} draws {allocation.overdraft_total} from overdraft on wallet {wallet.pk}")
        return wallet

    def _no_charge(self, batch: ReservationBatch) -> Allocation:
        return Allocation(
            per_session_overdraft=(Decimal('0.00'),) * len(batch.sessions),
            new_balance=None,
            overdraft_total=Decimal('0.00'),
            total_charge=Decimal('0.00'),
        )

    def _check_conflicts(self, batch: ReservationBatch, dates: List[date]):
        request = batch.request
        conflicts = self.reservation_repo.find_conflicts(
            request.court_id, dates, request.slots, lock=self.settings.lock_rows
        )
        if conflicts:
            raise SlotConflictError(
                f"{len(conflicts)} requested slot(s) are already reserved",
                details={
                    'conflicts': [
                        {'date': slot.date.isoformat(), 'time': slot.start_time.strftime('%H:%M')}
                        for slot in conflicts
                    ]
                },
            )

    def _stage_wallet(self, batch: ReservationBatch, wallet, tx: BookingTransaction):
        allocation = batch.allocation
        if allocation.total_charge <= 0:
            return

        tx.stage_wallet_balance(lambda: self.wallet_repo.set_balance(wallet, allocation.new_balance))

        request = batch.request
        first, last = batch.sessions[0], batch.sessions[-1]
        values = dict(
            wallet=wallet,
            service=SERVICE_BULK_RESERVATION if request.is_recurring else SERVICE_RESERVATION,
            amount=-allocation.total_charge,
            created_by=request.created_by or self.settings.ledger_created_by,
            court_id=request.court_id,
            court_name=batch.court_name,
            bulk_group_name=batch.bulk_group_name,
            reservation_count=len(batch.sessions),
            start_date=first.date,
            end_date=last.date,
            reservation_time=first.start_time,
            reservation_end_time=first.end_time,
            duration=first.duration,
            amount_per_session=batch.price.total.amount,
            overdraft_used=allocation.overdraft_total,
            overdraft_sessions={
                session.date.isoformat(): str(session.overdraft_used)
                for session in batch.sessions
                if session.overdraft_used > 0
            },
            batch_id=batch.id,
            request_id=request.request_id,
        )
        tx.stage_ledger_entry(lambda: self.ledger_repo.add_activity(**values))

    def _advance(self, batch: ReservationBatch, state: BatchState):
        batch.transition_to(state)
        self._log_transition(batch)

    def _log_transition(self, batch: ReservationBatch):
        previous = batch.history[-2].value if len(batch.history) > 1 else '-'
        logger.info(f"Batch {batch.id}: {previous} -> {batch.state.value}")

    def _roll_back(self, batch: ReservationBatch, error: ReservationError):
        if BatchState.ROLLED_BACK in BATCH_TRANSITIONS.get(batch.state, set()):
            batch.transition_to(BatchState.ROLLED_BACK)
        logger.warning(f"Batch {batch.id} rolled back ({error.code}): {error.message}")

    def _reject(self, batch: ReservationBatch, error: ReservationError):
        if not batch.state.is_terminal:
            batch.transition_to(BatchState.REJECTED)
        logger.warning(f"Batch {batch.id} rejected ({error.code}): {error.message}")


class QuoteReservationHandler:
    """Handler for QuoteReservation command; reads only"""

    def __init__(self, court_repo, wallet_repo, allocator: Optional[LedgerAllocator] = None, settings=None):
        self.settings = settings or reservation_settings()
        self.planner = _BatchPlanner(court_repo, self.settings)
        self.wallet_repo = wallet_repo
        self.allocator = allocator or LedgerAllocator()

    def __call__(self, command: QuoteReservationCommand) -> QuoteResult:
        return self.handle(command)

    def handle(self, command: QuoteReservationCommand) -> QuoteResult:
        request = command.request
        court = self.planner.load_court(request.court_id)
        dates = self.planner.validate(request, court)
        price = self.planner.price(request, court)
        total = price.total * len(dates)

        quote = QuoteResult(price=price, dates=dates, total=total)
        if request.payer.is_guest:
            return quote

        wallet = self.wallet_repo.get_for_user(request.payer.user_id)
        if wallet is None:
            return quote

        quote.has_wallet = True
        try:
            quote.allocation = self.allocator.allocate(
                total.amount,
                WalletSnapshot.from_model(wallet),
                request.allow_overdraft,
                len(dates),
            )
        except (InsufficientFundsError, WalletBlockedError) as e:
            quote.can_afford = False
            quote.reason = e.code
            logger.debug(f"Quote for court {court.name}: payer cannot afford {total} ({e.code})")
        return quote

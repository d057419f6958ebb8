"""
Booking Transaction

Unit of work for one reservation batch: N reservation writes, at most one
wallet balance write and at most one ledger entry, applied in a single
database transaction.
"""

from typing import Any, Callable, List
import logging

from django.db import DatabaseError, IntegrityError

from shared.application.uow import DjangoUnitOfWork
from apps.reservations.domain.exceptions import CommitError, SlotConflictError

logger = logging.getLogger(__name__)


class BookingTransaction(DjangoUnitOfWork):
    """
    All-or-nothing commit of a batch

    Usage:
        with BookingTransaction() as tx:
            for session in batch.sessions:
                tx.stage_reservation(lambda s=session: repo.create_session(batch, s))
            tx.stage_wallet_balance(lambda: wallet_repo.set_balance(wallet, new_balance))
            tx.stage_ledger_entry(lambda: ledger_repo.add_activity(**values))
            tx.collect_events(batch)

    Leaving the block applies the writes in order; an integrity failure on
    the slot constraint becomes SlotConflictError and any other database
    failure CommitError. Either way nothing is persisted.
    """

    def __init__(self, using: str | None = None):
        super().__init__(using=using)
        self.wallet_writes = 0
        self.ledger_writes = 0

    def stage_reservation(self, write: Callable[[], Any]):
        return self.stage('reservation', write)

    def stage_wallet_balance(self, write: Callable[[], Any]):
        if self.wallet_writes:
            raise ValueError("A batch issues a single wallet write")
        self.wallet_writes += 1
        return self.stage('wallet', write)

    def stage_ledger_entry(self, write: Callable[[], Any]):
        if self.ledger_writes:
            raise ValueError("A batch issues a single ledger entry")
        self.ledger_writes += 1
        return self.stage('ledger', write)

    def commit(self) -> List[Any]:
        pending = len(self.staged)
        try:
            results = super().commit()
        except IntegrityError as e:
            logger.warning(f"Batch commit hit a slot conflict, {pending} writes rolled back: {e}")
            raise SlotConflictError(
                "One of the requested slots was booked by another request",
                details={'reason': str(e)},
            ) from e
        except DatabaseError as e:
            logger.error(f"Batch commit failed, {pending} writes rolled back: {e}", exc_info=True)
            raise CommitError(
                "Reservation batch could not be saved",
                details={'reason': str(e)},
            ) from e
        self.wallet_writes = 0
        self.ledger_writes = 0
        if pending:
            logger.info(f"Batch committed with {pending} writes")
        return results

    def rollback(self):
        super().rollback()
        self.wallet_writes = 0
        self.ledger_writes = 0

"""
Unit of Work Pattern

Collects writes and domain events, applies the writes inside one database
transaction and publishes the events only after that transaction commits.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedWrite:
    """A deferred write; `apply` runs only when the unit of work commits"""
    label: str
    apply: Callable[[], Any]


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def stage(self, label: str, write: Callable[[], Any]) -> StagedWrite:
        """Queue a write for the next commit"""
        pass

    @abstractmethod
    def commit(self) -> List[Any]:
        """Apply all staged writes atomically"""
        pass

    @abstractmethod
    def rollback(self):
        """Discard staged writes and events"""
        pass

    @abstractmethod
    def collect_events(self, aggregate):
        """Collect events from aggregate root"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Entering the context opens `transaction.atomic()` so that reads made
    inside it (row locks, conflict checks) share the transaction with the
    staged writes. Writes are only executed by `commit()`.

    Usage:
        with DjangoUnitOfWork() as uow:
            wallet = wallet_repo.get_for_user(user_id, lock=True)
            uow.stage('wallet', lambda: wallet_repo.set_balance(wallet, new_balance))
            uow.collect_events(batch)
        # Staged writes applied and committed here, events published after
    """

    def __init__(self, using: str | None = None):
        self.using = using
        self._writes: List[StagedWrite] = []
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic(using=self.using)
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Apply staged writes and commit, or roll everything back"""
        if exc_type is None:
            try:
                self.commit()
            except Exception as exc:
                self.rollback()
                self._close(type(exc), exc, exc.__traceback__)
                raise
            self._close(None, None, None)
            return False

        self.rollback()
        self._close(exc_type, exc_val, exc_tb)
        return False

    def _close(self, exc_type, exc_val, exc_tb):
        if self._transaction is not None:
            atomic, self._transaction = self._transaction, None
            atomic.__exit__(exc_type, exc_val, exc_tb)

    @property
    def staged(self) -> List[StagedWrite]:
        return self._writes.copy()

    def stage(self, label: str, write: Callable[[], Any]) -> StagedWrite:
        staged = StagedWrite(label=label, apply=write)
        self._writes.append(staged)
        logger.debug(f"Staged write '{label}' ({len(self._writes)} pending)")
        return staged

    def commit(self) -> List[Any]:
        """
        Apply staged writes and schedule event publishing

        Writes run inside `transaction.atomic()`; when the unit of work was
        entered as a context manager this nests as a savepoint of the outer
        transaction. Events are handed to `transaction.on_commit()` so they
        fire only after the outermost commit succeeds.
        """
        writes = self._writes.copy()
        events = self._events.copy()
        self._writes.clear()
        self._events.clear()

        logger.debug(f"Committing {len(writes)} staged writes with {len(events)} events")

        with transaction.atomic(using=self.using):
            results = [staged.apply() for staged in writes]
            if events:
                transaction.on_commit(lambda: self._publish_events(events), using=self.using)
        return results

    def rollback(self):
        """Discard staged writes and events"""
        if self._writes or self._events:
            logger.warning(
                f"Rolling back unit of work, discarding {len(self._writes)} writes "
                f"and {len(self._events)} events"
            )
        self._writes.clear()
        self._events.clear()

    def collect_events(self, aggregate):
        """
        Collect events from aggregate root

        Extracts all domain events from the aggregate and
        clears them from the aggregate.
        """
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )

    def _publish_events(self, events: List[DomainEvent]):
        """
        Publish collected events to message bus

        Called after successful transaction commit.
        """
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            # Data is already committed
            logger.error(f"Error publishing events: {e}", exc_info=True)

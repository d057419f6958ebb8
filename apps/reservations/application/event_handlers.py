"""Subscribers for reservation events, run after the batch has committed."""

import logging

from apps.reservations.domain.events import ReservationBatchCreated, WalletCharged

logger = logging.getLogger(__name__)


def log_batch_created(event: ReservationBatchCreated):
    logger.info(
        f"Reservation batch {event.batch_id} on court {event.court_id}: "
        f"{len(event.reservation_ids)} sessions {event.start_time:%H:%M}-{event.end_time:%H:%M}, "
        f"total {event.total_cost}"
    )


def log_wallet_charged(event: WalletCharged):
    if event.overdraft_used > 0:
        logger.warning(
            f"Wallet {event.wallet_id} charged {event.amount} with {event.overdraft_used} overdraft, "
            f"balance now {event.new_balance}"
        )
    else:
        logger.info(f"Wallet {event.wallet_id} charged {event.amount}, balance now {event.new_balance}")

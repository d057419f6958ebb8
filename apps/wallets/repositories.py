"""Wallet persistence used by the reservation engine."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from .models import LedgerActivity, Wallet

logger = logging.getLogger(__name__)


class DjangoWalletRepository:
    """
    Reads a payer's wallet and issues the single balance write of a batch.

    `lock=True` reads the row with ``select_for_update()`` and therefore
    has to run inside an atomic block.
    """

    def get_for_user(self, user_id, lock: bool = False) -> Optional[Wallet]:
        if user_id is None:
            return None
        queryset = Wallet.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        return queryset.filter(user_id=user_id).first()

    def set_balance(self, wallet: Wallet, new_balance: Decimal) -> Wallet:
        previous = wallet.balance
        wallet.balance = new_balance
        wallet.save(update_fields=["balance", "updated_at"])
        logger.info(f"Wallet {wallet.pk} balance {previous} -> {new_balance}")
        return wallet


class DjangoLedgerRepository:
    """Append-only access to wallet activities."""

    def add_activity(self, **values) -> LedgerActivity:
        activity = LedgerActivity.objects.create(**values)
        logger.info(
            f"Ledger activity {activity.pk} written for wallet {activity.wallet_id}: "
            f"{activity.amount} ({activity.service})"
        )
        return activity

    def find_by_request_id(self, request_id: Optional[str]) -> Optional[LedgerActivity]:
        if not request_id:
            return None
        return LedgerActivity.objects.filter(request_id=request_id).first()

    def for_batch(self, batch_id):
        return LedgerActivity.objects.filter(batch_id=batch_id)

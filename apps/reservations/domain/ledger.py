"""
Ledger Allocator

Decides how a batch's total charge is covered by a wallet: from balance
alone, or partly from overdraft spread over the batch sessions. Runs
before any write; a rejected allocation leaves nothing to roll back.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Optional, Tuple
import logging

from shared.domain.base import ValueObject
from shared.domain.value_objects import CENT, to_decimal
from apps.reservations.domain.exceptions import InsufficientFundsError, WalletBlockedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletSnapshot(ValueObject):
    """
    Balance as read at the start of the batch

    `overdraft_limit` of None means no ceiling when overdraft is allowed.
    """
    balance: Decimal
    overdraft_limit: Optional[Decimal] = None
    is_blocked: bool = False
    wallet_id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'balance', to_decimal(self.balance))
        if self.overdraft_limit is not None:
            limit = to_decimal(self.overdraft_limit)
            if limit < 0:
                raise ValueError("Overdraft limit cannot be negative")
            object.__setattr__(self, 'overdraft_limit', limit)

    @classmethod
    def from_model(cls, wallet) -> 'WalletSnapshot':
        return cls(
            balance=wallet.balance,
            overdraft_limit=wallet.overdraft_limit,
            is_blocked=wallet.is_blocked,
            wallet_id=wallet.pk,
        )


@dataclass(frozen=True)
class Allocation(ValueObject):
    """Outcome of covering one batch charge"""
    per_session_overdraft: Tuple[Decimal, ...]
    new_balance: Decimal
    overdraft_total: Decimal
    total_charge: Decimal

    @property
    def uses_overdraft(self) -> bool:
        return self.overdraft_total > 0


def split_evenly(amount: Decimal, parts: int) -> Tuple[Decimal, ...]:
    """
    Split `amount` into `parts` cent amounts that add up exactly

    Each share is rounded down; the remainder goes to the last share.
    """
    if parts < 1:
        raise ValueError("Cannot split into fewer than one part")
    share = (amount / parts).quantize(CENT, rounding=ROUND_DOWN)
    last = amount - share * (parts - 1)
    return (share,) * (parts - 1) + (last,)


class LedgerAllocator:
    """
    Covers a total charge from balance and, when allowed, overdraft

    Examples:
        balance 2000, charge 1500          -> no overdraft, new balance 500
        balance 500, charge 1500, 3 days   -> 333.33 / 333.33 / 333.34, new balance -1000
        balance 500, charge 1500, no overdraft -> InsufficientFundsError
    """

    def allocate(
        self,
        total_charge,
        wallet: WalletSnapshot,
        allow_overdraft: bool,
        session_count: int,
    ) -> Allocation:
        total = to_decimal(total_charge).quantize(CENT)
        if total < 0:
            raise ValueError("Total charge cannot be negative")
        if session_count < 1:
            raise ValueError("A batch has at least one session")

        if wallet.is_blocked:
            raise WalletBlockedError(
                "Wallet is blocked and cannot be charged",
                details={'wallet_id': wallet.wallet_id},
            )

        balance = wallet.balance
        new_balance = balance - total

        if balance >= total:
            return Allocation(
                per_session_overdraft=(Decimal('0.00'),) * session_count,
                new_balance=new_balance,
                overdraft_total=Decimal('0.00'),
                total_charge=total,
            )

        if not allow_overdraft:
            raise InsufficientFundsError(
                f"Wallet balance {balance} does not cover {total}",
                details={'balance': str(balance), 'total': str(total), 'shortfall': str(total - balance)},
            )

        if wallet.overdraft_limit is not None and new_balance < -wallet.overdraft_limit:
            raise InsufficientFundsError(
                f"Charge of {total} would take the wallet to {new_balance}, "
                f"beyond its overdraft limit of {wallet.overdraft_limit}",
                code='overdraft_limit_exceeded',
                details={
                    'balance': str(balance),
                    'total': str(total),
                    'overdraft_limit': str(wallet.overdraft_limit),
                },
            )

        overdraft_total = total - balance
        logger.debug(f"Covering {overdraft_total} of {total} from overdraft over {session_count} sessions")
        return Allocation(
            per_session_overdraft=split_evenly(overdraft_total, session_count),
            new_balance=new_balance,
            overdraft_total=overdraft_total,
            total_charge=total,
        )

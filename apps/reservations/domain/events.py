"""
Reservation Domain Events

Published by the message bus once the batch transaction has committed.
"""

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass
class ReservationBatchCreated(DomainEvent):
    """
    Event: a reservation batch (one or many sessions) was committed

    Triggers:
    - Refresh the court's slot board
    - Activity log entry for the club console
    """
    batch_id: UUID = None
    court_id: int = None
    dates: List[date] = field(default_factory=list)
    start_time: time = None
    end_time: time = None
    reservation_ids: List[int] = field(default_factory=list)
    total_cost: Decimal = Decimal('0')
    bulk_group_name: str = ''
    user_id: Optional[int] = None


@dataclass
class WalletCharged(DomainEvent):
    """
    Event: a wallet balance was reduced for a batch

    Triggers:
    - Low-balance / overdraft notification to the member
    """
    batch_id: UUID = None
    wallet_id: int = None
    amount: Decimal = Decimal('0')
    new_balance: Decimal = Decimal('0')
    overdraft_used: Decimal = Decimal('0')

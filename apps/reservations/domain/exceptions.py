"""
Reservation Domain Exceptions

ReservationError
├── ReservationValidationError   rejected before any write
│   ├── PricingError
│   ├── InsufficientFundsError
│   ├── WalletBlockedError
│   └── CourtNotFoundError
├── SlotConflictError            another batch holds one of the slots
└── CommitError                  the atomic write failed and was rolled back
"""

from typing import Any, Dict, Optional


class ReservationError(Exception):
    """Base class for every reservation engine failure"""
    code = 'reservation_error'

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'detail': self.message, **({'details': self.details} if self.details else {})}


class ReservationValidationError(ReservationError):
    code = 'invalid_request'


class PricingError(ReservationValidationError):
    code = 'pricing_failed'


class InsufficientFundsError(ReservationValidationError):
    code = 'insufficient_funds'


class WalletBlockedError(ReservationValidationError):
    code = 'wallet_blocked'


class CourtNotFoundError(ReservationValidationError):
    code = 'court_not_found'


class SlotConflictError(ReservationError):
    code = 'slot_conflict'


class CommitError(ReservationError):
    code = 'commit_failed'

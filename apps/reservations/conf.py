"""Reservation engine settings with project-level overrides.

Defaults live here; a ``RESERVATIONS`` dict in Django settings overrides
any of them, e.g.::

    RESERVATIONS = {"CURRENCY": "EUR", "DEFAULT_ROLE_ID": "guest"}
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings  # type: ignore


@dataclass(frozen=True)
class ReservationSettings:
    currency: str = "TRY"
    default_role_id: str = "member"
    ledger_created_by: str = "admin"
    lock_rows: bool = True


def reservation_settings() -> ReservationSettings:
    overrides = getattr(settings, "RESERVATIONS", {}) or {}
    defaults = ReservationSettings()
    return ReservationSettings(
        currency=overrides.get("CURRENCY", defaults.currency),
        default_role_id=overrides.get("DEFAULT_ROLE_ID", defaults.default_role_id),
        ledger_created_by=overrides.get("LEDGER_CREATED_BY", defaults.ledger_created_by),
        lock_rows=bool(overrides.get("LOCK_ROWS", defaults.lock_rows)),
    )

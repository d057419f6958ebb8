"""Wallet and ledger models for the club console."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class LedgerImmutableError(Exception):
    """Raised when code tries to edit or delete a ledger activity."""


class Wallet(models.Model):
    """Prepaid balance of a club member."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wallet",
    )
    balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Negative while the member is using overdraft."),
    )
    overdraft_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("How far the balance may go below zero. Empty means no ceiling."),
    )
    is_blocked = models.BooleanField(default=False)
    currency = models.CharField(max_length=3, default="TRY")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Wallet")
        verbose_name_plural = _("Wallets")
        ordering = ["-updated_at"]

    def __str__(self) -> str:
        return f"Wallet of {self.user_id}: {self.balance} {self.currency}"


class LedgerActivity(models.Model):
    """Append-only record of one charge against a wallet."""

    class Service(models.TextChoices):
        RESERVATION_CREATED = "walletScreen.activityLog.reservationCreated", _("Reservation created")
        BULK_RESERVATION_CREATED = "walletScreen.activityLog.bulkReservationCreated", _("Bulk reservation created")

    class Status(models.TextChoices):
        COMPLETED = "completed", _("Completed")

    wallet = models.ForeignKey(
        Wallet,
        on_delete=models.PROTECT,
        related_name="activities",
    )
    service = models.CharField(max_length=80, choices=Service.choices)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text=_("Signed amount; charges are negative."),
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.COMPLETED)
    created_by = models.CharField(max_length=50, default="admin")
    court = models.ForeignKey(
        "courts.Court",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ledger_activities",
    )
    court_name = models.CharField(max_length=120, blank=True)
    bulk_group_name = models.CharField(max_length=120, blank=True)
    reservation_count = models.PositiveIntegerField(default=1)
    start_date = models.DateField()
    end_date = models.DateField()
    reservation_time = models.TimeField()
    reservation_end_time = models.TimeField()
    duration = models.PositiveIntegerField(help_text=_("Minutes per session."))
    amount_per_session = models.DecimalField(max_digits=12, decimal_places=2)
    overdraft_used = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    overdraft_sessions = models.JSONField(
        default=dict,
        blank=True,
        help_text=_("Overdraft drawn per session, keyed by reservation date."),
    )
    batch_id = models.UUIDField(db_index=True)
    request_id = models.CharField(max_length=64, null=True, blank=True, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Wallet activity")
        verbose_name_plural = _("Wallet activities")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["wallet", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.get_service_display()} {self.amount} ({self.batch_id})"

    def save(self, *args, **kwargs):  # type: ignore
        if not self._state.adding:
            raise LedgerImmutableError("Ledger activities cannot be changed once written.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):  # type: ignore
        raise LedgerImmutableError("Ledger activities cannot be deleted.")

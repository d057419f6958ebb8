"""Reservation models for the club console."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models, transaction  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ImmutableCostError(Exception):
    """Raised when a saved reservation's cost fields are edited in place."""


class Reservation(models.Model):
    """One session on a court; cost fields are frozen at creation."""

    IMMUTABLE_FIELDS = ("total_cost", "amount_paid", "overdraft_used")

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        CANCELLED = "cancelled", _("Cancelled")

    court = models.ForeignKey(
        "courts.Court",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    date = models.DateField(db_index=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    slots = models.JSONField(default=list, help_text=_("Ordered slot start times, HH:MM."))
    duration = models.PositiveIntegerField(help_text=_("Minutes."))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="court_reservations",
    )
    username = models.CharField(max_length=150, blank=True)
    is_guest_reservation = models.BooleanField(default=False)
    total_cost = models.DecimalField(max_digits=12, decimal_places=2)
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2)
    original_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    heater = models.BooleanField(default=False)
    light = models.BooleanField(default=False)
    allow_overdraft = models.BooleanField(default=False)
    overdraft_used = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    bulk_group_name = models.CharField(max_length=120, blank=True, db_index=True)
    batch_id = models.UUIDField(db_index=True)
    request_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    created_by = models.CharField(max_length=50, default="admin")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["date", "start_time"]
        indexes = [
            models.Index(fields=["court", "date", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.court_id} {self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def save(self, *args, **kwargs):  # type: ignore
        if not self._state.adding and self.pk:
            stored = (
                Reservation.objects.filter(pk=self.pk)
                .values(*self.IMMUTABLE_FIELDS)
                .first()
            )
            if stored:
                changed = [name for name in self.IMMUTABLE_FIELDS if stored[name] != getattr(self, name)]
                if changed:
                    raise ImmutableCostError(
                        f"Reservation {self.pk} cost fields cannot change: {', '.join(changed)}"
                    )
        with transaction.atomic():
            creating = self._state.adding
            super().save(*args, **kwargs)
            if not creating:
                self.sync_slots()

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE

    def sync_slots(self) -> int:
        """Occupied slot rows follow the reservation status; returns rows changed."""
        return self.occupied_slots.exclude(is_active=self.is_active).update(is_active=self.is_active)

    def mark_cancelled(self) -> None:
        self.status = self.Status.CANCELLED
        self.save(update_fields=["status"])


class ReservationSlot(models.Model):
    """Occupancy of one slot start; at most one active row per court, date and time."""

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name="occupied_slots",
    )
    court = models.ForeignKey("courts.Court", on_delete=models.PROTECT, related_name="occupied_slots")
    date = models.DateField()
    start_time = models.TimeField()
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Occupied slot")
        verbose_name_plural = _("Occupied slots")
        constraints = [
            models.UniqueConstraint(
                fields=["court", "date", "start_time"],
                condition=models.Q(is_active=True),
                name="unique_active_court_slot",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.court_id} {self.date} {self.start_time:%H:%M}"

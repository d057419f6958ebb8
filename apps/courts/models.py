"""Court domain models for the club console."""

from __future__ import annotations

from datetime import time
from decimal import Decimal

from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import TimeWindow


class Court(models.Model):
    """A bookable court with operating hours and pricing configuration."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        MAINTENANCE = "maintenance", _("Under maintenance")
        INACTIVE = "inactive", _("Inactive")

    class SlotInterval(models.IntegerChoices):
        QUARTER_HOUR = 15, _("15 minutes")
        HALF_HOUR = 30, _("30 minutes")
        HOUR = 60, _("60 minutes")

    name = models.CharField(max_length=120)
    surface = models.CharField(max_length=50, blank=True)
    indoor = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    available_from = models.TimeField(default=time(8, 0))
    available_until = models.TimeField(default=time(22, 0), help_text=_("00:00 closes the court at midnight."))
    time_slot_interval = models.PositiveSmallIntegerField(
        choices=SlotInterval.choices,
        default=SlotInterval.HOUR,
    )
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Fallback hourly price for slots outside every rate band."),
    )
    heating_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Heater price per hour."),
    )
    lighting_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Lighting price per hour."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Court")
        verbose_name_plural = _("Courts")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE


class RateBand(models.Model):
    """Hourly price valid for slots starting inside [from_time, until_time)."""

    court = models.ForeignKey(
        Court,
        on_delete=models.CASCADE,
        related_name="rate_bands",
    )
    from_time = models.TimeField()
    until_time = models.TimeField()
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    role_prices = models.JSONField(
        default=dict,
        blank=True,
        help_text=_("Optional hourly price per role id, e.g. {\"coach\": 450}."),
    )

    class Meta:
        verbose_name = _("Rate band")
        verbose_name_plural = _("Rate bands")
        ordering = ["court", "from_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(until_time__gt=models.F("from_time")) | models.Q(until_time=time(0, 0)),
                name="rate_band_valid_time_range",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.court}: {self.from_time:%H:%M}-{self.until_time:%H:%M} ({self.base_price})"

    def clean(self) -> None:
        window = TimeWindow(self.from_time, self.until_time)
        if window.is_empty:
            raise ValidationError(_("Band end must be after band start."))
        for role_id, price in (self.role_prices or {}).items():
            try:
                if Decimal(str(price)) < 0:
                    raise ValidationError(_("Role price for %(role)s cannot be negative.") % {"role": role_id})
            except ArithmeticError:
                raise ValidationError(_("Role price for %(role)s is not a number.") % {"role": role_id})
        siblings = RateBand.objects.filter(court_id=self.court_id).exclude(pk=self.pk)
        if any(window.overlaps_with(TimeWindow(band.from_time, band.until_time)) for band in siblings):
            raise ValidationError(_("Rate bands of one court must not overlap."))


class CourtDiscount(models.Model):
    """Percentage discount attached to a court for all hours or a time window."""

    court = models.ForeignKey(
        Court,
        on_delete=models.CASCADE,
        related_name="discounts",
    )
    percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    is_all_hours = models.BooleanField(default=False)
    from_time = models.TimeField(null=True, blank=True)
    until_time = models.TimeField(null=True, blank=True)
    description = models.CharField(max_length=255, blank=True)
    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Court discount")
        verbose_name_plural = _("Court discounts")
        ordering = ["court", "applied_at"]

    def __str__(self) -> str:
        if self.is_all_hours:
            return f"{self.court}: {self.percentage}% all hours"
        return f"{self.court}: {self.percentage}% {self.from_time}-{self.until_time}"

    def clean(self) -> None:
        if self.is_all_hours:
            return
        if self.from_time is None or self.until_time is None:
            raise ValidationError(_("Set a time window or mark the discount as all hours."))
        if TimeWindow(self.from_time, self.until_time).is_empty:
            raise ValidationError(_("Discount window end must be after its start."))

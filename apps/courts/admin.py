"""Admin registrations for courts."""

from __future__ import annotations

from django.contrib import admin

from .models import Court, CourtDiscount, RateBand


class RateBandInline(admin.TabularInline):
    model = RateBand
    extra = 0
    fields = ("from_time", "until_time", "base_price", "role_prices")


class CourtDiscountInline(admin.TabularInline):
    model = CourtDiscount
    extra = 0
    fields = ("percentage", "is_all_hours", "from_time", "until_time", "description")


@admin.register(Court)
class CourtAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "status",
        "available_from",
        "available_until",
        "time_slot_interval",
        "hourly_rate",
    )
    list_filter = ("status", "time_slot_interval", "indoor")
    search_fields = ("name",)
    inlines = (RateBandInline, CourtDiscountInline)
    readonly_fields = ("created_at", "updated_at")

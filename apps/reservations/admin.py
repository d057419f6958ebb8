"""Admin registrations for reservations."""

from __future__ import annotations

from django.contrib import admin

from .models import Reservation, ReservationSlot


class ReservationSlotInline(admin.TabularInline):
    model = ReservationSlot
    extra = 0
    can_delete = False
    readonly_fields = ("court", "date", "start_time", "is_active")


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = (
        "date",
        "start_time",
        "end_time",
        "court",
        "username",
        "total_cost",
        "overdraft_used",
        "status",
        "bulk_group_name",
    )
    list_filter = ("status", "court", "is_guest_reservation")
    search_fields = ("username", "bulk_group_name", "batch_id")
    date_hierarchy = "date"
    readonly_fields = (
        "total_cost",
        "amount_paid",
        "overdraft_used",
        "original_price",
        "discount_percentage",
        "batch_id",
        "request_id",
        "created_at",
    )
    inlines = (ReservationSlotInline,)

"""Admin registrations for wallets."""

from __future__ import annotations

from django.contrib import admin

from .models import LedgerActivity, Wallet


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ("user", "balance", "overdraft_limit", "is_blocked", "currency", "updated_at")
    list_filter = ("is_blocked", "currency")
    search_fields = ("user__username", "user__email")
    readonly_fields = ("created_at", "updated_at")


@admin.register(LedgerActivity)
class LedgerActivityAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "wallet",
        "service",
        "amount",
        "reservation_count",
        "overdraft_used",
        "created_by",
    )
    list_filter = ("service", "status")
    search_fields = ("court_name", "bulk_group_name", "request_id")
    date_hierarchy = "created_at"

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

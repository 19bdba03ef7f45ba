"""Admin registration for payments."""

from __future__ import annotations

from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "intent_id",
        "booking",
        "status",
        "amount",
        "currency",
        "provider",
        "paid_at",
        "created_at",
    )
    list_filter = ("status", "provider", "currency")
    search_fields = ("intent_id", "booking__id")
    readonly_fields = (
        "booking",
        "intent_id",
        "amount",
        "currency",
        "provider",
        "paid_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False

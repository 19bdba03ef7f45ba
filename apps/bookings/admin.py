"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, Passenger


class PassengerInline(admin.TabularInline):
    model = Passenger
    extra = 0
    fields = ("position", "first_name", "last_name", "email", "phone", "document", "birth_date")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "owner",
        "flight",
        "status",
        "total_amount",
        "currency",
        "created_at",
    )
    list_filter = ("status", "currency", "created_at")
    search_fields = ("id", "owner__email", "flight__flight_number", "payment_reference")
    readonly_fields = (
        "id",
        "status",
        "total_amount",
        "created_at",
        "updated_at",
    )
    inlines = [PassengerInline]

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False

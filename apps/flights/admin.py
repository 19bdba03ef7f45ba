"""Admin registration for flights."""

from __future__ import annotations

from django.contrib import admin

from .models import Flight


@admin.register(Flight)
class FlightAdmin(admin.ModelAdmin):
    list_display = (
        "flight_number",
        "origin",
        "destination",
        "departure_at",
        "arrival_at",
        "price",
        "currency",
    )
    list_filter = ("origin", "destination", "airline_code")
    search_fields = ("flight_number", "origin", "destination")
    readonly_fields = ("id", "created_at")

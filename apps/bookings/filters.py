"""FilterSet definitions for owner-scoped booking listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    """Filters accepted by ``GET /bookings/``."""

    status = django_filters.ChoiceFilter(field_name="status", choices=Booking.Status.choices)
    flight_id = django_filters.UUIDFilter(field_name="flight_id")

    class Meta:
        model = Booking
        fields = ["status", "flight_id"]

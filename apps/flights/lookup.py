"""Read-only flight lookup used by the booking lifecycle."""

from __future__ import annotations

from django.core.exceptions import ValidationError  # type: ignore

from shared.domain.errors import NotFound

from .models import Flight


def get_flight(flight_id) -> Flight:
    """Return the flight with the given id or raise NotFound.

    Malformed ids are treated exactly like unknown ones.
    """

    try:
        return Flight.objects.get(pk=flight_id)
    except (Flight.DoesNotExist, ValidationError, ValueError, TypeError):
        raise NotFound(f"Flight {flight_id} not found")

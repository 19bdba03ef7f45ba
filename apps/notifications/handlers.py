"""Domain event handlers for notifications."""

from __future__ import annotations

import structlog

from apps.bookings.domain.events import BookingPaid

from .services import load_notifier

logger = structlog.get_logger(__name__)


def send_confirmation_on_payment(event: BookingPaid) -> None:
    """Ask the configured notifier to confirm a paid booking."""
    from apps.bookings.models import Booking

    try:
        booking = Booking.objects.select_related("flight").get(pk=event.booking_id)
    except Booking.DoesNotExist:
        logger.warning("notifications.booking_missing", booking_id=str(event.booking_id))
        return
    load_notifier().send_booking_confirmation(booking)

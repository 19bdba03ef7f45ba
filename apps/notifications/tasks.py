"""Celery tasks for notifications."""

from __future__ import annotations

import structlog
from celery import shared_task  # type: ignore

from .services import send_booking_confirmation_email

logger = structlog.get_logger(__name__)


@shared_task(name="notifications.send_booking_confirmation")
def send_booking_confirmation(booking_id: str) -> bool:
    """Render and send the confirmation mail for a paid booking."""
    from apps.bookings.models import Booking

    try:
        booking = Booking.objects.select_related("flight").get(pk=booking_id)
    except Booking.DoesNotExist:
        logger.warning("notifications.booking_missing", booking_id=booking_id)
        return False
    return send_booking_confirmation_email(booking)

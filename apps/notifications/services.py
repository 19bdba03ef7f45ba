"""Notification services for sending booking emails."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import structlog
from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.utils.html import strip_tags  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking

logger = structlog.get_logger(__name__)


# ============================================================================
# NOTIFIERS
# ============================================================================

class Notifier(ABC):
    """Fire-and-forget customer notifications."""

    @abstractmethod
    def send_booking_confirmation(self, booking: "Booking") -> None:
        raise NotImplementedError


class CeleryMailNotifier(Notifier):
    """Queues the confirmation mail on Celery."""

    def send_booking_confirmation(self, booking: "Booking") -> None:
        from .tasks import send_booking_confirmation

        try:
            send_booking_confirmation.delay(str(booking.pk))
        except Exception:
            # Broker outages must not undo a confirmed payment
            logger.error("notifications.enqueue_failed", booking_id=str(booking.pk), exc_info=True)


def load_notifier() -> Notifier:
    notifier_class = import_string(settings.NOTIFICATIONS_NOTIFIER_CLASS)
    return notifier_class()


# ============================================================================
# EMAIL NOTIFICATIONS
# ============================================================================

def send_email_notification(
    recipient_email: str,
    subject: str,
    html_message: str,
) -> bool:
    """
    Send one HTML email with a plain-text alternative.

    Returns:
        bool: True if the message was handed to the mail backend
    """
    try:
        send_mail(
            subject=subject,
            message=strip_tags(html_message),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )
    except Exception:
        logger.error("email.failed", recipient=recipient_email, subject=subject, exc_info=True)
        return False

    logger.info("email.sent", recipient=recipient_email, subject=subject)
    return True


def send_booking_confirmation_email(booking: "Booking") -> bool:
    """Booking confirmation sent to the lead passenger."""
    passenger = booking.lead_passenger
    if passenger is None:
        logger.warning("email.no_recipient", booking_id=str(booking.pk))
        return False

    flight = booking.flight
    subject = f"✈️ Booking confirmation - Flight {flight.flight_number}"
    departure = flight.departure_at
    arrival = flight.arrival_at
    confirmation_url = f"{settings.FRONTEND_URL.rstrip('/')}/bookings/{booking.pk}"

    html_message = f"""
    <html>
    <body>
        <h2>Hello, {passenger.first_name} {passenger.last_name}!</h2>
        <p>Your payment was received and your booking is confirmed.</p>

        <h3>Booking details:</h3>
        <ul>
            <li><strong>Booking:</strong> {booking.pk}</li>
            <li><strong>Flight:</strong> {flight.flight_number}</li>
            <li><strong>Route:</strong> {flight.origin} → {flight.destination}</li>
            <li><strong>Departure:</strong> {departure:%d/%m/%Y %H:%M}</li>
            <li><strong>Arrival:</strong> {arrival:%d/%m/%Y %H:%M}</li>
            <li><strong>Total:</strong> {booking.total_amount} {booking.currency}</li>
        </ul>

        <p><a href="{confirmation_url}">View your booking</a></p>

        <p>Have a great trip,<br>The AirDiscovery team</p>
    </body>
    </html>
    """

    return send_email_notification(
        recipient_email=passenger.email,
        subject=subject,
        html_message=html_message,
    )

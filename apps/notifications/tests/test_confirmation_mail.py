from __future__ import annotations

from unittest.mock import patch

import pytest
from django.core import mail

from apps.bookings.domain.events import BookingPaid
from apps.notifications.handlers import send_confirmation_on_payment
from apps.notifications.services import CeleryMailNotifier, send_booking_confirmation_email
from shared.application.message_bus import message_bus


@pytest.mark.django_db
def test_confirmation_goes_to_lead_passenger(make_booking, settings):
    settings.FRONTEND_URL = "https://airdiscovery.example/"
    booking = make_booking()

    assert send_booking_confirmation_email(booking) is True

    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert message.to == ["ana@example.com"]
    assert message.subject == "✈️ Booking confirmation - Flight AD1234"
    assert f"https://airdiscovery.example/bookings/{booking.pk}" in message.alternatives[0][0]
    assert "<html>" not in message.body


@pytest.mark.django_db
def test_handler_is_registered_for_paid_bookings():
    assert send_confirmation_on_payment in message_bus.handlers_for(BookingPaid)


@pytest.mark.django_db
def test_handler_sends_through_celery(make_booking):
    booking = make_booking()

    send_confirmation_on_payment(BookingPaid(booking_id=booking.pk, aggregate_id=booking.pk))

    assert len(mail.outbox) == 1


@pytest.mark.django_db
def test_broker_outage_is_logged_not_raised(make_booking):
    booking = make_booking()

    with patch("apps.notifications.tasks.send_booking_confirmation.delay", side_effect=ConnectionError("down")):
        CeleryMailNotifier().send_booking_confirmation(booking)

    assert mail.outbox == []

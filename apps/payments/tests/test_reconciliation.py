from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.bookings.domain.state_machine import BookingStatus
from apps.payments.models import Payment
from apps.payments.services import build_payment_coordinator
from apps.payments.tasks import reconcile_pending_payments


@pytest.fixture
def gateway(monkeypatch, fake_gateway):
    monkeypatch.setattr("apps.payments.webhooks.get_payment_gateway", lambda: fake_gateway)
    return fake_gateway


def _age(intent_id: str, minutes: int) -> None:
    Payment.objects.filter(intent_id=intent_id).update(created_at=timezone.now() - timedelta(minutes=minutes))


@pytest.mark.django_db
def test_settles_stale_succeeded_intent(gateway, make_booking, user, settings):
    settings.PAYMENTS_RECONCILE_AFTER_MINUTES = 30
    booking = make_booking()
    result = build_payment_coordinator(gateway=gateway).create_payment_intent(booking.id, user)
    gateway.set_status(result.intent_id, "succeeded")
    _age(result.intent_id, 45)

    summary = reconcile_pending_payments()

    assert summary == {"checked": 1, "applied": 1, "errors": 0}
    booking.refresh_from_db()
    assert booking.status == BookingStatus.PAID.value
    assert Payment.objects.get(intent_id=result.intent_id).status == Payment.Status.SUCCEEDED


@pytest.mark.django_db
def test_recent_and_open_intents_are_left_alone(gateway, make_booking, user):
    fresh = make_booking()
    open_ = make_booking()
    coordinator = build_payment_coordinator(gateway=gateway)
    fresh_intent = coordinator.create_payment_intent(fresh.id, user).intent_id
    open_intent = coordinator.create_payment_intent(open_.id, user).intent_id
    gateway.set_status(fresh_intent, "succeeded")
    _age(open_intent, 120)

    summary = reconcile_pending_payments()

    assert summary == {"checked": 1, "applied": 0, "errors": 0}
    assert Payment.objects.filter(status=Payment.Status.PENDING).count() == 2


@pytest.mark.django_db
def test_gateway_errors_are_counted(gateway, make_booking, user):
    booking = make_booking()
    intent_id = build_payment_coordinator(gateway=gateway).create_payment_intent(booking.id, user).intent_id
    _age(intent_id, 120)
    del gateway.intents[intent_id]

    summary = reconcile_pending_payments()

    assert summary == {"checked": 1, "applied": 0, "errors": 1}
    assert Payment.objects.get(intent_id=intent_id).status == Payment.Status.PENDING

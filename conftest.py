"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
import uuid
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.bookings.domain.passengers import PassengerData
from apps.flights.models import Flight
from apps.payments.gateway import GatewayIntent, StripeGateway
from shared.domain.errors import GatewayError

VALID_CPF = "123.456.789-09"
OTHER_VALID_CPF = "529.982.247-25"


def make_passenger(birth_date: date, *, document: str = VALID_CPF, first_name: str = "Ana") -> PassengerData:
    return PassengerData(
        first_name=first_name,
        last_name="Silva",
        email=f"{first_name.lower()}@example.com",
        phone="+5511999990000",
        document=document,
        birth_date=birth_date,
    )


def years_ago(years: int, today: date | None = None) -> date:
    today = today or timezone.localdate()
    # 1st of the current month keeps the birthday in the past for any day of the month
    return date(today.year - years, today.month, 1) - timedelta(days=1)


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="customer", email="customer@example.com", password="CustomerPass123"
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(
        username="stranger", email="stranger@example.com", password="StrangerPass123"
    )


@pytest.fixture
def flight(db):
    departure = timezone.now() + timedelta(days=30)
    return Flight.objects.create(
        flight_number="AD1234",
        airline_code="AD",
        origin="GRU",
        destination="GIG",
        departure_at=departure,
        arrival_at=departure + timedelta(hours=1),
        price=Decimal("1234.56"),
        currency="BRL",
    )


@pytest.fixture
def adult():
    return make_passenger(years_ago(30))


@pytest.fixture
def make_booking(user, flight):
    """Create a booking through the lifecycle manager (ends in AWAITING_PAYMENT)."""
    from apps.bookings.services import build_lifecycle_manager

    def _make(owner=None, amount=Decimal("1234.56"), passengers=None):
        return build_lifecycle_manager().create(
            passengers=passengers or [make_passenger(years_ago(30))],
            flight_id=flight.id,
            total_amount=amount,
            owner=owner or user,
        )

    return _make


# ============================================================================
# PAYMENT GATEWAY
# ============================================================================

class FakeGateway(StripeGateway):
    """In-memory PaymentIntents. Webhook signatures use the real Stripe scheme."""

    provider_name = "stripe"

    def __init__(self):
        super().__init__(api_key="sk_test_dummy", webhook_secret=settings.STRIPE_WEBHOOK_SECRET)
        self.intents: dict[str, GatewayIntent] = {}
        self.by_idempotency_key: dict[str, str] = {}
        self.create_calls: list[dict] = []
        self.fail_with: Exception | None = None
        # Intent is created at the gateway but the response is lost
        self.lose_next_response = False

    def create_intent(self, amount_minor, currency, metadata, idempotency_key):
        if self.fail_with is not None:
            raise self.fail_with
        self.create_calls.append(
            {
                "amount_minor": amount_minor,
                "currency": currency,
                "metadata": metadata,
                "idempotency_key": idempotency_key,
            }
        )
        if idempotency_key in self.by_idempotency_key:
            return self.intents[self.by_idempotency_key[idempotency_key]]
        intent_id = f"pi_{uuid.uuid4().hex[:24]}"
        intent = GatewayIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:8]}",
            status="requires_payment_method",
            amount=amount_minor,
            currency=currency.upper(),
            metadata={key: str(value) for key, value in metadata.items()},
        )
        self.intents[intent_id] = intent
        self.by_idempotency_key[idempotency_key] = intent_id
        if self.lose_next_response:
            self.lose_next_response = False
            raise GatewayError("Payment provider request failed")
        return intent

    def retrieve_intent(self, intent_id):
        if self.fail_with is not None:
            raise self.fail_with
        try:
            return self.intents[intent_id]
        except KeyError:
            raise GatewayError("Payment provider request failed") from None

    def set_status(self, intent_id: str, status: str) -> None:
        self.intents[intent_id] = replace(self.intents[intent_id], status=status)


def stripe_signature_header(payload: bytes, secret: str | None = None, timestamp: int | None = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    secret = secret or settings.STRIPE_WEBHOOK_SECRET
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def intent_event(event_type: str, intent_id: str, **intent_fields) -> bytes:
    event = {
        "id": f"evt_{uuid.uuid4().hex[:24]}",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": intent_id, "object": "payment_intent", **intent_fields}},
    }
    return json.dumps(event).encode("utf-8")


@pytest.fixture
def fake_gateway():
    return FakeGateway()

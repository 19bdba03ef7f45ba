from __future__ import annotations

import json
from unittest.mock import patch

import pytest
import stripe

from apps.payments.gateway import StripeGateway
from conftest import stripe_signature_header
from shared.domain.errors import GatewayError, SignatureError


@pytest.fixture
def gateway():
    return StripeGateway(api_key="sk_test_dummy", webhook_secret="whsec_test_secret", timeout=5)


def _stripe_intent(**overrides):
    intent = {
        "id": "pi_123",
        "object": "payment_intent",
        "client_secret": "pi_123_secret_abc",
        "status": "requires_payment_method",
        "amount": 123456,
        "currency": "brl",
        "metadata": {"bookingId": "b-1"},
    }
    intent.update(overrides)
    return intent


def test_create_intent_passes_idempotency_key(gateway):
    with patch("stripe.PaymentIntent.create", return_value=_stripe_intent()) as create:
        intent = gateway.create_intent(
            amount_minor=123456,
            currency="BRL",
            metadata={"bookingId": "b-1", "passengerCount": 2},
            idempotency_key="booking-b-1-attempt-0",
        )

    kwargs = create.call_args.kwargs
    assert kwargs["amount"] == 123456
    assert kwargs["currency"] == "brl"
    assert kwargs["metadata"] == {"bookingId": "b-1", "passengerCount": "2"}
    assert kwargs["idempotency_key"] == "booking-b-1-attempt-0"
    assert kwargs["api_key"] == "sk_test_dummy"
    assert intent.id == "pi_123"
    assert intent.client_secret == "pi_123_secret_abc"
    assert intent.currency == "BRL"
    assert intent.is_resumable


def test_create_intent_wraps_stripe_errors(gateway):
    error = stripe.APIConnectionError("connection reset")
    with patch("stripe.PaymentIntent.create", side_effect=error):
        with pytest.raises(GatewayError):
            gateway.create_intent(100, "BRL", {}, "key")


def test_retrieve_intent(gateway):
    with patch("stripe.PaymentIntent.retrieve", return_value=_stripe_intent(status="succeeded")) as retrieve:
        intent = gateway.retrieve_intent("pi_123")

    retrieve.assert_called_once_with("pi_123", api_key="sk_test_dummy")
    assert intent.is_succeeded
    assert not intent.is_resumable


def test_retrieve_intent_wraps_stripe_errors(gateway):
    with patch("stripe.PaymentIntent.retrieve", side_effect=stripe.InvalidRequestError("No such intent", "id")):
        with pytest.raises(GatewayError):
            gateway.retrieve_intent("pi_missing")


def test_verify_webhook_signature(gateway):
    body = json.dumps({"id": "evt_1", "type": "payment_intent.succeeded"}).encode()

    event = gateway.verify_webhook_signature(body, stripe_signature_header(body, secret="whsec_test_secret"))

    assert event["type"] == "payment_intent.succeeded"


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "garbage",
        "t=1,v1=deadbeef",
    ],
)
def test_verify_webhook_signature_rejects(gateway, header):
    body = json.dumps({"id": "evt_1"}).encode()

    with pytest.raises(SignatureError):
        gateway.verify_webhook_signature(body, header)


def test_verify_webhook_signature_rejects_old_timestamp(gateway):
    body = json.dumps({"id": "evt_1"}).encode()
    header = stripe_signature_header(body, secret="whsec_test_secret", timestamp=1)

    with pytest.raises(SignatureError):
        gateway.verify_webhook_signature(body, header)


def test_verify_webhook_signature_requires_secret():
    gateway = StripeGateway(api_key="sk_test_dummy", webhook_secret="")
    body = b"{}"

    with pytest.raises(SignatureError):
        gateway.verify_webhook_signature(body, stripe_signature_header(body, secret="whsec_x"))


def test_http_client_is_shared_between_gateways(gateway):
    client = stripe.default_http_client

    StripeGateway(api_key="sk_test_other", webhook_secret="whsec_other", timeout=5)

    assert client is not None
    assert stripe.default_http_client is client
    assert stripe.max_network_retries == 0


def test_http_client_is_rebuilt_for_a_new_timeout(gateway):
    client = stripe.default_http_client

    StripeGateway(api_key="sk_test_dummy", webhook_secret="whsec_test_secret", timeout=7)

    assert stripe.default_http_client is not client

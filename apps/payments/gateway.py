"""
Payment gateway client

``PaymentGatewayClient`` is the seam the coordinator and the webhook
processor depend on. ``StripeGateway`` implements it over the stripe SDK;
tests inject an in-memory fake.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import stripe
import structlog
from django.conf import settings  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

from shared.domain.errors import GatewayError, SignatureError

logger = structlog.get_logger(__name__)

# Intent states from which the customer can still complete the payment
RESUMABLE_STATUSES = frozenset(
    {
        "requires_payment_method",
        "requires_confirmation",
        "requires_action",
        "processing",
    }
)


_http_client_timeout: Optional[int] = None


def configure_http_client(timeout: int) -> None:
    """Install the SDK's process-wide HTTP client once per timeout value."""
    global _http_client_timeout
    if _http_client_timeout == timeout and stripe.default_http_client is not None:
        return
    stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
    stripe.max_network_retries = 0
    _http_client_timeout = timeout


@dataclass(frozen=True)
class GatewayIntent:
    id: str
    client_secret: str
    status: str
    amount: int
    currency: str
    metadata: Optional[dict] = None

    @property
    def is_resumable(self) -> bool:
        return self.status in RESUMABLE_STATUSES

    @property
    def is_succeeded(self) -> bool:
        return self.status == "succeeded"


class PaymentGatewayClient(ABC):
    provider_name = "gateway"

    @abstractmethod
    def create_intent(self, amount_minor: int, currency: str, metadata: dict, idempotency_key: str) -> GatewayIntent:
        raise NotImplementedError

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> GatewayIntent:
        raise NotImplementedError

    @abstractmethod
    def verify_webhook_signature(self, raw_body: bytes, signature_header: Optional[str]) -> dict:
        """Return the decoded event or raise SignatureError."""
        raise NotImplementedError


class StripeGateway(PaymentGatewayClient):
    """Stripe PaymentIntents over the official SDK.

    The SDK's requests-based HTTP client is configured with a bounded
    timeout; any SDK failure (network, timeout, 5xx, API error) surfaces as
    ``GatewayError`` so callers never see stripe exception types.
    """

    provider_name = "stripe"

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        self.timeout = timeout or settings.STRIPE_TIMEOUT_SECONDS
        configure_http_client(self.timeout)

    def create_intent(self, amount_minor: int, currency: str, metadata: dict, idempotency_key: str) -> GatewayIntent:
        log = logger.bind(amount_minor=amount_minor, currency=currency, idempotency_key=idempotency_key)
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_minor,
                currency=currency.lower(),
                metadata={key: str(value) for key, value in metadata.items()},
                automatic_payment_methods={"enabled": True},
                api_key=self.api_key,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            log.error("stripe.create_intent_failed", error=str(exc), http_status=getattr(exc, "http_status", None))
            raise GatewayError("Payment provider request failed") from exc
        log.info("stripe.intent_created", intent_id=intent["id"], status=intent["status"])
        return self._to_intent(intent)

    def retrieve_intent(self, intent_id: str) -> GatewayIntent:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            logger.error("stripe.retrieve_intent_failed", intent_id=intent_id, error=str(exc))
            raise GatewayError("Payment provider request failed") from exc
        return self._to_intent(intent)

    def verify_webhook_signature(self, raw_body: bytes, signature_header: Optional[str]) -> dict:
        if not signature_header or not self.webhook_secret:
            raise SignatureError()
        payload = raw_body.decode("utf-8") if isinstance(raw_body, (bytes, bytearray)) else raw_body
        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature_header,
                self.webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
            event = json.loads(payload)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            logger.warning("stripe.webhook_signature_invalid", error=type(exc).__name__)
            raise SignatureError() from exc
        if not isinstance(event, dict):
            raise SignatureError()
        return event

    @staticmethod
    def _to_intent(intent) -> GatewayIntent:
        metadata = _field(intent, "metadata") or {}
        return GatewayIntent(
            id=intent["id"],
            client_secret=_field(intent, "client_secret") or "",
            status=intent["status"],
            amount=int(intent["amount"]),
            currency=str(intent["currency"]).upper(),
            metadata=dict(metadata),
        )


def _field(obj, key, default=None):
    try:
        return obj[key]
    except (KeyError, TypeError):
        return default


def get_payment_gateway() -> PaymentGatewayClient:
    gateway_class = import_string(settings.PAYMENTS_GATEWAY_CLASS)
    return gateway_class()

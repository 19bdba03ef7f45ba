"""
Payment webhook reconciliation

Gateway callbacks are applied to the payment row identified by the intent
id. Redelivered events find the row already in the target state and do
nothing, so booking transitions and confirmation mails happen once.
"""

from __future__ import annotations

from typing import Dict, Optional

import structlog
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.services import BookingLifecycleManager, build_lifecycle_manager
from shared.domain.errors import InvalidState, NotFound

from .gateway import PaymentGatewayClient, get_payment_gateway
from .models import Payment
from .repositories import DjangoPaymentStore

logger = structlog.get_logger(__name__)

EVENT_OUTCOMES: Dict[str, str] = {
    "payment_intent.succeeded": Payment.Status.SUCCEEDED,
    "payment_intent.payment_failed": Payment.Status.FAILED,
    "payment_intent.canceled": Payment.Status.CANCELED,
}

# Gateway intent states that settle a payment during reconciliation
GATEWAY_OUTCOMES: Dict[str, str] = {
    "succeeded": Payment.Status.SUCCEEDED,
    "canceled": Payment.Status.CANCELED,
}

PAYMENT_TRANSITIONS = {
    Payment.Status.PENDING: {Payment.Status.SUCCEEDED, Payment.Status.FAILED, Payment.Status.CANCELED},
    Payment.Status.FAILED: {Payment.Status.SUCCEEDED, Payment.Status.CANCELED},
    Payment.Status.SUCCEEDED: set(),
    Payment.Status.CANCELED: set(),
}


class PaymentWebhookProcessor:

    def __init__(
        self,
        gateway: PaymentGatewayClient,
        lifecycle: BookingLifecycleManager,
        payments: Optional[DjangoPaymentStore] = None,
    ):
        self.gateway = gateway
        self.lifecycle = lifecycle
        self.payments = payments or DjangoPaymentStore()

    def handle(self, raw_body: bytes, signature_header: Optional[str]) -> dict:
        """Verify, decode and apply one gateway event.

        Raises SignatureError for unauthenticated payloads. Event types that
        are not handled are acknowledged so the gateway stops retrying them.
        """

        event = self.gateway.verify_webhook_signature(raw_body, signature_header)
        event_type = event.get("type", "")
        log = logger.bind(event_type=event_type, event_id=event.get("id"))

        outcome = EVENT_OUTCOMES.get(event_type)
        if outcome is None:
            log.info("webhook.event_ignored")
            return {"received": True, "event": event_type, "applied": False}

        intent = (event.get("data") or {}).get("object") or {}
        intent_id = intent.get("id")
        if not intent_id:
            log.warning("webhook.missing_intent_id")
            return {"received": True, "event": event_type, "applied": False}

        failure_reason = None
        if outcome == Payment.Status.FAILED:
            error = intent.get("last_payment_error") or {}
            failure_reason = error.get("message") or error.get("code")

        applied = self.apply_outcome(
            intent_id,
            outcome,
            failure_reason=failure_reason,
            metadata=intent.get("metadata") or {},
        )
        return {"received": True, "event": event_type, "applied": applied}

    def apply_outcome(
        self,
        intent_id: str,
        outcome: str,
        *,
        failure_reason: Optional[str] = None,
        metadata: Optional[dict] = None,
        source: str = "webhook",
    ) -> bool:
        """Move the payment for ``intent_id`` to ``outcome``.

        Returns False when nothing was written: unknown intent, row already
        in ``outcome``, or an outcome the row can no longer take.
        """

        log = logger.bind(intent_id=intent_id, outcome=str(outcome), source=source)

        with transaction.atomic():
            payment = self.payments.find_by_intent(intent_id)
            if payment is None:
                log.warning("payment.orphan_event", booking_id=(metadata or {}).get("bookingId"))
                return False
            # Booking row first, then payment row: same order as the intent coordinator
            self.lifecycle.store.get(payment.booking_id, lock=True)
            payment = self.payments.find_by_intent(intent_id, lock=True)

            log = log.bind(payment_id=payment.pk, booking_id=str(payment.booking_id))
            if payment.status == outcome:
                log.info("payment.outcome_already_applied")
                return False
            if outcome not in PAYMENT_TRANSITIONS[payment.status]:
                log.warning("payment.outcome_rejected", current=payment.status)
                return False

            old_status = payment.status
            payment.status = outcome
            fields = ["status"]
            if outcome == Payment.Status.SUCCEEDED:
                payment.paid_at = timezone.now()
                fields.append("paid_at")
            if failure_reason:
                payment.metadata = {**payment.metadata, "failure_reason": failure_reason}
                fields.append("metadata")
            self.payments.save(payment, fields)
            log.info("payment.status_changed", old_status=old_status, new_status=str(outcome))

            if outcome == Payment.Status.SUCCEEDED:
                self._confirm_booking(payment, log)
            elif outcome == Payment.Status.CANCELED:
                self._cancel_booking(payment, log)
            # A failed payment leaves the booking awaiting payment for a retry

        return True

    def _confirm_booking(self, payment: Payment, log) -> None:
        try:
            self.lifecycle.confirm_payment(payment.booking_id, payment.intent_id)
        except (InvalidState, NotFound) as exc:
            log.warning("payment.booking_not_confirmed", reason=str(exc))

    def _cancel_booking(self, payment: Payment, log) -> None:
        if self.payments.has_other_open_payment(payment):
            log.info("payment.cancel_superseded")
            return
        try:
            self.lifecycle.cancel_unpaid(payment.booking_id, reason="payment canceled by provider")
        except (InvalidState, NotFound) as exc:
            log.warning("payment.booking_not_cancelled", reason=str(exc))


def build_webhook_processor(gateway: Optional[PaymentGatewayClient] = None) -> PaymentWebhookProcessor:
    return PaymentWebhookProcessor(
        gateway=gateway or get_payment_gateway(),
        lifecycle=build_lifecycle_manager(),
        payments=DjangoPaymentStore(),
    )

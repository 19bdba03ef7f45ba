"""Payment intent coordination."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import structlog
from django.db import IntegrityError, transaction  # type: ignore

from apps.bookings.domain.state_machine import PAYABLE, coerce_status
from apps.bookings.repositories import AbstractBookingStore, DjangoBookingStore
from apps.bookings.services import BookingLifecycleManager, build_lifecycle_manager
from shared.domain.errors import Conflict, InvalidAmount, InvalidState, NoPassengers, NotFound
from shared.domain.value_objects import to_minor_units

from .gateway import GatewayIntent, PaymentGatewayClient, get_payment_gateway
from .models import Payment
from .repositories import DjangoPaymentStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IntentResult:
    client_secret: str
    amount: Decimal
    currency: str
    payment_id: int
    intent_id: str
    reused: bool = False

    def as_response(self) -> dict:
        return {
            "clientSecret": self.client_secret,
            "amount": self.amount,
            "currency": self.currency,
            "paymentId": self.payment_id,
            "intentId": self.intent_id,
            "reused": self.reused,
        }


@dataclass(frozen=True)
class IntentStatus:
    intent_id: str
    status: str
    amount: Decimal
    currency: str
    booking_id: str

    def as_response(self) -> dict:
        return {
            "id": self.intent_id,
            "status": self.status,
            "amount": self.amount,
            "currency": self.currency,
            "bookingId": self.booking_id,
        }


def idempotency_key_for(booking, attempt: int) -> str:
    return f"booking-{booking.pk}-attempt-{attempt}"


class PaymentIntentCoordinator:
    """
    Idempotent payment-intent creation for a booking

    The whole decision sequence runs in one transaction with the booking row
    locked, so two concurrent requests for the same booking are serialized:
    the second one sees the first one's pending payment and reuses it. The
    partial unique constraint on pending payments backs this up on backends
    without row locks.

    No row is written and no booking status changes before the amount and
    passenger checks pass; a gateway failure rolls everything back.
    """

    def __init__(
        self,
        gateway: PaymentGatewayClient,
        lifecycle: BookingLifecycleManager,
        bookings: Optional[AbstractBookingStore] = None,
        payments: Optional[DjangoPaymentStore] = None,
    ):
        self.gateway = gateway
        self.lifecycle = lifecycle
        self.bookings = bookings or lifecycle.store
        self.payments = payments or DjangoPaymentStore()

    def create_payment_intent(self, booking_id, requester) -> IntentResult:
        log = logger.bind(booking_id=str(booking_id), requester_id=getattr(requester, "pk", None))

        with transaction.atomic():
            # 1. owner-scoped lookup; foreign bookings look missing
            booking = self.bookings.get_for_owner(booking_id, requester, lock=True)

            # 2. status gate
            status = coerce_status(booking.status)
            if status not in PAYABLE:
                raise InvalidState(
                    f"Cannot create a payment for a booking in {status.value.upper()} status"
                )

            # 3. a completed payment is final
            if self.payments.find_by_status(booking, Payment.Status.SUCCEEDED) is not None:
                raise Conflict("Payment already completed for this booking")

            # 4. reuse a resumable pending intent
            stale = None
            pending = self.payments.find_by_status(booking, Payment.Status.PENDING, lock=True)
            if pending is not None:
                if pending.intent_id:
                    intent = self.gateway.retrieve_intent(pending.intent_id)
                    if intent.is_resumable:
                        log.info("payment.intent_reused", payment_id=pending.pk, intent_id=intent.id)
                        return self._result(pending, intent, reused=True)
                    if intent.is_succeeded:
                        # The success webhook has not been processed yet
                        raise Conflict("Payment already completed for this booking")
                    log.info("payment.intent_not_resumable", payment_id=pending.pk, gateway_status=intent.status)
                stale = pending

            # 5. never trust invariants enforced elsewhere
            amount = booking.total_amount
            if amount is None or amount <= 0:
                raise InvalidAmount()
            passenger_count = self.bookings.passenger_count(booking)
            if passenger_count == 0:
                raise NoPassengers()

            # 6.
            amount_minor = to_minor_units(amount)

            # 7.
            attempt = self.payments.count_for_booking(booking)
            intent = self.gateway.create_intent(
                amount_minor=amount_minor,
                currency=booking.currency,
                metadata={
                    "bookingId": str(booking.pk),
                    "requesterId": str(requester.pk),
                    "flightId": str(booking.flight_id),
                    "passengerCount": passenger_count,
                },
                idempotency_key=idempotency_key_for(booking, attempt),
            )
            log.info("payment.intent_created", intent_id=intent.id, amount_minor=amount_minor, attempt=attempt)

            # 8.
            if stale is not None:
                stale.status = Payment.Status.CANCELED
                stale.metadata = {**stale.metadata, "superseded_by": intent.id}
                self.payments.save(stale, ["status", "metadata"])
            payment = Payment(
                booking=booking,
                intent_id=intent.id,
                amount=amount,
                currency=booking.currency,
                status=Payment.Status.PENDING,
                provider=self.gateway.provider_name,
                metadata={"attempt": attempt, "amount_minor": amount_minor},
            )
            try:
                with transaction.atomic():
                    self.payments.add(payment)
            except IntegrityError:
                existing = self.payments.find_by_status(booking, Payment.Status.PENDING)
                if existing is None or not existing.intent_id:
                    raise
                log.warning("payment.concurrent_intent", payment_id=existing.pk, intent_id=existing.intent_id)
                return self._result(existing, self.gateway.retrieve_intent(existing.intent_id), reused=True)

            # 9.
            self.lifecycle.mark_awaiting_payment(booking)

        return self._result(payment, intent, reused=False)

    def get_intent_status(self, intent_id: str, requester) -> IntentStatus:
        """Current gateway status of an intent that belongs to the requester.

        Intents of other users' bookings look missing. Amount and currency
        come from the stored payment snapshot.
        """
        payment = self.payments.find_for_owner(intent_id, requester)
        if payment is None:
            raise NotFound(f"Payment intent {intent_id} not found")
        intent = self.gateway.retrieve_intent(payment.intent_id)
        return IntentStatus(
            intent_id=payment.intent_id,
            status=intent.status,
            amount=payment.amount,
            currency=payment.currency,
            booking_id=str(payment.booking_id),
        )

    @staticmethod
    def _result(payment: Payment, intent: GatewayIntent, *, reused: bool) -> IntentResult:
        return IntentResult(
            client_secret=intent.client_secret,
            amount=payment.amount,
            currency=payment.currency,
            payment_id=payment.pk,
            intent_id=payment.intent_id,
            reused=reused,
        )


def build_payment_coordinator(gateway: Optional[PaymentGatewayClient] = None) -> PaymentIntentCoordinator:
    lifecycle = build_lifecycle_manager()
    return PaymentIntentCoordinator(
        gateway=gateway or get_payment_gateway(),
        lifecycle=lifecycle,
        bookings=DjangoBookingStore(),
        payments=DjangoPaymentStore(),
    )

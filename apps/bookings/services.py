"""Booking lifecycle: creation, owner-scoped reads and status transitions."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional

import structlog
from django.conf import settings  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.errors import (
    InvalidAmount,
    InvalidTransition,
    NoPassengers,
    ValidationFailed,
)
from shared.domain.value_objects import Money

from .domain.events import BookingCancelled, BookingCreated, BookingPaid, BookingStatusChanged
from .domain.passengers import CompositionRules, PassengerData, ensure_valid_passengers
from .domain.state_machine import (
    BookingStatus,
    coerce_status,
    ensure_not_final,
    ensure_transition,
)
from .models import Booking
from .repositories import AbstractBookingStore, BookingPage, DjangoBookingStore

logger = structlog.get_logger(__name__)

PATCHABLE_FIELDS = frozenset({"status", "notes", "payment_reference"})
MAX_PAGE_SIZE = 100


class BookingLifecycleManager:
    """
    Owns the booking state machine

    Every status write goes through ``_apply_transition`` which checks the
    transition table, persists the new status and records the domain events
    that are published once the surrounding transaction commits.

    Operations taking an ``owner`` look bookings up by (id, owner); a booking
    that belongs to someone else is reported exactly like a missing one.
    """

    def __init__(
        self,
        store: AbstractBookingStore,
        flight_lookup: Callable,
        rules: Optional[CompositionRules] = None,
        void_pending_payments: Optional[Callable] = None,
    ):
        self.store = store
        self.flight_lookup = flight_lookup
        self.rules = rules or CompositionRules.from_settings()
        # Called with the booking inside the cancelling transaction
        self.void_pending_payments = void_pending_payments

    # ===== Commands =====

    def create(
        self,
        passengers: Iterable[PassengerData],
        flight_id,
        total_amount,
        owner,
        currency: Optional[str] = None,
        notes: str = "",
    ) -> Booking:
        """
        Create a booking (-> PENDING -> AWAITING_PAYMENT)

        Passengers are validated before anything else. The booking is
        written in PENDING and moved to AWAITING_PAYMENT in the same
        transaction; both writes are durable.
        """
        passengers = list(passengers)
        if not passengers:
            raise NoPassengers()
        ensure_valid_passengers(passengers, rules=self.rules)

        money = self._money(total_amount, currency)
        flight = self.flight_lookup(flight_id)

        with DjangoUnitOfWork() as uow:
            booking = Booking(
                owner=owner,
                flight=flight,
                total_amount=money.amount,
                currency=money.currency,
                status=BookingStatus.PENDING.value,
                notes=notes or "",
            )
            self.store.add(booking, passengers)
            logger.info(
                "booking.created",
                booking_id=str(booking.id),
                owner_id=owner.pk,
                flight_id=str(flight.pk),
                passengers=len(passengers),
                amount=str(money.amount),
                currency=money.currency,
            )
            uow.add_event(
                BookingCreated(
                    aggregate_id=booking.id,
                    booking_id=booking.id,
                    owner_id=owner.pk,
                    flight_id=flight.pk,
                    passenger_count=len(passengers),
                )
            )
            self._apply_transition(booking, BookingStatus.AWAITING_PAYMENT, uow)
        return booking

    def update(self, booking_id, patch: Mapping, owner) -> Booking:
        """
        Patch status, notes or payment_reference

        A status in the patch is checked against the transition table before
        any other field is applied; requesting the current status is an
        illegal transition on this path.
        """
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationFailed(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        with DjangoUnitOfWork() as uow:
            booking = self.store.get_for_owner(booking_id, owner, lock=True)
            if patch.get("status") is not None:
                target = coerce_status(patch["status"])
                old_status = booking.status
                self._apply_transition(booking, target, uow)
                if target is BookingStatus.CANCELLED:
                    uow.add_event(
                        BookingCancelled(
                            aggregate_id=booking.id,
                            booking_id=booking.id,
                            reason="",
                            old_status=old_status,
                        )
                    )

            fields = [name for name in ("notes", "payment_reference") if name in patch]
            for name in fields:
                setattr(booking, name, patch[name] or "")
            if fields:
                self.store.save(booking, fields)
                logger.info("booking.updated", booking_id=str(booking.id), owner_id=owner.pk, fields=fields)
        return booking

    def cancel(self, booking_id, owner, reason: Optional[str] = None) -> Booking:
        """Cancel an owner's booking. PAID or CANCELLED bookings raise AlreadyFinal."""
        with DjangoUnitOfWork() as uow:
            booking = self.store.get_for_owner(booking_id, owner, lock=True)
            self._cancel(booking, reason, uow)
        return booking

    def cancel_unpaid(self, booking_id, reason: Optional[str] = None) -> bool:
        """
        System cancellation used by payment reconciliation

        Returns False without writing when the booking is already cancelled.
        """
        with DjangoUnitOfWork() as uow:
            booking = self.store.get(booking_id, lock=True)
            if booking.status == BookingStatus.CANCELLED.value:
                return False
            self._cancel(booking, reason, uow)
        return True

    def confirm_payment(self, booking_id, gateway_payment_ref: Optional[str] = None) -> Booking:
        """
        Confirm payment (AWAITING_PAYMENT -> PAID)

        System operation, not owner-scoped. Any other current status raises
        InvalidTransition.
        """
        with DjangoUnitOfWork() as uow:
            booking = self.store.get(booking_id, lock=True)
            if booking.status != BookingStatus.AWAITING_PAYMENT.value:
                raise InvalidTransition(booking.status, BookingStatus.PAID)
            if gateway_payment_ref:
                booking.payment_reference = gateway_payment_ref
                self.store.save(booking, ["payment_reference"])
            self._apply_transition(booking, BookingStatus.PAID, uow)
            uow.add_event(
                BookingPaid(
                    aggregate_id=booking.id,
                    booking_id=booking.id,
                    payment_reference=gateway_payment_ref,
                )
            )
        return booking

    def mark_awaiting_payment(self, booking: Booking) -> bool:
        """Move a PENDING booking to AWAITING_PAYMENT; no-op otherwise."""
        return self.ensure_status(booking, BookingStatus.AWAITING_PAYMENT)

    def transition(self, booking: Booking, target) -> Booking:
        with DjangoUnitOfWork() as uow:
            self._apply_transition(booking, coerce_status(target), uow)
        return booking

    def ensure_status(self, booking: Booking, target) -> bool:
        """
        Idempotent transition for system callers

        Returns False when the booking is already in ``target``; otherwise
        applies the transition (which may still raise InvalidTransition).
        """
        target = coerce_status(target)
        if booking.status == target.value:
            return False
        self.transition(booking, target)
        return True

    # ===== Queries =====

    def get(self, booking_id, owner) -> Booking:
        return self.store.get_for_owner(booking_id, owner)

    def list_bookings(
        self,
        owner,
        status=None,
        flight_id=None,
        page: int = 1,
        limit: int = 10,
    ) -> BookingPage:
        if page < 1:
            raise ValidationFailed("page must be 1 or greater")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationFailed(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if status is not None:
            status = coerce_status(status)
        return self.store.list_for_owner(owner, status=status, flight_id=flight_id, page=page, limit=limit)

    # ===== Internals =====

    def _cancel(self, booking: Booking, reason: Optional[str], uow: DjangoUnitOfWork) -> None:
        old_status = ensure_not_final(booking.status)
        if reason:
            line = f"Cancellation: {reason}"
            booking.notes = f"{booking.notes}\n{line}" if booking.notes else line
            self.store.save(booking, ["notes"])
        self._apply_transition(booking, BookingStatus.CANCELLED, uow)
        uow.add_event(
            BookingCancelled(
                aggregate_id=booking.id,
                booking_id=booking.id,
                reason=reason or "",
                old_status=old_status.value,
            )
        )

    def _apply_transition(self, booking: Booking, target: BookingStatus, uow: DjangoUnitOfWork) -> None:
        old_status = booking.status
        ensure_transition(old_status, target)
        booking.status = target.value
        self.store.save(booking, ["status"])
        if target is BookingStatus.CANCELLED and self.void_pending_payments is not None:
            self.void_pending_payments(booking)
        logger.info(
            "booking.status_changed",
            booking_id=str(booking.id),
            owner_id=booking.owner_id,
            old_status=old_status,
            new_status=target.value,
        )
        uow.add_event(
            BookingStatusChanged(
                aggregate_id=booking.id,
                booking_id=booking.id,
                old_status=old_status,
                new_status=target.value,
            )
        )

    def _money(self, total_amount, currency: Optional[str]) -> Money:
        currency = currency or getattr(settings, "BOOKINGS_DEFAULT_CURRENCY", "BRL")
        try:
            money = Money(total_amount, currency)
        except (TypeError, ArithmeticError):
            raise InvalidAmount("Total amount must be a number") from None
        except ValueError as exc:
            if "negative" in str(exc):
                raise InvalidAmount() from None
            raise ValidationFailed(str(exc)) from None
        if not money.amount.is_finite() or not money.is_positive:
            raise InvalidAmount()
        if money.amount != money.amount.quantize(Decimal("0.01")):
            raise InvalidAmount("Total amount supports at most two decimal places")
        if money.amount > settings.BOOKINGS_MAX_TOTAL_AMOUNT:
            raise InvalidAmount("Total amount exceeds the allowed maximum")
        return money


def build_lifecycle_manager() -> BookingLifecycleManager:
    from apps.flights.lookup import get_flight
    from apps.payments.repositories import DjangoPaymentStore

    return BookingLifecycleManager(
        store=DjangoBookingStore(),
        flight_lookup=get_flight,
        void_pending_payments=DjangoPaymentStore().void_pending,
    )

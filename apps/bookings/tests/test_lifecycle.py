"""Tests for BookingLifecycleManager against the database."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from apps.bookings.domain.events import BookingCreated, BookingPaid
from apps.bookings.domain.state_machine import BookingStatus
from apps.bookings.models import Booking, Passenger
from apps.bookings.services import build_lifecycle_manager
from conftest import make_passenger, years_ago
from shared.application.message_bus import message_bus
from shared.domain.errors import (
    AlreadyFinal,
    InvalidAmount,
    InvalidTransition,
    NoPassengers,
    NotFound,
    PassengerValidationError,
    ValidationFailed,
)


@pytest.fixture
def manager():
    return build_lifecycle_manager()


@pytest.fixture
def pending_booking(user, flight):
    booking = Booking.objects.create(
        owner=user,
        flight=flight,
        total_amount=Decimal("500.00"),
        currency="BRL",
        status=Booking.Status.PENDING,
    )
    Passenger.objects.create(
        booking=booking,
        first_name="Ana",
        last_name="Silva",
        email="ana@example.com",
        phone="+5511999990000",
        document="123.456.789-09",
        birth_date=years_ago(30),
    )
    return booking


@pytest.fixture
def recorded_events():
    events = []

    def record(event):
        events.append(event)

    message_bus.register_event_handler(BookingCreated, record)
    message_bus.register_event_handler(BookingPaid, record)
    yield events
    message_bus.unregister_event_handler(BookingCreated, record)
    message_bus.unregister_event_handler(BookingPaid, record)


@pytest.mark.django_db
class TestCreate:
    def test_create_persists_and_moves_to_awaiting_payment(self, manager, user, flight):
        passengers = [make_passenger(years_ago(30)), make_passenger(years_ago(1), first_name="Bia")]

        booking = manager.create(passengers, flight.id, Decimal("1234.56"), user)

        booking.refresh_from_db()
        assert booking.status == BookingStatus.AWAITING_PAYMENT.value
        assert booking.owner == user
        assert booking.total_amount == Decimal("1234.56")
        assert booking.currency == "BRL"
        assert [p.first_name for p in booking.passengers.all()] == ["Ana", "Bia"]

    def test_float_amount_is_stored_exactly(self, manager, user, flight, adult):
        booking = manager.create([adult], flight.id, 1234.56, user)

        booking.refresh_from_db()
        assert booking.total_amount == Decimal("1234.56")

    def test_booking_ids_are_uuid4(self, manager, user, flight, adult):
        booking = manager.create([adult], flight.id, Decimal("10.00"), user)

        assert isinstance(booking.id, uuid.UUID)
        assert booking.id.version == 4

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1.00"), "abc", Decimal("1.234")])
    def test_invalid_amount_rejected(self, manager, user, flight, adult, amount):
        with pytest.raises(InvalidAmount):
            manager.create([adult], flight.id, amount, user)

        assert Booking.objects.count() == 0

    def test_unsupported_currency_rejected(self, manager, user, flight, adult):
        with pytest.raises(ValidationFailed):
            manager.create([adult], flight.id, Decimal("10.00"), user, currency="JPY")

    def test_passengers_validated_before_anything_else(self, manager, user, adult):
        infant = make_passenger(years_ago(0))

        with pytest.raises(PassengerValidationError) as excinfo:
            manager.create([infant], uuid.uuid4(), Decimal("0"), user)

        assert "At least one adult required" in excinfo.value.errors
        assert Booking.objects.count() == 0

    def test_no_passengers(self, manager, user, flight):
        with pytest.raises(NoPassengers):
            manager.create([], flight.id, Decimal("10.00"), user)

    def test_unknown_flight(self, manager, user, adult):
        with pytest.raises(NotFound):
            manager.create([adult], uuid.uuid4(), Decimal("10.00"), user)

        assert Booking.objects.count() == 0

    def test_created_event_published_after_commit(
        self, manager, user, flight, adult, recorded_events, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            booking = manager.create([adult], flight.id, Decimal("10.00"), user)

        created = [event for event in recorded_events if isinstance(event, BookingCreated)]
        assert len(created) == 1
        assert created[0].booking_id == booking.id
        assert created[0].passenger_count == 1


@pytest.mark.django_db
class TestOwnerScoping:
    def test_foreign_booking_looks_missing(self, manager, make_booking, other_user):
        booking = make_booking()

        with pytest.raises(NotFound) as foreign:
            manager.get(booking.id, other_user)
        missing_id = uuid.uuid4()
        with pytest.raises(NotFound) as missing:
            manager.get(missing_id, other_user)

        assert str(foreign.value) == f"Booking {booking.id} not found"
        assert str(missing.value) == f"Booking {missing_id} not found"

    def test_malformed_id_is_not_found(self, manager, user):
        with pytest.raises(NotFound):
            manager.get("not-a-uuid", user)

    def test_foreign_booking_cannot_be_cancelled(self, manager, make_booking, other_user):
        booking = make_booking()

        with pytest.raises(NotFound):
            manager.cancel(booking.id, other_user)

        booking.refresh_from_db()
        assert booking.status == BookingStatus.AWAITING_PAYMENT.value


@pytest.mark.django_db
class TestUpdate:
    def test_illegal_transition_leaves_status_unchanged(self, manager, pending_booking, user):
        with pytest.raises(InvalidTransition) as excinfo:
            manager.update(pending_booking.id, {"status": "paid", "notes": "x"}, user)

        assert "PENDING" in str(excinfo.value)
        assert "PAID" in str(excinfo.value)
        pending_booking.refresh_from_db()
        assert pending_booking.status == BookingStatus.PENDING.value
        assert pending_booking.notes == ""

    def test_same_status_is_not_a_client_transition(self, manager, make_booking, user):
        booking = make_booking()

        with pytest.raises(InvalidTransition):
            manager.update(booking.id, {"status": "awaiting_payment"}, user)

    def test_legal_transition_then_fields(self, manager, pending_booking, user):
        booking = manager.update(
            pending_booking.id,
            {"status": "awaiting_payment", "notes": "window seat", "payment_reference": "pref_1"},
            user,
        )

        booking.refresh_from_db()
        assert booking.status == BookingStatus.AWAITING_PAYMENT.value
        assert booking.notes == "window seat"
        assert booking.payment_reference == "pref_1"

    def test_unknown_fields_rejected(self, manager, make_booking, user):
        booking = make_booking()

        with pytest.raises(ValidationFailed):
            manager.update(booking.id, {"total_amount": "1.00"}, user)


@pytest.mark.django_db
class TestCancel:
    def test_cancel_appends_reason(self, manager, make_booking, user):
        booking = make_booking()
        manager.update(booking.id, {"notes": "aisle seat"}, user)

        manager.cancel(booking.id, user, reason="change of plans")

        booking.refresh_from_db()
        assert booking.status == BookingStatus.CANCELLED.value
        assert booking.notes == "aisle seat\nCancellation: change of plans"

    def test_cancel_pending(self, manager, pending_booking, user):
        manager.cancel(pending_booking.id, user)

        pending_booking.refresh_from_db()
        assert pending_booking.status == BookingStatus.CANCELLED.value

    def test_cancel_twice(self, manager, make_booking, user):
        booking = make_booking()
        manager.cancel(booking.id, user)

        with pytest.raises(AlreadyFinal):
            manager.cancel(booking.id, user)

    def test_cancel_paid(self, manager, make_booking, user):
        booking = make_booking()
        manager.confirm_payment(booking.id, "pi_1")

        with pytest.raises(AlreadyFinal):
            manager.cancel(booking.id, user, reason="too late")

        booking.refresh_from_db()
        assert booking.status == BookingStatus.PAID.value
        assert "too late" not in booking.notes

    def test_system_cancel_is_idempotent(self, manager, make_booking):
        booking = make_booking()

        assert manager.cancel_unpaid(booking.id, reason="expired") is True
        assert manager.cancel_unpaid(booking.id, reason="expired") is False

        booking.refresh_from_db()
        assert booking.notes == "Cancellation: expired"


@pytest.mark.django_db
class TestConfirmPayment:
    def test_confirm_sets_paid_and_reference(
        self, manager, make_booking, recorded_events, django_capture_on_commit_callbacks
    ):
        booking = make_booking()

        with django_capture_on_commit_callbacks(execute=True):
            manager.confirm_payment(booking.id, "pi_123")

        booking.refresh_from_db()
        assert booking.status == BookingStatus.PAID.value
        assert booking.payment_reference == "pi_123"
        assert [e.booking_id for e in recorded_events if isinstance(e, BookingPaid)] == [booking.id]

    def test_confirm_requires_awaiting_payment(self, manager, pending_booking):
        with pytest.raises(InvalidTransition):
            manager.confirm_payment(pending_booking.id, "pi_123")

        pending_booking.refresh_from_db()
        assert pending_booking.status == BookingStatus.PENDING.value

    def test_confirm_twice_rejected(self, manager, make_booking):
        booking = make_booking()
        manager.confirm_payment(booking.id, "pi_123")

        with pytest.raises(InvalidTransition):
            manager.confirm_payment(booking.id, "pi_123")

    def test_ensure_status_is_noop_when_already_there(self, manager, make_booking):
        booking = make_booking()

        assert manager.ensure_status(booking, BookingStatus.AWAITING_PAYMENT) is False
        assert manager.ensure_status(booking, BookingStatus.PAID) is True


@pytest.mark.django_db
class TestList:
    def test_pagination_and_owner_scope(self, manager, make_booking, user, other_user):
        for _ in range(3):
            make_booking()
        make_booking(owner=other_user)

        page = manager.list_bookings(user, page=2, limit=2)

        assert page.total == 3
        assert page.page == 2
        assert page.limit == 2
        assert len(page.data) == 1
        assert all(booking.owner_id == user.pk for booking in page.data)

    def test_status_filter(self, manager, make_booking, user):
        kept = make_booking()
        cancelled = make_booking()
        manager.cancel(cancelled.id, user)

        page = manager.list_bookings(user, status="CANCELLED")

        assert [booking.id for booking in page.data] == [cancelled.id]
        assert kept.id not in [booking.id for booking in page.data]

    def test_flight_filter(self, manager, make_booking, user, flight):
        make_booking()

        assert manager.list_bookings(user, flight_id=flight.id).total == 1
        assert manager.list_bookings(user, flight_id=uuid.uuid4()).total == 0

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (1, 101)])
    def test_bad_paging_rejected(self, manager, user, page, limit):
        with pytest.raises(ValidationFailed):
            manager.list_bookings(user, page=page, limit=limit)

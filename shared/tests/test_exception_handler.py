import pytest
from rest_framework import exceptions
from rest_framework.test import APIRequestFactory

from shared.domain.errors import (
    AlreadyFinal,
    Conflict,
    GatewayError,
    InvalidAmount,
    InvalidTransition,
    NotFound,
    PassengerValidationError,
    SignatureError,
)
from shared.infrastructure.exception_handler import domain_exception_handler


@pytest.mark.parametrize(
    "error,status_code,code",
    [
        (InvalidAmount(), 400, "invalid_amount"),
        (NotFound("Booking x not found"), 404, "not_found"),
        (InvalidTransition("pending", "paid"), 400, "invalid_transition"),
        (AlreadyFinal("cancelled"), 400, "already_final"),
        (Conflict("Payment already completed for this booking"), 409, "conflict"),
        (GatewayError("Payment provider request failed"), 502, "gateway_error"),
        (SignatureError(), 400, "invalid_signature"),
    ],
)
def test_domain_errors_map_to_status(error, status_code, code):
    response = domain_exception_handler(error, {})

    assert response.status_code == status_code
    assert response.data == {"detail": error.message, "code": code}


def test_passenger_errors_are_listed():
    error = PassengerValidationError(["At least one adult required", "Passenger 1: invalid CPF document"])

    response = domain_exception_handler(error, {})

    assert response.status_code == 400
    assert response.data["errors"] == error.errors


def test_transition_message_names_both_states():
    assert str(InvalidTransition("awaiting_payment", "pending")) == (
        "Cannot transition booking from AWAITING_PAYMENT to PENDING"
    )


def test_drf_errors_keep_default_handling():
    response = domain_exception_handler(exceptions.NotAuthenticated(), {})

    assert response.status_code == 401


def test_unexpected_errors_are_hidden():
    request = APIRequestFactory().get("/api/v1/bookings/")

    response = domain_exception_handler(RuntimeError("db password is hunter2"), {"request": request, "view": None})

    assert response.status_code == 500
    assert response.data == {"detail": "An unexpected error occurred", "code": "internal_error"}

"""
Domain Errors

Exception hierarchy shared by every bounded context. Each error kind maps to
one HTTP status in ``shared.infrastructure.exception_handler``; domain code
raises these and never builds HTTP responses itself.
"""

from typing import Iterable, List, Optional


class DomainError(Exception):
    """Base class for all expected, caller-facing failures"""

    code = "domain_error"
    default_message = "Domain error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ===== Validation =====

class ValidationFailed(DomainError):
    code = "validation_error"
    default_message = "Validation failed"


class InvalidAmount(ValidationFailed):
    code = "invalid_amount"
    default_message = "Total amount must be greater than zero"


class NoPassengers(ValidationFailed):
    code = "no_passengers"
    default_message = "At least one passenger is required"


class PassengerValidationError(ValidationFailed):
    """Carries every composition/identity error found in one pass"""

    code = "invalid_passengers"
    default_message = "Passenger validation failed"

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or self.default_message)


# ===== Lookup =====

class NotFound(DomainError):
    code = "not_found"
    default_message = "Not found"


# ===== State =====

class InvalidState(DomainError):
    code = "invalid_state"
    default_message = "Operation not allowed in the current state"


class InvalidTransition(InvalidState):
    code = "invalid_transition"

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot transition booking from {_label(current)} to {_label(requested)}"
        )


class AlreadyFinal(InvalidState):
    code = "already_final"

    def __init__(self, current):
        self.current = current
        super().__init__(f"Booking is already {_label(current)}")


class Conflict(DomainError):
    code = "conflict"
    default_message = "Conflict"


# ===== Payment gateway =====

class GatewayError(DomainError):
    code = "gateway_error"
    default_message = "Payment provider is unavailable"


class SignatureError(DomainError):
    code = "invalid_signature"
    default_message = "Invalid signature"


def _label(status) -> str:
    return str(getattr(status, "value", status)).upper()

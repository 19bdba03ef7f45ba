"""
Booking Status State Machine

The legal status graph is data, not behaviour on the model: the lifecycle
manager consults TRANSITIONS and the persisted row only stores the value.
"""

from enum import Enum
from typing import Dict, FrozenSet

from shared.domain.errors import AlreadyFinal, InvalidTransition, ValidationFailed


class BookingStatus(str, Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> AWAITING_PAYMENT (booking validated and persisted)
    - PENDING -> CANCELLED (cancelled before a payment was requested)
    - AWAITING_PAYMENT -> PAID (gateway reported a successful charge)
    - AWAITING_PAYMENT -> CANCELLED (user cancelled or intent canceled)

    PAID and CANCELLED are terminal.
    """
    PENDING = 'pending'
    AWAITING_PAYMENT = 'awaiting_payment'
    PAID = 'paid'
    CANCELLED = 'cancelled'

    @property
    def label(self) -> str:
        return self.name.replace('_', ' ').title()


TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.AWAITING_PAYMENT, BookingStatus.CANCELLED}),
    BookingStatus.AWAITING_PAYMENT: frozenset({BookingStatus.PAID, BookingStatus.CANCELLED}),
    BookingStatus.PAID: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Statuses from which a payment intent may be requested
PAYABLE: FrozenSet[BookingStatus] = frozenset({BookingStatus.PENDING, BookingStatus.AWAITING_PAYMENT})

TERMINAL: FrozenSet[BookingStatus] = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


def _check_exhaustive() -> None:
    missing = set(BookingStatus) - set(TRANSITIONS)
    if missing:
        names = ", ".join(sorted(status.name for status in missing))
        raise RuntimeError(f"Booking transition table is missing statuses: {names}")
    for source, targets in TRANSITIONS.items():
        unknown = {target for target in targets if not isinstance(target, BookingStatus)}
        if unknown:
            raise RuntimeError(f"Unknown transition targets from {source.name}: {unknown}")


_check_exhaustive()


def coerce_status(value) -> BookingStatus:
    """Parse a status from its stored or wire value (case-insensitive)."""
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value).lower())
    except ValueError:
        raise ValidationFailed(f"Unknown booking status: {value}") from None


def can_transition(current, target) -> bool:
    return coerce_status(target) in TRANSITIONS[coerce_status(current)]


def is_final(status) -> bool:
    return coerce_status(status) in TERMINAL


def ensure_transition(current, target) -> BookingStatus:
    """Return the target status or raise InvalidTransition naming both ends."""
    current = coerce_status(current)
    target = coerce_status(target)
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(current, target)
    return target


def ensure_not_final(status) -> BookingStatus:
    status = coerce_status(status)
    if status in TERMINAL:
        raise AlreadyFinal(status)
    return status

"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A new booking was created and is awaiting payment
    """
    booking_id: UUID
    owner_id: int
    flight_id: UUID
    passenger_count: int


@dataclass(kw_only=True)
class BookingStatusChanged(DomainEvent):
    """
    Event: Any accepted status transition

    Emitted for every edge of the state machine, including the ones that
    also raise a more specific event below.
    """
    booking_id: UUID
    old_status: str
    new_status: str


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled by its owner or by the payment provider
    """
    booking_id: UUID
    reason: str
    old_status: str


@dataclass(kw_only=True)
class BookingPaid(DomainEvent):
    """
    Event: Booking payment confirmed (AWAITING_PAYMENT -> PAID)

    Triggers:
    - Send booking confirmation mail to the lead passenger
    """
    booking_id: UUID
    payment_reference: Optional[str] = None

"""
Booking Store

Persistence boundary for bookings and their passengers. The lifecycle
manager talks to ``AbstractBookingStore`` only, so the state machine can be
exercised without the ORM.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from django.core.exceptions import ValidationError  # type: ignore
from django.db import transaction  # type: ignore

from shared.domain.errors import NotFound, ValidationFailed
from shared.infrastructure.locking import lock_queryset_if_possible

from .domain.passengers import PassengerData
from .filters import BookingFilterSet
from .models import Booking, Passenger


@dataclass(frozen=True)
class BookingPage:
    """One page of an owner-scoped listing"""
    data: List[Booking]
    total: int
    page: int
    limit: int

    def as_dict(self) -> dict:
        return {"data": self.data, "total": self.total, "page": self.page, "limit": self.limit}


class AbstractBookingStore(ABC):

    @abstractmethod
    def add(self, booking: Booking, passengers: Sequence[PassengerData]) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id, *, lock: bool = False) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def get_for_owner(self, booking_id, owner, *, lock: bool = False) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def list_for_owner(self, owner, *, status=None, flight_id=None, page: int = 1, limit: int = 10) -> BookingPage:
        raise NotImplementedError

    @abstractmethod
    def save(self, booking: Booking, fields: Iterable[str]) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def passenger_count(self, booking: Booking) -> int:
        raise NotImplementedError


class DjangoBookingStore(AbstractBookingStore):
    """ORM-backed store. Unknown, malformed and foreign ids all raise NotFound."""

    def _base_queryset(self):
        return Booking.objects.select_related("flight", "owner")

    def _fetch(self, queryset, booking_id, lock: bool) -> Booking:
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        try:
            return queryset.get(pk=booking_id)
        except (Booking.DoesNotExist, ValidationError, ValueError, TypeError):
            raise NotFound(f"Booking {booking_id} not found")

    def add(self, booking: Booking, passengers: Sequence[PassengerData]) -> Booking:
        with transaction.atomic():
            booking.save(force_insert=True)
            Passenger.objects.bulk_create(
                [
                    Passenger(
                        booking=booking,
                        position=position,
                        first_name=passenger.first_name,
                        last_name=passenger.last_name,
                        email=passenger.email,
                        phone=passenger.phone,
                        document=passenger.document,
                        birth_date=passenger.birth_date,
                    )
                    for position, passenger in enumerate(passengers)
                ]
            )
        return booking

    def get(self, booking_id, *, lock: bool = False) -> Booking:
        return self._fetch(self._base_queryset(), booking_id, lock)

    def get_for_owner(self, booking_id, owner, *, lock: bool = False) -> Booking:
        return self._fetch(self._base_queryset().filter(owner=owner), booking_id, lock)

    def list_for_owner(
        self,
        owner,
        *,
        status=None,
        flight_id=None,
        page: int = 1,
        limit: int = 10,
    ) -> BookingPage:
        params = {}
        if status:
            params["status"] = getattr(status, "value", status)
        if flight_id:
            params["flight_id"] = str(flight_id)
        filterset = BookingFilterSet(
            data=params,
            queryset=self._base_queryset().filter(owner=owner).prefetch_related("passengers"),
        )
        if not filterset.is_valid():
            raise ValidationFailed(f"Invalid booking filters: {dict(filterset.errors)}")
        queryset = filterset.qs
        offset = (page - 1) * limit
        return BookingPage(
            data=list(queryset[offset:offset + limit]),
            total=queryset.count(),
            page=page,
            limit=limit,
        )

    def save(self, booking: Booking, fields: Iterable[str]) -> Booking:
        update_fields = set(fields) | {"updated_at"}
        booking.save(update_fields=sorted(update_fields))
        return booking

    def passenger_count(self, booking: Booking) -> int:
        return booking.passengers.count()

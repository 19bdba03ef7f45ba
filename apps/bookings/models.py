"""Booking persistence models for AirDiscovery."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.state_machine import BookingStatus


class Booking(models.Model):
    """Reservation of a flight for one or more passengers.

    The row only stores state. Status changes go through
    ``BookingLifecycleManager`` which checks them against the transition
    table in ``domain.state_machine``.
    """

    class Status(models.TextChoices):
        PENDING = BookingStatus.PENDING.value, _("Pending")
        AWAITING_PAYMENT = BookingStatus.AWAITING_PAYMENT.value, _("Awaiting payment")
        PAID = BookingStatus.PAID.value, _("Paid")
        CANCELLED = BookingStatus.CANCELLED.value, _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    flight = models.ForeignKey(
        "flights.Flight",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="BRL")
    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.PENDING,
    )
    notes = models.TextField(blank=True)
    payment_reference = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("External payment reference reported by the gateway."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gt=Decimal("0")),
                name="booking_total_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["owner", "status"], name="booking_owner_status_idx"),
            models.Index(fields=["flight"], name="booking_flight_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.id} ({self.status})"

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def lead_passenger(self):
        return self.passengers.order_by("position").first()


class Passenger(models.Model):
    """A traveller listed on a booking. Lives and dies with its booking."""

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name="passengers",
    )
    position = models.PositiveSmallIntegerField(default=0)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=32)
    document = models.CharField(max_length=14, help_text=_("CPF number."))
    birth_date = models.DateField()

    class Meta:
        verbose_name = _("Passenger")
        verbose_name_plural = _("Passengers")
        ordering = ["booking", "position"]

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}"

"""Flight catalogue models."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Flight(models.Model):
    """A bookable flight offer."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    flight_number = models.CharField(max_length=16)
    airline_code = models.CharField(max_length=3, blank=True)
    origin = models.CharField(max_length=3, help_text=_("IATA code of the departure airport."))
    destination = models.CharField(max_length=3, help_text=_("IATA code of the arrival airport."))
    departure_at = models.DateTimeField()
    arrival_at = models.DateTimeField()
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="BRL")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Flight")
        verbose_name_plural = _("Flights")
        ordering = ["departure_at"]
        indexes = [
            models.Index(fields=["origin", "destination", "departure_at"], name="flight_route_departure_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.flight_number} {self.origin}→{self.destination}"

"""Serializers for the booking API.

Wire names are camelCase to match the web client's contract; ``source``
maps them onto the snake_case model and domain attributes.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .domain.passengers import PassengerData
from .domain.state_machine import BookingStatus
from .models import Booking, Passenger


class PassengerInputSerializer(serializers.Serializer):
    firstName = serializers.CharField(source="first_name", max_length=100)
    lastName = serializers.CharField(source="last_name", max_length=100)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32)
    document = serializers.CharField(max_length=14)
    birthDate = serializers.DateField(source="birth_date")


class BookingCreateSerializer(serializers.Serializer):
    """Payload of ``POST /bookings/``. Composition rules are checked by the lifecycle manager."""

    passengers = PassengerInputSerializer(many=True, allow_empty=False)
    flightId = serializers.UUIDField(source="flight_id")
    totalAmount = serializers.DecimalField(source="total_amount", max_digits=12, decimal_places=2)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def passenger_data(self) -> list[PassengerData]:
        return [PassengerData(**item) for item in self.validated_data["passengers"]]


class BookingUpdateSerializer(serializers.Serializer):
    """Payload of ``PATCH /bookings/<id>/``.

    Clients may move a booking along the state machine but never to PAID;
    only the payment reconciliation path confirms payment.
    """

    status = serializers.CharField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    paymentReference = serializers.CharField(source="payment_reference", required=False, allow_blank=True)

    def validate_status(self, value: str) -> str:
        normalized = value.lower()
        if normalized not in {status.value for status in BookingStatus}:
            raise serializers.ValidationError(f"Unknown status: {value}")
        if normalized == BookingStatus.PAID.value:
            raise serializers.ValidationError("Payment is confirmed by the payment provider only.")
        return normalized

    def validate(self, attrs):  # type: ignore
        if not attrs:
            raise serializers.ValidationError("Nothing to update.")
        return attrs


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class BookingListQuerySerializer(serializers.Serializer):
    status = serializers.CharField(required=False)
    flightId = serializers.UUIDField(source="flight_id", required=False)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=10)


class PassengerSerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source="first_name")
    lastName = serializers.CharField(source="last_name")
    birthDate = serializers.DateField(source="birth_date")

    class Meta:
        model = Passenger
        fields = ["firstName", "lastName", "email", "phone", "document", "birthDate"]


class BookingSerializer(serializers.ModelSerializer):
    """Booking view returned by every booking endpoint."""

    ownerId = serializers.ReadOnlyField(source="owner_id")
    flightId = serializers.UUIDField(source="flight_id", read_only=True)
    totalAmount = serializers.DecimalField(source="total_amount", max_digits=12, decimal_places=2, read_only=True)
    paymentReference = serializers.CharField(source="payment_reference", read_only=True)
    passengers = PassengerSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "ownerId",
            "flightId",
            "totalAmount",
            "currency",
            "status",
            "notes",
            "paymentReference",
            "passengers",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = ["id", "currency", "status", "notes"]

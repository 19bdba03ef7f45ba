"""API views for the booking domain."""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore

from .serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingListQuerySerializer,
    BookingSerializer,
    BookingUpdateSerializer,
)
from .services import build_lifecycle_manager


class BookingViewSet(viewsets.ViewSet):
    """Owner-scoped booking endpoints.

    Every lookup is filtered by the authenticated user, so a booking that
    belongs to somebody else answers 404 exactly like a missing one.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get_manager(self):
        return build_lifecycle_manager()

    @extend_schema(
        parameters=[
            OpenApiParameter("status", str),
            OpenApiParameter("flightId", str),
            OpenApiParameter("page", int),
            OpenApiParameter("limit", int),
        ],
        responses=BookingSerializer(many=True),
    )
    def list(self, request):  # type: ignore
        query = BookingListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        page = self.get_manager().list_bookings(
            request.user,
            status=params.get("status"),
            flight_id=params.get("flight_id"),
            page=params["page"],
            limit=params["limit"],
        )
        return Response(
            {
                "data": BookingSerializer(page.data, many=True).data,
                "total": page.total,
                "page": page.page,
                "limit": page.limit,
            }
        )

    @extend_schema(request=BookingCreateSerializer, responses={201: BookingSerializer})
    def create(self, request):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        booking = self.get_manager().create(
            passengers=serializer.passenger_data(),
            flight_id=data["flight_id"],
            total_amount=data["total_amount"],
            owner=request.user,
            currency=data.get("currency"),
            notes=data.get("notes", ""),
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses=BookingSerializer)
    def retrieve(self, request, pk=None):  # type: ignore
        booking = self.get_manager().get(pk, request.user)
        return Response(BookingSerializer(booking).data)

    @extend_schema(request=BookingUpdateSerializer, responses=BookingSerializer)
    def partial_update(self, request, pk=None):  # type: ignore
        serializer = BookingUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = self.get_manager().update(pk, dict(serializer.validated_data), request.user)
        return Response(BookingSerializer(booking).data)

    @extend_schema(request=BookingCancelSerializer, responses=BookingSerializer)
    def destroy(self, request, pk=None):  # type: ignore
        serializer = BookingCancelSerializer(data=request.data or {})
        serializer.is_valid(raise_exception=True)
        booking = self.get_manager().cancel(pk, request.user, reason=serializer.validated_data.get("reason"))
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

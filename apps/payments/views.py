"""API views for payment intents and gateway webhooks."""

from __future__ import annotations

import structlog
from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import permissions, serializers, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .gateway import get_payment_gateway
from .services import build_payment_coordinator
from .webhooks import build_webhook_processor

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "HTTP_STRIPE_SIGNATURE"


class PaymentIntentRequestSerializer(serializers.Serializer):
    """Only the booking id is accepted; the amount always comes from the booking."""

    bookingId = serializers.UUIDField()


class PaymentIntentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(request=PaymentIntentRequestSerializer)
    def post(self, request):  # type: ignore
        serializer = PaymentIntentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        coordinator = build_payment_coordinator(gateway=get_payment_gateway())
        result = coordinator.create_payment_intent(serializer.validated_data["bookingId"], request.user)
        return Response(result.as_response(), status=status.HTTP_201_CREATED)


class PaymentIntentStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(request=None)
    def get(self, request, intent_id: str):  # type: ignore
        coordinator = build_payment_coordinator(gateway=get_payment_gateway())
        result = coordinator.get_intent_status(intent_id, request.user)
        return Response(result.as_response(), status=status.HTTP_200_OK)


class PaymentWebhookView(APIView):
    """Receives gateway events. Authenticated by signature, not by user."""

    authentication_classes: list = []
    permission_classes = [permissions.AllowAny]

    @extend_schema(request=None)
    def post(self, request):  # type: ignore
        processor = build_webhook_processor(gateway=get_payment_gateway())
        result = processor.handle(request.body, request.META.get(SIGNATURE_HEADER))
        return Response(result, status=status.HTTP_200_OK)

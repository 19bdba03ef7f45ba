"""DRF exception handler translating domain errors into HTTP responses."""

from __future__ import annotations

import structlog
from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from shared.domain.errors import (
    Conflict,
    DomainError,
    GatewayError,
    InvalidState,
    NotFound,
    PassengerValidationError,
    SignatureError,
    ValidationFailed,
)

logger = structlog.get_logger(__name__)

STATUS_BY_ERROR = {
    ValidationFailed: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidState: status.HTTP_400_BAD_REQUEST,
    Conflict: status.HTTP_409_CONFLICT,
    GatewayError: status.HTTP_502_BAD_GATEWAY,
    SignatureError: status.HTTP_400_BAD_REQUEST,
}


def status_for(exc: DomainError) -> int:
    for klass in type(exc).__mro__:
        if klass in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[klass]
    return status.HTTP_400_BAD_REQUEST


def domain_exception_handler(exc, context):
    """Map DomainError subclasses to `{detail, code}` payloads.

    DRF's own exceptions (authentication, parse and serializer errors) keep
    the default handling. Anything else is logged with the request context
    and answered with a generic 500 so internals never leak to the client.
    """

    if isinstance(exc, DomainError):
        payload = {"detail": exc.message, "code": exc.code}
        if isinstance(exc, PassengerValidationError):
            payload["errors"] = exc.errors
        return Response(payload, status=status_for(exc))

    response = drf_exception_handler(exc, context)
    if response is not None:
        return response

    request = context.get("request")
    view = context.get("view")
    logger.error(
        "api.unhandled_error",
        view=type(view).__name__ if view is not None else None,
        operation=getattr(view, "action", None) or getattr(request, "method", None),
        requester=getattr(getattr(request, "user", None), "pk", None),
        booking_id=str((context.get("kwargs") or {}).get("pk", "")) or None,
        exc_info=exc,
    )
    return Response(
        {"detail": "An unexpected error occurred", "code": "internal_error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

"""URL routing for payments."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import PaymentIntentStatusView, PaymentIntentView

urlpatterns = [
    path("intent/", PaymentIntentView.as_view(), name="payment-intent"),
    path("intent/<str:intent_id>/", PaymentIntentStatusView.as_view(), name="payment-intent-status"),
]

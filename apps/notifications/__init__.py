"""Notifications app package.

Delivers customer-facing notifications. The booking confirmation mail is
triggered by the ``BookingPaid`` domain event and sent asynchronously by a
Celery task; delivery failures never affect booking or payment state.
"""

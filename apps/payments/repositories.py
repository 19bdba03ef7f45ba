"""Payment Store: ORM access for payment attempts."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

import structlog

from shared.infrastructure.locking import lock_queryset_if_possible

from .models import Payment

logger = structlog.get_logger(__name__)


class DjangoPaymentStore:
    """Reads and writes ``Payment`` rows. Callers own the transaction."""

    def find_by_status(self, booking, status: str, *, lock: bool = False) -> Optional[Payment]:
        queryset = Payment.objects.filter(booking=booking, status=status).order_by("-created_at")
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        return queryset.first()

    def find_by_intent(self, intent_id: str, *, lock: bool = False) -> Optional[Payment]:
        if not intent_id:
            return None
        queryset = Payment.objects.select_related("booking").filter(intent_id=intent_id)
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        return queryset.first()

    def find_for_owner(self, intent_id: str, owner) -> Optional[Payment]:
        if not intent_id:
            return None
        return Payment.objects.filter(intent_id=intent_id, booking__owner=owner).first()

    def count_for_booking(self, booking) -> int:
        return Payment.objects.filter(booking=booking).count()

    def add(self, payment: Payment) -> Payment:
        payment.save(force_insert=True)
        return payment

    def save(self, payment: Payment, fields: Iterable[str]) -> Payment:
        update_fields = set(fields) | {"updated_at"}
        payment.save(update_fields=sorted(update_fields))
        return payment

    def stale_pending(self, older_than: datetime, limit: int = 100) -> List[Payment]:
        return list(
            Payment.objects.select_related("booking")
            .filter(status=Payment.Status.PENDING, created_at__lt=older_than)
            .exclude(intent_id__isnull=True)
            .order_by("created_at")[:limit]
        )

    def void_pending(self, booking, reason: str = "booking_cancelled") -> int:
        """Cancel the booking's pending payments; returns how many were voided."""
        voided = 0
        for payment in self.find_all_pending(booking):
            payment.status = Payment.Status.CANCELED
            payment.metadata = {**payment.metadata, "cancel_reason": reason}
            self.save(payment, ["status", "metadata"])
            voided += 1
        if voided:
            logger.info("payment.pending_voided", booking_id=str(booking.pk), count=voided, reason=reason)
        return voided

    def find_all_pending(self, booking) -> List[Payment]:
        queryset = Payment.objects.filter(booking=booking, status=Payment.Status.PENDING).order_by("created_at")
        return list(lock_queryset_if_possible(queryset))

    def has_other_open_payment(self, payment: Payment) -> bool:
        """True when the booking has another pending or succeeded payment."""
        return (
            Payment.objects.filter(
                booking_id=payment.booking_id,
                status__in=[Payment.Status.PENDING, Payment.Status.SUCCEEDED],
            )
            .exclude(pk=payment.pk)
            .exists()
        )

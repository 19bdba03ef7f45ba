"""Celery tasks for the payments domain."""

from __future__ import annotations

from datetime import timedelta

import structlog
from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.errors import GatewayError

from .repositories import DjangoPaymentStore
from .webhooks import GATEWAY_OUTCOMES, build_webhook_processor

logger = structlog.get_logger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="payments.reconcile_pending_payments")
def reconcile_pending_payments(limit: int = 100) -> dict[str, int]:
    """
    Settle pending payments whose webhook never arrived.

    Pending payments older than PAYMENTS_RECONCILE_AFTER_MINUTES are looked
    up at the gateway; succeeded and canceled intents go through the same
    outcome handling as the webhook, so a late webhook is still a no-op.

    Runs every 15 minutes through Celery Beat.

    Returns:
        dict: {"checked": ..., "applied": ..., "errors": ...}
    """
    cutoff = timezone.now() - timedelta(minutes=settings.PAYMENTS_RECONCILE_AFTER_MINUTES)
    processor = build_webhook_processor()
    stale = DjangoPaymentStore().stale_pending(cutoff, limit=limit)

    applied = 0
    errors = 0
    for payment in stale:
        try:
            intent = processor.gateway.retrieve_intent(payment.intent_id)
        except GatewayError:
            errors += 1
            continue
        outcome = GATEWAY_OUTCOMES.get(intent.status)
        if outcome is None:
            continue
        if processor.apply_outcome(intent.id, outcome, source="reconciliation"):
            applied += 1

    result = {"checked": len(stale), "applied": applied, "errors": errors}
    logger.info("payments.reconciled", **result)
    return result

import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("airdiscovery")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Re-query the gateway for intents whose webhook never arrived
    "reconcile-pending-payments": {
        "task": "payments.reconcile_pending_payments",
        "schedule": crontab(minute="*/15"),
        "options": {"expires": 600},
    },
}

app.conf.timezone = "America/Sao_Paulo"

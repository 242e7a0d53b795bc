"""
Celery Configuration for Atelier Backend

This module configures Celery for background work and scheduled jobs.
The only periodic job is the release of abandoned pending transactions,
which is scheduled only when a TTL is configured.
"""

import os

from celery import Celery


# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "atelierBackend.settings")

app = Celery("atelierBackend")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()


@app.on_after_finalize.connect
def setup_periodic_tasks(sender, **kwargs):
    from django.conf import settings

    ttl_minutes = settings.MARKETPLACE.get("PENDING_TRANSACTION_TTL_MINUTES")
    if not ttl_minutes:
        return

    sender.add_periodic_task(
        60.0 * 5,
        sender.signature("marketplace.tasks.expire_stale_transactions_task"),
        name="expire-stale-transactions",
        expires=60.0 * 4,
    )


app.conf.update(
    task_routes={
        "marketplace.tasks.*": {"queue": "marketplace_tasks"},
    },
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=60 * 60 * 24,
    worker_max_tasks_per_child=1000,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,
)

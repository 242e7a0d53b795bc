"""
Marketplace Celery Tasks

- Release listings held by pending transactions that were never paid
"""

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings


logger = logging.getLogger(__name__)


def pending_transaction_ttl():
    """Configured TTL for unpaid transactions, or None when expiry is disabled."""
    minutes = settings.MARKETPLACE.get("PENDING_TRANSACTION_TTL_MINUTES")
    if not minutes:
        return None
    return timedelta(minutes=int(minutes))


@shared_task(bind=True, max_retries=3, queue="marketplace_tasks")
def expire_stale_transactions_task(self):
    """
    Cancel pending transactions older than MARKETPLACE["PENDING_TRANSACTION_TTL_MINUTES"].

    A no-op while the TTL is unset. Store outages are retried with backoff;
    business errors are not.

    Returns:
        int: number of transactions expired
    """
    ttl = pending_transaction_ttl()
    if ttl is None:
        logger.debug("Pending transaction expiry disabled; nothing to do")
        return 0

    from infrastructure.container import container

    result = container.transaction_service().expire_stale_pending(ttl)
    if result.ok:
        logger.info(f"Expiry run released {result.value} stale transactions (ttl {ttl})")
        return result.value

    if result.retryable:
        logger.warning(f"Expiry run failed, retrying: {result.error_detail}")
        raise self.retry(countdown=60 * (2**self.request.retries))

    logger.error(f"Expiry run failed: {result.error_detail}")
    return 0

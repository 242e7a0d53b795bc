import logging

from infrastructure.events import get_event_bus


logger = logging.getLogger(__name__)


def handle_transaction_initiated(event_data):
    """Handle transaction.initiated event."""
    payload = event_data.get("payload", {})
    logger.info(
        f"[Marketplace Listener] Listing {payload.get('listing_id')} reserved by buyer {payload.get('buyer_id')} "
        f"(transaction {payload.get('transaction_id')}, amount {payload.get('amount')})"
    )


def handle_transaction_completed(event_data):
    """Handle transaction.completed event."""
    payload = event_data.get("payload", {})
    logger.info(
        f"[Marketplace Listener] Sale completed: listing {payload.get('listing_id')} "
        f"from seller {payload.get('seller_id')} to buyer {payload.get('buyer_id')} for {payload.get('amount')}"
    )


def handle_transaction_cancelled(event_data):
    """Handle transaction.cancelled event."""
    payload = event_data.get("payload", {})
    reason = payload.get("reason") or "no reason given"
    if payload.get("cancelled_by") == "system":
        logger.warning(
            f"[Marketplace Listener] Transaction {payload.get('transaction_id')} expired; "
            f"listing {payload.get('listing_id')} released"
        )
    else:
        logger.info(
            f"[Marketplace Listener] Transaction {payload.get('transaction_id')} cancelled by "
            f"{payload.get('cancelled_by')}: {reason}"
        )


def handle_review_created(event_data):
    """Handle review.created event."""
    payload = event_data.get("payload", {})
    logger.info(
        f"[Marketplace Listener] Review {payload.get('review_id')} ({payload.get('rating')} stars, "
        f"verified={payload.get('is_verified_purchase')})"
    )


def register_marketplace_listeners():
    """Register all marketplace event listeners."""
    event_bus = get_event_bus()
    event_bus.subscribe("transaction.initiated", handle_transaction_initiated)
    event_bus.subscribe("transaction.completed", handle_transaction_completed)
    event_bus.subscribe("transaction.cancelled", handle_transaction_cancelled)
    event_bus.subscribe("review.created", handle_review_created)
    logger.info("Marketplace event listeners registered")

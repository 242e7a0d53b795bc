"""
Database transaction utilities
==============================

Helpers for running units of work against the relational store.

Usage:
    @retry_on_deadlock()
    def _reserve(listing_id, buyer):
        with transaction.atomic():
            ...

The decorated callable must own its atomic block so that every retry starts
a fresh database transaction.
"""

import logging
import time
from functools import wraps

from django.db import OperationalError


logger = logging.getLogger(__name__)

# MySQL reports deadlocks as 1213 and lock wait timeouts as 1205; SQLite reports contention as "locked"
_RETRYABLE_MARKERS = (
    "Deadlock found",
    "1213",
    "Lock wait timeout",
    "1205",
    "database is locked",
    "database table is locked",
)


class TransactionError(Exception):
    """Custom exception for transaction-related errors"""

    pass


class DeadlockError(TransactionError):
    """Exception raised when a deadlock persists after every retry"""

    pass


def is_deadlock(exc: Exception) -> bool:
    message = str(exc)
    return any(marker in message for marker in _RETRYABLE_MARKERS)


def retry_on_deadlock(max_retries=3, delay=0.1, backoff=2.0):
    """
    Decorator to retry operations on deadlock with exponential backoff.

    Non-deadlock OperationalErrors propagate unchanged on the first failure.

    Args:
        max_retries (int): Maximum number of retry attempts
        delay (float): Initial delay between retries in seconds
        backoff (float): Backoff multiplier for delay
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except OperationalError as e:
                    if not is_deadlock(e):
                        raise
                    if attempt >= max_retries:
                        raise DeadlockError(f"Deadlock detected: {e}") from e
                    logger.warning(
                        f"Deadlock detected in {func.__name__}, retrying in {current_delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator

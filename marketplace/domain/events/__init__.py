from .base import DomainEvent
from .catalog_events import ListingStatusChangedEvent, ListingVerifiedEvent, ReviewCreatedEvent
from .transaction_events import (
    TransactionCancelledEvent,
    TransactionCompletedEvent,
    TransactionInitiatedEvent,
    TransactionPaidEvent,
    TransactionShippedEvent,
)


__all__ = [
    "DomainEvent",
    "ListingStatusChangedEvent",
    "ListingVerifiedEvent",
    "ReviewCreatedEvent",
    "TransactionCancelledEvent",
    "TransactionCompletedEvent",
    "TransactionInitiatedEvent",
    "TransactionPaidEvent",
    "TransactionShippedEvent",
]

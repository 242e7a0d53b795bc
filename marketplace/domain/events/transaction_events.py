from dataclasses import dataclass
from decimal import Decimal

from .base import DomainEvent


@dataclass
class TransactionInitiatedEvent(DomainEvent):
    """Event: Buyer committed to buy; listing reserved."""

    def __init__(self, transaction_id: str, listing_id: str, buyer_id: str, seller_id: str, amount: Decimal):
        super().__init__(
            event_type="transaction.initiated",
            payload={
                "transaction_id": transaction_id,
                "listing_id": listing_id,
                "buyer_id": buyer_id,
                "seller_id": seller_id,
                "amount": str(amount),
            },
        )


@dataclass
class TransactionPaidEvent(DomainEvent):
    """Event: Payment cleared; funds held in escrow."""

    def __init__(self, transaction_id: str, payment_reference: str):
        super().__init__(
            event_type="transaction.paid",
            payload={"transaction_id": transaction_id, "payment_reference": payment_reference},
        )


@dataclass
class TransactionShippedEvent(DomainEvent):
    """Event: Seller shipped the item."""

    def __init__(self, transaction_id: str, delivery_status: str):
        super().__init__(
            event_type="transaction.shipped",
            payload={"transaction_id": transaction_id, "delivery_status": delivery_status},
        )


@dataclass
class TransactionCompletedEvent(DomainEvent):
    """Event: Buyer confirmed delivery; escrow released; listing sold."""

    def __init__(self, transaction_id: str, listing_id: str, buyer_id: str, seller_id: str, amount: Decimal):
        super().__init__(
            event_type="transaction.completed",
            payload={
                "transaction_id": transaction_id,
                "listing_id": listing_id,
                "buyer_id": buyer_id,
                "seller_id": seller_id,
                "amount": str(amount),
            },
        )


@dataclass
class TransactionCancelledEvent(DomainEvent):
    """Event: Transaction cancelled; reservation released."""

    def __init__(self, transaction_id: str, listing_id: str, cancelled_by: str, reason: str):
        super().__init__(
            event_type="transaction.cancelled",
            payload={
                "transaction_id": transaction_id,
                "listing_id": listing_id,
                "cancelled_by": cancelled_by,
                "reason": reason,
            },
        )

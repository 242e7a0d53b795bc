from dataclasses import dataclass
from typing import Optional

from .base import DomainEvent


@dataclass
class ListingStatusChangedEvent(DomainEvent):
    """Event: Seller or admin moved a listing between draft/active/archived."""

    def __init__(self, listing_id: str, from_statuses: list, to_status: str, actor_id: str):
        super().__init__(
            event_type="listing.status_changed",
            payload={
                "listing_id": listing_id,
                "from_statuses": list(from_statuses),
                "to_status": to_status,
                "actor_id": actor_id,
            },
        )


@dataclass
class ListingVerifiedEvent(DomainEvent):
    """Event: Admin recorded a verification outcome."""

    def __init__(self, listing_id: str, outcome: str, confidence_score: Optional[str]):
        super().__init__(
            event_type="listing.verification_changed",
            payload={"listing_id": listing_id, "outcome": outcome, "confidence_score": confidence_score},
        )


@dataclass
class ReviewCreatedEvent(DomainEvent):
    """Event: Review written."""

    def __init__(
        self,
        review_id: str,
        reviewer_id: str,
        listing_id: Optional[str],
        seller_id: Optional[str],
        rating: int,
        is_verified_purchase: bool,
    ):
        super().__init__(
            event_type="review.created",
            payload={
                "review_id": review_id,
                "reviewer_id": reviewer_id,
                "listing_id": listing_id,
                "seller_id": seller_id,
                "rating": rating,
                "is_verified_purchase": is_verified_purchase,
            },
        )

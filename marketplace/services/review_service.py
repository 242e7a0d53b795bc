"""
ReviewService - Reviews and Verified Purchases

A review targets a listing, a seller, or both. Once the review row is
committed the reputation aggregates are refreshed; a failed refresh leaves a
stale aggregate but never loses the review.
"""

import logging
from typing import List, Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from infrastructure.events import get_event_bus
from marketplace.domain.events import ReviewCreatedEvent
from marketplace.domain.exceptions import NotFoundError, ValidationError
from marketplace.models import Listing, Review, Transaction

from .base import BaseService, ServiceResult, service_ok
from .reputation_service import ReputationService


User = get_user_model()
logger = logging.getLogger(__name__)


def validate_rating(rating) -> int:
    # bool is an int subclass; True must not count as one star
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be an integer between 1 and 5")
    if rating < 1 or rating > 5:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


class ReviewService(BaseService):
    """
    Service for writing and reading reviews.

    Dependencies:
    - ReputationService: recomputes listing/seller aggregates after each review
    - EventBus: review.created events
    """

    def __init__(self, reputation_service: ReputationService = None, event_bus=None):
        super().__init__()
        self.reputation_service = reputation_service or ReputationService()
        self.event_bus = event_bus or get_event_bus()

    def _is_verified_purchase(self, reviewer, transaction_id) -> bool:
        if not transaction_id:
            return False
        try:
            tx = Transaction.objects.only("buyer_id", "status").get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return str(tx.buyer_id) == str(reviewer.pk) and tx.status == Transaction.STATUS_COMPLETED

    @BaseService.log_performance
    def create(
        self,
        reviewer,
        rating,
        listing_id=None,
        seller_id=None,
        transaction_id=None,
        title: str = "",
        content: str = "",
    ) -> ServiceResult[Review]:
        """
        Write a review and refresh the affected rating aggregates.

        Args:
            reviewer: Authenticated user writing the review
            rating: Integer 1-5
            listing_id: Reviewed listing (optional)
            seller_id: Reviewed seller (optional; at least one target required)
            transaction_id: Purchase backing the review; marks it verified when
                            the reviewer is the buyer and the sale completed
            title: Short headline
            content: Review body

        Returns:
            ServiceResult with the created Review
        """
        try:
            validate_rating(rating)
            if not listing_id and not seller_id:
                raise ValidationError("A review needs a listing or a seller")

            if listing_id and not Listing.objects.filter(pk=listing_id).exists():
                raise NotFoundError(f"Listing {listing_id} not found")
            if seller_id and not User.objects.filter(pk=seller_id).exists():
                raise NotFoundError(f"Seller {seller_id} not found")

            verified = self._is_verified_purchase(reviewer, transaction_id)

            with transaction.atomic():
                review = Review.objects.create(
                    listing_id=listing_id,
                    seller_id=seller_id,
                    reviewer=reviewer,
                    transaction_id=transaction_id,
                    rating=rating,
                    title=title or "",
                    content=content or "",
                    is_verified_purchase=verified,
                )

        except Exception as e:
            return self.error_result(e, f"creating review by user {getattr(reviewer, 'pk', None)}")

        # Runs after commit; a failed refresh never fails the review
        try:
            refresh = self.reputation_service.on_review_created(review)
            if not refresh.ok:
                self.logger.warning(f"Review {review.id} saved with stale aggregates: {refresh.error_detail}")
        except Exception as e:
            self.logger.warning(f"Review {review.id} saved but aggregate refresh raised: {e}")

        ReviewCreatedEvent(
            review_id=str(review.id),
            reviewer_id=str(reviewer.pk),
            listing_id=str(listing_id) if listing_id else None,
            seller_id=str(seller_id) if seller_id else None,
            rating=rating,
            is_verified_purchase=verified,
        ).publish(self.event_bus)

        self.logger.info(
            f"Review {review.id} ({rating} stars, verified={verified}) by user {reviewer.pk} "
            f"on listing={listing_id} seller={seller_id}"
        )
        return service_ok(review)

    @BaseService.log_performance
    def list_for_listing(self, listing_id) -> ServiceResult[List[Review]]:
        try:
            if not Listing.objects.filter(pk=listing_id).exists():
                raise NotFoundError(f"Listing {listing_id} not found")
            reviews = Review.objects.select_related("reviewer").filter(listing_id=listing_id).order_by("-created_at")
            return service_ok(list(reviews))
        except Exception as e:
            return self.error_result(e, f"listing reviews of listing {listing_id}")

    @BaseService.log_performance
    def list_for_seller(self, seller_id, verified_only: Optional[bool] = None) -> ServiceResult[List[Review]]:
        try:
            if not User.objects.filter(pk=seller_id).exists():
                raise NotFoundError(f"Seller {seller_id} not found")
            reviews = Review.objects.select_related("reviewer").filter(seller_id=seller_id)
            if verified_only:
                reviews = reviews.filter(is_verified_purchase=True)
            return service_ok(list(reviews.order_by("-created_at")))
        except Exception as e:
            return self.error_result(e, f"listing reviews of seller {seller_id}")

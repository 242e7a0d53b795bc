"""
ReputationService - Rating Aggregates

Keeps the denormalized ``average_rating`` / ``total_reviews`` columns of
listings and sellers in line with the Review table. Every refresh is a full
re-scan of the source rows, never an incremental add, so a refresh can be
repeated or superseded by a concurrent one without drifting.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Tuple

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Avg, Count

from marketplace.domain.exceptions import NotFoundError
from marketplace.infra.observability.metrics import aggregate_refresh_failures_total
from marketplace.models import Listing, Review

from .base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok


User = get_user_model()
logger = logging.getLogger(__name__)

RATING_QUANTUM = Decimal("0.01")


def quantize_rating(value) -> Decimal:
    """Round a mean rating half-up to two decimals."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(RATING_QUANTUM, rounding=ROUND_HALF_UP)


class ReputationService(BaseService):
    """
    Service recomputing rating aggregates for listings and sellers.

    Responsibilities:
    - Recompute a listing's average rating and review count
    - Recompute a seller's average rating and review count
    - React to a newly written review (both targets, independently)
    - Rating distribution for a listing
    """

    def _aggregate(self, queryset) -> Tuple[Decimal, int]:
        stats = queryset.aggregate(average=Avg("rating"), count=Count("id"))
        count = stats["count"] or 0
        if not count:
            return Decimal("0.00"), 0
        return quantize_rating(stats["average"]), count

    @BaseService.log_performance
    def recompute_listing(self, listing_id) -> ServiceResult[Dict]:
        """
        Recompute ``average_rating`` and ``total_reviews`` for one listing.

        Returns:
            ServiceResult with {"average_rating": Decimal, "total_reviews": int}
        """
        try:
            with transaction.atomic():
                average, count = self._aggregate(Review.objects.filter(listing_id=listing_id))
                updated = Listing.objects.filter(pk=listing_id).update(average_rating=average, total_reviews=count)
            if not updated:
                raise NotFoundError(f"Listing {listing_id} not found")

            self.logger.info(f"Recomputed rating for listing {listing_id}: {average} over {count} reviews")
            return service_ok({"average_rating": average, "total_reviews": count})

        except Exception as e:
            return self.error_result(e, f"recomputing rating for listing {listing_id}")

    @BaseService.log_performance
    def recompute_seller(self, seller_id) -> ServiceResult[Dict]:
        """Recompute ``average_rating`` and ``total_reviews`` for one seller."""
        try:
            with transaction.atomic():
                average, count = self._aggregate(Review.objects.filter(seller_id=seller_id))
                updated = User.objects.filter(pk=seller_id).update(average_rating=average, total_reviews=count)
            if not updated:
                raise NotFoundError(f"Seller {seller_id} not found")

            self.logger.info(f"Recomputed rating for seller {seller_id}: {average} over {count} reviews")
            return service_ok({"average_rating": average, "total_reviews": count})

        except Exception as e:
            return self.error_result(e, f"recomputing rating for seller {seller_id}")

    def on_review_created(self, review: Review) -> ServiceResult[Dict]:
        """
        Refresh every aggregate the review contributes to.

        The listing and seller aggregates are refreshed independently; one
        failing does not stop the other. Failures are logged at warning level
        and counted, never raised.
        """
        refreshed = {}
        failures = []

        targets = []
        if review.listing_id:
            targets.append(("listing", review.listing_id, self.recompute_listing))
        if review.seller_id:
            targets.append(("seller", review.seller_id, self.recompute_seller))

        for target, target_id, recompute in targets:
            try:
                result = recompute(target_id)
            except Exception as e:
                result = service_err(ErrorCodes.INTERNAL_ERROR, str(e))

            if result.ok:
                refreshed[target] = result.value
            else:
                aggregate_refresh_failures_total.labels(target=target).inc()
                self.logger.warning(
                    f"Rating aggregate for {target} {target_id} is stale after review {review.pk}: "
                    f"{result.error_detail}"
                )
                failures.append(f"{target}: {result.error_detail}")

        if failures:
            return service_err(ErrorCodes.INTERNAL_ERROR, "; ".join(failures))
        return service_ok(refreshed)

    @BaseService.log_performance
    def rating_distribution(self, listing_id) -> ServiceResult[Dict[int, int]]:
        """
        Count of reviews per star level for a listing.

        Example:
            >>> reputation_service.rating_distribution(listing_id).value
            {5: 12, 4: 3, 3: 0, 2: 1, 1: 0}
        """
        try:
            if not Listing.objects.filter(pk=listing_id).exists():
                raise NotFoundError(f"Listing {listing_id} not found")

            distribution = {star: 0 for star in range(5, 0, -1)}
            rows = Review.objects.filter(listing_id=listing_id).values("rating").annotate(count=Count("id"))
            for row in rows:
                distribution[row["rating"]] = row["count"]

            return service_ok(distribution)

        except Exception as e:
            return self.error_result(e, f"computing rating distribution for listing {listing_id}")

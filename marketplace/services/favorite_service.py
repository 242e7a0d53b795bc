"""
FavoriteService - Favorites and the favorite counter

``Listing.favorite_count`` is a cache of the Favorite table. It moves only
by atomic increments/decrements in the same database transaction as the row
change, and can be rebuilt from the table with ``recount``.
"""

import logging
from typing import Dict, List

from django.db import IntegrityError, transaction

from marketplace.domain.exceptions import NotFoundError
from marketplace.infra.observability.metrics import favorite_count_clamped_total
from marketplace.models import Favorite, Listing

from .base import BaseService, ServiceResult, service_ok


logger = logging.getLogger(__name__)


class FavoriteService(BaseService):
    """Idempotent add/remove of (user, listing) favorites."""

    def _ensure_listing(self, listing_id):
        if not Listing.objects.filter(pk=listing_id).exists():
            raise NotFoundError(f"Listing {listing_id} not found")

    def _current_count(self, listing_id) -> int:
        return Listing.objects.filter(pk=listing_id).values_list("favorite_count", flat=True).first() or 0

    @BaseService.log_performance
    def add(self, user, listing_id) -> ServiceResult[Dict]:
        """
        Favorite a listing. Adding an existing favorite is a no-op.

        Returns:
            ServiceResult with {"favorited": True, "created": bool, "favorite_count": int}
        """
        try:
            self._ensure_listing(listing_id)

            with transaction.atomic():
                try:
                    with transaction.atomic():
                        _, created = Favorite.objects.get_or_create(user=user, listing_id=listing_id)
                except IntegrityError:
                    # Lost a race with a concurrent add of the same pair
                    created = False

                if created:
                    Listing.objects.increment(listing_id, "favorite_count")

            return service_ok(
                {"favorited": True, "created": created, "favorite_count": self._current_count(listing_id)}
            )

        except Exception as e:
            return self.error_result(e, f"favoriting listing {listing_id} for user {getattr(user, 'pk', None)}")

    @BaseService.log_performance
    def remove(self, user, listing_id) -> ServiceResult[Dict]:
        """
        Unfavorite a listing. Removing an absent favorite is a no-op.

        The counter never goes below zero; a decrement that finds it already
        at zero is logged as a consistency warning.
        """
        try:
            self._ensure_listing(listing_id)

            with transaction.atomic():
                deleted, _ = Favorite.objects.filter(user=user, listing_id=listing_id).delete()
                if deleted and not Listing.objects.decrement_clamped(listing_id, "favorite_count"):
                    favorite_count_clamped_total.inc()
                    self.logger.warning(
                        f"favorite_count of listing {listing_id} was already 0 when removing a favorite; "
                        f"run recount to repair"
                    )

            return service_ok(
                {"favorited": False, "removed": bool(deleted), "favorite_count": self._current_count(listing_id)}
            )

        except Exception as e:
            return self.error_result(e, f"unfavoriting listing {listing_id} for user {getattr(user, 'pk', None)}")

    @BaseService.log_performance
    def list_for_user(self, user) -> ServiceResult[List[Listing]]:
        """The user's favorited listings, most recently favorited first."""
        try:
            favorites = Favorite.objects.select_related("listing", "listing__seller").filter(user=user)
            return service_ok([favorite.listing for favorite in favorites.order_by("-created_at")])
        except Exception as e:
            return self.error_result(e, f"listing favorites for user {getattr(user, 'pk', None)}")

    def is_favorited(self, user, listing_id) -> bool:
        if not getattr(user, "is_authenticated", False):
            return False
        return Favorite.objects.filter(user=user, listing_id=listing_id).exists()

    @BaseService.log_performance
    def recount(self, listing_id) -> ServiceResult[int]:
        """Rebuild ``favorite_count`` from the Favorite table."""
        try:
            with transaction.atomic():
                self._ensure_listing(listing_id)
                count = Favorite.objects.filter(listing_id=listing_id).count()
                Listing.objects.filter(pk=listing_id).update(favorite_count=count)
            self.logger.info(f"Recounted favorites for listing {listing_id}: {count}")
            return service_ok(count)
        except Exception as e:
            return self.error_result(e, f"recounting favorites of listing {listing_id}")

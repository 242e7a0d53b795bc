"""
ProfileService - Public seller profiles and self-service profile edits

The public profile is where the seller-level reputation (sales, purchases,
rating) is read. Only presentation fields are editable by the user; the
reputation counters are written by TransactionService and ReputationService.
"""

import logging
from typing import Dict

from django.contrib.auth import get_user_model

from marketplace.domain.exceptions import NotFoundError, ValidationError
from marketplace.models import Listing, Review

from .base import BaseService, ServiceResult, service_ok


User = get_user_model()
logger = logging.getLogger(__name__)

EDITABLE_PROFILE_FIELDS = {
    "first_name": 30,
    "last_name": 30,
    "gallery_name": 255,
    "bio": None,
}

USER_TYPES = tuple(choice for choice, _ in User.USER_TYPE_CHOICES)


class ProfileService(BaseService):
    """Reads public profiles and applies a user's edits to their own profile."""

    @BaseService.log_performance
    def get_public_profile(self, user_id) -> ServiceResult[Dict]:
        """
        Public profile of any user.

        Returns:
            ServiceResult with {"user": User, "listings": [active Listing], "reviews": [Review]}
        """
        try:
            user = User.objects.filter(pk=user_id, is_active=True).first()
            if user is None:
                raise NotFoundError(f"User {user_id} not found")

            listings = Listing.objects.filter(seller=user, status=Listing.STATUS_ACTIVE).order_by("-created_at")
            reviews = Review.objects.select_related("reviewer").filter(seller=user).order_by("-created_at")

            return service_ok({"user": user, "listings": list(listings), "reviews": list(reviews)})

        except Exception as e:
            return self.error_result(e, f"getting profile of user {user_id}")

    def get_my_profile(self, user) -> ServiceResult:
        try:
            return service_ok(User.objects.get(pk=user.pk))
        except User.DoesNotExist:
            return self.error_result(NotFoundError(f"User {user.pk} not found"), "getting own profile")
        except Exception as e:
            return self.error_result(e, f"getting profile of user {user.pk}")

    @BaseService.log_performance
    def update_my_profile(self, user, attrs: Dict) -> ServiceResult:
        """
        Update the caller's own presentation fields and buyer/seller type.

        Fields outside the editable set are ignored and logged; role,
        verification badge and reputation counters cannot be changed here.
        """
        try:
            changes = {}
            for field, value in (attrs or {}).items():
                if field == "user_type":
                    if value not in USER_TYPES:
                        raise ValidationError(f"user_type must be one of {USER_TYPES}")
                    changes[field] = value
                elif field in EDITABLE_PROFILE_FIELDS:
                    if value is None:
                        value = ""
                    if not isinstance(value, str):
                        raise ValidationError(f"{field} must be a string")
                    max_length = EDITABLE_PROFILE_FIELDS[field]
                    if max_length and len(value) > max_length:
                        raise ValidationError(f"{field} must be at most {max_length} characters")
                    changes[field] = value.strip()
                else:
                    logger.warning(f"User {user.pk} attempted to update non-editable profile field: {field}")

            if changes:
                User.objects.filter(pk=user.pk).update(**changes)
                self.logger.info(f"Profile updated for user {user.pk}. Updated fields: {sorted(changes)}")

            return service_ok(User.objects.get(pk=user.pk))

        except Exception as e:
            return self.error_result(e, f"updating profile of user {getattr(user, 'pk', None)}")

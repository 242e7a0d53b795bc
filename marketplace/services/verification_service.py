"""
VerificationService - Admin Verification Gate

Admins record authenticity outcomes on listings, confirm sellers and attach
expert endorsements. Verification is orthogonal to the sale lifecycle: a
listing can be verified, rejected or still pending in any sale status, and a
pending listing can still be bought.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from django.contrib.auth import get_user_model
from django.utils import timezone

from infrastructure.events import get_event_bus
from marketplace.domain.events import ListingVerifiedEvent
from marketplace.domain.exceptions import NotFoundError, ValidationError
from marketplace.models import Endorsement, Listing

from .base import BaseService, ServiceResult, service_ok


User = get_user_model()
logger = logging.getLogger(__name__)

ENDORSEMENT_FIELDS = ("expert_name", "expert_title", "expert_credentials", "endorsement_text", "authenticity_confirmed")


def parse_confidence_score(value) -> Optional[Decimal]:
    """Parse an optional 0-100 confidence score."""
    if value in (None, ""):
        return None
    try:
        score = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("confidence_score must be a number")
    if not score.is_finite() or score < 0 or score > 100:
        raise ValidationError("confidence_score must be between 0 and 100")
    return score.quantize(Decimal("0.01"))


class VerificationService(BaseService):
    """
    Admin-only trust operations.

    Every mutating method is gated with ``requires_admin``; non-admins get
    PERMISSION_DENIED before anything is read.
    """

    def __init__(self, event_bus=None):
        super().__init__()
        self.event_bus = event_bus or get_event_bus()

    @BaseService.log_performance
    @BaseService.requires_admin
    def verify(self, listing_id, actor, outcome: str, confidence_score=None) -> ServiceResult[Listing]:
        """
        Record a verification outcome for a listing.

        Args:
            listing_id: Listing UUID
            actor: Admin performing the verification
            outcome: One of "pending", "verified", "rejected"
            confidence_score: Optional 0-100 score; stored only with "verified"

        Returns:
            ServiceResult with the updated Listing
        """
        try:
            if outcome not in dict(Listing.VERIFICATION_CHOICES):
                raise ValidationError(f"outcome must be one of {[c[0] for c in Listing.VERIFICATION_CHOICES]}")
            score = parse_confidence_score(confidence_score)

            changes = {"verification_status": outcome, "updated_at": timezone.now()}
            if outcome == Listing.VERIFICATION_VERIFIED and score is not None:
                changes["ai_confidence_score"] = score

            # Applies in every sale state
            if not Listing.objects.filter(pk=listing_id).update(**changes):
                raise NotFoundError(f"Listing {listing_id} not found")

            listing = Listing.objects.get(pk=listing_id)
            ListingVerifiedEvent(
                listing_id=str(listing.id),
                outcome=outcome,
                confidence_score=str(changes["ai_confidence_score"]) if "ai_confidence_score" in changes else None,
            ).publish(self.event_bus)

            self.logger.info(f"Listing {listing_id} verification set to {outcome} by admin {actor.pk}")
            return service_ok(listing)

        except Exception as e:
            return self.error_result(e, f"verifying listing {listing_id}")

    @BaseService.log_performance
    @BaseService.requires_admin
    def list_pending(self, actor) -> ServiceResult[List[Listing]]:
        """Listings awaiting verification, oldest first (a review queue)."""
        try:
            queryset = (
                Listing.objects.select_related("seller")
                .filter(verification_status=Listing.VERIFICATION_PENDING)
                .exclude(status=Listing.STATUS_DRAFT)
                .order_by("created_at")
            )
            return service_ok(list(queryset))
        except Exception as e:
            return self.error_result(e, "listing pending verifications")

    @BaseService.log_performance
    @BaseService.requires_admin
    def verify_seller(self, user_id, actor, verified: bool = True) -> ServiceResult:
        """Grant or revoke the verified-seller badge."""
        try:
            if not User.objects.filter(pk=user_id).update(is_verified_seller=bool(verified)):
                raise NotFoundError(f"User {user_id} not found")

            self.logger.info(f"Seller {user_id} verified={bool(verified)} by admin {actor.pk}")
            return service_ok(User.objects.get(pk=user_id))

        except Exception as e:
            return self.error_result(e, f"verifying seller {user_id}")

    @BaseService.log_performance
    @BaseService.requires_admin
    def add_endorsement(self, listing_id, actor, attrs: Dict) -> ServiceResult[Endorsement]:
        """Attach an expert endorsement to a listing."""
        try:
            data = {key: attrs[key] for key in ENDORSEMENT_FIELDS if key in attrs}
            if not str(data.get("expert_name") or "").strip():
                raise ValidationError("expert_name is required")
            if not str(data.get("endorsement_text") or "").strip():
                raise ValidationError("endorsement_text is required")

            try:
                listing = Listing.objects.get(pk=listing_id)
            except Listing.DoesNotExist:
                raise NotFoundError(f"Listing {listing_id} not found")

            endorsement = Endorsement.objects.create(listing=listing, recorded_by=actor, **data)
            self.logger.info(f"Endorsement {endorsement.id} by {endorsement.expert_name} added to listing {listing_id}")
            return service_ok(endorsement)

        except Exception as e:
            return self.error_result(e, f"adding endorsement to listing {listing_id}")

    @BaseService.log_performance
    def list_endorsements(self, listing_id) -> ServiceResult[List[Endorsement]]:
        try:
            if not Listing.objects.filter(pk=listing_id).exists():
                raise NotFoundError(f"Listing {listing_id} not found")
            return service_ok(list(Endorsement.objects.filter(listing_id=listing_id).order_by("-created_at")))
        except Exception as e:
            return self.error_result(e, f"listing endorsements of listing {listing_id}")

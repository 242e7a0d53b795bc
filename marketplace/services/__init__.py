"""
Marketplace Service Layer

All business logic for the marketplace lives here. Views, tasks and event
listeners call these services; none of them touch the models directly.

Services:
- ListingService: Listing lifecycle, browsing, view tracking, provenance
- TransactionService: Purchase / escrow / delivery state machine
- ReviewService: Reviews and verified purchases
- ReputationService: Rating aggregates for listings and sellers
- FavoriteService: Favorites and the favorite counter
- ProfileService: Public seller profiles and self-service profile edits
- VerificationService: Admin verification gate and endorsements
- StatsService: Admin dashboard figures

Usage:
    from infrastructure.container import container

    result = container.transaction_service().initiate(listing_id, request.user)

    if result.ok:
        tx = result.value
    else:
        error = result.error
"""

from .base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from .favorite_service import FavoriteService
from .listing_service import ListingService
from .profile_service import ProfileService
from .reputation_service import ReputationService
from .review_service import ReviewService
from .stats_service import StatsService
from .transaction_service import TransactionService, calculate_platform_fee
from .verification_service import VerificationService


__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Helper functions
    "service_ok",
    "service_err",
    "calculate_platform_fee",
    # Error codes
    "ErrorCodes",
    # Services
    "FavoriteService",
    "ListingService",
    "ProfileService",
    "ReputationService",
    "ReviewService",
    "StatsService",
    "TransactionService",
    "VerificationService",
]

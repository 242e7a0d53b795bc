# Marketplace API Serializers

# Import response serializers for API documentation
from .response_serializers import (
    ErrorResponseSerializer,
    FavoriteStateResponseSerializer,
    ListingPageResponseSerializer,
    RatingDistributionResponseSerializer,
    StatsResponseSerializer,
    VerifyListingRequestSerializer,
    VerifySellerRequestSerializer,
)


__all__ = [
    "ErrorResponseSerializer",
    "FavoriteStateResponseSerializer",
    "ListingPageResponseSerializer",
    "RatingDistributionResponseSerializer",
    "StatsResponseSerializer",
    "VerifyListingRequestSerializer",
    "VerifySellerRequestSerializer",
]

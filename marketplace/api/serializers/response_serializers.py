"""
Response Serializers for Marketplace API Documentation

These serializers define the structure of API responses for OpenAPI schema generation.
Request serializers in this module are also used to validate admin request bodies.
"""

from rest_framework import serializers

# ===== Common Response Serializers =====


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    error = serializers.CharField(help_text="Error code identifier")
    detail = serializers.CharField(help_text="Human-readable error message")
    retryable = serializers.BooleanField(help_text="Whether retrying the same request may succeed")


# ===== Listing Response Serializers =====


class ListingPageResponseSerializer(serializers.Serializer):
    """Limit/offset page of listings"""

    count = serializers.IntegerField(help_text="Total number of matching listings")
    limit = serializers.IntegerField(help_text="Page size")
    offset = serializers.IntegerField(help_text="Index of the first result")
    results = serializers.ListField(
        child=serializers.DictField(), help_text="List of listings (see ListingListSerializer schema)"
    )


class FavoriteStateResponseSerializer(serializers.Serializer):
    """Favorite state after add/remove"""

    favorited = serializers.BooleanField(help_text="Whether the listing is now a favorite of the caller")
    favorite_count = serializers.IntegerField(help_text="Number of users who favorited the listing")


class RatingDistributionResponseSerializer(serializers.Serializer):
    """Reviews per star level"""

    distribution = serializers.DictField(child=serializers.IntegerField(), help_text="Star (1-5) to review count")


# ===== Admin Request Serializers =====


class VerifyListingRequestSerializer(serializers.Serializer):
    """Request body for recording a verification outcome"""

    outcome = serializers.ChoiceField(choices=["pending", "verified", "rejected"], help_text="Verification outcome")
    confidence_score = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        required=False,
        allow_null=True,
        help_text="0-100 confidence; stored only with outcome 'verified'",
    )


class VerifySellerRequestSerializer(serializers.Serializer):
    """Request body for granting or revoking the verified-seller badge"""

    verified = serializers.BooleanField(default=True, help_text="New badge state")


# ===== Stats Response Serializers =====


class StatsResponseSerializer(serializers.Serializer):
    """Marketplace dashboard figures"""

    listings = serializers.DictField(help_text="Active count, total value, average price, counts by status")
    users = serializers.DictField(help_text="Total users, sellers, verified sellers")
    transactions = serializers.DictField(help_text="Completed count, volume, platform fees, live count")

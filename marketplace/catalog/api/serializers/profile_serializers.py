from rest_framework import serializers

from marketplace.catalog.api.serializers.listing_serializers import ListingListSerializer
from marketplace.catalog.api.serializers.review_serializers import ReviewSerializer
from marketplace.catalog.api.serializers.user_serializers import PublicProfileUserSerializer


class PublicProfileSerializer(serializers.Serializer):
    """A user's public page: reputation, what they have on sale, what buyers said"""

    user = PublicProfileUserSerializer()
    listings = ListingListSerializer(many=True)
    reviews = ReviewSerializer(many=True)

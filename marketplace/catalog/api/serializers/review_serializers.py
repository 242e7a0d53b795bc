from rest_framework import serializers

from marketplace.catalog.api.serializers.user_serializers import MinimalUserSerializer
from marketplace.catalog.domain.models.interaction import Review


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = MinimalUserSerializer(read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "listing",
            "seller",
            "reviewer",
            "transaction",
            "rating",
            "title",
            "content",
            "is_verified_purchase",
            "created_at",
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    listing_id = serializers.UUIDField(required=False, allow_null=True)
    seller_id = serializers.UUIDField(required=False, allow_null=True)
    transaction_id = serializers.UUIDField(required=False, allow_null=True)
    rating = serializers.IntegerField()
    title = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    content = serializers.CharField(required=False, allow_blank=True, default="")

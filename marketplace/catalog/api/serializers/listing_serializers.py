from rest_framework import serializers

from marketplace.catalog.api.serializers.user_serializers import MinimalUserSerializer, SellerSummarySerializer
from marketplace.catalog.domain.models.interaction import Endorsement
from marketplace.catalog.domain.models.listing import Listing, ProvenanceEvent


class ListingListSerializer(serializers.ModelSerializer):
    seller = MinimalUserSerializer(read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "seller",
            "title",
            "artist_name",
            "medium",
            "style",
            "primary_image_url",
            "price",
            "currency",
            "status",
            "verification_status",
            "favorite_count",
            "average_rating",
            "total_reviews",
            "created_at",
        ]
        read_only_fields = fields


class ListingDetailSerializer(serializers.ModelSerializer):
    seller = SellerSummarySerializer(read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "seller",
            "title",
            "description",
            "artist_name",
            "artist_bio",
            "medium",
            "style",
            "dimensions",
            "year_created",
            "primary_image_url",
            "price",
            "currency",
            "status",
            "verification_status",
            "ai_confidence_score",
            "view_count",
            "favorite_count",
            "average_rating",
            "total_reviews",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ListingWriteSerializer(serializers.Serializer):
    """
    Request body for creating or editing a listing.

    Only shape is checked here; business rules (positive price, editable
    statuses) are enforced by ListingService.
    """

    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    artist_name = serializers.CharField(max_length=255, required=False)
    artist_bio = serializers.CharField(required=False, allow_blank=True)
    medium = serializers.CharField(max_length=100, required=False, allow_blank=True)
    style = serializers.CharField(max_length=100, required=False, allow_blank=True)
    dimensions = serializers.CharField(max_length=100, required=False, allow_blank=True)
    year_created = serializers.IntegerField(required=False, allow_null=True)
    primary_image_url = serializers.URLField(max_length=500, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    currency = serializers.CharField(max_length=3, required=False)


class ProvenanceEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProvenanceEvent
        fields = [
            "id",
            "event_type",
            "event_date",
            "description",
            "location",
            "verified_by",
            "document_url",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]


class EndorsementSerializer(serializers.ModelSerializer):
    class Meta:
        model = Endorsement
        fields = [
            "id",
            "expert_name",
            "expert_title",
            "expert_credentials",
            "endorsement_text",
            "authenticity_confirmed",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]

from django.contrib.auth import get_user_model
from rest_framework import serializers


User = get_user_model()


class MinimalUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "username"]
        read_only_fields = ["id", "username"]


class SellerSummarySerializer(serializers.ModelSerializer):
    """Public seller card shown next to listings and reviews"""

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "gallery_name",
            "is_verified_seller",
            "average_rating",
            "total_reviews",
            "total_sales",
        ]
        read_only_fields = fields


class PublicProfileUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "first_name",
            "last_name",
            "bio",
            "gallery_name",
            "user_type",
            "is_verified_seller",
            "total_sales",
            "total_purchases",
            "average_rating",
            "total_reviews",
            "date_joined",
        ]
        read_only_fields = fields


class MyProfileSerializer(PublicProfileUserSerializer):
    """The caller's own profile, including private account fields"""

    class Meta(PublicProfileUserSerializer.Meta):
        fields = PublicProfileUserSerializer.Meta.fields + ["email", "role"]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.Serializer):
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=30)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=30)
    bio = serializers.CharField(required=False, allow_blank=True)
    gallery_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    user_type = serializers.ChoiceField(choices=User.USER_TYPE_CHOICES, required=False)

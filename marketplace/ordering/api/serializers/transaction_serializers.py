from rest_framework import serializers

from marketplace.catalog.api.serializers.listing_serializers import ListingListSerializer
from marketplace.catalog.api.serializers.user_serializers import MinimalUserSerializer
from marketplace.ordering.domain.models.transaction import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    listing = ListingListSerializer(read_only=True)
    buyer = MinimalUserSerializer(read_only=True)
    seller = MinimalUserSerializer(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "listing",
            "buyer",
            "seller",
            "amount",
            "platform_fee",
            "currency",
            "status",
            "escrow_status",
            "delivery_status",
            "shipping_address",
            "payment_reference",
            "cancellation_reason",
            "created_at",
            "updated_at",
            "paid_at",
            "shipped_at",
            "delivery_confirmed_at",
            "completed_at",
            "cancelled_at",
        ]
        read_only_fields = fields


class InitiateTransactionSerializer(serializers.Serializer):
    listing_id = serializers.UUIDField()
    shipping_address = serializers.DictField(required=False, default=dict)


class MarkPaidSerializer(serializers.Serializer):
    payment_reference = serializers.CharField(max_length=255, required=False, allow_blank=True)


class DeliveryUpdateSerializer(serializers.Serializer):
    delivery_status = serializers.ChoiceField(
        choices=[Transaction.DELIVERY_IN_TRANSIT, Transaction.DELIVERY_DELIVERED]
    )


class CancelTransactionSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")

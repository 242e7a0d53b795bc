"""
Admin dashboard endpoints: marketplace stats, verification queue, seller badges.

IsAdminRole rejects non-admins at the view; the services check again so the
same guarantees hold for tasks and shell use.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer, StatsResponseSerializer, VerifySellerRequestSerializer
from marketplace.api.views.responses import error_response
from marketplace.catalog.api.serializers.listing_serializers import ListingListSerializer
from marketplace.catalog.api.serializers.user_serializers import SellerSummarySerializer
from marketplace.permissions import IsAdminRole


class AdminViewSet(viewsets.ViewSet):
    permission_classes = [IsAdminRole]

    @extend_schema(responses={200: StatsResponseSerializer, 403: ErrorResponseSerializer})
    @action(detail=False, methods=["get"])
    def stats(self, request):
        result = container.stats_service().marketplace_stats(request.user)
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(responses={200: ListingListSerializer(many=True), 403: ErrorResponseSerializer})
    @action(detail=False, methods=["get"], url_path="pending-verifications")
    def pending_verifications(self, request):
        result = container.verification_service().list_pending(request.user)
        if not result.ok:
            return error_response(result)
        return Response(ListingListSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        request=VerifySellerRequestSerializer,
        responses={200: SellerSummarySerializer, 404: ErrorResponseSerializer},
    )
    @action(detail=False, methods=["post"], url_path=r"sellers/(?P<user_id>[^/.]+)/verify")
    def verify_seller(self, request, user_id=None):
        serializer = VerifySellerRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = container.verification_service().verify_seller(
            user_id, request.user, serializer.validated_data["verified"]
        )
        if not result.ok:
            return error_response(result)
        return Response(SellerSummarySerializer(result.value).data, status=status.HTTP_200_OK)

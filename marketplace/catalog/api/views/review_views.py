from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer
from marketplace.api.views.responses import error_response
from marketplace.catalog.api.serializers.review_serializers import ReviewCreateSerializer, ReviewSerializer
from marketplace.permissions import IsAuthenticatedForWrites
from marketplace.services import ReviewService


class ReviewViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticatedForWrites]

    def get_service(self) -> ReviewService:
        return container.review_service()

    def get_permissions(self):
        if self.action == "create":
            return [IsAuthenticated()]
        return super().get_permissions()

    @extend_schema(
        parameters=[
            OpenApiParameter("listing_id", str, required=False),
            OpenApiParameter("seller_id", str, required=False),
            OpenApiParameter("verified_only", bool, required=False),
        ],
        responses={200: ReviewSerializer(many=True), 400: ErrorResponseSerializer},
    )
    def list(self, request):
        service = self.get_service()

        listing_id = request.query_params.get("listing_id")
        seller_id = request.query_params.get("seller_id")

        if listing_id:
            result = service.list_for_listing(listing_id)
        elif seller_id:
            verified_only = request.query_params.get("verified_only", "").lower() in ("1", "true", "yes")
            result = service.list_for_seller(seller_id, verified_only=verified_only)
        else:
            return Response(
                {"error": "validation_error", "detail": "listing_id or seller_id is required", "retryable": False},
                status=status.HTTP_400_BAD_REQUEST,
            )

        if not result.ok:
            return error_response(result)
        return Response(ReviewSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(request=ReviewCreateSerializer, responses={201: ReviewSerializer, 400: ErrorResponseSerializer})
    def create(self, request):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_service().create(
            request.user,
            rating=data["rating"],
            listing_id=data.get("listing_id"),
            seller_id=data.get("seller_id"),
            transaction_id=data.get("transaction_id"),
            title=data.get("title", ""),
            content=data.get("content", ""),
        )

        if not result.ok:
            return error_response(result)
        return Response(ReviewSerializer(result.value).data, status=status.HTTP_201_CREATED)

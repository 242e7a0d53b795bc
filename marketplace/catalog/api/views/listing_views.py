import logging

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.serializers import (
    ErrorResponseSerializer,
    FavoriteStateResponseSerializer,
    ListingPageResponseSerializer,
    RatingDistributionResponseSerializer,
    VerifyListingRequestSerializer,
)
from marketplace.api.views.responses import error_response
from marketplace.catalog.api.serializers.listing_serializers import (
    EndorsementSerializer,
    ListingDetailSerializer,
    ListingListSerializer,
    ListingWriteSerializer,
    ProvenanceEventSerializer,
)
from marketplace.catalog.api.serializers.review_serializers import ReviewSerializer
from marketplace.permissions import IsAuthenticatedForWrites
from marketplace.services import ListingService


logger = logging.getLogger(__name__)

LIST_FILTERS = (
    "status",
    "seller_id",
    "style",
    "medium",
    "min_price",
    "max_price",
    "search",
    "verification_status",
    "order_by",
    "limit",
    "offset",
)


class ListingViewSet(viewsets.ViewSet):
    """
    Listings: browsing, seller lifecycle actions, provenance, endorsements,
    favorites and reviews. All business rules live in the services.
    """

    permission_classes = [IsAuthenticatedForWrites]

    def get_service(self) -> ListingService:
        return container.listing_service()

    def get_permissions(self):
        if self.action in ["create", "partial_update", "mine", "activate", "archive", "favorite", "unfavorite"]:
            return [IsAuthenticated()]
        return super().get_permissions()

    @extend_schema(
        parameters=[OpenApiParameter(name, str, required=False) for name in LIST_FILTERS],
        responses={200: ListingPageResponseSerializer, 400: ErrorResponseSerializer},
    )
    def list(self, request):
        filters = {key: request.query_params.get(key) for key in LIST_FILTERS if request.query_params.get(key)}
        result = self.get_service().list(filters)
        if not result.ok:
            return error_response(result)

        page = result.value
        page["results"] = ListingListSerializer(page["results"], many=True).data
        return Response(page, status=status.HTTP_200_OK)

    @extend_schema(responses={200: ListingDetailSerializer, 404: ErrorResponseSerializer})
    def retrieve(self, request, pk=None):
        result = self.get_service().get_by_id(pk, track_view=True)
        if not result.ok:
            return error_response(result)

        data = ListingDetailSerializer(result.value).data
        data["is_favorited"] = container.favorite_service().is_favorited(request.user, pk)
        return Response(data, status=status.HTTP_200_OK)

    @extend_schema(
        request=ListingWriteSerializer, responses={201: ListingDetailSerializer, 400: ErrorResponseSerializer}
    )
    def create(self, request):
        serializer = ListingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().create(request.user, serializer.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(ListingDetailSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=ListingWriteSerializer, responses={200: ListingDetailSerializer, 409: ErrorResponseSerializer}
    )
    def partial_update(self, request, pk=None):
        serializer = ListingWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().update(pk, request.user, serializer.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(ListingDetailSerializer(result.value).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"])
    def mine(self, request):
        """The caller's own listings in every status."""
        result = self.get_service().list_for_seller(request.user.pk)
        if not result.ok:
            return error_response(result)
        return Response(ListingListSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: ListingDetailSerializer, 409: ErrorResponseSerializer})
    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):
        result = self.get_service().activate(pk, request.user)
        if not result.ok:
            return error_response(result)
        return Response(ListingDetailSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: ListingDetailSerializer, 409: ErrorResponseSerializer})
    @action(detail=True, methods=["post"])
    def archive(self, request, pk=None):
        result = self.get_service().archive(pk, request.user)
        if not result.ok:
            return error_response(result)
        return Response(ListingDetailSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        request=VerifyListingRequestSerializer,
        responses={200: ListingDetailSerializer, 403: ErrorResponseSerializer},
    )
    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated])
    def verify(self, request, pk=None):
        serializer = VerifyListingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().set_verification(
            pk,
            request.user,
            serializer.validated_data["outcome"],
            serializer.validated_data.get("confidence_score"),
        )
        if not result.ok:
            return error_response(result)
        return Response(ListingDetailSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(request=ProvenanceEventSerializer, responses={200: ProvenanceEventSerializer(many=True)})
    @action(detail=True, methods=["get", "post"])
    def provenance(self, request, pk=None):
        if request.method == "POST":
            serializer = ProvenanceEventSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)

            result = self.get_service().add_provenance_event(pk, request.user, serializer.validated_data)
            if not result.ok:
                return error_response(result)
            return Response(ProvenanceEventSerializer(result.value).data, status=status.HTTP_201_CREATED)

        result = self.get_service().list_provenance(pk)
        if not result.ok:
            return error_response(result)
        return Response(ProvenanceEventSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(request=EndorsementSerializer, responses={200: EndorsementSerializer(many=True)})
    @action(detail=True, methods=["get", "post"])
    def endorsements(self, request, pk=None):
        service = container.verification_service()

        if request.method == "POST":
            serializer = EndorsementSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)

            result = service.add_endorsement(pk, request.user, serializer.validated_data)
            if not result.ok:
                return error_response(result)
            return Response(EndorsementSerializer(result.value).data, status=status.HTTP_201_CREATED)

        result = service.list_endorsements(pk)
        if not result.ok:
            return error_response(result)
        return Response(EndorsementSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: FavoriteStateResponseSerializer, 404: ErrorResponseSerializer})
    @action(detail=True, methods=["post"])
    def favorite(self, request, pk=None):
        result = container.favorite_service().add(request.user, pk)
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: FavoriteStateResponseSerializer, 404: ErrorResponseSerializer})
    @action(detail=True, methods=["post"])
    def unfavorite(self, request, pk=None):
        result = container.favorite_service().remove(request.user, pk)
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(responses={200: ReviewSerializer(many=True), 404: ErrorResponseSerializer})
    @action(detail=True, methods=["get"])
    def reviews(self, request, pk=None):
        result = container.review_service().list_for_listing(pk)
        if not result.ok:
            return error_response(result)
        return Response(ReviewSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(responses={200: RatingDistributionResponseSerializer, 404: ErrorResponseSerializer})
    @action(detail=True, methods=["get"], url_path="rating-distribution")
    def rating_distribution(self, request, pk=None):
        result = container.reputation_service().rating_distribution(pk)
        if not result.ok:
            return error_response(result)
        return Response({"distribution": result.value}, status=status.HTTP_200_OK)

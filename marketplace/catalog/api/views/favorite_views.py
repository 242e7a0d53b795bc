from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.views.responses import error_response
from marketplace.catalog.api.serializers.listing_serializers import ListingListSerializer


class FavoriteViewSet(viewsets.ViewSet):
    """The caller's favorited listings. Adding/removing lives on the listing routes."""

    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: ListingListSerializer(many=True)})
    def list(self, request):
        result = container.favorite_service().list_for_user(request.user)
        if not result.ok:
            return error_response(result)
        return Response(ListingListSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer
from marketplace.api.views.responses import error_response
from marketplace.catalog.api.serializers.profile_serializers import PublicProfileSerializer
from marketplace.catalog.api.serializers.user_serializers import MyProfileSerializer, ProfileUpdateSerializer


class ProfileViewSet(viewsets.ViewSet):
    """
    Public user profiles, and the caller's own profile at /profiles/me/
    """

    permission_classes = [AllowAny]

    def get_permissions(self):
        if self.action == "me":
            return [IsAuthenticated()]
        return super().get_permissions()

    @extend_schema(responses={200: PublicProfileSerializer, 404: ErrorResponseSerializer})
    def retrieve(self, request, pk=None):
        result = container.profile_service().get_public_profile(pk)
        if not result.ok:
            return error_response(result)
        return Response(PublicProfileSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        methods=["GET"],
        responses={200: MyProfileSerializer},
    )
    @extend_schema(
        methods=["PATCH"],
        request=ProfileUpdateSerializer,
        responses={200: MyProfileSerializer, 400: ErrorResponseSerializer},
    )
    @action(detail=False, methods=["get", "patch"])
    def me(self, request):
        service = container.profile_service()

        if request.method == "GET":
            result = service.get_my_profile(request.user)
        else:
            serializer = ProfileUpdateSerializer(data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            result = service.update_my_profile(request.user, serializer.validated_data)

        if not result.ok:
            return error_response(result)
        return Response(MyProfileSerializer(result.value).data, status=status.HTTP_200_OK)

import logging

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer
from marketplace.api.views.responses import error_response
from marketplace.ordering.api.serializers.transaction_serializers import (
    CancelTransactionSerializer,
    DeliveryUpdateSerializer,
    InitiateTransactionSerializer,
    MarkPaidSerializer,
    TransactionSerializer,
)
from marketplace.services import TransactionService


logger = logging.getLogger(__name__)

STATE_RESPONSES = {
    200: TransactionSerializer,
    403: ErrorResponseSerializer,
    404: ErrorResponseSerializer,
    409: ErrorResponseSerializer,
}


class TransactionViewSet(viewsets.ViewSet):
    """
    Purchase lifecycle: initiate, pay, ship, track delivery, confirm, cancel.

    Every action returns the transaction in its new state, or an error whose
    HTTP status reflects the failure kind (409 for state conflicts).
    """

    permission_classes = [IsAuthenticated]

    def get_service(self) -> TransactionService:
        return container.transaction_service()

    def _render(self, result, success_status=status.HTTP_200_OK):
        if not result.ok:
            return error_response(result)
        return Response(TransactionSerializer(result.value).data, status=success_status)

    @extend_schema(
        parameters=[
            OpenApiParameter("role", str, required=False, enum=["buyer", "seller"]),
            OpenApiParameter("status", str, required=False),
            OpenApiParameter("limit", int, required=False),
            OpenApiParameter("offset", int, required=False),
        ],
        responses={200: TransactionSerializer(many=True), 400: ErrorResponseSerializer},
    )
    def list(self, request):
        result = self.get_service().list_for_user(
            request.user,
            role=request.query_params.get("role", "buyer"),
            status=request.query_params.get("status"),
            limit=request.query_params.get("limit"),
            offset=request.query_params.get("offset", 0),
        )
        if not result.ok:
            return error_response(result)
        return Response(TransactionSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(responses=STATE_RESPONSES)
    def retrieve(self, request, pk=None):
        return self._render(self.get_service().get_by_id(pk, request.user))

    @extend_schema(
        request=InitiateTransactionSerializer,
        responses={201: TransactionSerializer, 404: ErrorResponseSerializer, 409: ErrorResponseSerializer},
    )
    def create(self, request):
        serializer = InitiateTransactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().initiate(
            serializer.validated_data["listing_id"],
            request.user,
            shipping_address=serializer.validated_data.get("shipping_address"),
        )
        return self._render(result, status.HTTP_201_CREATED)

    @extend_schema(request=MarkPaidSerializer, responses=STATE_RESPONSES)
    @action(detail=True, methods=["post"])
    def pay(self, request, pk=None):
        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().mark_paid(
            pk, request.user, payment_reference=serializer.validated_data.get("payment_reference")
        )
        return self._render(result)

    @extend_schema(request=None, responses=STATE_RESPONSES)
    @action(detail=True, methods=["post"])
    def ship(self, request, pk=None):
        return self._render(self.get_service().ship(pk, request.user))

    @extend_schema(request=DeliveryUpdateSerializer, responses=STATE_RESPONSES)
    @action(detail=True, methods=["post"])
    def delivery(self, request, pk=None):
        serializer = DeliveryUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().advance_delivery(pk, request.user, serializer.validated_data["delivery_status"])
        return self._render(result)

    @extend_schema(request=None, responses=STATE_RESPONSES)
    @action(detail=True, methods=["post"], url_path="confirm-delivery")
    def confirm_delivery(self, request, pk=None):
        return self._render(self.get_service().confirm_delivery(pk, request.user))

    @extend_schema(request=CancelTransactionSerializer, responses=STATE_RESPONSES)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = CancelTransactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return self._render(self.get_service().cancel(pk, request.user, serializer.validated_data.get("reason", "")))

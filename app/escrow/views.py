"""
API views for the escrow lifecycle.

Provides:
- EscrowPaymentView: create the hold / read escrow status
- PhotoDeliveryView: deliver photos / read the delivery
- PhotoDownloadView: register a guest download
- ConfirmReceiptView: guest confirms receipt (or reports a problem)
- DisputeView: open / read a dispute
- DeliveryServiceListView: external file-sharing services

Every response body is the service result envelope:
    {"success": true, "data": {...}}
    {"success": false, "error": "...", "error_code": "NOT_ELIGIBLE"}
with the HTTP status derived from the error kind.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult

from escrow.directory import list_services
from escrow.serializers import (
    ConfirmReceiptSerializer,
    CreateDisputeSerializer,
    CreateHoldSerializer,
    DeliverPhotosSerializer,
    DisputeSerializer,
    EscrowStatusSerializer,
    ExternalDeliveryServiceSerializer,
    HoldSerializer,
    PhotoDeliverySerializer,
    ReceiptSerializer,
)
from escrow.services import (
    DeliveryTracker,
    DisputeService,
    EscrowService,
)

ERROR_RESPONSES = {
    400: OpenApiResponse(description="VALIDATION_ERROR"),
    401: OpenApiResponse(description="AUTHENTICATION_REQUIRED"),
    403: OpenApiResponse(description="AUTHORIZATION_DENIED"),
    404: OpenApiResponse(description="NOT_FOUND"),
}


class EscrowAPIView(APIView):
    """Base view translating ServiceResults into HTTP responses."""

    permission_classes = [IsAuthenticated]

    @staticmethod
    def respond(
        result: ServiceResult,
        serializer_class=None,
        success_status: int = status.HTTP_200_OK,
    ) -> Response:
        if not result.success:
            return Response(result.to_response(), status=result.http_status)
        data = serializer_class(result.data).data if serializer_class else result.data
        return Response({"success": True, "data": data}, status=success_status)

    @staticmethod
    def invalid(serializer) -> Response:
        result = ServiceResult.failure(
            "Invalid request",
            error_code="VALIDATION_ERROR",
            errors=serializer.errors,
            http_status=status.HTTP_400_BAD_REQUEST,
        )
        return Response(result.to_response(), status=result.http_status)


class EscrowPaymentView(EscrowAPIView):
    """
    POST /api/v1/escrow/bookings/<booking_id>/escrow/
        Guest places the payment hold. Returns the client secret used to
        authorize it with Stripe.

    GET /api/v1/escrow/bookings/<booking_id>/escrow/
        Escrow status with delivery, dispute and review.
    """

    @extend_schema(
        operation_id="create_escrow_payment",
        summary="Create escrow hold",
        request=CreateHoldSerializer,
        responses={
            201: OpenApiResponse(response=HoldSerializer, description="Hold created"),
            409: OpenApiResponse(description="ALREADY_PROCESSED"),
            502: OpenApiResponse(description="GATEWAY_ERROR"),
            **ERROR_RESPONSES,
        },
        tags=["Escrow"],
    )
    def post(self, request, booking_id):
        serializer = CreateHoldSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid(serializer)

        result = EscrowService.create_hold(
            booking_id,
            guest_contact=serializer.validated_data.get("guest_contact") or None,
            actor=request.user,
        )
        return self.respond(result, HoldSerializer, status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="get_escrow_payment_status",
        summary="Get escrow status",
        responses={
            200: OpenApiResponse(response=EscrowStatusSerializer),
            **ERROR_RESPONSES,
        },
        tags=["Escrow"],
    )
    def get(self, request, booking_id):
        result = EscrowService.get_status(booking_id, actor=request.user)
        return self.respond(result, EscrowStatusSerializer)


class PhotoDeliveryView(EscrowAPIView):
    """
    POST /api/v1/escrow/bookings/<booking_id>/delivery/
        Photographer delivers (or re-delivers) the photos.

    GET /api/v1/escrow/bookings/<booking_id>/delivery/
    """

    @extend_schema(
        operation_id="deliver_photos",
        summary="Deliver photos",
        request=DeliverPhotosSerializer,
        responses={
            200: OpenApiResponse(response=PhotoDeliverySerializer),
            409: OpenApiResponse(description="NOT_ELIGIBLE or ALREADY_CONFIRMED"),
            **ERROR_RESPONSES,
        },
        tags=["Escrow - Delivery"],
    )
    def post(self, request, booking_id):
        serializer = DeliverPhotosSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid(serializer)

        result = DeliveryTracker.record_delivery(
            booking_id,
            serializer.to_delivery_data(),
            actor=request.user,
        )
        return self.respond(result, PhotoDeliverySerializer)

    @extend_schema(
        operation_id="get_photo_delivery",
        summary="Get photo delivery",
        responses={200: OpenApiResponse(response=PhotoDeliverySerializer), **ERROR_RESPONSES},
        tags=["Escrow - Delivery"],
    )
    def get(self, request, booking_id):
        result = DeliveryTracker.get_delivery(booking_id, actor=request.user)
        return self.respond(result, PhotoDeliverySerializer)


class PhotoDownloadView(EscrowAPIView):
    """POST /api/v1/escrow/bookings/<booking_id>/delivery/downloads/"""

    @extend_schema(
        operation_id="register_photo_download",
        summary="Register a download",
        request=None,
        responses={
            200: OpenApiResponse(response=PhotoDeliverySerializer),
            409: OpenApiResponse(description="NOT_ELIGIBLE"),
            **ERROR_RESPONSES,
        },
        tags=["Escrow - Delivery"],
    )
    def post(self, request, booking_id):
        result = DeliveryTracker.register_download(booking_id, actor=request.user)
        return self.respond(result, PhotoDeliverySerializer)


class ConfirmReceiptView(EscrowAPIView):
    """
    POST /api/v1/escrow/bookings/<booking_id>/confirm/

    satisfied=true releases the payment to the photographer; satisfied=false
    freezes it for support. Both answer 200 with the outcome.
    """

    @extend_schema(
        operation_id="confirm_delivery_with_review",
        summary="Confirm receipt",
        request=ConfirmReceiptSerializer,
        responses={
            200: OpenApiResponse(response=ReceiptSerializer),
            409: OpenApiResponse(description="NOT_DELIVERABLE"),
            502: OpenApiResponse(description="GATEWAY_ERROR"),
            **ERROR_RESPONSES,
        },
        tags=["Escrow"],
    )
    def post(self, request, booking_id):
        serializer = ConfirmReceiptSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid(serializer)

        result = EscrowService.confirm_receipt(
            booking_id,
            satisfied=serializer.validated_data["satisfied"],
            review=serializer.to_review_data(),
            issues=serializer.validated_data.get("issues"),
            actor=request.user,
        )
        return self.respond(result, ReceiptSerializer)


class DisputeView(EscrowAPIView):
    """
    POST /api/v1/escrow/bookings/<booking_id>/dispute/
    GET  /api/v1/escrow/bookings/<booking_id>/dispute/
    """

    @extend_schema(
        operation_id="create_dispute",
        summary="Open a dispute",
        request=CreateDisputeSerializer,
        responses={
            201: OpenApiResponse(response=DisputeSerializer),
            409: OpenApiResponse(description="NOT_ELIGIBLE or ALREADY_PROCESSED"),
            **ERROR_RESPONSES,
        },
        tags=["Escrow - Disputes"],
    )
    def post(self, request, booking_id):
        serializer = CreateDisputeSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid(serializer)

        result = DisputeService.create_dispute(
            booking_id,
            serializer.to_dispute_data(),
            actor=request.user,
        )
        return self.respond(result, DisputeSerializer, status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="get_dispute",
        summary="Get dispute",
        responses={200: OpenApiResponse(response=DisputeSerializer), **ERROR_RESPONSES},
        tags=["Escrow - Disputes"],
    )
    def get(self, request, booking_id):
        result = DisputeService.get_dispute(booking_id, actor=request.user)
        return self.respond(result, DisputeSerializer)


class DeliveryServiceListView(EscrowAPIView):
    """GET /api/v1/escrow/delivery-services/"""

    @extend_schema(
        operation_id="list_delivery_services",
        summary="List external delivery services",
        responses={200: ExternalDeliveryServiceSerializer(many=True)},
        tags=["Escrow - Delivery"],
    )
    def get(self, request):
        services = ExternalDeliveryServiceSerializer(list_services(), many=True).data
        return Response({"success": True, "data": services})

import json
import logging
import math

from django.db.models import Count, Q, Sum
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.exceptions import SignatureError
from payments.models import Payment
from payments.serializers import (
    CancelSerializer,
    PaymentInitializeSerializer,
    PaymentListQuerySerializer,
    PaymentSerializer,
    RefundSerializer,
)
from payments.services import reconciler
from payments.services.paystack import PaystackConfig
from payments.services.signatures import verify_signature

logger = logging.getLogger(__name__)

PAYSTACK_SIGNATURE_HEADER = "HTTP_X_PAYSTACK_SIGNATURE"


def _payments_for(user):
    queryset = Payment.objects.select_related("booking", "user")
    if user.is_staff:
        return queryset
    return queryset.filter(user=user)


class PaymentInitializeView(APIView):
    """Create a payment for one of the caller's bookings."""

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PaymentInitializeSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if data["booking"] is None:
            raise NotFound("Booking not found.")

        payment = reconciler.initialize_payment(
            user=request.user,
            booking=data["booking"],
            amount=data["amount"],
            payment_method=data["payment_method"],
            currency=data["currency"],
            reference=data.get("reference"),
        )
        message = (
            "Cash payment initialized"
            if payment.payment_method == Payment.CASH
            else "Payment initialized successfully"
        )
        return Response(
            {"success": True, "message": message, "payment": PaymentSerializer(payment).data},
            status=status.HTTP_201_CREATED,
        )


class PaymentVerifyView(APIView):
    """Re-check a payment with Paystack; the client calls this after the redirect."""

    permission_classes = [IsAuthenticated]

    def post(self, request, reference, *args, **kwargs):
        payment = get_object_or_404(_payments_for(request.user), reference=reference)
        payment = reconciler.verify_payment(payment)
        return Response({"success": True, "payment": PaymentSerializer(payment).data})


class PaystackWebhookView(APIView):
    """Receive Paystack charge events. Acknowledges everything it can authenticate and parse."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        config = PaystackConfig.from_settings()
        if not config.is_configured:
            logger.error("Paystack secret key not configured; rejecting webhook.")
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        try:
            verify_signature(payload, request.META.get(PAYSTACK_SIGNATURE_HEADER), config.secret_key)
        except SignatureError as exc:
            logger.warning("Rejected Paystack webhook: %s", exc.detail)
            return Response({"detail": "Invalid signature."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            event = json.loads(payload)
        except (ValueError, UnicodeDecodeError):
            logger.warning("Invalid payload received on Paystack webhook.")
            return Response({"detail": "Malformed payload."}, status=status.HTTP_400_BAD_REQUEST)
        if not isinstance(event, dict) or not isinstance(event.get("data", {}), dict):
            logger.warning("Unexpected Paystack webhook shape.")
            return Response({"detail": "Malformed payload."}, status=status.HTTP_400_BAD_REQUEST)

        reconciler.handle_webhook_event(event)
        return Response({"status": "ok"}, status=status.HTTP_200_OK)


class PublicKeyView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        return Response({"public_key": PaystackConfig.from_settings().public_key})


class PaymentConfigStatusView(APIView):
    """Report which payment options the frontend may offer."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        config = PaystackConfig.from_settings()
        return Response(
            {
                "provider": Payment.PROVIDER_PAYSTACK,
                "configured": config.is_configured or config.use_stub,
                "stub": config.use_stub,
                "webhooks_enabled": config.is_configured,
                "supported_currencies": [code for code, _ in Payment.CURRENCIES],
                "supported_methods": [method for method, _ in Payment.METHODS],
            }
        )


class UserPaymentListView(APIView):
    """The caller's payments, newest first. The summary covers the same status and date filters."""

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        query = PaymentListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        page, limit = params["page"], params["limit"]

        payments = Payment.objects.filter(user=request.user).select_related("booking")
        if params.get("status"):
            payments = payments.filter(status=params["status"])
        if params.get("start_date"):
            payments = payments.filter(created_at__date__gte=params["start_date"])
        if params.get("end_date"):
            payments = payments.filter(created_at__date__lte=params["end_date"])

        total = payments.count()
        offset = (page - 1) * limit
        items = payments.order_by("-created_at")[offset:offset + limit]

        stats = payments.aggregate(
            total_payments=Count("id"),
            total_amount=Sum("amount"),
            completed_payments=Count("id", filter=Q(status=Payment.COMPLETED)),
            pending_payments=Count("id", filter=Q(status=Payment.PENDING)),
            failed_payments=Count("id", filter=Q(status=Payment.FAILED)),
        )
        stats["total_amount"] = str(stats["total_amount"] or 0)

        return Response(
            {
                "success": True,
                "payments": PaymentSerializer(items, many=True).data,
                "pagination": {
                    "current_page": page,
                    "total_pages": math.ceil(total / limit),
                    "total_items": total,
                    "has_next": page * limit < total,
                    "has_prev": page > 1,
                },
                "summary": stats,
            }
        )


class PaymentDetailView(generics.RetrieveAPIView):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return _payments_for(self.request.user)


class PaymentRefundView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request, pk, *args, **kwargs):
        payment = get_object_or_404(Payment, pk=pk)
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = reconciler.refund_payment(
            payment,
            amount=serializer.validated_data["amount"],
            reason=serializer.validated_data["reason"],
        )
        return Response(PaymentSerializer(payment).data)


class PaymentCancelView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request, pk, *args, **kwargs):
        payment = get_object_or_404(Payment, pk=pk)
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = reconciler.cancel_payment(payment, reason=serializer.validated_data["reason"])
        return Response(PaymentSerializer(payment).data)

# payments/views.py

"""
PAYCHANGU PAYMENT VIEWS

- POST /api/payments/initiate/            {order_id} | {booking_id} -> checkout_url
- GET  /api/payments/verify/?txRef=...    confirmation page polling
- POST /api/payments/paychangu/webhook/   signed provider callback

Both verify and webhook funnel into confirm_payment(), which re-verifies
with PayChangu and is idempotent.
"""

from __future__ import annotations

import json
import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from bookings.services.booking_service import get_booking_by_id
from common.errors import NotFoundError, ValidationError
from orders.services.order_service import get_order_by_id
from payments.models import Payment
from payments.serializers import InitiatePaymentSerializer, PaymentSerializer
from payments.services.paychangu import verify_paychangu_signature
from payments.services.payment_service import confirm_payment, initiate_payment
from permissions.roles import CAP_BOOKINGS_MANAGE, CAP_ORDERS_MANAGE, user_has_capability

logger = logging.getLogger(__name__)


class PublicPollThrottle(AnonRateThrottle):
    scope = "public_poll"


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


def _verification_payload(payment: Payment) -> dict:
    return {
        "success": True,
        "data": {
            "status": payment.status,
            "tx_ref": payment.tx_ref,
            "amount": str(payment.amount),
            "currency": payment.currency,
            "order_id": str(payment.order_id) if payment.order_id else None,
            "booking_id": str(payment.booking_id) if payment.booking_id else None,
            "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
        },
    }


class InitiatePaymentView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=InitiatePaymentSerializer,
        responses={
            201: PaymentSerializer,
            400: OpenApiResponse(description="Target not payable"),
            502: OpenApiResponse(description="PayChangu unavailable"),
        },
    )
    def post(self, request):
        serializer = InitiatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = request.user

        if data.get("order_id"):
            order = get_order_by_id(data["order_id"])
            if order.customer_id != user.id and not user_has_capability(user, CAP_ORDERS_MANAGE):
                raise NotFoundError("Order")
            payment = initiate_payment(order=order)
        else:
            booking = get_booking_by_id(data["booking_id"])
            if booking.customer_id != user.id and not user_has_capability(user, CAP_BOOKINGS_MANAGE):
                raise NotFoundError("Booking")
            payment = initiate_payment(booking=booking)

        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class VerifyPaymentView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicPollThrottle]

    @extend_schema(parameters=[OpenApiParameter("txRef", str, required=True)])
    def get(self, request):
        tx_ref = (request.query_params.get("txRef") or "").strip()
        if not tx_ref:
            raise ValidationError("txRef is required", "txRef")
        return Response(_verification_payload(confirm_payment(tx_ref)))


class PayChanguWebhookView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [WebhookThrottle]

    def post(self, request, *args, **kwargs):
        raw_body = request.body or b""
        signature = request.headers.get("Signature")

        if not verify_paychangu_signature(raw_body, signature):
            logger.warning("Invalid PayChangu signature")
            return Response({"ok": False, "detail": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            payload = json.loads(raw_body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, ValueError):
            return Response({"ok": False, "detail": "Invalid JSON"}, status=status.HTTP_400_BAD_REQUEST)
        if not isinstance(payload, dict):
            return Response({"ok": False, "detail": "Invalid JSON"}, status=status.HTTP_400_BAD_REQUEST)

        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        tx_ref = str(data.get("tx_ref") or "").strip()
        if not tx_ref:
            logger.warning("Webhook received without tx_ref")
            return Response({"ok": True, "detail": "No tx_ref"})

        if not Payment.objects.filter(tx_ref=tx_ref).exists():
            logger.warning("Unknown payment reference", extra={"tx_ref": tx_ref})
            return Response({"ok": True, "detail": "Unknown reference"})

        payment = confirm_payment(tx_ref)
        return Response({"ok": True, "status": payment.status})

# security/views.py

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from security.recaptcha import get_recaptcha_site_key, verify_recaptcha

logger = logging.getLogger(__name__)


class PublicWriteThrottle(AnonRateThrottle):
    scope = "public_write"


class RecaptchaVerifyInputSerializer(serializers.Serializer):
    token = serializers.CharField(required=False, allow_blank=True)


class RecaptchaVerifyView(APIView):
    """
    POST /api/auth/verify-recaptcha/

    The response shape is {"success": bool, "error"?: str}; it is consumed
    directly by the storefront forms.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(
        request=RecaptchaVerifyInputSerializer,
        responses={
            200: OpenApiResponse(description="Token verified"),
            400: OpenApiResponse(description="Missing or invalid token"),
        },
    )
    def post(self, request):
        token = (request.data or {}).get("token")
        if not token:
            return Response(
                {"success": False, "error": "reCAPTCHA token is required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            ok = verify_recaptcha(token)
        except Exception:
            logger.exception("reCAPTCHA verification crashed")
            return Response(
                {"success": False, "error": "Internal server error"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        if not ok:
            return Response(
                {"success": False, "error": "reCAPTCHA verification failed"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response({"success": True})


class RecaptchaSiteKeyView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(responses={200: OpenApiResponse(description="Public site key")})
    def get(self, request):
        return Response({"site_key": get_recaptcha_site_key()})

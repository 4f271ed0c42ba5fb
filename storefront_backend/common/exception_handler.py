# common/exception_handler.py

"""
DRF EXCEPTION HANDLER

Renders storefront domain errors with the API error envelope:

    {"error": {"code": "...", "message": "...", "field": "..."}}

Anything else is delegated to DRF's default handler.
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from common.errors import (
    AuthenticationError,
    NotFoundError,
    PaymentProviderError,
    StorefrontError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (PaymentProviderError, status.HTTP_502_BAD_GATEWAY),
)


def error_response(*, code: str, message: str, http_status: int, field=None) -> Response:
    body = {"code": code, "message": message}
    if field:
        body["field"] = field
    return Response({"error": body}, status=http_status)


def storefront_exception_handler(exc, context):
    if isinstance(exc, StorefrontError):
        http_status = status.HTTP_400_BAD_REQUEST
        for error_cls, mapped in STATUS_BY_ERROR:
            if isinstance(exc, error_cls):
                http_status = mapped
                break

        view = context.get("view")
        logger.info(
            "Storefront error",
            extra={
                "code": exc.code,
                "error_message": exc.message,
                "view": view.__class__.__name__ if view else None,
            },
        )
        return error_response(
            code=exc.code,
            message=exc.message,
            http_status=http_status,
            field=getattr(exc, "field", None),
        )

    return drf_exception_handler(exc, context)

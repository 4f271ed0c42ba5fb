# common/errors.py

"""
STOREFRONT DOMAIN ERRORS

Raised by service helpers and rendered by the HTTP layer
(see common/exception_handler.py):

- ValidationError      -> 400
- NotFoundError        -> 404
- AuthenticationError  -> 401
- PaymentProviderError -> 502
"""

from __future__ import annotations


class StorefrontError(Exception):
    """Base exception for all storefront service failures."""

    code = "storefront_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(StorefrontError):
    code = "not_found"

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class AuthenticationError(StorefrontError):
    code = "authentication_error"


class PaymentProviderError(StorefrontError):
    """The payment gateway could not be reached or rejected the call."""

    code = "payment_provider_error"

# common/validation.py

"""
INPUT VALIDATION HELPERS

Every helper raises common.errors.ValidationError carrying the offending
field name. Messages are user-facing.
"""

from __future__ import annotations

import re
import uuid
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError

from common.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")


def is_valid_email(email) -> bool:
    if not isinstance(email, str):
        return False
    return bool(EMAIL_RE.match(email))


def validate_email(email, field_name: str = "email") -> None:
    if not email:
        raise ValidationError(f"{field_name} is required", field_name)
    if not is_valid_email(email):
        raise ValidationError(f"{field_name} is invalid", field_name)


def validate_required(value, field_name: str) -> None:
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required", field_name)


def _as_number(value):
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def validate_positive_number(value, field_name: str) -> None:
    number = _as_number(value)
    if number is None or number <= 0:
        raise ValidationError(f"{field_name} must be a positive number", field_name)


def validate_non_negative_number(value, field_name: str) -> None:
    number = _as_number(value)
    if number is None or number < 0:
        raise ValidationError(
            f"{field_name} must be a non-negative number", field_name
        )


def is_valid_phone_number(phone) -> bool:
    if not isinstance(phone, str):
        return False
    return bool(PHONE_RE.match(re.sub(r"\s", "", phone)))


def validate_phone_number(phone, field_name: str = "phone") -> None:
    """Phone is optional: only a provided value is checked."""
    if phone and not is_valid_phone_number(phone):
        raise ValidationError(f"{field_name} is invalid", field_name)


def full_clean_or_raise(instance, *, exclude=None) -> None:
    """Run model.full_clean() and surface the first problem as a ValidationError."""
    try:
        instance.full_clean(exclude=exclude)
    except DjangoValidationError as exc:
        if hasattr(exc, "error_dict"):
            field, errors = next(iter(exc.error_dict.items()))
            message = errors[0].messages[0] if errors else "is invalid"
            raise ValidationError(f"{field}: {message}", field) from exc
        raise ValidationError(exc.messages[0] if exc.messages else "Invalid data") from exc


def parse_uuid(value):
    """UUID from a string/UUID, or None when it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def normalize_contact(contact: dict | None, customer=None) -> dict:
    """
    Customer contact for an order/booking.

    Missing values fall back to the signed-in customer's profile.
    Email is required and lower-cased; name is required; phone is optional.
    """
    contact = dict(contact or {})
    if customer is not None:
        contact.setdefault("email", customer.email)
        contact.setdefault("name", customer.full_name)
        contact.setdefault("phone", customer.phone)

    email = (contact.get("email") or "").strip().lower()
    name = (contact.get("name") or "").strip()
    phone = (contact.get("phone") or "").strip()

    validate_email(email, "email")
    validate_required(name, "name")
    validate_phone_number(phone, "phone")
    return {"email": email, "name": name, "phone": phone}

# bookings/services/booking_service.py

"""
BOOKING SERVICE

- the item must be an active service
- the time slot must end after it starts (end defaults to start + duration)
- overlapping active bookings for the same service are rejected
- prices are computed server-side like orders (promotion, fee, tax)
- partial payment collects the service booking_fee now
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from bookings.services.booking_rules import (
    ACTIVE_STATUSES,
    PAID_STATUSES,
    STATUS_TIMESTAMP_FIELDS,
    is_valid_booking_status_transition,
)
from catalog.models import Item
from catalog.services.item_service import get_item_by_id
from common.errors import NotFoundError, ValidationError
from common.pagination import paginate_by_cursor
from common.validation import normalize_contact, parse_uuid
from ledger.services.ledger_service import reverse_entries_for
from pricing.breakdown import build_price_breakdown
from promotions.services.promotion_service import get_active_promotions

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "status",
    "notes",
    "start_time",
    "end_time",
    "customer_name",
    "customer_phone",
    "canceled_reason",
    "refund_reason",
}


def _validate_slot(start_time, end_time) -> None:
    if start_time is None or end_time is None:
        raise ValidationError("Time slot is required", "start_time")
    if end_time <= start_time:
        raise ValidationError("Time slot must end after it starts", "end_time")


def _ensure_slot_free(service_id, start_time, end_time, *, exclude_id=None) -> None:
    clash = Booking.objects.filter(
        service_id=service_id,
        status__in=ACTIVE_STATUSES,
        start_time__lt=end_time,
        end_time__gt=start_time,
    )
    if exclude_id is not None:
        clash = clash.exclude(id=exclude_id)
    if clash.exists():
        raise ValidationError("This time slot is no longer available", "start_time")


@transaction.atomic
def create_booking(
    *,
    service_id,
    start_time,
    end_time=None,
    contact: dict | None = None,
    customer=None,
    partial_payment: bool = False,
    notes: str = "",
    promotions=None,
) -> Booking:
    contact = normalize_contact(contact, customer)

    service = get_item_by_id(service_id)
    if not service.is_service:
        raise ValidationError("Only services can be booked", "service_id")
    if service.status != Item.STATUS_ACTIVE:
        raise ValidationError(f"{service.name} is not available", "service_id")

    if end_time is None and start_time is not None and service.duration_minutes:
        end_time = start_time + timedelta(minutes=service.duration_minutes)
    _validate_slot(start_time, end_time)
    if start_time < timezone.now():
        raise ValidationError("Time slot is in the past", "start_time")
    _ensure_slot_free(service.id, start_time, end_time)

    if partial_payment and not service.booking_fee:
        raise ValidationError("This service does not accept partial payments", "partial_payment")

    business = service.business
    if promotions is None:
        promotions = get_active_promotions()
    breakdown = build_price_breakdown(
        [(service, 1)],
        promotions,
        tax_rate=business.tax_rate,
        currency=business.currency,
    )
    unit = breakdown.lines[0].unit

    booking = Booking.objects.create(
        business=business,
        service=service,
        service_name=service.name,
        service_image=service.main_image_url,
        customer=customer,
        customer_email=contact["email"],
        customer_name=contact["name"],
        customer_phone=contact["phone"],
        start_time=start_time,
        end_time=end_time,
        base_price=unit.base_price,
        discount=breakdown.discount,
        transaction_fee=breakdown.transaction_fee,
        tax=breakdown.tax,
        total=breakdown.total,
        currency=breakdown.currency,
        is_partial_payment=bool(partial_payment),
        booking_fee=service.booking_fee if partial_payment else None,
        total_fee=breakdown.total,
        notes=notes or "",
    )

    logger.info(
        "Booking created",
        extra={
            "booking_id": str(booking.id),
            "booking_number": booking.booking_number,
            "service_id": str(service.id),
        },
    )
    return booking


def get_booking_by_id(booking_id) -> Booking:
    booking_id = parse_uuid(booking_id)
    booking = None
    if booking_id is not None:
        booking = Booking.objects.select_related("business", "service").filter(id=booking_id).first()
    if booking is None:
        raise NotFoundError("Booking")
    return booking


def get_booking_by_number(booking_number) -> Booking | None:
    if not booking_number:
        return None
    return Booking.objects.filter(booking_number=booking_number).first()


def get_bookings(
    *,
    customer_id=None,
    customer_email=None,
    service_id=None,
    status=None,
    start_date=None,
    end_date=None,
    limit=None,
    last_doc_id=None,
) -> dict:
    qs = Booking.objects.select_related("business", "service")

    if customer_id:
        qs = qs.filter(customer_id=parse_uuid(customer_id))
    if customer_email:
        qs = qs.filter(customer_email=customer_email.strip().lower())
    if service_id:
        qs = qs.filter(service_id=parse_uuid(service_id))
    if status:
        qs = qs.filter(status=status)
    if start_date:
        qs = qs.filter(start_time__gte=start_date)
    if end_date:
        qs = qs.filter(start_time__lte=end_date)

    page = paginate_by_cursor(qs, limit=limit, last_doc_id=last_doc_id)
    return {
        "bookings": page["results"],
        "last_doc_id": page["last_doc_id"],
        "has_more": page["has_more"],
    }


def _apply_booking_update(booking_id, updates: dict) -> Booking:
    """Locked change; leaving a paid status for canceled/refunded reverses ledger entries."""
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown booking field(s): {', '.join(sorted(unknown))}")

    booking_id = parse_uuid(booking_id)
    booking = Booking.objects.select_for_update().filter(id=booking_id).first() if booking_id else None
    if booking is None:
        raise NotFoundError("Booking")

    previous = booking.status
    new_status = updates.get("status")
    if new_status and new_status != previous:
        if not is_valid_booking_status_transition(previous, new_status):
            raise ValidationError(
                f"Cannot change booking status from {previous} to {new_status}. "
                "Invalid status transition.",
                "status",
            )
        stamp = STATUS_TIMESTAMP_FIELDS.get(new_status)
        if stamp and getattr(booking, stamp) is None:
            setattr(booking, stamp, timezone.now())

    if "start_time" in updates or "end_time" in updates:
        start_time = updates.get("start_time", booking.start_time)
        end_time = updates.get("end_time", booking.end_time)
        _validate_slot(start_time, end_time)
        _ensure_slot_free(booking.service_id, start_time, end_time, exclude_id=booking.id)

    for key, value in updates.items():
        setattr(booking, key, "" if value is None else value)
    booking.save()

    if new_status and new_status != previous:
        if previous in PAID_STATUSES and new_status == Booking.STATUS_CANCELED:
            reverse_entries_for(
                booking=booking,
                reason=booking.canceled_reason or f"Cancellation of booking {booking.booking_number}",
            )
        elif new_status == Booking.STATUS_REFUNDED:
            reverse_entries_for(
                booking=booking,
                reason=booking.refund_reason or f"Refund of booking {booking.booking_number}",
            )
        logger.info(
            "Booking status changed",
            extra={"booking_id": str(booking.id), "from": previous, "to": new_status},
        )
    return booking


@transaction.atomic
def update_booking(booking_id, **updates) -> Booking:
    if updates.get("status") == Booking.STATUS_REFUNDED:
        raise ValidationError("Bookings are refunded through refund_booking", "status")
    return _apply_booking_update(booking_id, updates)


def cancel_booking(booking_id, reason: str | None = None) -> Booking:
    booking = get_booking_by_id(booking_id)

    if booking.status == Booking.STATUS_COMPLETED:
        raise ValidationError("Cannot cancel a completed booking")
    if booking.status == Booking.STATUS_CANCELED:
        raise ValidationError("Booking is already canceled")

    return update_booking(booking.id, status=Booking.STATUS_CANCELED, canceled_reason=reason or "")


@transaction.atomic
def refund_booking(booking_id, reason: str = "") -> Booking:
    return _apply_booking_update(
        booking_id, {"status": Booking.STATUS_REFUNDED, "refund_reason": reason or ""}
    )

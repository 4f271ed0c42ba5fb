# ledger/services/posting.py

"""
Payment -> ledger posting.

- Runs only when settings.LEDGER_ENABLED (the back-fill command forces it)
- Idempotent per payment: an existing live entry for the payment is returned
"""

from __future__ import annotations

import logging

from django.conf import settings

from ledger.models import LedgerEntry
from ledger.services.ledger_service import create_ledger_entry

logger = logging.getLogger(__name__)


def ledger_enabled() -> bool:
    return bool(getattr(settings, "LEDGER_ENABLED", False))


def post_payment_to_ledger(payment, *, force: bool = False) -> LedgerEntry | None:
    if not (force or ledger_enabled()):
        return None

    existing = LedgerEntry.objects.filter(
        payment_id=str(payment.id),
        reversal_of__isnull=True,
    ).first()
    if existing is not None:
        logger.info("Payment already posted", extra={"payment_id": str(payment.id)})
        return existing

    if payment.order_id:
        order = payment.order
        entry_type = LedgerEntry.TYPE_ORDER_SALE
        description = f"Order {order.order_number} - {order.items.count()} item(s)"
        metadata = {"order_number": order.order_number, "tx_ref": payment.tx_ref}
    else:
        booking = payment.booking
        entry_type = LedgerEntry.TYPE_BOOKING_PAYMENT
        description = f"Booking {booking.booking_number} - {booking.service_name}"
        metadata = {
            "booking_number": booking.booking_number,
            "tx_ref": payment.tx_ref,
            "is_partial_payment": booking.is_partial_payment,
        }

    return create_ledger_entry(
        entry_type=entry_type,
        amount=payment.amount,
        currency=payment.currency,
        order=payment.order if payment.order_id else None,
        booking=payment.booking if payment.booking_id else None,
        payment_id=str(payment.id),
        description=description,
        metadata=metadata,
    )

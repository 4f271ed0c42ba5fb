# ledger/services/ledger_service.py

"""
LEDGER SERVICE

Writes:
- create_ledger_entry     validated, immutable record
- reverse_ledger_entry    opposite-direction REFUND entry + original flipped to REVERSED
- reverse_entries_for     reverse every live entry of an order/booking (refunds)

Reads:
- get_ledger_entry_by_id / get_ledger_entries
- get_derived_transactions   the same view rebuilt from paid orders/bookings
- reconcile_ledger           derived transactions vs ledger entries
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction

from bookings.models import Booking
from bookings.services.booking_rules import PAID_STATUSES as BOOKING_PAID_STATUSES
from common.errors import NotFoundError, ValidationError
from common.money import ZERO, money
from common.validation import full_clean_or_raise, parse_uuid, validate_positive_number
from ledger.models import LedgerEntry
from orders.models import Order
from orders.services.order_rules import PAID_STATUSES as ORDER_PAID_STATUSES
from payments.models import Payment

logger = logging.getLogger(__name__)

ENTRY_TYPES = {choice[0] for choice in LedgerEntry.TYPE_CHOICES}
SALE_TYPES = {LedgerEntry.TYPE_ORDER_SALE, LedgerEntry.TYPE_BOOKING_PAYMENT}


# =====================================================
# WRITE
# =====================================================
def create_ledger_entry(
    *,
    entry_type: str,
    amount,
    currency: str = "MWK",
    direction: str | None = None,
    status: str = LedgerEntry.STATUS_CONFIRMED,
    order=None,
    booking=None,
    payment_id: str = "",
    description: str = "",
    metadata: dict | None = None,
    reversal_of=None,
) -> LedgerEntry:
    if entry_type not in ENTRY_TYPES:
        raise ValidationError("entry_type is invalid", "entry_type")
    validate_positive_number(amount, "amount")

    if direction is None:
        direction = LedgerEntry.DEBIT if entry_type == LedgerEntry.TYPE_REFUND else LedgerEntry.CREDIT

    entry = LedgerEntry(
        entry_type=entry_type,
        direction=direction,
        status=status,
        amount=money(amount),
        currency=(currency or "MWK").upper(),
        order=order,
        booking=booking,
        payment_id=str(payment_id or ""),
        description=(description or "")[:255],
        metadata=metadata or {},
        reversal_of=reversal_of,
    )
    full_clean_or_raise(entry)
    entry.save()

    logger.info(
        "Ledger entry created",
        extra={
            "entry_id": str(entry.id),
            "entry_type": entry.entry_type,
            "amount": str(entry.amount),
        },
    )
    return entry


@transaction.atomic
def reverse_ledger_entry(entry: LedgerEntry, reason: str = "") -> LedgerEntry:
    entry = LedgerEntry.objects.select_for_update().get(id=entry.id)

    if entry.status == LedgerEntry.STATUS_REVERSED:
        raise ValidationError("Ledger entry is already reversed")
    if entry.reversal_of_id is not None:
        raise ValidationError("A reversing entry cannot be reversed")

    reversal = create_ledger_entry(
        entry_type=LedgerEntry.TYPE_REFUND,
        amount=entry.amount,
        currency=entry.currency,
        direction=LedgerEntry.DEBIT if entry.direction == LedgerEntry.CREDIT else LedgerEntry.CREDIT,
        order=entry.order,
        booking=entry.booking,
        payment_id=entry.payment_id,
        description=reason or f"Reversal of {entry.description or entry.id}",
        metadata={"reason": reason or ""},
        reversal_of=entry,
    )

    # the one permitted mutation
    LedgerEntry.objects.filter(id=entry.id).update(status=LedgerEntry.STATUS_REVERSED)
    return reversal


def reverse_entries_for(*, order=None, booking=None, reason: str = "") -> list[LedgerEntry]:
    qs = LedgerEntry.objects.filter(status=LedgerEntry.STATUS_CONFIRMED, reversal_of__isnull=True)
    if order is not None:
        qs = qs.filter(order=order)
    elif booking is not None:
        qs = qs.filter(booking=booking)
    else:
        return []
    return [reverse_ledger_entry(entry, reason) for entry in qs.order_by("created_at")]


# =====================================================
# READ
# =====================================================
def get_ledger_entry_by_id(entry_id) -> LedgerEntry:
    entry_id = parse_uuid(entry_id)
    entry = LedgerEntry.objects.filter(id=entry_id).first() if entry_id else None
    if entry is None:
        raise NotFoundError("Ledger entry")
    return entry


def get_ledger_entries(
    *,
    entry_type=None,
    status=None,
    order_id=None,
    booking_id=None,
    payment_id=None,
    start_date=None,
    end_date=None,
    limit=None,
) -> list[LedgerEntry]:
    qs = LedgerEntry.objects.all()

    if entry_type:
        qs = qs.filter(entry_type=entry_type)
    if status:
        qs = qs.filter(status=status)
    if order_id:
        qs = qs.filter(order_id=parse_uuid(order_id))
    if booking_id:
        qs = qs.filter(booking_id=parse_uuid(booking_id))
    if payment_id:
        qs = qs.filter(payment_id=str(payment_id))
    if start_date:
        qs = qs.filter(created_at__gte=start_date)
    if end_date:
        qs = qs.filter(created_at__lt=end_date)

    qs = qs.order_by("-created_at", "-id")
    if limit:
        qs = qs[: int(limit)]
    return list(qs)


def _successful_payment(target):
    # payments are prefetched newest first
    for payment in target.payments.all():
        if payment.status == Payment.STATUS_SUCCESS:
            return payment
    return None


def _in_window(when, start_date, end_date) -> bool:
    if start_date and when < start_date:
        return False
    if end_date and when >= end_date:
        return False
    return True


def get_derived_transactions(*, entry_type=None, start_date=None, end_date=None, limit=None) -> list[dict]:
    """
    Ledger-shaped rows rebuilt from paid orders and bookings.

    Included: a successful payment, not refunded, dated by the payment's
    paid_at (else the record's created_at). Newest first.
    """
    transactions = []

    if not entry_type or entry_type == LedgerEntry.TYPE_ORDER_SALE:
        orders = (
            Order.objects.filter(status__in=ORDER_PAID_STATUSES, refunded_at__isnull=True)
            .prefetch_related("payments", "items")
        )
        for order in orders:
            payment = _successful_payment(order)
            if payment is None:
                continue
            when = payment.paid_at or order.created_at
            if not _in_window(when, start_date, end_date):
                continue
            item_count = len(order.items.all())
            transactions.append(
                {
                    "id": f"order_{order.id}",
                    "entry_type": LedgerEntry.TYPE_ORDER_SALE,
                    "status": LedgerEntry.STATUS_CONFIRMED,
                    "amount": money(payment.amount),
                    "currency": payment.currency or order.currency,
                    "order_id": str(order.id),
                    "booking_id": None,
                    "payment_id": str(payment.id),
                    "description": f"Order {order.order_number} - {item_count} item(s)",
                    "created_at": when,
                    "source": "order",
                    "metadata": {
                        "order_number": order.order_number,
                        "customer_email": order.customer_email,
                        "customer_name": order.customer_name,
                        "item_count": item_count,
                    },
                }
            )

    if not entry_type or entry_type == LedgerEntry.TYPE_BOOKING_PAYMENT:
        bookings = Booking.objects.filter(
            status__in=BOOKING_PAID_STATUSES, refunded_at__isnull=True
        ).prefetch_related("payments")
        for booking in bookings:
            payment = _successful_payment(booking)
            if payment is None:
                continue
            when = payment.paid_at or booking.created_at
            if not _in_window(when, start_date, end_date):
                continue
            transactions.append(
                {
                    "id": f"booking_{booking.id}",
                    "entry_type": LedgerEntry.TYPE_BOOKING_PAYMENT,
                    "status": LedgerEntry.STATUS_CONFIRMED,
                    "amount": money(payment.amount),
                    "currency": payment.currency or booking.currency,
                    "order_id": None,
                    "booking_id": str(booking.id),
                    "payment_id": str(payment.id),
                    "description": f"Booking {booking.booking_number} - {booking.service_name}",
                    "created_at": when,
                    "source": "booking",
                    "metadata": {
                        "booking_number": booking.booking_number,
                        "service_name": booking.service_name,
                        "customer_email": booking.customer_email,
                        "customer_name": booking.customer_name,
                        "start_time": booking.start_time.isoformat(),
                        "end_time": booking.end_time.isoformat(),
                    },
                }
            )

    transactions.sort(key=lambda tx: tx["created_at"], reverse=True)
    if limit:
        return transactions[: int(limit)]
    return transactions


def _source_key(order_id, booking_id):
    if order_id:
        return ("order", str(order_id))
    if booking_id:
        return ("booking", str(booking_id))
    return None


def _payment_dates(entries) -> dict:
    """payment_id -> paid_at for the payments behind the entries."""
    ids = {parse_uuid(entry.payment_id) for entry in entries} - {None}
    if not ids:
        return {}
    rows = Payment.objects.filter(id__in=ids, paid_at__isnull=False).values_list("id", "paid_at")
    return {str(payment_id): paid_at for payment_id, paid_at in rows}


def reconcile_ledger(*, start_date=None, end_date=None) -> dict:
    """
    Compare derived transactions with live sale entries in the window.

    Both sides are dated by the payment's paid_at; entries without a paid
    payment fall back to their created_at.

    matched           both sides, same amount
    amount_mismatch   both sides, different amounts
    missing_in_ledger derived transaction without a ledger entry
    orphaned          ledger entry without a derived transaction
    """
    derived = {
        _source_key(tx["order_id"], tx["booking_id"]): tx
        for tx in get_derived_transactions(start_date=start_date, end_date=end_date)
    }

    entries = list(
        LedgerEntry.objects.filter(
            entry_type__in=SALE_TYPES,
            status=LedgerEntry.STATUS_CONFIRMED,
        ).order_by("created_at")
    )
    paid_dates = _payment_dates(entries)

    ledger_totals: dict[tuple, Decimal] = {}
    ledger_ids: dict[tuple, list] = {}
    orphaned = []
    for entry in entries:
        when = paid_dates.get(entry.payment_id) or entry.created_at
        if not _in_window(when, start_date, end_date):
            continue
        key = _source_key(entry.order_id, entry.booking_id)
        if key is None:
            orphaned.append({"entry_id": str(entry.id), "amount": str(entry.amount), "reason": "no source"})
            continue
        ledger_totals[key] = ledger_totals.get(key, ZERO) + entry.amount
        ledger_ids.setdefault(key, []).append((str(entry.id), entry.amount))

    matched, mismatched, missing = [], [], []
    for key, tx in derived.items():
        if key not in ledger_totals:
            missing.append({"source": key[0], "source_id": key[1], "amount": str(tx["amount"])})
            continue
        row = {
            "source": key[0],
            "source_id": key[1],
            "expected": str(tx["amount"]),
            "recorded": str(money(ledger_totals[key])),
            "entry_ids": [entry_id for entry_id, _ in ledger_ids[key]],
        }
        if money(ledger_totals[key]) == tx["amount"]:
            matched.append(row)
        else:
            mismatched.append(row)

    for key, rows in ledger_ids.items():
        if key not in derived:
            for entry_id, amount in rows:
                orphaned.append({"entry_id": entry_id, "amount": str(amount), "reason": f"{key[0]} not paid"})

    derived_total = money(sum((tx["amount"] for tx in derived.values()), ZERO))
    ledger_total = money(sum(ledger_totals.values(), ZERO))
    return {
        "matched": matched,
        "amount_mismatch": mismatched,
        "missing_in_ledger": missing,
        "orphaned": orphaned,
        "summary": {
            "derived_count": len(derived),
            "ledger_count": sum(len(ids) for ids in ledger_ids.values()),
            "derived_total": str(derived_total),
            "ledger_total": str(ledger_total),
            "difference": str(money(derived_total - ledger_total)),
            "is_balanced": not (mismatched or missing or orphaned),
        },
    }

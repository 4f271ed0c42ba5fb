# payments/services/payment_service.py

"""
PAYMENT ORCHESTRATION

initiate_payment(order=|booking=)
- target must be PENDING
- amount: order total, or the booking amount due (deposit for partial payments)
- a new Payment (unique tx_ref) per attempt

confirm_payment(tx_ref)   (verify endpoint and webhook both land here)
- idempotent: a SUCCESS payment is returned untouched
- verifies with PayChangu; never trusts webhook payloads
- amount and currency must match what we asked for
- on success: payment SUCCESS -> order/booking PAID -> ledger entry
"""

from __future__ import annotations

import logging
import uuid

from django.conf import settings
from django.db import transaction

from bookings.models import Booking
from bookings.services.booking_service import update_booking
from common.errors import NotFoundError, PaymentProviderError, ValidationError
from common.money import money
from ledger.services.posting import post_payment_to_ledger
from orders.models import Order
from orders.services.order_service import update_order
from payments.models import Payment
from payments.services.paychangu import paychangu_initiate_payment, paychangu_verify_payment

logger = logging.getLogger(__name__)

PROVIDER_PENDING_STATUSES = {"pending", "processing", "initiated"}


def generate_tx_ref() -> str:
    return f"TX-{uuid.uuid4().hex[:20].upper()}"


def _frontend_url(path: str) -> str:
    base = (getattr(settings, "FRONTEND_BASE_URL", "") or "").rstrip("/")
    return f"{base}{path}"


def _split_name(full_name: str) -> tuple[str, str]:
    parts = (full_name or "").strip().split(" ", 1)
    return parts[0], parts[1] if len(parts) > 1 else ""


def initiate_payment(*, order: Order | None = None, booking: Booking | None = None) -> Payment:
    if (order is None) == (booking is None):
        raise ValidationError("Provide either an order or a booking")

    target = order or booking
    if target.status != target.STATUS_PENDING:
        raise ValidationError(f"Cannot pay for a {target.status} {'order' if order else 'booking'}")

    if order is not None:
        amount = money(order.total)
        number = order.order_number
        landing = f"/order-confirmed?orderId={order.id}"
        title, description = "Order payment", f"Order {number}"
    else:
        amount = money(booking.amount_due)
        number = booking.booking_number
        landing = f"/book-confirmed?bookingId={booking.id}"
        title, description = "Booking payment", f"Booking {number} - {booking.service_name}"

    if amount <= 0:
        raise ValidationError("Nothing to pay", "amount")

    tx_ref = generate_tx_ref()
    payment = Payment.objects.create(
        order=order,
        booking=booking,
        tx_ref=tx_ref,
        amount=amount,
        currency=target.currency,
    )

    cfg = settings.PAYMENTS.get("PAYCHANGU", {})
    landing_url = _frontend_url(f"{landing}&txRef={tx_ref}")
    first_name, last_name = _split_name(target.customer_name)

    try:
        result = paychangu_initiate_payment(
            amount=amount,
            currency=target.currency,
            tx_ref=tx_ref,
            email=target.customer_email,
            first_name=first_name,
            last_name=last_name,
            callback_url=cfg.get("CALLBACK_URL") or landing_url,
            return_url=cfg.get("RETURN_URL") or landing_url,
            title=title,
            description=description,
            meta={"number": number, "payment_id": str(payment.id)},
        )
    except PaymentProviderError as exc:
        payment.mark_failed(str(exc))
        payment.save(update_fields=["status", "failure_reason", "updated_at"])
        logger.error("Payment initiation failed", extra={"tx_ref": tx_ref, "reason": str(exc)})
        raise

    payment.status = Payment.STATUS_PENDING
    payment.checkout_url = result["checkout_url"]
    payment.provider_payload = result["raw"]
    payment.save(update_fields=["status", "checkout_url", "provider_payload", "updated_at"])

    logger.info(
        "Payment initiated",
        extra={"tx_ref": tx_ref, "amount": str(amount), "number": number},
    )
    return payment


def get_payment_by_tx_ref(tx_ref) -> Payment:
    payment = None
    if tx_ref:
        payment = Payment.objects.select_related("order", "booking").filter(tx_ref=str(tx_ref).strip()).first()
    if payment is None:
        raise NotFoundError("Payment")
    return payment


def _mark_target_paid(payment: Payment) -> None:
    target = payment.target
    if target.status != target.STATUS_PENDING:
        logger.warning(
            "Paid target not pending; status left unchanged",
            extra={"tx_ref": payment.tx_ref, "status": target.status},
        )
        return

    if payment.order_id:
        update_order(payment.order_id, status=Order.STATUS_PAID)
    else:
        update_booking(payment.booking_id, status=Booking.STATUS_PAID)


def confirm_payment(tx_ref) -> Payment:
    payment = get_payment_by_tx_ref(tx_ref)
    if payment.status == Payment.STATUS_SUCCESS:
        logger.info("Payment already confirmed", extra={"tx_ref": payment.tx_ref})
        return payment

    # provider round-trip stays outside the row lock
    result = paychangu_verify_payment(payment.tx_ref)

    with transaction.atomic():
        payment = Payment.objects.select_for_update().get(id=payment.id)
        if payment.status == Payment.STATUS_SUCCESS:
            logger.info("Duplicate confirmation ignored", extra={"tx_ref": payment.tx_ref})
            return payment

        provider_status = result["status"]
        if not result["ok"] or provider_status in PROVIDER_PENDING_STATUSES or not provider_status:
            payment.status = Payment.STATUS_PENDING
            payment.provider_payload = result["raw"]
            payment.save(update_fields=["status", "provider_payload", "updated_at"])
            return payment

        if provider_status != "success":
            payment.mark_failed(f"Provider status: {provider_status}", result["raw"])
            payment.save(update_fields=["status", "failure_reason", "provider_payload", "updated_at"])
            logger.warning("Payment failed", extra={"tx_ref": payment.tx_ref, "status": provider_status})
            return payment

        if result["amount"] is None or result["amount"] < money(payment.amount):
            payment.mark_failed("Amount mismatch", result["raw"])
            payment.save(update_fields=["status", "failure_reason", "provider_payload", "updated_at"])
            logger.error(
                "Payment amount mismatch",
                extra={"tx_ref": payment.tx_ref, "expected": str(payment.amount), "got": str(result["amount"])},
            )
            return payment

        if result["currency"] and result["currency"] != payment.currency.upper():
            payment.mark_failed("Currency mismatch", result["raw"])
            payment.save(update_fields=["status", "failure_reason", "provider_payload", "updated_at"])
            logger.error(
                "Payment currency mismatch",
                extra={"tx_ref": payment.tx_ref, "expected": payment.currency, "got": result["currency"]},
            )
            return payment

        payment.mark_success(result["raw"], reference=result["reference"])
        payment.save()

        _mark_target_paid(payment)
        post_payment_to_ledger(payment)

    logger.info("Payment confirmed", extra={"tx_ref": payment.tx_ref, "amount": str(payment.amount)})
    return payment

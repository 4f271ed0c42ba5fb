# orders/services/order_service.py

"""
ORDER SERVICE

Creation:
- prices are recomputed server-side (promotions, transaction fees, tax);
  clients only send item ids, quantities and contact details
- products only; services go through bookings
- stock is checked at creation, deducted when the order is paid and put
  back when a paid order is canceled

Status changes go through update_order() (refunds through refund_order()),
which enforces orders/services/order_rules.py and stamps the matching
timestamp. Leaving a paid status reverses the order's ledger entries.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from catalog.models import Item
from catalog.services.item_service import get_items_by_ids
from common.errors import NotFoundError, ValidationError
from common.money import ZERO, format_money, money
from common.pagination import paginate_by_cursor
from common.validation import normalize_contact, parse_uuid, validate_non_negative_number
from ledger.services.ledger_service import reverse_entries_for
from orders.models import Order, OrderItem
from orders.services.order_rules import (
    PAID_STATUSES,
    STATUS_TIMESTAMP_FIELDS,
    is_valid_order_status_transition,
)
from pricing.breakdown import build_price_breakdown
from promotions.services.promotion_service import get_active_promotions

logger = logging.getLogger(__name__)

# Fields staff may change through update_order().
UPDATABLE_FIELDS = {
    "status",
    "notes",
    "shipping_address",
    "customer_name",
    "customer_phone",
    "canceled_reason",
    "refund_reason",
}


# =====================================================
# CREATE
# =====================================================
def _resolve_lines(lines) -> list[tuple]:
    """[{"item_id", "quantity", "selected_variants"}] -> [(item, qty, variants)]"""
    if not lines:
        raise ValidationError("Order must contain at least one item", "items")

    merged: dict[str, dict] = {}
    for raw in lines:
        item_id = parse_uuid(raw.get("item_id"))
        if item_id is None:
            raise ValidationError("item_id is invalid", "items")
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive whole number", "quantity")

        key = str(item_id)
        if key in merged:
            merged[key]["quantity"] += quantity
        else:
            merged[key] = {"quantity": quantity, "variants": raw.get("selected_variants") or {}}

    items = {str(i.id): i for i in get_items_by_ids(list(merged))}
    resolved = []
    for key, line in merged.items():
        item = items.get(key)
        if item is None:
            raise NotFoundError("Item")
        if not item.is_product:
            raise ValidationError(f"{item.name} is a service and must be booked", "items")
        if item.status != Item.STATUS_ACTIVE:
            raise ValidationError(f"{item.name} is not available", "items")
        if not item.has_stock_for(line["quantity"]):
            raise ValidationError(f"Insufficient stock for {item.name}", "quantity")
        resolved.append((item, line["quantity"], line["variants"]))
    return resolved


@transaction.atomic
def create_order(
    *,
    lines,
    contact: dict | None = None,
    customer=None,
    shipping_address: dict | None = None,
    shipping_amount=None,
    business=None,
    notes: str = "",
    promotions=None,
) -> Order:
    contact = normalize_contact(contact, customer)
    resolved = _resolve_lines(lines)

    if business is None:
        business = resolved[0][0].business

    # delivered orders pay the business delivery fee unless told otherwise
    if shipping_amount is None:
        shipping_amount = business.delivery_fee if shipping_address else ZERO
    validate_non_negative_number(shipping_amount, "shipping")
    if any(item.business_id != business.id for item, _, _ in resolved):
        raise ValidationError("All items must belong to the same business", "items")

    if promotions is None:
        promotions = get_active_promotions()

    breakdown = build_price_breakdown(
        [(item, qty) for item, qty, _ in resolved],
        promotions,
        tax_rate=business.tax_rate,
        shipping=shipping_amount,
        currency=business.currency,
    )

    order = Order.objects.create(
        business=business,
        customer=customer,
        customer_email=contact["email"],
        customer_name=contact["name"],
        customer_phone=contact["phone"],
        shipping_address=shipping_address or {},
        subtotal=breakdown.subtotal,
        discount=breakdown.discount,
        shipping=breakdown.shipping,
        tax=breakdown.tax,
        transaction_fee=breakdown.transaction_fee,
        total=breakdown.total,
        currency=breakdown.currency,
        notes=notes or "",
    )

    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                product=priced.item,
                name=priced.item.name,
                image=priced.item.main_image_url,
                quantity=priced.quantity,
                unit_price=priced.unit.final_price,
                discount=money(priced.unit.discount * priced.quantity),
                subtotal=priced.line_total,
                selected_variants=variants,
                promotion_id=priced.unit.promotion.id if priced.unit.promotion is not None else None,
            )
            for priced, (_, _, variants) in zip(breakdown.lines, resolved)
        ]
    )

    logger.info(
        "Order created",
        extra={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "total": str(order.total),
        },
    )
    return order


@transaction.atomic
def create_order_from_cart(cart, **kwargs) -> Order:
    """Create an order from the cart's lines; the cart is emptied afterwards."""
    lines = [
        {
            "item_id": line.item_id,
            "quantity": line.quantity,
            "selected_variants": line.selected_variants,
        }
        for line in cart.items.all()
    ]
    if not lines:
        raise ValidationError("Cart is empty", "items")

    kwargs.setdefault("customer", cart.user)
    order = create_order(lines=lines, **kwargs)
    cart.items.all().delete()
    return order


# =====================================================
# READ
# =====================================================
def get_order_by_id(order_id) -> Order:
    order_id = parse_uuid(order_id)
    order = None
    if order_id is not None:
        order = (
            Order.objects.select_related("business", "customer")
            .prefetch_related("items")
            .filter(id=order_id)
            .first()
        )
    if order is None:
        raise NotFoundError("Order")
    return order


def get_order_by_number(order_number) -> Order | None:
    if not order_number:
        return None
    return (
        Order.objects.select_related("business")
        .prefetch_related("items")
        .filter(order_number=order_number)
        .first()
    )


def get_orders(
    *,
    customer_id=None,
    customer_email=None,
    status=None,
    business_id=None,
    limit=None,
    last_doc_id=None,
) -> dict:
    qs = Order.objects.select_related("business").prefetch_related("items")

    if customer_id:
        qs = qs.filter(customer_id=parse_uuid(customer_id))
    if customer_email:
        qs = qs.filter(customer_email=customer_email.strip().lower())
    if status:
        qs = qs.filter(status=status)
    if business_id:
        qs = qs.filter(business_id=parse_uuid(business_id))

    page = paginate_by_cursor(qs, limit=limit, last_doc_id=last_doc_id)
    return {
        "orders": page["results"],
        "last_doc_id": page["last_doc_id"],
        "has_more": page["has_more"],
    }


# =====================================================
# UPDATE / STATUS
# =====================================================
def _deduct_stock(order: Order) -> None:
    for line in order.items.all():
        if line.product_id is None:
            continue
        item = Item.objects.select_for_update().filter(id=line.product_id).first()
        if item is None or item.stock_quantity is None:
            continue
        if item.stock_quantity < line.quantity:
            logger.warning(
                "Stock shortfall on paid order",
                extra={
                    "order_id": str(order.id),
                    "item_id": str(item.id),
                    "stock": item.stock_quantity,
                    "quantity": line.quantity,
                },
            )
        item.stock_quantity = max(item.stock_quantity - line.quantity, 0)
        item.save(update_fields=["stock_quantity", "updated_at"])


def _restore_stock(order: Order) -> None:
    for line in order.items.all():
        if line.product_id is None:
            continue
        item = Item.objects.select_for_update().filter(id=line.product_id).first()
        if item is None or item.stock_quantity is None:
            continue
        item.stock_quantity += line.quantity
        item.save(update_fields=["stock_quantity", "updated_at"])


def _apply_order_update(order_id, updates: dict) -> Order:
    """
    Locked status/field change.

    Side effects of the transition:
    - -> paid: stock deducted
    - paid, processing or shipped -> canceled: ledger entries reversed and
      stock put back
    - paid -> refunded: ledger entries reversed
    """
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown order field(s): {', '.join(sorted(unknown))}")

    order_id = parse_uuid(order_id)
    order = Order.objects.select_for_update().filter(id=order_id).first() if order_id else None
    if order is None:
        raise NotFoundError("Order")

    previous = order.status
    new_status = updates.get("status")
    if new_status and new_status != previous:
        if not is_valid_order_status_transition(previous, new_status):
            raise ValidationError(
                f"Cannot change order status from {previous} to {new_status}. "
                "Invalid status transition.",
                "status",
            )
        stamp = STATUS_TIMESTAMP_FIELDS.get(new_status)
        if stamp and getattr(order, stamp) is None:
            setattr(order, stamp, timezone.now())

    for key, value in updates.items():
        if value is None:
            value = {} if key == "shipping_address" else ""
        setattr(order, key, value)
    order.save()

    if new_status and new_status != previous:
        if new_status == Order.STATUS_PAID:
            _deduct_stock(order)
        elif previous in PAID_STATUSES and new_status == Order.STATUS_CANCELED:
            reverse_entries_for(
                order=order,
                reason=order.canceled_reason or f"Cancellation of order {order.order_number}",
            )
            _restore_stock(order)
        elif new_status == Order.STATUS_REFUNDED:
            reverse_entries_for(
                order=order,
                reason=order.refund_reason or f"Refund of order {order.order_number}",
            )
        logger.info(
            "Order status changed",
            extra={"order_id": str(order.id), "from": previous, "to": new_status},
        )
    return order


@transaction.atomic
def update_order(order_id, **updates) -> Order:
    if updates.get("status") == Order.STATUS_REFUNDED:
        raise ValidationError("Orders are refunded through refund_order", "status")
    return _apply_order_update(order_id, updates)


def cancel_order(order_id, reason: str | None = None) -> Order:
    order = get_order_by_id(order_id)

    if order.status == Order.STATUS_COMPLETED:
        raise ValidationError("Cannot cancel a completed order")
    if order.status == Order.STATUS_CANCELED:
        raise ValidationError("Order is already canceled")

    return update_order(order.id, status=Order.STATUS_CANCELED, canceled_reason=reason or "")


@transaction.atomic
def refund_order(order_id, reason: str = "") -> Order:
    """
    Mark a paid order refunded and reverse its ledger entries.
    The money itself is returned outside the system (PayChangu dashboard).
    """
    return _apply_order_update(
        order_id, {"status": Order.STATUS_REFUNDED, "refund_reason": reason or ""}
    )


# =====================================================
# CONFIRMATION
# =====================================================
def order_confirmation(order: Order) -> dict:
    """Payload for the order-confirmed page."""
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "is_paid": order.status in PAID_STATUSES,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "shipping_address": order.shipping_address,
        "items": [
            {
                "product_id": str(line.product_id) if line.product_id else None,
                "name": line.name,
                "image": line.image,
                "quantity": line.quantity,
                "unit_price": str(line.unit_price),
                "subtotal": str(line.subtotal),
            }
            for line in order.items.all()
        ],
        "subtotal": str(order.subtotal),
        "shipping": str(order.shipping),
        "tax": str(order.tax),
        "total": str(order.total),
        "total_display": format_money(order.total, order.currency),
        "currency": order.currency,
        "paid_at": order.paid_at.isoformat() if order.paid_at else None,
    }

# carts/services/cart_service.py

"""
CART SERVICE

- add_item merges quantities for an item already in the cart
- update_quantity with quantity <= 0 removes the line
- totals are computed from current catalog prices:
    total_amount  -> effective price (base + fee), no promotions
    cart_summary  -> promotion-aware subtotal + tax estimate
                     (delivery is added at checkout)
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction

from businesses.services.business_service import get_default_business
from carts.models import Cart, CartItem
from catalog.models import Item
from common.errors import NotFoundError, ValidationError
from common.money import ZERO, money
from common.validation import parse_uuid
from pricing.breakdown import build_price_breakdown
from pricing.rules import get_effective_price
from promotions.services.promotion_service import get_active_promotions

logger = logging.getLogger(__name__)


def get_active_cart(user) -> Cart:
    cart = Cart.objects.filter(user=user, is_active=True).first()
    if cart is None:
        cart = Cart.objects.create(user=user)
    return cart


def _lines(cart: Cart):
    return list(cart.items.select_related("item").order_by("created_at"))


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool):
        raise ValidationError("quantity must be a positive number", "quantity")
    try:
        value = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be a positive number", "quantity")
    return value


def _ensure_purchasable(item: Item, quantity: int) -> None:
    if item.is_service:
        raise ValidationError(f"{item.name} is a service and must be booked", "item_id")
    if item.status != Item.STATUS_ACTIVE:
        raise ValidationError(f"{item.name} is not available", "item_id")
    if not item.has_stock_for(quantity):
        raise ValidationError(f"Insufficient stock for {item.name}", "quantity")


@transaction.atomic
def add_item(cart: Cart, item: Item, quantity=1, variants=None) -> CartItem:
    quantity = _validate_quantity(quantity)
    if quantity <= 0:
        raise ValidationError("quantity must be a positive number", "quantity")

    line = CartItem.objects.select_for_update().filter(cart=cart, item=item).first()
    new_quantity = quantity + (line.quantity if line else 0)
    _ensure_purchasable(item, new_quantity)

    if line is None:
        line = CartItem.objects.create(
            cart=cart,
            item=item,
            quantity=quantity,
            selected_variants=variants or {},
        )
    else:
        line.quantity = new_quantity
        line.save(update_fields=["quantity", "updated_at"])

    Cart.objects.filter(id=cart.id).update(updated_at=line.updated_at)
    return line


def remove_item(cart: Cart, item_id) -> None:
    item_id = parse_uuid(item_id)
    if item_id is not None:
        CartItem.objects.filter(cart=cart, item_id=item_id).delete()


@transaction.atomic
def update_quantity(cart: Cart, item_id, quantity) -> CartItem | None:
    quantity = _validate_quantity(quantity)
    if quantity <= 0:
        remove_item(cart, item_id)
        return None

    item_id = parse_uuid(item_id)
    line = None
    if item_id is not None:
        line = (
            CartItem.objects.select_for_update()
            .select_related("item")
            .filter(cart=cart, item_id=item_id)
            .first()
        )
    if line is None:
        raise NotFoundError("Cart item")

    _ensure_purchasable(line.item, quantity)
    line.quantity = quantity
    line.save(update_fields=["quantity", "updated_at"])
    return line


def clear_cart(cart: Cart) -> None:
    cart.items.all().delete()


def item_count(cart: Cart) -> int:
    return sum(line.quantity for line in _lines(cart))


def total_amount(cart: Cart) -> Decimal:
    total = ZERO
    for line in _lines(cart):
        item = line.item
        unit = get_effective_price(item.base_price, item.include_transaction_fee, item.transaction_fee_rate)
        total += unit * line.quantity
    return money(total)


def cart_summary(cart: Cart, *, promotions=None, business=None) -> dict:
    lines = _lines(cart)
    if promotions is None:
        promotions = get_active_promotions()
    if business is None and lines:
        business = lines[0].item.business
    if business is None:
        try:
            business = get_default_business()
        except NotFoundError:
            business = None

    tax_rate = business.tax_rate if business is not None else ZERO
    breakdown = build_price_breakdown(
        [(line.item, line.quantity) for line in lines],
        promotions,
        tax_rate=tax_rate,
        currency=business.currency if business is not None else None,
    )

    priced_lines = []
    for line, priced in zip(lines, breakdown.lines):
        priced_lines.append(
            {
                "item_id": str(line.item_id),
                "name": line.item.name,
                "slug": line.item.slug,
                "type": line.item.type,
                "image": line.item.main_image_url,
                "quantity": line.quantity,
                "selected_variants": line.selected_variants,
                "unit": priced.unit.as_dict(),
                "line_total": str(priced.line_total),
            }
        )

    return {
        "cart_id": str(cart.id),
        "lines": priced_lines,
        "item_count": sum(line.quantity for line in lines),
        "total_amount": str(total_amount(cart)),
        "subtotal": str(breakdown.subtotal),
        "discount": str(breakdown.discount),
        "transaction_fee": str(breakdown.transaction_fee),
        "tax_rate": str(tax_rate),
        "tax": str(breakdown.tax),
        "estimated_total": str(money(breakdown.subtotal + breakdown.tax)),
        "currency": breakdown.currency,
    }

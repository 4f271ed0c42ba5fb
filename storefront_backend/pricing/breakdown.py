# pricing/breakdown.py

"""
Server-side price breakdowns for items, carts, orders and bookings.

Clients never send prices: every total is recomputed from the catalog,
the active promotions and the business tax rate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from django.conf import settings

from common.money import ZERO, money
from pricing.rules import (
    calculate_tax,
    calculate_transaction_fee,
    compare_at_discount_percentage,
    get_effective_price,
    get_final_price,
)
from promotions.services.promotion_rules import calculate_promotion_price, find_item_promotion


@dataclass(frozen=True)
class UnitPrice:
    base_price: Decimal
    promotion_price: Optional[Decimal]
    discount: Decimal
    transaction_fee: Decimal
    final_price: Decimal
    effective_price: Decimal
    compare_at_discount: int
    promotion: object = None

    def as_dict(self) -> dict:
        return {
            "base_price": str(self.base_price),
            "promotion_price": str(self.promotion_price) if self.promotion_price is not None else None,
            "discount": str(self.discount),
            "transaction_fee": str(self.transaction_fee),
            "final_price": str(self.final_price),
            "effective_price": str(self.effective_price),
            "compare_at_discount": self.compare_at_discount,
            "promotion_id": str(self.promotion.id) if self.promotion is not None else None,
        }


@dataclass
class PricedLine:
    item: object
    quantity: int
    unit: UnitPrice

    @property
    def line_total(self) -> Decimal:
        return money(self.unit.final_price * self.quantity)


@dataclass
class PriceBreakdown:
    lines: list = field(default_factory=list)
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    transaction_fee: Decimal = ZERO
    tax: Decimal = ZERO
    shipping: Decimal = ZERO
    total: Decimal = ZERO
    currency: str = ""

    def as_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "transaction_fee": str(self.transaction_fee),
            "tax": str(self.tax),
            "shipping": str(self.shipping),
            "total": str(self.total),
            "currency": self.currency,
        }


def price_item(item, promotion=None) -> UnitPrice:
    base = money(item.base_price)
    rate = item.transaction_fee_rate
    include_fee = bool(item.include_transaction_fee)

    promotion_price = calculate_promotion_price(base, promotion) if promotion is not None else None
    discounted = promotion_price if promotion_price is not None else base
    fee = calculate_transaction_fee(discounted, rate) if include_fee else ZERO

    return UnitPrice(
        base_price=base,
        promotion_price=promotion_price,
        discount=money(base - discounted),
        transaction_fee=fee,
        final_price=get_final_price(base, promotion_price, include_fee, rate),
        effective_price=get_effective_price(base, include_fee, rate),
        compare_at_discount=compare_at_discount_percentage(base, item.compare_at_price),
        promotion=promotion,
    )


def build_price_breakdown(
    lines: Iterable[tuple],
    promotions: Iterable = (),
    *,
    tax_rate=ZERO,
    shipping=ZERO,
    currency: str | None = None,
    now=None,
) -> PriceBreakdown:
    """
    lines: (item, quantity) pairs.

    subtotal = sum(final unit price x quantity)   (fees included, promotions applied)
    total    = subtotal + shipping + tax
    """
    promotions = list(promotions or ())
    breakdown = PriceBreakdown(shipping=money(shipping))

    for item, quantity in lines:
        promotion = find_item_promotion(item, promotions, now=now)
        unit = price_item(item, promotion)
        priced = PricedLine(item=item, quantity=int(quantity), unit=unit)
        breakdown.lines.append(priced)

        breakdown.subtotal += priced.line_total
        breakdown.discount += money(unit.discount * priced.quantity)
        breakdown.transaction_fee += money(unit.transaction_fee * priced.quantity)
        if not currency:
            currency = item.currency

    breakdown.subtotal = money(breakdown.subtotal)
    breakdown.discount = money(breakdown.discount)
    breakdown.transaction_fee = money(breakdown.transaction_fee)
    breakdown.tax = calculate_tax(breakdown.subtotal, tax_rate)
    breakdown.total = money(breakdown.subtotal + breakdown.shipping + breakdown.tax)
    breakdown.currency = currency or getattr(settings, "DEFAULT_CURRENCY", "MWK")
    return breakdown

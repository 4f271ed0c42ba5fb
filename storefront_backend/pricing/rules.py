# pricing/rules.py

"""
PRICING RULES

Order of application (per unit):
    promotion price  = base, discounted by the active promotion (if any)
    transaction fee  = promotion price x fee rate   (only when the item includes it)
    final price      = promotion price + transaction fee

Order level:
    tax   = subtotal x tax_rate / 100   (tax_rate is a percentage)
    total = subtotal + shipping + tax

Rates:
- transaction fee rate is a FRACTION (0.03 == 3%)
- tax rate is a PERCENTAGE (16.5 == 16.5%)
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from common.money import ZERO, money

DEFAULT_TRANSACTION_FEE_RATE = Decimal("0.03")


def default_fee_rate() -> Decimal:
    configured = getattr(settings, "DEFAULT_TRANSACTION_FEE_RATE", None)
    if configured in (None, ""):
        return DEFAULT_TRANSACTION_FEE_RATE
    return Decimal(str(configured))


def _rate(rate) -> Decimal:
    if rate is None or rate == "":
        return default_fee_rate()
    return Decimal(str(rate))


def calculate_transaction_fee(amount, rate=None) -> Decimal:
    return money(money(amount) * _rate(rate))


def get_effective_price(base_price, include_transaction_fee=False, rate=None) -> Decimal:
    """Price before promotions, fee added when the item carries it."""
    base = money(base_price)
    if not include_transaction_fee:
        return base
    return money(base + calculate_transaction_fee(base, rate))


def get_final_price(
    base_price,
    promotion_price=None,
    include_transaction_fee=False,
    rate=None,
) -> Decimal:
    price = money(promotion_price) if promotion_price is not None else money(base_price)
    if not include_transaction_fee:
        return price
    return money(price + calculate_transaction_fee(price, rate))


def calculate_transaction_fee_cost(gross_amount, rate=None) -> Decimal:
    """Processing cost the business pays on collected revenue."""
    return calculate_transaction_fee(gross_amount, rate)


def calculate_revenue_metrics(gross_amount, rate=None) -> dict:
    gross = money(gross_amount)
    fees = calculate_transaction_fee_cost(gross, rate)
    return {"gross": gross, "fees": fees, "net": money(gross - fees)}


def calculate_tax(subtotal, tax_rate_percent) -> Decimal:
    if not tax_rate_percent:
        return ZERO
    return money(money(subtotal) * Decimal(str(tax_rate_percent)) / Decimal("100"))


def compare_at_discount_percentage(base_price, compare_at_price) -> int:
    """Whole-percent discount implied by a compare-at price (0 when none)."""
    base = money(base_price)
    compare_at = money(compare_at_price)
    if compare_at <= 0 or compare_at <= base:
        return 0
    return int(((compare_at - base) / compare_at * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

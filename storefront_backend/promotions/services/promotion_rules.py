# promotions/services/promotion_rules.py

"""
Pure promotion arithmetic. No queries: callers pass promotions with
products/services prefetched.
"""

from __future__ import annotations

from decimal import Decimal

from django.utils import timezone

from common.money import ZERO, money


def is_promotion_active(promotion, now=None) -> bool:
    now = now or timezone.now()
    if promotion.status != "active":
        return False
    if promotion.start_date and promotion.start_date > now:
        return False
    if promotion.end_date and promotion.end_date < now:
        return False
    return True


def calculate_promotion_price(base_price, promotion) -> Decimal:
    base = money(base_price)
    discount = money(promotion.discount)
    if promotion.discount_type == "percentage":
        return money(base * (Decimal("1") - discount / Decimal("100")))
    return max(money(base - discount), ZERO)


def discount_label(promotion) -> str:
    amount = money(promotion.discount).normalize()
    # "20" rather than "2E+1"
    text = f"{amount:f}"
    if promotion.discount_type == "percentage":
        return f"{text}% OFF"
    return f"{text} OFF"


def promotion_item_ids(promotion) -> set[str]:
    ids = {str(i.id) for i in promotion.products.all()}
    ids.update(str(i.id) for i in promotion.services.all())
    return ids


def find_item_promotion(item, promotions, now=None):
    """
    The active promotion covering `item`. When several apply, the one giving
    the lowest price wins (first listed on ties).
    """
    item_id = str(item.id)
    best = None
    best_price = None
    for promotion in promotions or ():
        if not is_promotion_active(promotion, now):
            continue
        if item_id not in promotion_item_ids(promotion):
            continue
        price = calculate_promotion_price(item.base_price, promotion)
        if best is None or price < best_price:
            best, best_price = promotion, price
    return best

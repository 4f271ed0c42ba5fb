from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase, override_settings

from pricing.breakdown import build_price_breakdown, price_item
from pricing.rules import (
    calculate_revenue_metrics,
    calculate_tax,
    calculate_transaction_fee,
    compare_at_discount_percentage,
    get_effective_price,
    get_final_price,
)

D = Decimal


def _promo(pid="p1", discount="10", discount_type="percentage", item_ids=()):
    items = [SimpleNamespace(id=i) for i in item_ids]
    return SimpleNamespace(
        id=pid,
        status="active",
        start_date=None,
        end_date=None,
        discount=D(discount),
        discount_type=discount_type,
        products=SimpleNamespace(all=lambda: items),
        services=SimpleNamespace(all=lambda: []),
    )


def _item(iid="i1", base="100.00", include_fee=False, rate=None, compare_at=None, currency="MWK"):
    return SimpleNamespace(
        id=iid,
        base_price=D(base),
        include_transaction_fee=include_fee,
        transaction_fee_rate=rate,
        compare_at_price=compare_at,
        currency=currency,
    )


class PricingRuleTests(SimpleTestCase):
    """
    GUARANTEES:
    - price = base - promotion + fee, then tax on the subtotal
    - fee rate is a fraction, tax rate a percentage
    - NULL fee rate means the configured default (3%)
    """

    def test_fee_uses_default_rate(self):
        self.assertEqual(calculate_transaction_fee("100"), D("3.00"))
        self.assertEqual(calculate_transaction_fee("100", D("0.05")), D("5.00"))

    @override_settings(DEFAULT_TRANSACTION_FEE_RATE="0.025")
    def test_default_rate_from_settings(self):
        self.assertEqual(calculate_transaction_fee("200"), D("5.00"))

    def test_effective_and_final_price(self):
        self.assertEqual(get_effective_price("100", False), D("100.00"))
        self.assertEqual(get_effective_price("100", True), D("103.00"))
        self.assertEqual(get_final_price("100", D("80"), True), D("82.40"))
        self.assertEqual(get_final_price("100", None, False), D("100.00"))
        self.assertEqual(get_final_price("100", D("0"), True), D("0.00"))

    def test_tax(self):
        self.assertEqual(calculate_tax("200", "16.5"), D("33.00"))
        self.assertEqual(calculate_tax("200", 0), D("0.00"))

    def test_revenue_metrics(self):
        self.assertEqual(
            calculate_revenue_metrics("1000"),
            {"gross": D("1000.00"), "fees": D("30.00"), "net": D("970.00")},
        )

    def test_compare_at_discount(self):
        self.assertEqual(compare_at_discount_percentage("75", "100"), 25)
        self.assertEqual(compare_at_discount_percentage("100", "90"), 0)
        self.assertEqual(compare_at_discount_percentage("100", None), 0)


class BreakdownTests(SimpleTestCase):
    def test_price_item_with_promotion_and_fee(self):
        unit = price_item(_item(include_fee=True), _promo(discount="20", item_ids=["i1"]))
        self.assertEqual(unit.promotion_price, D("80.00"))
        self.assertEqual(unit.discount, D("20.00"))
        self.assertEqual(unit.transaction_fee, D("2.40"))
        self.assertEqual(unit.final_price, D("82.40"))
        self.assertEqual(unit.effective_price, D("103.00"))

    def test_fixed_promotion_never_negative(self):
        unit = price_item(_item(base="50"), _promo(discount="80", discount_type="fixed"))
        self.assertEqual(unit.final_price, D("0.00"))
        self.assertEqual(unit.discount, D("50.00"))

    def test_breakdown_totals(self):
        a = _item("a", base="100.00", include_fee=True)
        b = _item("b", base="40.00")
        promo = _promo(discount="10", item_ids=["a"])

        breakdown = build_price_breakdown(
            [(a, 2), (b, 1)], [promo], tax_rate=D("10"), shipping=D("5")
        )

        # a: 90 + 2.70 fee = 92.70 x2 = 185.40 ; b: 40
        self.assertEqual(breakdown.subtotal, D("225.40"))
        self.assertEqual(breakdown.discount, D("20.00"))
        self.assertEqual(breakdown.transaction_fee, D("5.40"))
        self.assertEqual(breakdown.tax, D("22.54"))
        self.assertEqual(breakdown.shipping, D("5.00"))
        self.assertEqual(breakdown.total, D("252.94"))
        self.assertEqual(breakdown.currency, "MWK")

    def test_best_promotion_wins(self):
        item = _item("a")
        weak = _promo("weak", discount="5", item_ids=["a"])
        strong = _promo("strong", discount="30", discount_type="fixed", item_ids=["a"])
        breakdown = build_price_breakdown([(item, 1)], [weak, strong])
        self.assertIs(breakdown.lines[0].unit.promotion, strong)
        self.assertEqual(breakdown.subtotal, D("70.00"))

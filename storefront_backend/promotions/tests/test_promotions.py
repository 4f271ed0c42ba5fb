from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from common.tests.factories import make_business, make_item, make_promotion, make_user
from promotions.models import Promotion
from promotions.services.promotion_rules import (
    calculate_promotion_price,
    discount_label,
    find_item_promotion,
    is_promotion_active,
)
from promotions.services.promotion_service import (
    get_active_promotions,
    get_promotion_by_slug,
    promotion_item_count,
)


class PromotionRuleTests(TestCase):
    """
    GUARANTEES:
    - Only active promotions inside their date window apply
    - Percentage and fixed discounts price correctly, never below zero
    """

    def setUp(self):
        self.business = make_business()
        self.item = make_item(self.business, base_price=Decimal("200.00"))

    def test_active_window(self):
        now = timezone.now()
        promo = make_promotion([self.item])
        self.assertTrue(is_promotion_active(promo, now))
        self.assertFalse(is_promotion_active(promo, now + timedelta(days=2)))

        promo.status = Promotion.STATUS_DRAFT
        self.assertFalse(is_promotion_active(promo, now))

    def test_prices_and_labels(self):
        pct = make_promotion(discount=Decimal("20"))
        fixed = make_promotion(discount=Decimal("500"), discount_type=Promotion.DISCOUNT_FIXED)

        self.assertEqual(calculate_promotion_price(Decimal("200"), pct), Decimal("160.00"))
        self.assertEqual(calculate_promotion_price(Decimal("200"), fixed), Decimal("0.00"))
        self.assertEqual(discount_label(pct), "20% OFF")
        self.assertEqual(discount_label(fixed), "500 OFF")

    def test_find_item_promotion_ignores_other_items(self):
        other = make_item(self.business)
        make_promotion([other], discount=Decimal("50"))
        mine = make_promotion([self.item], discount=Decimal("10"))

        promotions = get_active_promotions()
        self.assertEqual(find_item_promotion(self.item, promotions), mine)

    def test_expired_promotions_are_not_active(self):
        now = timezone.now()
        make_promotion(
            [self.item], start_date=now - timedelta(days=5), end_date=now - timedelta(days=1)
        )
        self.assertEqual(get_active_promotions(), [])

    def test_lookup_by_slug_or_id(self):
        promo = make_promotion([self.item], slug="summer")
        self.assertEqual(get_promotion_by_slug("summer"), promo)
        self.assertEqual(get_promotion_by_slug(str(promo.id)), promo)
        self.assertIsNone(get_promotion_by_slug("nope"))

    def test_item_count_only_counts_active_items(self):
        draft = make_item(self.business, status="draft")
        service = make_item(self.business, type="service")
        promo = make_promotion([self.item, draft, service])
        self.assertEqual(promotion_item_count(promo), 2)


class PromotionEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.business = make_business()
        self.item = make_item(self.business, base_price=Decimal("100.00"))

    def test_public_detail_prices_items(self):
        make_promotion([self.item], slug="flash", discount=Decimal("25"))
        response = self.client.get("/api/promotions/public/flash/")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["promotion"]["discount_label"], "25% OFF")
        self.assertEqual(body["items"][0]["pricing"]["final_price"], "75.00")

    def test_public_detail_404(self):
        response = self.client.get("/api/promotions/public/missing/")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["message"], "Promotion not found")

    def test_staff_create_validates_dates(self):
        self.client.force_authenticate(make_user(role="manager"))
        now = timezone.now()
        payload = {
            "name": "Backwards",
            "discount": "10",
            "discount_type": "percentage",
            "status": "active",
            "start_date": now.isoformat(),
            "end_date": (now - timedelta(days=1)).isoformat(),
            "products": [str(self.item.id)],
        }
        response = self.client.post("/api/promotions/", payload, format="json")
        self.assertEqual(response.status_code, 400)

        payload["end_date"] = (now + timedelta(days=3)).isoformat()
        response = self.client.post("/api/promotions/", payload, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["slug"], "backwards")
        self.assertEqual(response.json()["item_count"], 1)

    def test_customer_cannot_create(self):
        self.client.force_authenticate(make_user())
        response = self.client.post("/api/promotions/", {"name": "x"}, format="json")
        self.assertEqual(response.status_code, 403)

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from businesses.models import Business
from businesses.services.business_service import business_contact_links, get_default_business
from common.errors import NotFoundError

User = get_user_model()


class DefaultBusinessTests(TestCase):
    """
    GUARANTEES:
    - The default business is the oldest active one
    - No active business is a NotFoundError
    """

    def test_no_business(self):
        with self.assertRaisesMessage(NotFoundError, "Business not found"):
            get_default_business()

    def test_oldest_active_wins(self):
        Business.objects.create(name="Closed", is_active=False)
        first = Business.objects.create(name="First Shop")
        Business.objects.create(name="Second Shop")
        self.assertEqual(get_default_business(), first)
        self.assertEqual(first.slug, "first-shop")

    def test_tax_rate_bounds(self):
        from django.core.exceptions import ValidationError

        with self.assertRaises(ValidationError):
            Business.objects.create(name="Bad", tax_rate=Decimal("120"))


class ContactLinkTests(TestCase):
    def test_links(self):
        business = Business(
            name="Shop",
            contact_email="help@shop.mw",
            contact_phone="+265 991 234-567",
        )
        links = business_contact_links(business)
        self.assertEqual(
            links["whatsapp"],
            "https://wa.me/265991234567?text=Hello%2C%20I%20need%20help%20with%20my%20order.",
        )
        self.assertTrue(links["email"].startswith("mailto:help@shop.mw?subject=Customer%20Inquiry"))
        self.assertEqual(links["phone"], "tel:+265991234-567")

    def test_dedicated_whatsapp_number_and_missing_contacts(self):
        links = business_contact_links(Business(name="Shop", whatsapp_number="+44 7000"))
        self.assertTrue(links["whatsapp"].startswith("https://wa.me/447000?"))
        self.assertIsNone(links["email"])
        self.assertIsNone(links["phone"])


class BusinessEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.business = Business.objects.create(name="Shop", contact_email="help@shop.mw")

    def test_public_default(self):
        response = self.client.get("/api/businesses/default/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["slug"], "shop")
        self.assertIn("contact_links", response.json())

    def test_admin_only_writes(self):
        customer = User.objects.create_user(email="c@example.com", password="pass")
        self.client.force_authenticate(customer)
        response = self.client.post("/api/businesses/", {"name": "Other"}, format="json")
        self.assertEqual(response.status_code, 403)

        admin = User.objects.create_user(email="a@example.com", password="pass", role="admin")
        self.client.force_authenticate(admin)
        response = self.client.post("/api/businesses/", {"name": "Other", "tax_rate": "16.5"}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["slug"], "other")

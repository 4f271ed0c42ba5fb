from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from catalog.models import Category, Item
from catalog.services.item_service import (
    create_item,
    delete_item,
    get_item_by_id,
    get_item_by_slug,
    get_items,
    get_items_by_ids,
    get_products,
    get_services,
    update_item,
)
from catalog.services.metadata import generate_item_metadata
from common.errors import NotFoundError, ValidationError
from common.tests.factories import make_business, make_item, make_promotion, make_user


class ItemServiceTests(TestCase):
    """
    GUARANTEES:
    - Slugs are unique across items
    - Missing items raise NotFoundError("Item")
    - Id-batch lookups keep the caller's order
    - Cursor pages never repeat or skip items
    """

    def setUp(self):
        self.business = make_business(currency="MWK")

    def test_create_requires_name_slug_type(self):
        with self.assertRaisesMessage(ValidationError, "Name, slug, and type are required"):
            create_item(name="Soap", type="product", base_price=Decimal("1"))

    def test_create_defaults_to_default_business(self):
        item = create_item(name="Soap", slug="soap", type="product", base_price=Decimal("10"))
        self.assertEqual(item.business, self.business)
        self.assertEqual(item.currency, "MWK")

    def test_duplicate_slug(self):
        make_item(self.business, slug="soap")
        with self.assertRaisesMessage(ValidationError, "Item with this slug already exists"):
            create_item(name="Soap", slug="soap", type="product", base_price=Decimal("10"))

    def test_update_and_slug_conflict(self):
        a = make_item(self.business, slug="a")
        make_item(self.business, slug="b")

        with self.assertRaisesMessage(ValidationError, "Item with this slug already exists"):
            update_item(a.id, slug="b")

        updated = update_item(a.id, slug="a", name="Renamed")
        self.assertEqual(updated.name, "Renamed")

    def test_not_found(self):
        missing = "7d3b1c3e-0000-4000-8000-000000000000"
        for call in (get_item_by_id, delete_item):
            with self.assertRaisesMessage(NotFoundError, "Item not found"):
                call(missing)
        with self.assertRaises(NotFoundError):
            update_item(missing, name="x")
        with self.assertRaises(NotFoundError):
            get_item_by_id("not-a-uuid")
        self.assertIsNone(get_item_by_slug("missing"))

    def test_get_items_by_ids_preserves_order(self):
        a = make_item(self.business)
        b = make_item(self.business)
        c = make_item(self.business)
        found = get_items_by_ids([c.id, "7d3b1c3e-0000-4000-8000-000000000000", a.id, b.id])
        self.assertEqual(found, [c, a, b])

    def test_type_helpers(self):
        product = make_item(self.business)
        service = make_item(self.business, type="service")
        self.assertEqual(get_products(), [product])
        self.assertEqual(get_services(), [service])

    def test_cursor_pagination(self):
        items = [make_item(self.business) for _ in range(5)]
        newest_first = sorted(items, key=lambda i: (i.created_at, i.id), reverse=True)

        first = get_items(limit=2)
        self.assertEqual(first["items"], newest_first[:2])
        self.assertTrue(first["has_more"])

        second = get_items(limit=2, last_doc_id=first["last_doc_id"])
        third = get_items(limit=2, last_doc_id=second["last_doc_id"])
        self.assertEqual(second["items"], newest_first[2:4])
        self.assertEqual(third["items"], newest_first[4:])
        self.assertFalse(third["has_more"])

    def test_filters(self):
        category = Category.objects.create(name="Soaps")
        featured = make_item(self.business, is_featured=True)
        featured.categories.add(category)
        make_item(self.business, status=Item.STATUS_DRAFT)

        self.assertEqual(get_items(featured=True)["items"], [featured])
        self.assertEqual(get_items(category_id=category.id)["items"], [featured])
        self.assertEqual(len(get_items(status="active")["items"]), 1)


@override_settings(FRONTEND_BASE_URL="https://shop.example.com")
class MetadataTests(TestCase):
    def test_defaults(self):
        business = make_business(name="Kwacha Goods")
        item = make_item(
            business,
            name="Soap",
            slug="soap",
            base_price=Decimal("1500"),
            images=[{"url": "/img/soap.png", "alt": "Soap bar"}],
        )

        meta = generate_item_metadata(item, business)

        self.assertEqual(meta["title"], "Soap | Kwacha Goods")
        self.assertEqual(meta["description"], "Shop Soap at Kwacha Goods")
        self.assertEqual(meta["keywords"], "Soap, product, Kwacha Goods")
        self.assertEqual(meta["canonical_url"], "https://shop.example.com/products/soap")
        self.assertEqual(meta["open_graph"]["images"][0]["url"], "https://shop.example.com/img/soap.png")
        self.assertEqual(meta["price"]["formatted"], "MWK 1,500.00")

    def test_seo_overrides(self):
        item = make_item(
            make_business(),
            type="service",
            slug="massage",
            seo_title="Relax",
            seo_description="Best massage",
            seo_keywords=["spa"],
        )
        meta = generate_item_metadata(item)
        self.assertEqual(meta["title"], "Relax")
        self.assertEqual(meta["keywords"], "spa")
        self.assertTrue(meta["canonical_url"].endswith("/services/massage"))
        self.assertTrue(meta["open_graph"]["images"][0]["url"].endswith("/placeholder-product.jpg"))


class CatalogEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.business = make_business()

    def test_public_list_is_active_only_and_priced(self):
        item = make_item(self.business, base_price=Decimal("100.00"), include_transaction_fee=True)
        make_item(self.business, status=Item.STATUS_DRAFT)
        make_promotion([item], discount=Decimal("50"))

        response = self.client.get("/api/catalog/public/items/")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(len(body["items"]), 1)
        self.assertEqual(body["items"][0]["pricing"]["final_price"], "51.50")
        self.assertEqual(body["items"][0]["pricing"]["promotion_label"], "50% OFF")
        self.assertFalse(body["has_more"])

    def test_public_detail_hides_drafts(self):
        draft = make_item(self.business, status=Item.STATUS_DRAFT, slug="secret")
        self.assertEqual(self.client.get(f"/api/catalog/public/items/{draft.id}/").status_code, 404)
        self.assertEqual(self.client.get("/api/catalog/public/items/slug/secret/").status_code, 404)

    def test_metadata_endpoint(self):
        make_item(self.business, slug="soap")
        response = self.client.get("/api/catalog/public/items/slug/soap/metadata/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("open_graph", response.json())

    def test_staff_crud(self):
        self.client.force_authenticate(make_user(role="manager"))

        response = self.client.post(
            "/api/catalog/items/",
            {"name": "Soap", "slug": "soap", "type": "product", "base_price": "12.50"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        item_id = response.json()["id"]

        dup = self.client.post(
            "/api/catalog/items/",
            {"name": "Soap 2", "slug": "soap", "type": "product", "base_price": "1"},
            format="json",
        )
        self.assertEqual(dup.status_code, 400)
        self.assertEqual(dup.json()["error"]["message"], "Item with this slug already exists")

        patched = self.client.patch(f"/api/catalog/items/{item_id}/", {"status": "active"}, format="json")
        self.assertEqual(patched.json()["status"], "active")

        self.assertEqual(self.client.delete(f"/api/catalog/items/{item_id}/").status_code, 204)
        self.assertEqual(self.client.delete(f"/api/catalog/items/{item_id}/").status_code, 404)

    def test_staff_without_catalog_capability(self):
        self.client.force_authenticate(make_user(role="staff"))
        response = self.client.post("/api/catalog/items/", {"name": "x"}, format="json")
        self.assertEqual(response.status_code, 403)

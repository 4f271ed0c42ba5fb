from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from carts.services.cart_service import add_item, get_active_cart
from common.errors import NotFoundError, ValidationError
from common.tests.factories import make_business, make_item, make_promotion, make_user
from orders.models import Order
from orders.services.order_rules import is_valid_order_status_transition
from orders.services.order_service import (
    cancel_order,
    create_order,
    create_order_from_cart,
    get_order_by_id,
    get_order_by_number,
    get_orders,
    order_confirmation,
    update_order,
)

CONTACT = {"email": "Buyer@Example.com", "name": "Buyer", "phone": "+265991234567"}


class OrderTransitionTests(TestCase):
    """
    GUARANTEES:
    - Only the transition table moves an order
    - Terminal statuses never move
    """

    def test_table(self):
        allowed = [
            ("pending", "paid"),
            ("pending", "canceled"),
            ("paid", "processing"),
            ("paid", "canceled"),
            ("paid", "refunded"),
            ("processing", "shipped"),
            ("processing", "canceled"),
            ("shipped", "completed"),
            ("shipped", "canceled"),
        ]
        for current, new in allowed:
            self.assertTrue(is_valid_order_status_transition(current, new), (current, new))

        denied = [
            ("pending", "shipped"),
            ("processing", "refunded"),
            ("completed", "canceled"),
            ("canceled", "pending"),
            ("refunded", "paid"),
            ("unknown", "paid"),
        ]
        for current, new in denied:
            self.assertFalse(is_valid_order_status_transition(current, new), (current, new))


class OrderServiceTests(TestCase):
    """
    GUARANTEES:
    - Totals are computed server-side (promotions, fees, tax, delivery)
    - Invalid contact details and quantities are rejected
    - Status timestamps are stamped on entry
    - Paying an order deducts tracked stock
    """

    def setUp(self):
        self.business = make_business(tax_rate=Decimal("10"), delivery_fee=Decimal("20.00"))
        self.item = make_item(self.business, base_price=Decimal("100.00"))

    def _order(self, **kwargs):
        kwargs.setdefault("lines", [{"item_id": self.item.id, "quantity": 2}])
        kwargs.setdefault("contact", CONTACT)
        return create_order(**kwargs)

    def test_pricing_snapshot(self):
        fee_item = make_item(
            self.business,
            base_price=Decimal("200.00"),
            include_transaction_fee=True,
            transaction_fee_rate=Decimal("0.03"),
        )
        make_promotion([fee_item], discount=Decimal("50"))

        order = self._order(
            lines=[
                {"item_id": self.item.id, "quantity": 2},
                {"item_id": fee_item.id, "quantity": 1},
            ],
            shipping_address={"city": "Lilongwe"},
        )

        # 2 x 100 + (100 + 3% fee) = 303
        self.assertEqual(order.subtotal, Decimal("303.00"))
        self.assertEqual(order.discount, Decimal("100.00"))
        self.assertEqual(order.transaction_fee, Decimal("3.00"))
        self.assertEqual(order.shipping, Decimal("20.00"))
        self.assertEqual(order.tax, Decimal("30.30"))
        self.assertEqual(order.total, Decimal("353.30"))
        self.assertEqual(order.customer_email, "buyer@example.com")
        self.assertEqual(order.items.count(), 2)
        self.assertTrue(order.order_number.startswith("ORD"))

    def test_no_shipping_without_address(self):
        order = self._order()
        self.assertEqual(order.shipping, Decimal("0.00"))

    def test_validation(self):
        with self.assertRaisesMessage(ValidationError, "email is invalid"):
            self._order(contact={"email": "nope", "name": "A"})
        with self.assertRaisesMessage(ValidationError, "phone is invalid"):
            self._order(contact={"email": "a@b.co", "name": "A", "phone": "abc"})
        with self.assertRaises(ValidationError):
            self._order(lines=[{"item_id": self.item.id, "quantity": 0}])
        with self.assertRaisesMessage(ValidationError, "at least one item"):
            self._order(lines=[])

        service = make_item(self.business, type="service")
        with self.assertRaisesMessage(ValidationError, "must be booked"):
            self._order(lines=[{"item_id": service.id, "quantity": 1}])

        with self.assertRaises(NotFoundError):
            self._order(lines=[{"item_id": "7d3b1c3e-0000-4000-8000-000000000000", "quantity": 1}])

    def test_stock_checked_and_deducted_on_paid(self):
        stocked = make_item(self.business, stock_quantity=3)
        with self.assertRaisesMessage(ValidationError, "Insufficient stock"):
            self._order(lines=[{"item_id": stocked.id, "quantity": 4}])

        order = self._order(lines=[{"item_id": stocked.id, "quantity": 2}])
        update_order(order.id, status="paid")
        stocked.refresh_from_db()
        self.assertEqual(stocked.stock_quantity, 1)

    def test_update_enforces_transitions_and_stamps(self):
        order = self._order()
        with self.assertRaisesMessage(
            ValidationError,
            "Cannot change order status from pending to shipped. Invalid status transition.",
        ):
            update_order(order.id, status="shipped")

        order = update_order(order.id, status="paid")
        self.assertIsNotNone(order.paid_at)
        order = update_order(order.id, status="processing")
        self.assertIsNotNone(order.processing_at)

        with self.assertRaises(ValidationError):
            update_order(order.id, total=Decimal("1"))

    def test_cancel(self):
        order = self._order()
        order = cancel_order(order.id, "Changed my mind")
        self.assertEqual(order.status, Order.STATUS_CANCELED)
        self.assertEqual(order.canceled_reason, "Changed my mind")
        self.assertIsNotNone(order.canceled_at)

        with self.assertRaisesMessage(ValidationError, "Order is already canceled"):
            cancel_order(order.id)

        done = self._order()
        for status in ("paid", "processing", "shipped", "completed"):
            update_order(done.id, status=status)
        with self.assertRaisesMessage(ValidationError, "Cannot cancel a completed order"):
            cancel_order(done.id)

    def test_lookups_and_pages(self):
        user = make_user()
        first = self._order(customer=user)
        second = self._order(customer=user)
        self._order()

        self.assertEqual(get_order_by_id(first.id), first)
        self.assertEqual(get_order_by_number(second.order_number), second)
        self.assertIsNone(get_order_by_number("ORD-missing"))
        with self.assertRaisesMessage(NotFoundError, "Order not found"):
            get_order_by_id("bad")

        page = get_orders(customer_id=user.id, limit=1)
        self.assertEqual(page["orders"], [second])
        self.assertTrue(page["has_more"])
        page = get_orders(customer_id=user.id, limit=1, last_doc_id=page["last_doc_id"])
        self.assertEqual(page["orders"], [first])
        self.assertFalse(page["has_more"])

        self.assertEqual(len(get_orders(customer_email="BUYER@example.com")["orders"]), 3)

    def test_from_cart_empties_cart(self):
        user = make_user()
        cart = get_active_cart(user)
        add_item(cart, self.item, 3)

        order = create_order_from_cart(cart, contact={"name": "Cart Buyer"})
        self.assertEqual(order.customer, user)
        self.assertEqual(order.customer_email, user.email)
        self.assertEqual(order.items.get().quantity, 3)
        self.assertEqual(cart.items.count(), 0)

        with self.assertRaisesMessage(ValidationError, "Cart is empty"):
            create_order_from_cart(cart, contact={"name": "Cart Buyer"})

    def test_confirmation_payload(self):
        order = update_order(self._order().id, status="paid")
        payload = order_confirmation(order)
        self.assertTrue(payload["is_paid"])
        self.assertEqual(payload["total_display"], "MWK 220.00")
        self.assertEqual(len(payload["items"]), 1)


class OrderApiTests(TestCase):
    def setUp(self):
        self.business = make_business()
        self.item = make_item(self.business, base_price=Decimal("40.00"))
        self.customer = make_user(first_name="Ann", last_name="Buyer")
        self.client = APIClient()
        self.client.force_authenticate(self.customer)

    def _checkout(self):
        return self.client.post(
            "/api/orders/",
            {"items": [{"item_id": str(self.item.id), "quantity": 2}], "name": "Ann Buyer"},
            format="json",
        )

    def test_checkout_and_own_listing(self):
        res = self._checkout()
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["total"], "80.00")

        other = APIClient()
        other.force_authenticate(make_user())
        self.assertEqual(other.get(f"/api/orders/{res.data['id']}/").status_code, 404)

        listing = self.client.get("/api/orders/")
        self.assertEqual(len(listing.data["orders"]), 1)

    def test_customer_cannot_change_status(self):
        order_id = self._checkout().data["id"]
        res = self.client.post(f"/api/orders/{order_id}/status/", {"status": "paid"}, format="json")
        self.assertEqual(res.status_code, 403)

    def test_staff_status_change_and_invalid_transition(self):
        order_id = self._checkout().data["id"]
        staff = APIClient()
        staff.force_authenticate(make_user(role="staff"))

        res = staff.post(f"/api/orders/{order_id}/status/", {"status": "shipped"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("Invalid status transition", res.data["error"]["message"])

        res = staff.post(f"/api/orders/{order_id}/status/", {"status": "paid"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "paid")

    def test_staff_status_change_cannot_refund(self):
        order_id = self._checkout().data["id"]
        staff = APIClient()
        staff.force_authenticate(make_user(role="staff"))
        staff.post(f"/api/orders/{order_id}/status/", {"status": "paid"}, format="json")

        res = staff.post(f"/api/orders/{order_id}/status/", {"status": "refunded"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(get_order_by_id(order_id).status, Order.STATUS_PAID)

    def test_cancel_own_order(self):
        order_id = self._checkout().data["id"]
        res = self.client.post(f"/api/orders/{order_id}/cancel/", {"reason": "oops"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "canceled")

    def test_guest_lookup_requires_matching_email(self):
        order = Order.objects.get(id=self._checkout().data["id"])
        anon = APIClient()
        res = anon.get(f"/api/orders/number/{order.order_number}/", {"email": self.customer.email})
        self.assertEqual(res.status_code, 200)
        res = anon.get(f"/api/orders/number/{order.order_number}/", {"email": "x@y.com"})
        self.assertEqual(res.status_code, 404)

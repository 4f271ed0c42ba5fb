import hashlib
import hmac
import json
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from bookings.models import Booking
from bookings.services.booking_service import create_booking
from common.errors import PaymentProviderError, ValidationError
from common.tests.factories import make_business, make_item, make_user
from ledger.models import LedgerEntry
from orders.models import Order
from orders.services.order_service import create_order
from payments.models import Payment
from payments.services.paychangu import (
    paychangu_initiate_payment,
    paychangu_verify_payment,
    verify_paychangu_signature,
)
from payments.services.payment_service import confirm_payment, initiate_payment

CONTACT = {"email": "payer@example.com", "name": "Pat Payer"}

PAYCHANGU_SETTINGS = {
    "PAYCHANGU": {
        "PUBLIC_KEY": "pub",
        "SECRET_KEY": "sec",
        "WEBHOOK_SECRET": "whsec",
        "CALLBACK_URL": "",
        "RETURN_URL": "",
    }
}

CHECKOUT = {"checkout_url": "https://checkout.paychangu.com/abc", "raw": {"status": "success"}}


def verified(status="success", amount="100.00", currency="MWK"):
    return {
        "ok": True,
        "status": status,
        "amount": Decimal(amount) if amount is not None else None,
        "currency": currency,
        "reference": "PC-REF-1",
        "tx_ref": "",
        "raw": {"status": "success", "data": {"status": status}},
    }


def fake_urlopen(payload):
    response = mock.MagicMock()
    response.read.return_value = json.dumps(payload).encode("utf-8")
    opener = mock.MagicMock()
    opener.return_value.__enter__.return_value = response
    return opener


@override_settings(PAYMENTS=PAYCHANGU_SETTINGS)
class PayChanguClientTests(TestCase):
    """
    GUARANTEES:
    - Provider responses are normalised
    - Rejections and missing credentials raise PaymentProviderError
    - Webhook signatures are HMAC-SHA256 of the raw body
    """

    def test_initiate_returns_checkout_url(self):
        opener = fake_urlopen({"status": "success", "data": {"checkout_url": "https://pay/x"}})
        with mock.patch("payments.services.paychangu.urlopen", opener):
            result = paychangu_initiate_payment(amount=Decimal("10"), currency="MWK", tx_ref="TX-1", email="a@b.co")

        self.assertEqual(result["checkout_url"], "https://pay/x")
        request = opener.call_args[0][0]
        self.assertEqual(request.get_header("Authorization"), "Bearer sec")
        self.assertEqual(json.loads(request.data)["amount"], "10.00")

    def test_initiate_rejected(self):
        opener = fake_urlopen({"status": "failed", "message": "Invalid currency"})
        with mock.patch("payments.services.paychangu.urlopen", opener):
            with self.assertRaisesMessage(PaymentProviderError, "Invalid currency"):
                paychangu_initiate_payment(amount=Decimal("10"), currency="XXX", tx_ref="TX-1", email="a@b.co")

    def test_missing_secret_key(self):
        with override_settings(PAYMENTS={"PAYCHANGU": {}}):
            with self.assertRaises(PaymentProviderError):
                paychangu_verify_payment("TX-1")

    def test_verify_normalises(self):
        payload = {
            "status": "success",
            "data": {"status": "Success", "amount": 1500, "currency": "mwk", "reference": "R1", "tx_ref": "TX-1"},
        }
        with mock.patch("payments.services.paychangu.urlopen", fake_urlopen(payload)):
            result = paychangu_verify_payment("TX-1")

        self.assertTrue(result["ok"])
        self.assertEqual(result["status"], "success")
        self.assertEqual(result["amount"], Decimal("1500.00"))
        self.assertEqual(result["currency"], "MWK")
        self.assertEqual(result["reference"], "R1")

    def test_signature(self):
        body = b'{"tx_ref": "TX-1"}'
        good = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()
        self.assertTrue(verify_paychangu_signature(body, good))
        self.assertFalse(verify_paychangu_signature(body, "bad"))
        self.assertFalse(verify_paychangu_signature(body, None))


@override_settings(PAYMENTS=PAYCHANGU_SETTINGS, FRONTEND_BASE_URL="https://shop.example")
class PaymentServiceTests(TestCase):
    """
    GUARANTEES:
    - Only pending orders/bookings can be paid
    - Partial bookings are charged the booking fee
    - Confirmation is idempotent and checks amount and currency
    - A confirmed payment marks the target paid and posts to the ledger
    """

    def setUp(self):
        self.business = make_business()
        self.item = make_item(self.business, base_price=Decimal("100.00"))
        self.order = create_order(lines=[{"item_id": self.item.id, "quantity": 1}], contact=CONTACT)

    @mock.patch("payments.services.payment_service.paychangu_initiate_payment", return_value=CHECKOUT)
    def test_initiate_for_order(self, initiate):
        payment = initiate_payment(order=self.order)

        self.assertEqual(payment.status, Payment.STATUS_PENDING)
        self.assertEqual(payment.amount, self.order.total)
        self.assertEqual(payment.checkout_url, CHECKOUT["checkout_url"])
        kwargs = initiate.call_args.kwargs
        self.assertEqual(kwargs["first_name"], "Pat")
        self.assertEqual(
            kwargs["return_url"],
            f"https://shop.example/order-confirmed?orderId={self.order.id}&txRef={payment.tx_ref}",
        )

    @mock.patch("payments.services.payment_service.paychangu_initiate_payment", return_value=CHECKOUT)
    def test_initiate_partial_booking_charges_fee(self, initiate):
        service = make_item(
            self.business, type="service", base_price=Decimal("500.00"), booking_fee=Decimal("100.00")
        )
        booking = create_booking(
            service_id=service.id,
            start_time=timezone.now() + timedelta(days=1),
            contact=CONTACT,
            partial_payment=True,
        )
        payment = initiate_payment(booking=booking)
        self.assertEqual(payment.amount, Decimal("100.00"))
        self.assertIn("/book-confirmed?bookingId=", initiate.call_args.kwargs["return_url"])

    def test_initiate_rejects_non_pending(self):
        Order.objects.filter(id=self.order.id).update(status=Order.STATUS_CANCELED)
        self.order.refresh_from_db()
        with self.assertRaisesMessage(ValidationError, "Cannot pay for a canceled order"):
            initiate_payment(order=self.order)

    @mock.patch(
        "payments.services.payment_service.paychangu_initiate_payment",
        side_effect=PaymentProviderError("down"),
    )
    def test_provider_failure_marks_payment_failed(self, _):
        with self.assertRaises(PaymentProviderError):
            initiate_payment(order=self.order)
        payment = Payment.objects.get(order=self.order)
        self.assertEqual(payment.status, Payment.STATUS_FAILED)
        self.assertEqual(payment.failure_reason, "down")

    def _pending_payment(self):
        with mock.patch("payments.services.payment_service.paychangu_initiate_payment", return_value=CHECKOUT):
            return initiate_payment(order=self.order)

    @override_settings(LEDGER_ENABLED=True)
    def test_confirm_success_is_idempotent(self):
        payment = self._pending_payment()
        with mock.patch(
            "payments.services.payment_service.paychangu_verify_payment",
            return_value=verified(amount=str(self.order.total)),
        ) as verify:
            confirm_payment(payment.tx_ref)
            confirm_payment(payment.tx_ref)

        self.assertEqual(verify.call_count, 1)
        payment.refresh_from_db()
        self.order.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_SUCCESS)
        self.assertEqual(payment.provider_reference, "PC-REF-1")
        self.assertIsNotNone(payment.paid_at)
        self.assertEqual(self.order.status, Order.STATUS_PAID)
        self.assertEqual(LedgerEntry.objects.filter(payment_id=str(payment.id)).count(), 1)

    def test_confirm_pending_stays_pending(self):
        payment = self._pending_payment()
        with mock.patch(
            "payments.services.payment_service.paychangu_verify_payment",
            return_value=verified(status="pending"),
        ):
            payment = confirm_payment(payment.tx_ref)
        self.assertEqual(payment.status, Payment.STATUS_PENDING)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PENDING)

    def test_confirm_amount_and_currency_mismatch(self):
        payment = self._pending_payment()
        with mock.patch(
            "payments.services.payment_service.paychangu_verify_payment",
            return_value=verified(amount="1.00"),
        ):
            payment = confirm_payment(payment.tx_ref)
        self.assertEqual(payment.status, Payment.STATUS_FAILED)
        self.assertEqual(payment.failure_reason, "Amount mismatch")

        payment = self._pending_payment()
        with mock.patch(
            "payments.services.payment_service.paychangu_verify_payment",
            return_value=verified(amount=str(self.order.total), currency="USD"),
        ):
            payment = confirm_payment(payment.tx_ref)
        self.assertEqual(payment.failure_reason, "Currency mismatch")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PENDING)

    def test_confirm_failed(self):
        payment = self._pending_payment()
        with mock.patch(
            "payments.services.payment_service.paychangu_verify_payment",
            return_value=verified(status="failed"),
        ):
            payment = confirm_payment(payment.tx_ref)
        self.assertEqual(payment.status, Payment.STATUS_FAILED)


@override_settings(PAYMENTS=PAYCHANGU_SETTINGS)
class PaymentApiTests(TestCase):
    def setUp(self):
        self.customer = make_user()
        self.client = APIClient()
        self.client.force_authenticate(self.customer)
        business = make_business()
        self.item = make_item(business, base_price=Decimal("100.00"))
        self.order = create_order(
            lines=[{"item_id": self.item.id, "quantity": 1}],
            contact=CONTACT,
            customer=self.customer,
        )

    @mock.patch("payments.services.payment_service.paychangu_initiate_payment", return_value=CHECKOUT)
    def test_initiate_own_order_only(self, _):
        res = self.client.post("/api/payments/initiate/", {"order_id": str(self.order.id)}, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["checkout_url"], CHECKOUT["checkout_url"])

        other = APIClient()
        other.force_authenticate(make_user())
        res = other.post("/api/payments/initiate/", {"order_id": str(self.order.id)}, format="json")
        self.assertEqual(res.status_code, 404)

    def test_initiate_requires_exactly_one_target(self):
        res = self.client.post("/api/payments/initiate/", {}, format="json")
        self.assertEqual(res.status_code, 400)

    @mock.patch(
        "payments.services.payment_service.paychangu_initiate_payment",
        side_effect=PaymentProviderError("PayChangu URLError: timed out"),
    )
    def test_provider_down_is_502(self, _):
        res = self.client.post("/api/payments/initiate/", {"order_id": str(self.order.id)}, format="json")
        self.assertEqual(res.status_code, 502)
        self.assertEqual(res.data["error"]["code"], "payment_provider_error")

    def _payment(self):
        return Payment.objects.create(
            order=self.order,
            tx_ref="TX-API-1",
            amount=self.order.total,
            currency=self.order.currency,
            status=Payment.STATUS_PENDING,
        )

    def test_verify_endpoint(self):
        self.assertEqual(APIClient().get("/api/payments/verify/").status_code, 400)

        self._payment()
        with mock.patch(
            "payments.services.payment_service.paychangu_verify_payment",
            return_value=verified(amount=str(self.order.total)),
        ):
            res = APIClient().get("/api/payments/verify/", {"txRef": "TX-API-1"})

        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["success"])
        self.assertEqual(res.data["data"]["status"], "success")
        self.assertEqual(res.data["data"]["order_id"], str(self.order.id))

    def _webhook(self, payload, secret=b"whsec"):
        body = json.dumps(payload).encode("utf-8")
        signature = hmac.new(secret, body, hashlib.sha256).hexdigest()
        return APIClient().post(
            "/api/payments/paychangu/webhook/",
            data=body,
            content_type="application/json",
            HTTP_SIGNATURE=signature,
        )

    def test_webhook_signature_and_confirmation(self):
        self._payment()
        self.assertEqual(self._webhook({"tx_ref": "TX-API-1"}, secret=b"wrong").status_code, 400)

        res = self._webhook({"tx_ref": "TX-UNKNOWN"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["detail"], "Unknown reference")

        with mock.patch(
            "payments.services.payment_service.paychangu_verify_payment",
            return_value=verified(amount=str(self.order.total)),
        ):
            res = self._webhook({"event_type": "checkout.payment", "data": {"tx_ref": "TX-API-1"}})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "success")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)

    def test_webhook_rejects_non_object_json(self):
        for payload in ([1, 2], "tx_ref", 42):
            res = self._webhook(payload)
            self.assertEqual(res.status_code, 400)
            self.assertEqual(res.data["detail"], "Invalid JSON")

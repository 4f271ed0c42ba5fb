from datetime import timedelta
from io import StringIO

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from bookings.models import Booking
from bookings.services.booking_service import cancel_booking, create_booking, update_booking
from common.dates import day_bounds
from common.errors import ValidationError
from common.tests.factories import make_business, make_item, make_user
from ledger.models import LedgerEntry
from ledger.services.ledger_service import (
    create_ledger_entry,
    get_derived_transactions,
    get_ledger_entries,
    reconcile_ledger,
    reverse_ledger_entry,
)
from ledger.services.posting import post_payment_to_ledger
from orders.models import Order
from orders.services.order_service import cancel_order, create_order, refund_order, update_order
from payments.models import Payment

CONTACT = {"email": "buyer@example.com", "name": "Buyer"}


def paid_order(item, quantity=1):
    order = create_order(lines=[{"item_id": item.id, "quantity": quantity}], contact=CONTACT)
    payment = Payment.objects.create(
        order=order,
        tx_ref=f"TX-{order.order_number}",
        amount=order.total,
        currency=order.currency,
        status=Payment.STATUS_SUCCESS,
        paid_at=timezone.now(),
    )
    update_order(order.id, status=Order.STATUS_PAID)
    order.refresh_from_db()
    return order, payment


class LedgerEntryTests(TestCase):
    """
    GUARANTEES:
    - Entries are never updated or deleted
    - Refund entries default to DEBIT, everything else to CREDIT
    - Reversal writes an opposite entry and flips the original once
    """

    def test_entries_are_immutable(self):
        entry = create_ledger_entry(entry_type=LedgerEntry.TYPE_ADJUSTMENT, amount="10", description="Opening")
        entry.description = "changed"
        with self.assertRaises(DjangoValidationError):
            entry.save()
        with self.assertRaises(DjangoValidationError):
            entry.delete()
        self.assertEqual(LedgerEntry.objects.get(id=entry.id).description, "Opening")

    def test_create_validation_and_direction(self):
        with self.assertRaises(ValidationError):
            create_ledger_entry(entry_type="bogus", amount="10")
        with self.assertRaises(ValidationError):
            create_ledger_entry(entry_type=LedgerEntry.TYPE_ADJUSTMENT, amount="0")

        refund = create_ledger_entry(entry_type=LedgerEntry.TYPE_REFUND, amount="5")
        self.assertEqual(refund.direction, LedgerEntry.DEBIT)
        sale = create_ledger_entry(entry_type=LedgerEntry.TYPE_ADJUSTMENT, amount="5", currency="mwk")
        self.assertEqual(sale.direction, LedgerEntry.CREDIT)
        self.assertEqual(sale.currency, "MWK")

    def test_reverse(self):
        entry = create_ledger_entry(entry_type=LedgerEntry.TYPE_ADJUSTMENT, amount="25.00")
        reversal = reverse_ledger_entry(entry, "Mistake")

        entry.refresh_from_db()
        self.assertEqual(entry.status, LedgerEntry.STATUS_REVERSED)
        self.assertEqual(reversal.entry_type, LedgerEntry.TYPE_REFUND)
        self.assertEqual(reversal.direction, LedgerEntry.DEBIT)
        self.assertEqual(reversal.amount, entry.amount)
        self.assertEqual(reversal.reversal_of_id, entry.id)

        with self.assertRaisesMessage(ValidationError, "already reversed"):
            reverse_ledger_entry(entry)
        with self.assertRaisesMessage(ValidationError, "cannot be reversed"):
            reverse_ledger_entry(reversal)

    def test_filters(self):
        create_ledger_entry(entry_type=LedgerEntry.TYPE_ADJUSTMENT, amount="1")
        create_ledger_entry(entry_type=LedgerEntry.TYPE_REFUND, amount="2")
        self.assertEqual(len(get_ledger_entries(entry_type=LedgerEntry.TYPE_REFUND)), 1)
        self.assertEqual(len(get_ledger_entries(limit=1)), 1)


class PostingAndReconciliationTests(TestCase):
    """
    GUARANTEES:
    - Posting is gated by LEDGER_ENABLED and idempotent per payment
    - Derived transactions come from paid, unrefunded records only
    - Reconciliation reports gaps and balances once posted
    - Refunding an order reverses its entries
    - Canceling a paid order or booking reverses its entries
    - Both sides of a reconciliation are dated by the payment's paid_at
    """

    def setUp(self):
        self.business = make_business()
        self.item = make_item(self.business)

    def test_posting_disabled_by_default_in_tests(self):
        _, payment = paid_order(self.item)
        self.assertIsNone(post_payment_to_ledger(payment))
        self.assertFalse(LedgerEntry.objects.exists())

    @override_settings(LEDGER_ENABLED=True)
    def test_posting_is_idempotent(self):
        order, payment = paid_order(self.item, quantity=2)
        first = post_payment_to_ledger(payment)
        second = post_payment_to_ledger(payment)

        self.assertEqual(first.id, second.id)
        self.assertEqual(first.entry_type, LedgerEntry.TYPE_ORDER_SALE)
        self.assertEqual(first.amount, order.total)
        self.assertEqual(first.order_id, order.id)
        self.assertEqual(LedgerEntry.objects.count(), 1)

    def test_derived_and_reconcile(self):
        order, payment = paid_order(self.item)
        create_order(lines=[{"item_id": self.item.id, "quantity": 1}], contact=CONTACT)

        derived = get_derived_transactions()
        self.assertEqual(len(derived), 1)
        self.assertEqual(derived[0]["id"], f"order_{order.id}")
        self.assertEqual(derived[0]["amount"], order.total)
        self.assertEqual(derived[0]["payment_id"], str(payment.id))
        self.assertEqual(get_derived_transactions(entry_type=LedgerEntry.TYPE_BOOKING_PAYMENT), [])

        report = reconcile_ledger()
        self.assertEqual(len(report["missing_in_ledger"]), 1)
        self.assertFalse(report["summary"]["is_balanced"])

        post_payment_to_ledger(payment, force=True)
        report = reconcile_ledger()
        self.assertEqual(len(report["matched"]), 1)
        self.assertTrue(report["summary"]["is_balanced"])
        self.assertEqual(report["summary"]["difference"], "0.00")

    def test_orphaned_entry(self):
        order = create_order(lines=[{"item_id": self.item.id, "quantity": 1}], contact=CONTACT)
        create_ledger_entry(entry_type=LedgerEntry.TYPE_ORDER_SALE, amount=order.total, order=order)
        report = reconcile_ledger()
        self.assertEqual(len(report["orphaned"]), 1)
        self.assertEqual(report["orphaned"][0]["amount"], str(order.total))

    def test_refund_reverses_entries(self):
        order, payment = paid_order(self.item)
        entry = post_payment_to_ledger(payment, force=True)

        refund_order(order.id, "Damaged")

        entry.refresh_from_db()
        self.assertEqual(entry.status, LedgerEntry.STATUS_REVERSED)
        self.assertTrue(LedgerEntry.objects.filter(reversal_of=entry).exists())
        self.assertEqual(get_derived_transactions(), [])

    def test_status_update_cannot_refund(self):
        order, payment = paid_order(self.item)
        entry = post_payment_to_ledger(payment, force=True)

        with self.assertRaisesMessage(ValidationError, "refund_order"):
            update_order(order.id, status=Order.STATUS_REFUNDED)

        entry.refresh_from_db()
        self.assertEqual(entry.status, LedgerEntry.STATUS_CONFIRMED)
        self.assertEqual(Order.objects.get(id=order.id).status, Order.STATUS_PAID)

    def test_cancel_after_paid_reverses_and_restocks(self):
        stocked = make_item(self.business, stock_quantity=5)
        order, payment = paid_order(stocked, quantity=2)
        entry = post_payment_to_ledger(payment, force=True)
        stocked.refresh_from_db()
        self.assertEqual(stocked.stock_quantity, 3)

        cancel_order(order.id, "Out of town")

        entry.refresh_from_db()
        stocked.refresh_from_db()
        self.assertEqual(entry.status, LedgerEntry.STATUS_REVERSED)
        self.assertEqual(stocked.stock_quantity, 5)
        report = reconcile_ledger()
        self.assertEqual(report["orphaned"], [])
        self.assertTrue(report["summary"]["is_balanced"])

    def test_cancel_unpaid_order_leaves_ledger_alone(self):
        stocked = make_item(self.business, stock_quantity=5)
        order = create_order(lines=[{"item_id": stocked.id, "quantity": 2}], contact=CONTACT)
        cancel_order(order.id)
        stocked.refresh_from_db()
        self.assertEqual(stocked.stock_quantity, 5)
        self.assertFalse(LedgerEntry.objects.exists())

    def test_cancel_paid_booking_reverses_entries(self):
        service = make_item(self.business, type="service")
        booking = create_booking(
            service_id=service.id,
            start_time=timezone.now() + timedelta(days=2),
            contact=CONTACT,
        )
        payment = Payment.objects.create(
            booking=booking,
            tx_ref=f"TX-{booking.booking_number}",
            amount=booking.total,
            currency=booking.currency,
            status=Payment.STATUS_SUCCESS,
            paid_at=timezone.now(),
        )
        update_booking(booking.id, status=Booking.STATUS_PAID)
        entry = post_payment_to_ledger(payment, force=True)

        with self.assertRaisesMessage(ValidationError, "refund_booking"):
            update_booking(booking.id, status=Booking.STATUS_REFUNDED)

        cancel_booking(booking.id)
        entry.refresh_from_db()
        self.assertEqual(entry.status, LedgerEntry.STATUS_REVERSED)
        self.assertTrue(reconcile_ledger()["summary"]["is_balanced"])

    def test_backfilled_entry_reconciles_in_payment_window(self):
        order, payment = paid_order(self.item)
        paid_day = timezone.localdate() - timedelta(days=3)
        Payment.objects.filter(id=payment.id).update(paid_at=timezone.now() - timedelta(days=3))
        post_payment_to_ledger(payment, force=True)

        start, end = day_bounds(paid_day, paid_day)
        report = reconcile_ledger(start_date=start, end_date=end)
        self.assertEqual(len(report["matched"]), 1)
        self.assertEqual(report["missing_in_ledger"], [])
        self.assertEqual(report["orphaned"], [])

        today = timezone.localdate()
        start, end = day_bounds(today, today)
        report = reconcile_ledger(start_date=start, end_date=end)
        self.assertEqual(report["matched"], [])
        self.assertEqual(report["orphaned"], [])


class SyncCommandTests(TestCase):
    def setUp(self):
        business = make_business()
        self.order, self.payment = paid_order(make_item(business))

    def test_dry_run_writes_nothing(self):
        out = StringIO()
        call_command("sync_payments_to_ledger", "--dry-run", stdout=out)
        self.assertIn("Would post", out.getvalue())
        self.assertFalse(LedgerEntry.objects.exists())

    def test_backfill_then_skip(self):
        out = StringIO()
        call_command("sync_payments_to_ledger", stdout=out)
        self.assertIn("Posted: 1", out.getvalue())
        self.assertEqual(LedgerEntry.objects.filter(payment_id=str(self.payment.id)).count(), 1)

        out = StringIO()
        call_command("sync_payments_to_ledger", stdout=out)
        self.assertIn("Posted: 0  Skipped: 1", out.getvalue())


class LedgerApiTests(TestCase):
    def setUp(self):
        self.manager = APIClient()
        self.manager.force_authenticate(make_user(role="manager"))
        self.admin = APIClient()
        self.admin.force_authenticate(make_user(role="admin"))

    def test_view_requires_capability(self):
        staff = APIClient()
        staff.force_authenticate(make_user(role="staff"))
        self.assertEqual(staff.get("/api/ledger/entries/").status_code, 403)
        self.assertEqual(self.manager.get("/api/ledger/entries/").status_code, 200)
        self.assertEqual(self.manager.get("/api/ledger/reconciliation/").status_code, 200)

    def test_adjustment_and_reverse_are_admin_only(self):
        body = {"amount": "50.00", "direction": "debit", "description": "Cash shortfall"}
        self.assertEqual(self.manager.post("/api/ledger/entries/", body, format="json").status_code, 403)

        res = self.admin.post("/api/ledger/entries/", body, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["entry_type"], "adjustment")

        res = self.admin.post(f"/api/ledger/entries/{res.data['id']}/reverse/", {"reason": "typo"}, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["direction"], "credit")

    def test_bad_date_param(self):
        res = self.manager.get("/api/ledger/derived/", {"start_date": "yesterday"})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["field"], "start_date")

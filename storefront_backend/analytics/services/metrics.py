# analytics/services/metrics.py

"""
DASHBOARD METRICS

Pure arithmetic over already-fetched orders, bookings, items and customers.
Orders/bookings are expected with `payments` (and order `items`) prefetched.

Definitions:
- Revenue counts orders in paid/processing/shipped/completed and bookings in
  paid/confirmed/completed.
- Gross amount of a record: its successful payment amount, else its total.
- Net revenue = gross - transaction fee cost (default fee rate).
- Current period: paid_at (else created_at) within the last N days.
- Previous period: the N days before that.
- Growth: % change vs previous net; 100 when previous is 0 and current > 0.
"""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

from bookings.services.booking_rules import PAID_STATUSES as BOOKING_REVENUE_STATUSES
from catalog.models import Item
from common.errors import ValidationError
from common.money import ZERO, money
from orders.services.order_rules import PAID_STATUSES as ORDER_REVENUE_STATUSES
from pricing.rules import calculate_revenue_metrics, calculate_transaction_fee_cost

DATE_RANGES = {"7d": 7, "30d": 30, "90d": 90}
TOP_ITEMS_LIMIT = 10
NAME_MAX_LENGTH = 25


def range_days(date_range: str) -> int:
    try:
        return DATE_RANGES[date_range]
    except KeyError:
        raise ValidationError("range must be one of 7d, 30d, 90d", "range")


def successful_payment(record):
    for payment in record.payments.all():
        if payment.status == payment.STATUS_SUCCESS:
            return payment
    return None


def gross_amount(record) -> Decimal:
    payment = successful_payment(record)
    if payment is not None and payment.amount:
        return money(payment.amount)
    return money(record.total)


def net_amount(record) -> Decimal:
    gross = gross_amount(record)
    return money(gross - calculate_transaction_fee_cost(gross))


def _revenue_records(orders, bookings):
    """Paid records that have a successful payment."""
    paid_orders = [
        o for o in orders if o.status in ORDER_REVENUE_STATUSES and successful_payment(o) is not None
    ]
    paid_bookings = [
        b for b in bookings if b.status in BOOKING_REVENUE_STATUSES and successful_payment(b) is not None
    ]
    return paid_orders, paid_bookings


def _revenue_date(record):
    payment = successful_payment(record)
    return (payment.paid_at if payment is not None else None) or record.created_at


def _average(values) -> Decimal:
    values = list(values)
    if not values:
        return ZERO
    return money(sum(values, ZERO) / len(values))


def calculate_growth(current: Decimal, previous: Decimal) -> float:
    if previous > 0:
        growth = (current - previous) / previous * Decimal("100")
        return float(growth.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    return 100.0 if current > 0 else 0.0


def calculate_dashboard_metrics(
    *,
    orders,
    bookings,
    products,
    services,
    customers,
    date_range: str = "30d",
    now=None,
) -> dict:
    days = range_days(date_range)
    now = now or timezone.now()
    start = now - timedelta(days=days)
    previous_start = now - timedelta(days=days * 2)

    paid_orders, paid_bookings = _revenue_records(orders, bookings)
    paid = paid_orders + paid_bookings

    current_gross = sum((gross_amount(r) for r in paid if _revenue_date(r) >= start), ZERO)
    previous_gross = sum(
        (gross_amount(r) for r in paid if previous_start <= _revenue_date(r) < start),
        ZERO,
    )

    current = calculate_revenue_metrics(current_gross)
    previous = calculate_revenue_metrics(previous_gross)

    return {
        "total_revenue": current["net"],
        "gross_revenue": current["gross"],
        "transaction_fees": current["fees"],
        "previous_revenue": previous["net"],
        "revenue_growth": calculate_growth(current["net"], previous["net"]),
        "total_orders": len(orders),
        "total_bookings": len(bookings),
        "total_customers": len(customers),
        "active_products": sum(1 for p in products if p.status == Item.STATUS_ACTIVE),
        "active_services": sum(1 for s in services if s.status == Item.STATUS_ACTIVE),
        "average_order_value": _average(net_amount(o) for o in paid_orders),
        "average_booking_value": _average(net_amount(b) for b in paid_bookings),
    }


def revenue_chart_data(*, orders, bookings, date_range: str = "30d", now=None) -> list[dict]:
    """One row per local day, oldest first, bucketed by created_at."""
    days = range_days(date_range)
    today = timezone.localtime(now or timezone.now()).date()

    buckets = {today - timedelta(days=i): {"orders": [], "bookings": []} for i in range(days - 1, -1, -1)}
    for order in orders:
        if order.status in ORDER_REVENUE_STATUSES:
            day = timezone.localtime(order.created_at).date()
            if day in buckets:
                buckets[day]["orders"].append(order)
    for booking in bookings:
        if booking.status in BOOKING_REVENUE_STATUSES:
            day = timezone.localtime(booking.created_at).date()
            if day in buckets:
                buckets[day]["bookings"].append(booking)

    rows = []
    for day, bucket in buckets.items():
        gross = sum((gross_amount(r) for r in bucket["orders"] + bucket["bookings"]), ZERO)
        rows.append(
            {
                "date": f"{day:%b} {day.day}",
                "revenue": calculate_revenue_metrics(gross)["net"],
                "orders": len(bucket["orders"]),
                "bookings": len(bucket["bookings"]),
            }
        )
    return rows


def _short_name(name: str) -> str:
    name = name or "Unknown"
    if len(name) > NAME_MAX_LENGTH:
        return name[:NAME_MAX_LENGTH] + "..."
    return name


def top_items(*, orders, bookings, limit: int = TOP_ITEMS_LIMIT) -> list[dict]:
    """
    Best sellers by net revenue.

    An order's net amount is spread over its lines in proportion to each
    line subtotal. A booking counts as one sale of its service.
    """
    paid_orders, paid_bookings = _revenue_records(orders, bookings)
    sales: dict[str, dict] = {}

    for order in paid_orders:
        lines = list(order.items.all())
        line_total = sum((money(line.subtotal) for line in lines), ZERO)
        ratio = net_amount(order) / line_total if line_total > 0 else ZERO
        for line in lines:
            if not line.product_id:
                continue
            row = sales.setdefault(
                str(line.product_id),
                {"name": line.name or "Unknown Product", "sales": 0, "revenue": ZERO, "type": Item.TYPE_PRODUCT},
            )
            row["sales"] += line.quantity or 0
            row["revenue"] += money(line.subtotal) * ratio

    for booking in paid_bookings:
        if not booking.service_id:
            continue
        row = sales.setdefault(
            str(booking.service_id),
            {"name": booking.service_name or "Service", "sales": 0, "revenue": ZERO, "type": Item.TYPE_SERVICE},
        )
        row["sales"] += 1
        row["revenue"] += net_amount(booking)

    ranked = sorted(sales.values(), key=lambda row: row["revenue"], reverse=True)[:limit]
    return [
        {
            "name": _short_name(row["name"]),
            "revenue": money(row["revenue"]),
            "sales": row["sales"],
            "type": row["type"],
        }
        for row in ranked
    ]


def status_distribution(*, orders, bookings) -> dict:
    order_counts = Counter(o.status for o in orders)
    booking_counts = Counter(b.status for b in bookings)
    return {
        "orders": [{"name": name, "value": value} for name, value in order_counts.items()],
        "bookings": [{"name": name, "value": value} for name, value in booking_counts.items()],
    }

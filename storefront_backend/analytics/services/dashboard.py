# analytics/services/dashboard.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.utils import timezone

from analytics.services.metrics import (
    calculate_dashboard_metrics,
    range_days,
    revenue_chart_data,
    status_distribution,
    top_items,
)
from bookings.models import Booking
from catalog.models import Item
from orders.models import Order
from permissions.roles import ROLE_CUSTOMER


def build_dashboard(*, date_range: str = "30d", business_id=None, now=None) -> dict:
    """Load the collections once and run every dashboard calculation over them."""
    range_days(date_range)
    now = now or timezone.now()

    orders = Order.objects.prefetch_related("payments", "items")
    bookings = Booking.objects.prefetch_related("payments")
    items = Item.objects.all()
    if business_id:
        orders = orders.filter(business_id=business_id)
        bookings = bookings.filter(business_id=business_id)
        items = items.filter(business_id=business_id)

    orders = list(orders)
    bookings = list(bookings)
    items = list(items)
    products = [i for i in items if i.type == Item.TYPE_PRODUCT]
    services = [i for i in items if i.type == Item.TYPE_SERVICE]
    customers = list(get_user_model().objects.filter(role=ROLE_CUSTOMER).only("id"))

    return {
        "range": date_range,
        "metrics": calculate_dashboard_metrics(
            orders=orders,
            bookings=bookings,
            products=products,
            services=services,
            customers=customers,
            date_range=date_range,
            now=now,
        ),
        "revenue_chart": revenue_chart_data(orders=orders, bookings=bookings, date_range=date_range, now=now),
        "top_items": top_items(orders=orders, bookings=bookings),
        "status_distribution": status_distribution(orders=orders, bookings=bookings),
    }

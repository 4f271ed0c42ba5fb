"""
ORDER LIFECYCLE RULES

pending    -> paid | canceled
paid       -> processing | canceled | refunded
processing -> shipped | canceled
shipped    -> completed | canceled
completed, canceled, refunded are terminal.

No database access here.
"""

from orders.models import Order

ORDER_STATUS_TRANSITIONS = {
    Order.STATUS_PENDING: {Order.STATUS_PAID, Order.STATUS_CANCELED},
    Order.STATUS_PAID: {Order.STATUS_PROCESSING, Order.STATUS_CANCELED, Order.STATUS_REFUNDED},
    Order.STATUS_PROCESSING: {Order.STATUS_SHIPPED, Order.STATUS_CANCELED},
    Order.STATUS_SHIPPED: {Order.STATUS_COMPLETED, Order.STATUS_CANCELED},
    Order.STATUS_COMPLETED: set(),
    Order.STATUS_CANCELED: set(),
    Order.STATUS_REFUNDED: set(),
}

# Timestamp stamped when an order enters the status.
STATUS_TIMESTAMP_FIELDS = {
    Order.STATUS_PAID: "paid_at",
    Order.STATUS_PROCESSING: "processing_at",
    Order.STATUS_SHIPPED: "shipped_at",
    Order.STATUS_COMPLETED: "completed_at",
    Order.STATUS_CANCELED: "canceled_at",
    Order.STATUS_REFUNDED: "refunded_at",
}

# Statuses that count as money received.
PAID_STATUSES = {
    Order.STATUS_PAID,
    Order.STATUS_PROCESSING,
    Order.STATUS_SHIPPED,
    Order.STATUS_COMPLETED,
}


def is_valid_order_status_transition(current: str, new: str) -> bool:
    return new in ORDER_STATUS_TRANSITIONS.get(current, set())

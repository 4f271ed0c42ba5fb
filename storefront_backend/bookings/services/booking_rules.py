"""
BOOKING LIFECYCLE RULES

pending   -> paid | canceled
paid      -> confirmed | canceled | refunded
confirmed -> completed | canceled | no_show
completed, canceled, no_show, refunded are terminal.
"""

from decimal import Decimal

from bookings.models import Booking
from common.money import ZERO, money

BOOKING_STATUS_TRANSITIONS = {
    Booking.STATUS_PENDING: {Booking.STATUS_PAID, Booking.STATUS_CANCELED},
    Booking.STATUS_PAID: {Booking.STATUS_CONFIRMED, Booking.STATUS_CANCELED, Booking.STATUS_REFUNDED},
    Booking.STATUS_CONFIRMED: {Booking.STATUS_COMPLETED, Booking.STATUS_CANCELED, Booking.STATUS_NO_SHOW},
    Booking.STATUS_COMPLETED: set(),
    Booking.STATUS_CANCELED: set(),
    Booking.STATUS_NO_SHOW: set(),
    Booking.STATUS_REFUNDED: set(),
}

STATUS_TIMESTAMP_FIELDS = {
    Booking.STATUS_PAID: "paid_at",
    Booking.STATUS_CONFIRMED: "confirmed_at",
    Booking.STATUS_COMPLETED: "completed_at",
    Booking.STATUS_CANCELED: "canceled_at",
    Booking.STATUS_NO_SHOW: "no_show_at",
    Booking.STATUS_REFUNDED: "refunded_at",
}

PAID_STATUSES = {
    Booking.STATUS_PAID,
    Booking.STATUS_CONFIRMED,
    Booking.STATUS_COMPLETED,
}

# Slots held by these bookings are not offered again.
ACTIVE_STATUSES = {
    Booking.STATUS_PENDING,
    Booking.STATUS_PAID,
    Booking.STATUS_CONFIRMED,
}

# Surcharge on the full price when the balance is settled after a deposit.
BALANCE_SURCHARGE_RATE = Decimal("0.08")


def is_valid_booking_status_transition(current: str, new: str) -> bool:
    return new in BOOKING_STATUS_TRANSITIONS.get(current, set())


def remaining_balance(booking) -> Decimal:
    """total_fee - booking_fee + total_fee x 8%, for partial payments only."""
    if not booking.is_partial_payment or not booking.total_fee:
        return ZERO
    total_fee = money(booking.total_fee)
    return money(total_fee - money(booking.booking_fee) + total_fee * BALANCE_SURCHARGE_RATE)


# =====================================================
# TIMELINE
# =====================================================
TIMELINE_STEPS = [
    (Booking.STATUS_PENDING, "Booking Requested", "Your booking has been requested", "created_at"),
    (Booking.STATUS_PAID, "Payment Confirmed", "Payment has been received", "paid_at"),
    (Booking.STATUS_CONFIRMED, "Booking Confirmed", "Your booking has been confirmed", "confirmed_at"),
    (Booking.STATUS_COMPLETED, "Service Completed", "Service has been completed", "completed_at"),
]

TERMINAL_MARKERS = {
    Booking.STATUS_CANCELED: ("Booking Canceled", "canceled_at"),
    Booking.STATUS_REFUNDED: ("Booking Refunded", "refunded_at"),
    Booking.STATUS_NO_SHOW: ("No Show", "no_show_at"),
}


def _iso(value):
    return value.isoformat() if value else None


def build_booking_timeline(booking) -> dict:
    """
    Progress steps pending -> paid -> confirmed -> completed.

    Canceled, refunded and no-show bookings mark no progress step completed;
    a terminal marker step is appended instead (also returned as `terminal`).
    """
    order = [step[0] for step in TIMELINE_STEPS]
    marker = TERMINAL_MARKERS.get(booking.status)
    current_index = order.index(booking.status) if booking.status in order else -1

    steps = []
    for index, (status, label, description, stamp) in enumerate(TIMELINE_STEPS):
        completed = marker is None and index <= current_index
        current = marker is None and index == current_index
        steps.append(
            {
                "status": status,
                "label": label,
                "description": description,
                "completed": completed,
                "current": current,
                "timestamp": _iso(getattr(booking, stamp)) if completed else None,
            }
        )

    terminal = None
    if marker is not None:
        label, stamp = marker
        terminal = {
            "status": booking.status,
            "label": label,
            "description": "",
            "completed": True,
            "current": True,
            "timestamp": _iso(getattr(booking, stamp)),
        }
        steps.append(terminal)

    return {
        "scheduled": {"start_time": _iso(booking.start_time), "end_time": _iso(booking.end_time)},
        "steps": steps,
        "terminal": terminal,
    }

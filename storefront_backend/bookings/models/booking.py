# bookings/models/booking.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


def generate_booking_number() -> str:
    prefix = timezone.now().strftime("BKG%Y%m%d")
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


class Booking(models.Model):
    """
    A reserved time slot for a service item.

    PRICING SNAPSHOT:
    - base_price / discount / transaction_fee / tax / total are computed
      server-side when the booking is created
    - partial payments collect booking_fee now; total_fee is the full price
    """

    STATUS_PENDING = "pending"
    STATUS_PAID = "paid"
    STATUS_CONFIRMED = "confirmed"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELED = "canceled"
    STATUS_NO_SHOW = "no_show"
    STATUS_REFUNDED = "refunded"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PAID, "Paid"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELED, "Canceled"),
        (STATUS_NO_SHOW, "No show"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    booking_number = models.CharField(max_length=64, unique=True, blank=True)

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    service = models.ForeignKey(
        "catalog.Item",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    service_name = models.CharField(max_length=255)
    service_image = models.URLField(max_length=500, blank=True, default="")

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    customer_email = models.EmailField()
    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=40, blank=True, default="")

    start_time = models.DateTimeField()
    end_time = models.DateTimeField()

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)

    base_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    transaction_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=10, default="MWK")

    is_partial_payment = models.BooleanField(default=False)
    booking_fee = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    paid_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    canceled_reason = models.TextField(blank=True, default="")
    no_show_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_reason = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="bookings_status_idx"),
            models.Index(fields=["customer_email"], name="bookings_email_idx"),
            models.Index(fields=["service", "start_time"], name="bookings_service_start_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self.booking_number:
            self.booking_number = generate_booking_number()
        super().save(*args, **kwargs)

    @property
    def amount_due(self):
        """What the customer pays online: the deposit for partial payments."""
        if self.is_partial_payment and self.booking_fee:
            return self.booking_fee
        return self.total

    def __str__(self):
        return f"{self.booking_number} | {self.service_name} | {self.status}"

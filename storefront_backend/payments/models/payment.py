# payments/models/payment.py

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class Payment(models.Model):
    """
    One hosted-checkout attempt for an order OR a booking.

    Idempotency rule:
    - tx_ref is unique (our reference, sent to PayChangu)
    - confirmation is a no-op once the payment is SUCCESS
    """

    PROVIDER_PAYCHANGU = "paychangu"
    PROVIDER_CHOICES = [
        (PROVIDER_PAYCHANGU, "PayChangu"),
    ]

    STATUS_INITIATED = "initiated"
    STATUS_PENDING = "pending"
    STATUS_SUCCESS = "success"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_INITIATED, "Initiated"),
        (STATUS_PENDING, "Pending"),
        (STATUS_SUCCESS, "Success"),
        (STATUS_FAILED, "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="payments",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="payments",
    )

    provider = models.CharField(max_length=32, choices=PROVIDER_CHOICES, default=PROVIDER_PAYCHANGU)
    tx_ref = models.CharField(max_length=128, unique=True)

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(max_length=10, default="MWK")

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_INITIATED)

    checkout_url = models.URLField(max_length=1000, blank=True, default="")
    provider_reference = models.CharField(max_length=128, blank=True, default="")
    provider_payload = models.JSONField(default=dict, blank=True)
    failure_reason = models.CharField(max_length=255, blank=True, default="")

    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="payments_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(order__isnull=False, booking__isnull=True)
                    | models.Q(order__isnull=True, booking__isnull=False)
                ),
                name="payment_for_order_xor_booking",
            ),
        ]

    @property
    def target(self):
        return self.order if self.order_id else self.booking

    def mark_success(self, payload=None, reference: str = ""):
        self.status = self.STATUS_SUCCESS
        self.paid_at = self.paid_at or timezone.now()
        self.failure_reason = ""
        if reference:
            self.provider_reference = reference
        if payload is not None:
            self.provider_payload = payload

    def mark_failed(self, reason: str, payload=None):
        self.status = self.STATUS_FAILED
        self.failure_reason = (reason or "")[:255]
        if payload is not None:
            self.provider_payload = payload

    def __str__(self):
        return f"{self.provider}:{self.tx_ref} | {self.amount} {self.currency} | {self.status}"

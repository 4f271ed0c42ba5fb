# ledger/models/ledger_entry.py

"""
======================================================
PATH: ledger/models/ledger_entry.py
======================================================
LEDGER ENTRY MODEL

One money movement tied to an order, a booking or neither (adjustment).

Guarantees:
- Immutable once created (no updates, no deletes)
- The only change ever made is CONFIRMED -> REVERSED, done with a queryset
  update when a reversing entry is written
- Amount is always positive; direction carries the sign
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


class LedgerEntry(models.Model):
    TYPE_ORDER_SALE = "order_sale"
    TYPE_BOOKING_PAYMENT = "booking_payment"
    TYPE_REFUND = "refund"
    TYPE_ADJUSTMENT = "adjustment"

    TYPE_CHOICES = [
        (TYPE_ORDER_SALE, "Order sale"),
        (TYPE_BOOKING_PAYMENT, "Booking payment"),
        (TYPE_REFUND, "Refund"),
        (TYPE_ADJUSTMENT, "Adjustment"),
    ]

    CREDIT = "credit"
    DEBIT = "debit"
    DIRECTION_CHOICES = [
        (CREDIT, "Credit"),
        (DEBIT, "Debit"),
    ]

    STATUS_PENDING = "pending"
    STATUS_CONFIRMED = "confirmed"
    STATUS_REVERSED = "reversed"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_REVERSED, "Reversed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    entry_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    direction = models.CharField(max_length=6, choices=DIRECTION_CHOICES)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_CONFIRMED)

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        help_text="Positive monetary value",
    )
    currency = models.CharField(max_length=10, default="MWK")

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )
    payment_id = models.CharField(max_length=64, blank=True, default="", db_index=True)

    description = models.CharField(max_length=255, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)

    reversal_of = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversal",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entry_type", "status"], name="ledger_type_status_idx"),
            models.Index(fields=["created_at"], name="ledger_created_idx"),
        ]

    def __str__(self):
        return f"{self.entry_type} {self.direction} {self.amount} {self.currency} ({self.status})"

    def clean(self):
        if self.order_id and self.booking_id:
            raise ValidationError("A ledger entry references an order or a booking, not both.")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Ledger entries are immutable.")
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Ledger entries cannot be deleted.")

# orders/models/order_item.py

import uuid
from decimal import Decimal

from django.db import models

from .order import Order


class OrderItem(models.Model):
    """Snapshot of a purchased line; survives later catalog edits."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "catalog.Item",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_lines",
    )

    name = models.CharField(max_length=255)
    image = models.URLField(max_length=500, blank=True, default="")

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    selected_variants = models.JSONField(default=dict, blank=True)
    promotion_id = models.UUIDField(null=True, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} x {self.quantity}"

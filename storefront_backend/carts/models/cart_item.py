# carts/models/cart_item.py

import uuid

from django.core.validators import MinValueValidator
from django.db import models

from .cart import Cart


class CartItem(models.Model):
    """One line per catalog item; adding the same item again merges quantities."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    item = models.ForeignKey("catalog.Item", on_delete=models.CASCADE, related_name="cart_lines")

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    selected_variants = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "item"], name="uniq_item_per_cart"),
        ]

    def __str__(self):
        return f"{self.item} x {self.quantity}"

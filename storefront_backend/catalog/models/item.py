# catalog/models/item.py

import uuid
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .category import Category


class Item(models.Model):
    """
    A product or service sold by a business.

    PRICING (see pricing/rules.py):
    - base_price is the list price before promotions and fees
    - include_transaction_fee adds transaction_fee_rate (a fraction) on top;
      a NULL rate means the configured default
    - compare_at_price is a legacy "was" price used for strikethrough display

    Products may track stock (stock_quantity NULL = untracked).
    Services carry a duration and an optional booking fee (deposit).
    """

    TYPE_PRODUCT = "product"
    TYPE_SERVICE = "service"
    TYPE_CHOICES = [
        (TYPE_PRODUCT, "Product"),
        (TYPE_SERVICE, "Service"),
    ]

    STATUS_DRAFT = "draft"
    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"
    STATUS_ARCHIVED = "archived"
    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_INACTIVE, "Inactive"),
        (STATUS_ARCHIVED, "Archived"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        related_name="items",
    )

    type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    name = models.CharField(max_length=255, db_index=True)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True)

    # [{"url": "...", "alt": "..."}]
    images = models.JSONField(default=list, blank=True)
    categories = models.ManyToManyField(Category, blank=True, related_name="items")
    is_featured = models.BooleanField(default=False)

    base_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    compare_at_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=10, default="MWK")
    include_transaction_fee = models.BooleanField(default=False)
    transaction_fee_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
    )

    stock_quantity = models.PositiveIntegerField(null=True, blank=True)

    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    booking_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    seo_title = models.CharField(max_length=255, blank=True)
    seo_description = models.TextField(blank=True)
    seo_keywords = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["type", "status"], name="catalog_item_type_status_idx"),
            models.Index(fields=["is_featured"], name="catalog_item_featured_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.type})"

    @property
    def is_product(self) -> bool:
        return self.type == self.TYPE_PRODUCT

    @property
    def is_service(self) -> bool:
        return self.type == self.TYPE_SERVICE

    @property
    def main_image(self) -> dict:
        images = self.images or []
        first = images[0] if images else None
        return first if isinstance(first, dict) else {}

    @property
    def main_image_url(self) -> str:
        return self.main_image.get("url") or ""

    def has_stock_for(self, quantity: int) -> bool:
        if not self.is_product or self.stock_quantity is None:
            return True
        return self.stock_quantity >= quantity

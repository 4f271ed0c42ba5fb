# reviews/models/review.py

import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Review(models.Model):
    """
    Customer review of an item or of the business itself.

    - Signed-in reviewers are linked by user; guests leave a name and email
    - Emails are stored lower-cased so duplicate checks are exact
    - One review per reviewer per item (or per business for business reviews)
    """

    TYPE_ITEM = "item"
    TYPE_BUSINESS = "business"
    TYPE_CHOICES = [
        (TYPE_ITEM, "Item"),
        (TYPE_BUSINESS, "Business"),
    ]

    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    review_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_ITEM)
    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    item = models.ForeignKey(
        "catalog.Item",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="reviews",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviews",
    )
    user_name = models.CharField(max_length=255, blank=True, default="")
    user_email = models.EmailField(blank=True, default="")

    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    comment = models.TextField()

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviews",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviews",
    )

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_APPROVED)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["item", "status"], name="reviews_item_status_idx"),
            models.Index(fields=["business", "review_type"], name="reviews_business_type_idx"),
            models.Index(fields=["user_email"], name="reviews_email_idx"),
        ]

    def __str__(self):
        target = self.item.name if self.item_id else "business"
        return f"{self.rating}* {target} by {self.user_name or self.user_email}"

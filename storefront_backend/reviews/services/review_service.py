# reviews/services/review_service.py

"""
REVIEWS

- has_user_reviewed   one review per reviewer per item / business
- create_review       validates, snapshots the reviewer, rejects duplicates
- get_reviews         cursor-paged listing
- rating_summary      average, count and star distribution (approved only)
- set_review_status   moderation
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db.models import Avg, Count

from businesses.services.business_service import get_business_by_id, get_default_business
from catalog.services.item_service import get_item_by_id
from common.errors import NotFoundError, ValidationError
from common.pagination import paginate_by_cursor
from common.validation import full_clean_or_raise, parse_uuid, validate_email
from reviews.models import Review

logger = logging.getLogger(__name__)

REVIEW_TYPES = {Review.TYPE_ITEM, Review.TYPE_BUSINESS}
REVIEW_STATUSES = {choice[0] for choice in Review.STATUS_CHOICES}


def _scope(qs, *, item_id=None, business_id=None, review_type=Review.TYPE_ITEM):
    qs = qs.filter(review_type=review_type)
    if review_type == Review.TYPE_ITEM:
        return qs.filter(item_id=parse_uuid(item_id))
    return qs.filter(business_id=parse_uuid(business_id))


def has_user_reviewed(
    *,
    user_id=None,
    user_email=None,
    item_id=None,
    business_id=None,
    review_type=Review.TYPE_ITEM,
) -> bool:
    """Matches by user id first, then by (lower-cased) email."""
    if not user_id and not user_email:
        return False
    if review_type == Review.TYPE_ITEM and not item_id:
        return False
    if review_type == Review.TYPE_BUSINESS and not business_id:
        return False

    qs = _scope(Review.objects.all(), item_id=item_id, business_id=business_id, review_type=review_type)
    if user_id and qs.filter(user_id=parse_uuid(user_id)).exists():
        return True
    email = (user_email or "").strip().lower()
    return bool(email) and qs.filter(user_email=email).exists()


def _whole_rating(value) -> int:
    """Whole stars only; 4.7 is rejected rather than truncated. 0 means invalid."""
    if isinstance(value, bool):
        return 0
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return 0
    if not number.is_finite() or number != number.to_integral_value():
        return 0
    return int(number)


def create_review(
    *,
    rating,
    comment,
    review_type: str = Review.TYPE_ITEM,
    item_id=None,
    business_id=None,
    user=None,
    user_name: str = "",
    user_email: str = "",
    order_id=None,
    booking_id=None,
) -> Review:
    if review_type not in REVIEW_TYPES:
        raise ValidationError("review_type is invalid", "review_type")

    rating = _whole_rating(rating)
    if rating < 1 or rating > 5:
        raise ValidationError("rating must be a whole number between 1 and 5", "rating")

    comment = (comment or "").strip()
    if not comment:
        raise ValidationError("Please write a review comment", "comment")

    item = None
    if review_type == Review.TYPE_ITEM:
        if not item_id:
            raise ValidationError("item_id is required", "item_id")
        item = get_item_by_id(item_id)
        business = item.business
    else:
        business = get_business_by_id(business_id) if business_id else get_default_business()

    if user is not None:
        user_name = user.full_name or user.email
        user_email = user.email
    else:
        user_name = (user_name or "").strip()
        if not user_name:
            raise ValidationError("Name is required for guest reviews", "user_name")
        validate_email((user_email or "").strip(), "user_email")
    user_email = (user_email or "").strip().lower()

    if has_user_reviewed(
        user_id=user.id if user is not None else None,
        user_email=user_email,
        item_id=item.id if item else None,
        business_id=business.id,
        review_type=review_type,
    ):
        raise ValidationError(
            "You have already submitted a review for this "
            + ("item" if review_type == Review.TYPE_ITEM else "business")
        )

    review = Review(
        review_type=review_type,
        business=business,
        item=item,
        user=user,
        user_name=user_name,
        user_email=user_email,
        rating=rating,
        comment=comment,
        order_id=parse_uuid(order_id) if order_id else None,
        booking_id=parse_uuid(booking_id) if booking_id else None,
    )
    full_clean_or_raise(review)
    review.save()

    logger.info(
        "Review created",
        extra={"review_id": str(review.id), "review_type": review_type, "rating": rating},
    )
    return review


def get_review_by_id(review_id) -> Review:
    review_id = parse_uuid(review_id)
    review = Review.objects.select_related("item").filter(id=review_id).first() if review_id else None
    if review is None:
        raise NotFoundError("Review")
    return review


def get_reviews(
    *,
    item_id=None,
    business_id=None,
    review_type=None,
    status=Review.STATUS_APPROVED,
    user_id=None,
    limit=None,
    last_doc_id=None,
) -> dict:
    qs = Review.objects.select_related("item")

    if item_id:
        qs = qs.filter(item_id=parse_uuid(item_id))
    if business_id:
        qs = qs.filter(business_id=parse_uuid(business_id))
    if review_type:
        qs = qs.filter(review_type=review_type)
    if status:
        qs = qs.filter(status=status)
    if user_id:
        qs = qs.filter(user_id=parse_uuid(user_id))

    page = paginate_by_cursor(qs, limit=limit, last_doc_id=last_doc_id)
    return {
        "reviews": page["results"],
        "last_doc_id": page["last_doc_id"],
        "has_more": page["has_more"],
    }


def rating_summary(item=None, *, business=None) -> dict:
    """
    {"average": "4.5", "count": 2, "distribution": {"1": 0, ..., "5": 1}}
    for an item, or for the business reviews when no item is given.
    """
    qs = Review.objects.filter(status=Review.STATUS_APPROVED)
    if item is not None:
        qs = qs.filter(review_type=Review.TYPE_ITEM, item=item)
    elif business is not None:
        qs = qs.filter(review_type=Review.TYPE_BUSINESS, business=business)
    else:
        raise ValidationError("An item or a business is required")

    stats = qs.aggregate(average=Avg("rating"), count=Count("id"))
    distribution = {str(star): 0 for star in range(1, 6)}
    for row in qs.values("rating").annotate(n=Count("id")):
        distribution[str(row["rating"])] = row["n"]

    average = stats["average"] or 0
    return {
        "average": str(Decimal(str(average)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)),
        "count": stats["count"] or 0,
        "distribution": distribution,
    }


def set_review_status(review_id, status: str) -> Review:
    if status not in REVIEW_STATUSES:
        raise ValidationError("status is invalid", "status")
    review = get_review_by_id(review_id)
    review.status = status
    review.save(update_fields=["status", "updated_at"])
    logger.info("Review moderated", extra={"review_id": str(review.id), "status": status})
    return review


def delete_review(review_id) -> None:
    get_review_by_id(review_id).delete()

# catalog/services/item_service.py

"""
ITEM SERVICE (catalog data access)

Errors:
- NotFoundError("Item") for unknown ids on get/update/delete
- ValidationError for missing required fields and duplicate slugs
"""

from __future__ import annotations

import logging

from django.db import transaction

from businesses.services.business_service import get_default_business
from catalog.models import Item
from common.errors import NotFoundError, ValidationError
from common.pagination import paginate_by_cursor
from common.validation import full_clean_or_raise, parse_uuid

logger = logging.getLogger(__name__)

ITEM_TYPES = {Item.TYPE_PRODUCT, Item.TYPE_SERVICE}

# Fields callers may set directly through create/update.
EDITABLE_FIELDS = {
    "business",
    "type",
    "status",
    "name",
    "slug",
    "description",
    "images",
    "is_featured",
    "base_price",
    "compare_at_price",
    "currency",
    "include_transaction_fee",
    "transaction_fee_rate",
    "stock_quantity",
    "duration_minutes",
    "booking_fee",
    "seo_title",
    "seo_description",
    "seo_keywords",
}


def get_item_by_id(item_id) -> Item:
    item_id = parse_uuid(item_id)
    item = None
    if item_id is not None:
        item = Item.objects.select_related("business").filter(id=item_id).first()
    if item is None:
        raise NotFoundError("Item")
    return item


def get_item_by_slug(slug) -> Item | None:
    if not slug:
        return None
    return Item.objects.select_related("business").filter(slug=slug).first()


def get_items(
    *,
    type=None,
    status=None,
    category_id=None,
    business_id=None,
    featured=None,
    limit=None,
    last_doc_id=None,
) -> dict:
    qs = Item.objects.select_related("business").prefetch_related("categories")

    if business_id:
        qs = qs.filter(business_id=business_id)
    if type:
        qs = qs.filter(type=type)
    if status:
        qs = qs.filter(status=status)
    if category_id:
        qs = qs.filter(categories__id=category_id)
    if featured is not None:
        qs = qs.filter(is_featured=featured)

    page = paginate_by_cursor(qs.distinct(), limit=limit, last_doc_id=last_doc_id)
    return {
        "items": page["results"],
        "last_doc_id": page["last_doc_id"],
        "has_more": page["has_more"],
    }


def get_products() -> list[Item]:
    return list(Item.objects.filter(type=Item.TYPE_PRODUCT).order_by("-created_at"))


def get_services() -> list[Item]:
    return list(Item.objects.filter(type=Item.TYPE_SERVICE).order_by("-created_at"))


def get_items_by_ids(item_ids) -> list[Item]:
    """Found items in the order of `item_ids`; unknown ids are skipped."""
    ids = [str(u) for u in (parse_uuid(i) for i in (item_ids or [])) if u]
    if not ids:
        return []

    found = {
        str(item.id): item
        for item in Item.objects.select_related("business").filter(id__in=ids)
    }
    return [found[i] for i in ids if i in found]


def _ensure_unique_slug(slug, *, exclude_id=None) -> None:
    qs = Item.objects.filter(slug=slug)
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    if qs.exists():
        raise ValidationError("Item with this slug already exists", "slug")


def _apply(item: Item, data: dict) -> list:
    categories = data.pop("categories", None)
    unknown = set(data) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown item field(s): {', '.join(sorted(unknown))}")
    for key, value in data.items():
        setattr(item, key, value)
    return categories


@transaction.atomic
def create_item(**data) -> Item:
    if not data.get("name") or not data.get("slug") or not data.get("type"):
        raise ValidationError("Name, slug, and type are required")
    if data["type"] not in ITEM_TYPES:
        raise ValidationError("type is invalid", "type")

    _ensure_unique_slug(data["slug"])

    if not data.get("business"):
        data["business"] = get_default_business()
    data.setdefault("currency", data["business"].currency)

    item = Item()
    categories = _apply(item, data)
    full_clean_or_raise(item)
    item.save()

    if categories is not None:
        item.categories.set(categories)

    logger.info("Item created", extra={"item_id": str(item.id), "slug": item.slug})
    return item


@transaction.atomic
def update_item(item_id, **updates) -> Item:
    item_id = parse_uuid(item_id)
    item = Item.objects.select_for_update().filter(id=item_id).first() if item_id else None
    if item is None:
        raise NotFoundError("Item")

    if "type" in updates and updates["type"] not in ITEM_TYPES:
        raise ValidationError("type is invalid", "type")
    if updates.get("slug") and updates["slug"] != item.slug:
        _ensure_unique_slug(updates["slug"], exclude_id=item.id)

    categories = _apply(item, dict(updates))
    full_clean_or_raise(item)
    item.save()

    if categories is not None:
        item.categories.set(categories)
    return item


def delete_item(item_id) -> None:
    item_id = parse_uuid(item_id)
    if item_id is None:
        raise NotFoundError("Item")
    deleted, _ = Item.objects.filter(id=item_id).delete()
    if not deleted:
        raise NotFoundError("Item")
    logger.info("Item deleted", extra={"item_id": str(item_id)})

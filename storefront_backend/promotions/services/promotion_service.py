# promotions/services/promotion_service.py

from __future__ import annotations

import uuid

from django.db.models import Q
from django.utils import timezone

from catalog.models import Item
from promotions.models import Promotion


def _with_items(qs):
    return qs.prefetch_related("products", "services")


def get_active_promotions(now=None) -> list[Promotion]:
    now = now or timezone.now()
    qs = Promotion.objects.filter(
        status=Promotion.STATUS_ACTIVE,
        start_date__lte=now,
        end_date__gte=now,
    ).order_by("-created_at")
    return list(_with_items(qs))


def get_promotion_by_slug(slug_or_id) -> Promotion | None:
    """Links use the slug, falling back to the id for promotions without one."""
    if not slug_or_id:
        return None
    condition = Q(slug=slug_or_id)
    try:
        condition |= Q(id=uuid.UUID(str(slug_or_id)))
    except ValueError:
        pass
    return _with_items(Promotion.objects.filter(condition)).first()


def get_promotion_items(promotion: Promotion, *, active_only: bool = True) -> list[Item]:
    ids = [i.id for i in promotion.products.all()] + [i.id for i in promotion.services.all()]
    qs = Item.objects.filter(id__in=ids)
    if active_only:
        qs = qs.filter(status=Item.STATUS_ACTIVE)
    return list(qs.order_by("-created_at"))


def promotion_item_count(promotion: Promotion) -> int:
    return len(get_promotion_items(promotion))

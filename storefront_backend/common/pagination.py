# common/pagination.py

"""
Cursor pagination over (-created_at, -id).

`last_doc_id` is the id of the last row of the previous page. One extra row
is fetched to know whether another page exists.
"""

from __future__ import annotations

from django.db.models import Q

from common.errors import ValidationError
from common.validation import parse_uuid


def paginate_by_cursor(queryset, *, limit=None, last_doc_id=None) -> dict:
    queryset = queryset.order_by("-created_at", "-id")

    if last_doc_id:
        anchor_id = parse_uuid(last_doc_id)
        anchor = None
        if anchor_id is not None:
            anchor = queryset.model.objects.filter(id=anchor_id).values("created_at", "id").first()
        if anchor is None:
            raise ValidationError("last_doc_id is invalid", "last_doc_id")
        queryset = queryset.filter(
            Q(created_at__lt=anchor["created_at"])
            | Q(created_at=anchor["created_at"], id__lt=anchor["id"])
        )

    if not limit:
        rows = list(queryset)
        return {
            "results": rows,
            "last_doc_id": str(rows[-1].id) if rows else None,
            "has_more": False,
        }

    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = 0
    if limit <= 0:
        raise ValidationError("limit must be a positive number", "limit")

    rows = list(queryset[: limit + 1])
    has_more = len(rows) > limit
    rows = rows[:limit]
    return {
        "results": rows,
        "last_doc_id": str(rows[-1].id) if rows else None,
        "has_more": has_more,
    }

# common/dates.py

from __future__ import annotations

from datetime import datetime, timedelta

from django.utils import timezone

from common.errors import ValidationError


def parse_date_param(value, field_name: str):
    """'YYYY-MM-DD' -> date. Empty -> None."""
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)", field_name)


def day_bounds(date_from, date_to):
    """
    Aware [start, end) datetimes covering whole days in the current timezone.
    A single date means that one day; no dates means (None, None).
    """
    if date_from and not date_to:
        date_to = date_from
    if date_to and not date_from:
        date_from = date_to
    if not date_from and not date_to:
        return None, None

    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(date_from, datetime.min.time()), tz)
    end = timezone.make_aware(datetime.combine(date_to, datetime.min.time()), tz) + timedelta(days=1)
    return start, end

# -*- coding: utf-8 -*-
"""
Date parsing helpers shared by lifecycle, gap and risk analysis.

All returned datetimes are timezone-aware UTC so differences against an
explicit reference time are well defined.

Author: OT Canon Platform Team
Date: October 2026
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Optional, Union

__all__ = [
    "parse_datetime",
    "to_utc",
    "days_between",
]

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%d.%m.%Y",
    "%Y%m%d",
)

_SECONDS_PER_DAY = 86400.0


def to_utc(value: Union[datetime, date]) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are UTC)."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 or common date string; None when unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (datetime, date)):
        return to_utc(value)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return to_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end``, floored (negative when past)."""
    return math.floor((to_utc(end) - to_utc(start)).total_seconds() / _SECONDS_PER_DAY)

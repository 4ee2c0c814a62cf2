"""
cadence.clock
=============

Date truncation helpers.  Every guard compares *days*, never instants,
so callers may pass a ``date``, a ``datetime`` or an ISO string and get
the same answer.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

DayLike = Union[date, datetime, str]


def as_day(value: DayLike) -> date:
    """Truncate *value* to a calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def today(tz: Optional[str] = None) -> date:
    """Current day in *tz* (defaults to ``settings.timezone``)."""
    if tz is None:
        from .settings import settings  # settings pulls pydantic; keep guards import‑light
        tz = settings.timezone
    return datetime.now(ZoneInfo(tz)).date()


def resolve_day(value: Optional[DayLike] = None) -> date:
    """``as_day(value)`` or today's date when *value* is None."""
    return today() if value is None else as_day(value)

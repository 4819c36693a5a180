"""UTC helpers.

All timestamps are stored and compared as timezone-aware UTC values.
Conversion to a local zone happens only when formatting for display.
"""

import os
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC (some drivers drop tzinfo
    on the way back from the database).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def scheduling_timezone() -> ZoneInfo:
    """Zone used for working hours and display strings (default UTC)."""
    return ZoneInfo(os.getenv("SCHEDULING_TIMEZONE", "UTC"))

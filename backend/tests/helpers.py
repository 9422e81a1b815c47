from __future__ import annotations

import datetime as dt
from typing import Optional

from worklog.intervals import Interval, ensure_utc

MINUTE = 60 * 1000
HOUR = 60 * MINUTE


def at(text: str) -> dt.datetime:
    """Local wall-clock ``YYYY-MM-DDTHH:MM`` as an aware UTC datetime."""
    return ensure_utc(dt.datetime.fromisoformat(text))


def make_interval(start: str, end: Optional[str] = None, *tags: str) -> Interval:
    return Interval(start=at(start), end=at(end) if end else None, tags=tuple(tags))

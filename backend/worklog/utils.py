from __future__ import annotations

import calendar
import datetime as dt
from typing import Tuple

MILLISECONDS_PER_MINUTE = 60 * 1000


def format_duration(milliseconds: int) -> str:
    """Render a duration as ``HH:MM``; hours are not wrapped at 24."""
    minutes = max(int(milliseconds), 0) // MILLISECONDS_PER_MINUTE
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def format_time_input(value: dt.datetime) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> Tuple[dt.date, dt.date]:
    """Return the first day of the month and the first day of the next one."""
    start = dt.date(year, month, 1)
    if month == 12:
        end = dt.date(year + 1, 1, 1)
    else:
        end = dt.date(year, month + 1, 1)
    return start, end


def month_key(value: dt.date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def parse_month_key(key: str) -> dt.date:
    try:
        year_text, month_text = key.split("-")
        return dt.date(int(year_text), int(month_text), 1)
    except ValueError as exc:
        raise ValueError(f"Invalid month key {key!r}") from exc

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import ValidationError
from .intervals import Interval, ensure_utc, is_same_day, serialize_store, sort_by_start, to_local
from .utils import format_time_input

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayEditorRow:
    start: str = ""
    end: str = ""
    tags: str = ""


@dataclass(frozen=True)
class DayEditor:
    title: str
    day: dt.date
    rows: List[DayEditorRow]
    tag_options: List[str]


@dataclass(frozen=True)
class Reconciliation:
    intervals: List[Interval]
    content: str


def _clean_row(row: DayEditorRow) -> DayEditorRow:
    return DayEditorRow(
        start=(row.start or "").strip(),
        end=(row.end or "").strip(),
        tags=(row.tags or "").strip(),
    )


def _parse_clock(value: str) -> Optional[Tuple[int, int]]:
    parts = value.split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        return None
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def split_tags(text: str) -> Tuple[str, ...]:
    return tuple(piece.strip() for piece in text.split(",") if piece.strip())


def _build_interval(day: dt.date, row: DayEditorRow, number: int) -> Interval:
    start_clock = _parse_clock(row.start)
    end_clock = _parse_clock(row.end)
    if start_clock is None or end_clock is None:
        raise ValidationError(f"Invalid time values ({row.start} - {row.end}).", row=number)
    # Wall-clock times of the local day; a repeated hour resolves to its first pass.
    start = ensure_utc(dt.datetime.combine(day, dt.time(*start_clock)))
    end = ensure_utc(dt.datetime.combine(day, dt.time(*end_clock)))
    if end <= start:
        raise ValidationError(
            f"End time must be after start time ({row.start} - {row.end}).", row=number
        )
    return Interval(start=start, end=end, tags=split_tags(row.tags))


def reconcile(
    day: dt.date,
    rows: Sequence[DayEditorRow],
    existing: Sequence[Interval],
) -> Reconciliation:
    """Replace every interval starting on ``day`` with the edited rows.

    Rows with an empty start or end are ignored. Raises ``ValidationError``
    for the first malformed row; callers write ``content`` only after a
    successful return.
    """
    replacements: List[Interval] = []
    for number, row in enumerate(rows, start=1):
        cleaned = _clean_row(row)
        if not cleaned.start or not cleaned.end:
            continue
        replacements.append(_build_interval(day, cleaned, number))

    kept = [interval for interval in existing if not is_same_day(interval.start, day)]
    merged = sort_by_start([*kept, *replacements])

    for interval in merged[:-1]:
        if interval.is_open:
            raise ValidationError(
                f"Cannot add intervals after the active interval started at {to_local(interval.start):%H:%M}."
            )

    logger.debug(
        "Reconciled %s: dropped %d, added %d",
        day.isoformat(),
        len(existing) - len(kept),
        len(replacements),
    )
    return Reconciliation(intervals=merged, content=serialize_store(merged))


def collect_tag_options(intervals: Iterable[Interval]) -> List[str]:
    tags = {tag for interval in intervals for tag in interval.tags}
    return sorted(tags, key=lambda tag: (tag.casefold(), tag))


def build_day_editor(
    day: dt.date,
    all_intervals: Sequence[Interval],
    now: dt.datetime,
) -> DayEditor:
    """Rows for the intervals starting on ``day``; an open interval ends at ``now``."""
    day_intervals = sort_by_start(
        interval for interval in all_intervals if is_same_day(interval.start, day)
    )
    rows = [
        DayEditorRow(
            start=format_time_input(to_local(interval.start)),
            end=format_time_input(to_local(interval.resolved_end(now))),
            tags=", ".join(interval.tags),
        )
        for interval in day_intervals
    ]
    return DayEditor(
        title=day.isoformat(),
        day=day,
        rows=rows,
        tag_options=collect_tag_options(all_intervals),
    )

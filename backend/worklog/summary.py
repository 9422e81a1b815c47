from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, Iterable, List, Sequence, Tuple

from .intervals import (
    NO_TAG,
    Interval,
    ensure_utc,
    local_date,
    local_midnight,
    tag_key,
    to_local,
    to_milliseconds,
)
from .utils import days_in_month, month_bounds

logger = logging.getLogger(__name__)

CURRENT_MONTH_LABEL = "Estimated month end"
FUTURE_MONTH_LABEL = "Estimation"


@dataclass
class Aggregation:
    daily_durations: List[int]
    tag_durations: Dict[str, int] = field(default_factory=dict)
    individual_tag_durations: Dict[str, int] = field(default_factory=dict)
    has_multi_tag_intervals: bool = False

    @property
    def total_duration(self) -> int:
        return sum(self.daily_durations)


@dataclass(frozen=True)
class Estimation:
    show_estimation: bool
    factor: Fraction
    label: str

    def apply(self, duration: int) -> int:
        return round(duration * self.factor)


@dataclass(frozen=True)
class TagSummary:
    tag: str
    duration: int
    estimated_duration: int


@dataclass(frozen=True)
class MonthSummary:
    title: str
    daily_durations: List[int]
    total_duration: int
    tags: List[TagSummary]
    individual_tags: List[TagSummary]
    has_multi_tag_intervals: bool
    show_estimation: bool
    estimation_label: str

    @property
    def estimated_total_duration(self) -> int:
        return sum(tag.estimated_duration for tag in self.tags)


def _add_to_bucket(bucket: Dict[str, int], key: str, duration: int) -> None:
    bucket[key] = bucket.get(key, 0) + duration


def month_window(year: int, month: int) -> Tuple[dt.datetime, dt.datetime]:
    """UTC instants of the local midnights starting ``month`` and the next month."""
    first_day, next_first_day = month_bounds(year, month)
    return local_midnight(first_day), local_midnight(next_first_day)


def _add_duration_by_day(
    range_start: dt.datetime,
    range_end: dt.datetime,
    daily_durations: List[int],
    month_start: dt.datetime,
) -> None:
    month = to_local(month_start)
    cursor = range_start
    while cursor < range_end:
        day = local_date(cursor)
        segment_end = min(local_midnight(day + dt.timedelta(days=1)), range_end)
        if day.year == month.year and day.month == month.month:
            index = day.day - 1
            if 0 <= index < len(daily_durations):
                daily_durations[index] += to_milliseconds(segment_end - cursor)
        cursor = segment_end


def _add_interval(
    interval: Interval,
    month_start: dt.datetime,
    month_end: dt.datetime,
    now: dt.datetime,
    result: Aggregation,
) -> None:
    clipped = interval.clipped(month_start, month_end, now)
    if clipped is None:
        return

    duration = clipped.duration(now)
    _add_duration_by_day(clipped.start, clipped.end, result.daily_durations, month_start)

    _add_to_bucket(result.tag_durations, tag_key(interval.tags), duration)
    for tag in interval.tags or (NO_TAG,):
        _add_to_bucket(result.individual_tag_durations, tag, duration)

    if len(interval.tags) > 1:
        result.has_multi_tag_intervals = True


def aggregate(
    intervals: Iterable[Interval],
    month_start: dt.datetime,
    month_end: dt.datetime,
    now: dt.datetime,
) -> Aggregation:
    """Bucket interval time inside ``[month_start, month_end)`` per day and per tag.

    ``month_start`` must be the first local midnight of a month (see
    ``month_window``). Open intervals run until ``now``. Intervals outside the
    window contribute nothing. Days are local calendar days, so a day crossing
    a DST change holds 23 or 25 hours of elapsed time.
    """
    month_start, month_end = ensure_utc(month_start), ensure_utc(month_end)
    month = to_local(month_start)
    slots = days_in_month(month.year, month.month)
    result = Aggregation(daily_durations=[0] * slots)
    for interval in intervals:
        _add_interval(interval, month_start, month_end, now, result)
    return result


def estimate(year: int, month: int, today: dt.date) -> Estimation:
    month_index = year * 12 + month
    current_month_index = today.year * 12 + today.month
    if month_index < current_month_index:
        return Estimation(show_estimation=False, factor=Fraction(1), label="")
    if month_index == current_month_index:
        factor = Fraction(days_in_month(year, month), max(1, today.day))
        return Estimation(show_estimation=True, factor=factor, label=CURRENT_MONTH_LABEL)
    return Estimation(show_estimation=True, factor=Fraction(1), label=FUTURE_MONTH_LABEL)


def _tag_summaries(durations: Dict[str, int], estimation: Estimation) -> List[TagSummary]:
    summaries = [
        TagSummary(tag=tag, duration=duration, estimated_duration=estimation.apply(duration))
        for tag, duration in durations.items()
    ]
    return sorted(summaries, key=lambda summary: summary.duration, reverse=True)


def build_month_summary(
    month: dt.date,
    intervals: Sequence[Interval],
    now: dt.datetime,
    today: dt.date | None = None,
) -> MonthSummary:
    today = today or local_date(now)
    first_day = month.replace(day=1)
    month_start, month_end = month_window(first_day.year, first_day.month)
    aggregation = aggregate(intervals, month_start, month_end, now)
    estimation = estimate(month.year, month.month, today)
    logger.debug(
        "Summarized %d intervals for %s (total %d ms)",
        len(intervals),
        first_day.strftime("%Y-%m"),
        aggregation.total_duration,
    )
    return MonthSummary(
        title=first_day.strftime("%B %Y"),
        daily_durations=aggregation.daily_durations,
        total_duration=aggregation.total_duration,
        tags=_tag_summaries(aggregation.tag_durations, estimation),
        individual_tags=_tag_summaries(aggregation.individual_tag_durations, estimation),
        has_multi_tag_intervals=aggregation.has_multi_tag_intervals,
        show_estimation=estimation.show_estimation,
        estimation_label=estimation.label,
    )

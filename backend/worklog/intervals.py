from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from .config import settings
from .errors import ParseError

UTC = dt.timezone.utc
LOCAL_TZ = ZoneInfo(settings.timezone)

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"
RECORD_PREFIX = "inc"
NO_TAG = "no tag"

_TIMESTAMP_RE = re.compile(r"^\d{8}T\d{6}Z$")
_TAG_TOKEN_RE = re.compile(r'"([^"]*)"|(\S+)')
_MILLISECOND = dt.timedelta(milliseconds=1)


@dataclass(frozen=True)
class Interval:
    """A tracked span between two UTC instants; ``end`` is None while tracking."""

    start: dt.datetime
    end: Optional[dt.datetime] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Same-zone datetime arithmetic ignores fold, so keep everything in UTC.
        object.__setattr__(self, "start", ensure_utc(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", ensure_utc(self.end))

    @property
    def is_open(self) -> bool:
        return self.end is None

    def resolved_end(self, now: dt.datetime) -> dt.datetime:
        return self.end if self.end is not None else ensure_utc(now)

    def duration(self, now: dt.datetime) -> int:
        """Length in milliseconds, measuring open intervals up to ``now``."""
        return max(to_milliseconds(self.resolved_end(now) - self.start), 0)

    def clipped(
        self,
        window_start: dt.datetime,
        window_end: dt.datetime,
        now: dt.datetime,
    ) -> Optional["Interval"]:
        """The closed part of this interval inside ``[window_start, window_end)``, if any."""
        start = max(self.start, ensure_utc(window_start))
        end = min(self.resolved_end(now), ensure_utc(window_end))
        if end <= start:
            return None
        return Interval(start=start, end=end, tags=self.tags)

    @property
    def file_format(self) -> str:
        return format_interval(self)


def to_milliseconds(delta: dt.timedelta) -> int:
    return delta // _MILLISECOND


def ensure_utc(value: dt.datetime) -> dt.datetime:
    """Naive values are local wall-clock time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=LOCAL_TZ)
    return value.astimezone(UTC)


def to_local(value: dt.datetime) -> dt.datetime:
    return ensure_utc(value).astimezone(LOCAL_TZ)


def local_date(value: dt.datetime) -> dt.date:
    return to_local(value).date()


def local_midnight(day: dt.date) -> dt.datetime:
    return dt.datetime.combine(day, dt.time.min, tzinfo=LOCAL_TZ).astimezone(UTC)


def parse_timestamp(text: str) -> dt.datetime:
    """Parse a stored ``YYYYMMDDTHHMMSSZ`` timestamp into an aware UTC datetime."""
    candidate = text.strip()
    if not _TIMESTAMP_RE.match(candidate):
        raise ParseError(f"Invalid timestamp {text!r}")
    try:
        value = dt.datetime.strptime(candidate, TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise ParseError(f"Invalid timestamp {text!r}") from exc
    return value.replace(tzinfo=UTC)


def format_timestamp(value: dt.datetime) -> str:
    return ensure_utc(value).strftime(TIMESTAMP_FORMAT)


def parse_tags(text: str) -> Tuple[str, ...]:
    tags: List[str] = []
    for match in _TAG_TOKEN_RE.finditer(text):
        quoted, bare = match.groups()
        tags.append(quoted if quoted is not None else bare)
    return tuple(tags)


def _quote_tag(tag: str) -> str:
    if any(char.isspace() for char in tag):
        return f'"{tag}"'
    return tag


def format_tags(tags: Sequence[str]) -> str:
    """Return the ``# ...`` suffix for a record, or an empty string."""
    if not tags:
        return ""
    return " # " + " ".join(_quote_tag(tag) for tag in tags)


def tag_key(tags: Sequence[str]) -> str:
    return ", ".join(tags) if tags else NO_TAG


def parse_interval(text: str) -> Interval:
    """Parse ``<start> - <end> # tags`` (end and tags optional)."""
    body, _, tag_text = text.partition("#")
    start_text, separator, end_text = body.strip().partition(" - ")
    if separator:
        end_text = end_text.strip()
    elif start_text.endswith(" -"):
        start_text, end_text = start_text[:-2], ""
    if not start_text.strip():
        raise ParseError("Missing start timestamp")
    start = parse_timestamp(start_text)
    end = parse_timestamp(end_text) if end_text else None
    if end is not None and end <= start:
        raise ParseError(f"End {end_text} is not after start {start_text.strip()}")
    return Interval(start=start, end=end, tags=parse_tags(tag_text))


def format_interval(interval: Interval) -> str:
    text = format_timestamp(interval.start)
    if interval.end is not None:
        text = f"{text} - {format_timestamp(interval.end)}"
    return text + format_tags(interval.tags)


def parse_record(line: str) -> Interval:
    keyword, _, rest = line.strip().partition(" ")
    if keyword != RECORD_PREFIX:
        raise ParseError(f"Unknown record type {keyword!r}")
    return parse_interval(rest)


def format_record(interval: Interval) -> str:
    return f"{RECORD_PREFIX} {format_interval(interval)}"


def validate_intervals(intervals: Sequence[Interval]) -> None:
    """Only the chronologically last interval may still be open."""
    if not intervals:
        return
    latest = max(intervals, key=lambda interval: interval.start)
    for interval in intervals:
        if interval.is_open and interval is not latest:
            raise ParseError(
                f"Open interval starting {format_timestamp(interval.start)} is not the last interval"
            )


def parse_store(text: str) -> List[Interval]:
    intervals: List[Interval] = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            intervals.append(parse_record(line))
        except ParseError as exc:
            raise ParseError(str(exc), line_number=number) from exc
    validate_intervals(intervals)
    return intervals


def serialize_store(intervals: Iterable[Interval]) -> str:
    content = "\n".join(format_record(interval) for interval in intervals)
    return f"{content}\n" if content else ""


def sort_by_start(intervals: Iterable[Interval], *, reverse: bool = False) -> List[Interval]:
    return sorted(intervals, key=lambda interval: interval.start, reverse=reverse)


def is_same_day(value: dt.datetime, day: dt.date) -> bool:
    """Whether ``value`` falls on the local calendar ``day``."""
    return local_date(value) == day

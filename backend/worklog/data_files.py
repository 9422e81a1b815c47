from __future__ import annotations

import datetime as dt
import logging
import os
import re
import tempfile
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .errors import DataFileNotFound
from .intervals import Interval, is_same_day, local_date, parse_store, sort_by_start
from .utils import month_key, parse_month_key

logger = logging.getLogger(__name__)

DATA_FILE_SUFFIX = ".data"
_FILE_NAME_RE = re.compile(r"^(\d{4})-(\d{2})\.data$")


class DataFile:
    """One month of intervals stored as ``YYYY-MM.data``."""

    def __init__(self, path: Path, date: dt.date) -> None:
        self.path = path
        self.date = date.replace(day=1)
        self._lock = RLock()
        self._intervals: Optional[List[Interval]] = None
        self._signature: Optional[Tuple[int, int]] = None

    @property
    def key(self) -> str:
        return month_key(self.date)

    def is_active(self, today: dt.date) -> bool:
        return (self.date.year, self.date.month) == (today.year, today.month)

    def exists(self) -> bool:
        return self.path.exists()

    def _stat_signature(self) -> Optional[Tuple[int, int]]:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def read_text(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def get_intervals(self) -> List[Interval]:
        """Parsed intervals, re-read only when the file changed on disk."""
        with self._lock:
            signature = self._stat_signature()
            if self._intervals is None or signature != self._signature:
                self._intervals = parse_store(self.read_text())
                self._signature = signature
            return list(self._intervals)

    def invalidate_intervals(self) -> None:
        with self._lock:
            self._intervals = None
            self._signature = None

    def write(self, content: str) -> None:
        """Replace the file content in one step; readers never see a partial file."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                    handle.write(content)
                os.replace(tmp_path, self.path)
            except OSError:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
                raise
            self.invalidate_intervals()
        logger.info("Wrote %s (%d bytes)", self.path, len(content.encode("utf-8")))


class DataFileStore:
    """Directory of monthly data files; keeps one ``DataFile`` per month."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self._lock = RLock()
        self._files: Dict[str, DataFile] = {}

    def _data_file(self, month: dt.date) -> DataFile:
        key = month_key(month)
        with self._lock:
            data_file = self._files.get(key)
            if data_file is None:
                data_file = DataFile(self.directory / f"{key}{DATA_FILE_SUFFIX}", month)
                self._files[key] = data_file
            return data_file

    def list_data_files(self) -> List[DataFile]:
        """Existing data files, newest month first."""
        if not self.directory.is_dir():
            return []
        files: List[DataFile] = []
        for path in self.directory.iterdir():
            match = _FILE_NAME_RE.match(path.name)
            if not match or not path.is_file():
                continue
            year, month = int(match.group(1)), int(match.group(2))
            if not 1 <= month <= 12:
                continue
            files.append(self._data_file(dt.date(year, month, 1)))
        return sorted(files, key=lambda data_file: data_file.date, reverse=True)

    def get(self, key: str) -> DataFile:
        try:
            month = parse_month_key(key)
        except ValueError as exc:
            raise DataFileNotFound(key) from exc
        data_file = self._data_file(month)
        if not data_file.exists():
            raise DataFileNotFound(key)
        return data_file

    def for_day(self, day: dt.date) -> DataFile:
        """Data file holding ``day``; it may not exist on disk yet."""
        return self._data_file(day)

    def active_file(self, today: dt.date) -> Optional[DataFile]:
        data_file = self._data_file(today)
        return data_file if data_file.exists() else None


@dataclass
class YearGroup:
    year: int
    data_files: List[DataFile] = field(default_factory=list)


@dataclass
class DateIntervals:
    day: dt.date
    intervals: List[Interval] = field(default_factory=list)


def group_history(
    data_files: Iterable[DataFile],
    today: dt.date,
) -> Tuple[List[DataFile], List[YearGroup]]:
    """Split files into the current year (and later) and one group per earlier year."""
    ordered = sorted(data_files, key=lambda data_file: data_file.date, reverse=True)
    top_level = [data_file for data_file in ordered if data_file.date.year >= today.year]
    grouped: Dict[int, List[DataFile]] = defaultdict(list)
    for data_file in ordered:
        if data_file.date.year < today.year:
            grouped[data_file.date.year].append(data_file)
    year_groups = [YearGroup(year=year, data_files=grouped[year]) for year in sorted(grouped, reverse=True)]
    return top_level, year_groups


def group_by_day(intervals: Iterable[Interval]) -> List[DateIntervals]:
    """Intervals per local start day, newest day first and newest interval first."""
    days: Dict[dt.date, DateIntervals] = {}
    for interval in sort_by_start(intervals, reverse=True):
        day = local_date(interval.start)
        days.setdefault(day, DateIntervals(day=day)).intervals.append(interval)
    return sorted(days.values(), key=lambda group: group.day, reverse=True)


def today_intervals(intervals: Iterable[Interval], today: dt.date) -> List[Interval]:
    return sort_by_start(interval for interval in intervals if is_same_day(interval.start, today))

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .data_files import DataFile
from .intervals import ensure_utc
from .summary import MonthSummary, TagSummary
from .utils import format_duration


class IntervalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    start: dt.datetime
    end: Optional[dt.datetime]
    tags: List[str]
    is_open: bool
    file_format: str

    @field_serializer("start", "end")
    def _serialize_datetime(self, value: Optional[dt.datetime]) -> Optional[str]:
        if value is None:
            return None
        return ensure_utc(value).isoformat()


class DataFileResponse(BaseModel):
    key: str
    name: str
    year: int
    month: int
    is_active: bool

    @classmethod
    def from_data_file(cls, data_file: DataFile, today: dt.date) -> "DataFileResponse":
        return cls(
            key=data_file.key,
            name=data_file.date.strftime("%B"),
            year=data_file.date.year,
            month=data_file.date.month,
            is_active=data_file.is_active(today),
        )


class YearGroupResponse(BaseModel):
    year: int
    data_files: List[DataFileResponse]


class HistoryResponse(BaseModel):
    data_files: List[DataFileResponse]
    years: List[YearGroupResponse]


class DateIntervalsResponse(BaseModel):
    day: dt.date
    intervals: List[IntervalResponse]


class TagSummaryResponse(BaseModel):
    tag: str
    duration: int
    estimated_duration: int
    duration_label: str
    estimated_duration_label: str

    @classmethod
    def from_summary(cls, summary: TagSummary) -> "TagSummaryResponse":
        return cls(
            tag=summary.tag,
            duration=summary.duration,
            estimated_duration=summary.estimated_duration,
            duration_label=format_duration(summary.duration),
            estimated_duration_label=format_duration(summary.estimated_duration),
        )


class MonthSummaryResponse(BaseModel):
    key: str
    revision: int
    title: str
    daily_durations: List[int]
    total_duration: int
    total_duration_label: str
    estimated_total_duration: int
    tags: List[TagSummaryResponse]
    individual_tags: List[TagSummaryResponse]
    has_multi_tag_intervals: bool
    show_estimation: bool
    estimation_label: str

    @classmethod
    def from_summary(cls, key: str, revision: int, summary: MonthSummary) -> "MonthSummaryResponse":
        return cls(
            key=key,
            revision=revision,
            title=summary.title,
            daily_durations=summary.daily_durations,
            total_duration=summary.total_duration,
            total_duration_label=format_duration(summary.total_duration),
            estimated_total_duration=summary.estimated_total_duration,
            tags=[TagSummaryResponse.from_summary(tag) for tag in summary.tags],
            individual_tags=[TagSummaryResponse.from_summary(tag) for tag in summary.individual_tags],
            has_multi_tag_intervals=summary.has_multi_tag_intervals,
            show_estimation=summary.show_estimation,
            estimation_label=summary.estimation_label,
        )


class DayEditorRowModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    start: str = ""
    end: str = ""
    tags: str = ""


class DayEditorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    title: str
    day: dt.date
    rows: List[DayEditorRowModel]
    tag_options: List[str]


class DaySaveRequest(BaseModel):
    rows: List[DayEditorRowModel] = Field(default_factory=list)


class DaySaveResponse(BaseModel):
    day: dt.date
    key: str
    revision: int
    message: str
    intervals: List[IntervalResponse]

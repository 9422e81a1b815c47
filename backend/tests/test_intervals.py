from __future__ import annotations

import datetime as dt

import pytest

from helpers import HOUR, MINUTE, at, make_interval
from worklog.errors import ParseError
from worklog.intervals import (
    UTC,
    Interval,
    format_interval,
    format_record,
    is_same_day,
    parse_interval,
    parse_record,
    parse_store,
    serialize_store,
    to_local,
)


@pytest.mark.parametrize(
    "line",
    [
        "inc 20230905T090000Z - 20230905T120000Z # work",
        'inc 20230905T130000Z - 20230905T153000Z # work "code review" meeting',
        "inc 20230905T160000Z - 20230905T170000Z",
        "inc 20230905T220000Z # work",
        "inc 20230905T220000Z",
    ],
)
def test_stored_lines_survive_parse_and_format(line: str) -> None:
    assert format_record(parse_record(line)) == line


def test_parse_extracts_fields() -> None:
    interval = parse_interval('20230905T130000Z - 20230905T153000Z # work "code review"')
    assert interval.start == dt.datetime(2023, 9, 5, 13, 0, tzinfo=UTC)
    assert interval.end == dt.datetime(2023, 9, 5, 15, 30, tzinfo=UTC)
    assert interval.tags == ("work", "code review")
    assert not interval.is_open


def test_open_interval_with_dangling_separator() -> None:
    interval = parse_interval("20230905T220000Z - # work")
    assert interval.is_open
    assert interval.tags == ("work",)
    assert format_interval(interval) == "20230905T220000Z # work"


def test_formatted_interval_parses_back() -> None:
    interval = make_interval("2023-09-05T09:00:00", "2023-09-05T17:45:30", "deep work", "proj")
    text = format_interval(interval)
    assert text == '20230905T090000Z - 20230905T174530Z # "deep work" proj'
    assert parse_interval(text) == interval


def test_duration_measures_open_interval_until_now() -> None:
    interval = make_interval("2023-09-05T22:00:00")
    assert interval.duration(at("2023-09-06T01:00:00")) == 3 * HOUR


@pytest.mark.parametrize(
    "text",
    [
        "2023-09-05 09:00 - 20230905T120000Z",
        "20230905T090000Z - 20231305T120000Z",
        "20230905T120000Z - 20230905T090000Z",
        "20230905T090000Z - 20230905T090000Z",
        " # work",
    ],
)
def test_malformed_interval_is_rejected(text: str) -> None:
    with pytest.raises(ParseError):
        parse_interval(text)


def test_record_requires_inc_keyword() -> None:
    with pytest.raises(ParseError):
        parse_record("exc 20230905T090000Z - 20230905T120000Z")


def test_parse_store_reports_line_number() -> None:
    text = "inc 20230905T090000Z - 20230905T120000Z\n\ninc 2023-09-05 - 20230905T120000Z\n"
    with pytest.raises(ParseError) as excinfo:
        parse_store(text)
    assert excinfo.value.line_number == 3
    assert str(excinfo.value).startswith("Line 3:")


def test_parse_store_rejects_open_interval_before_last() -> None:
    text = "inc 20230905T090000Z # work\ninc 20230905T100000Z - 20230905T110000Z\n"
    with pytest.raises(ParseError):
        parse_store(text)


def test_parse_store_accepts_trailing_open_interval() -> None:
    text = "inc 20230905T090000Z - 20230905T100000Z\ninc 20230905T110000Z # work\n"
    intervals = parse_store(text)
    assert [interval.is_open for interval in intervals] == [False, True]


def test_serialize_store() -> None:
    assert serialize_store([]) == ""
    intervals = [
        make_interval("2023-09-05T09:00:00", "2023-09-05T12:00:00", "work"),
        Interval(start=at("2023-09-06T08:00:00")),
    ]
    assert serialize_store(intervals) == (
        "inc 20230905T090000Z - 20230905T120000Z # work\n"
        "inc 20230906T080000Z\n"
    )


def test_clipped_keeps_only_the_part_inside_the_window() -> None:
    interval = make_interval("2023-09-30T22:00:00", None, "work")
    clipped = interval.clipped(at("2023-09-01T00:00:00"), at("2023-10-01T00:00:00"), at("2023-10-01T01:30:00"))
    assert clipped == make_interval("2023-09-30T22:00:00", "2023-10-01T00:00:00", "work")
    assert clipped.duration(at("2023-10-01T01:30:00")) == 2 * HOUR
    assert interval.clipped(at("2023-10-01T00:00:00"), at("2023-11-01T00:00:00"), at("2023-09-30T23:00:00")) is None


def test_interval_inside_repeated_hour_is_accepted(berlin) -> None:
    # 00:30Z and 01:30Z are both 02:30 local on the night clocks go back.
    intervals = parse_store("inc 20231029T003000Z - 20231029T013000Z # work\n")
    interval = intervals[0]
    assert interval.duration(interval.end) == HOUR
    local_start, local_end = to_local(interval.start), to_local(interval.end)
    assert (local_start.hour, local_start.minute, local_start.fold) == (2, 30, 0)
    assert (local_end.hour, local_end.minute, local_end.fold) == (2, 30, 1)


@pytest.mark.parametrize(
    "line",
    [
        "inc 20231029T013000Z - 20231029T020000Z # work",
        "inc 20231029T004500Z - 20231029T011500Z # work",
        "inc 20230326T005900Z - 20230326T010100Z # work",
    ],
)
def test_lines_around_dst_changes_survive_parse_and_format(berlin, line: str) -> None:
    assert format_record(parse_record(line)) == line


def test_duration_across_fall_back_counts_elapsed_time(berlin) -> None:
    interval = parse_interval("20231028T230000Z - 20231029T030000Z")
    assert format_interval(interval) == "20231028T230000Z - 20231029T030000Z"
    assert interval.duration(interval.end) == 4 * HOUR
    assert is_same_day(interval.start, dt.date(2023, 10, 29))
    assert not is_same_day(interval.start, dt.date(2023, 10, 28))


def test_naive_local_times_are_placed_by_local_offset(berlin) -> None:
    interval = make_interval("2023-03-26T01:50:00", "2023-03-26T03:10:00")
    assert format_interval(interval) == "20230326T005000Z - 20230326T011000Z"
    assert interval.duration(interval.end) == 20 * MINUTE


def test_interval_normalises_local_values_to_utc(berlin) -> None:
    start = dt.datetime(2023, 10, 29, 2, 30, tzinfo=berlin)
    end = dt.datetime(2023, 10, 29, 2, 30, fold=1, tzinfo=berlin)
    interval = Interval(start=start, end=end)
    assert interval.start.tzinfo is UTC
    assert interval.duration(interval.end) == HOUR
    assert format_interval(interval) == "20231029T003000Z - 20231029T013000Z"

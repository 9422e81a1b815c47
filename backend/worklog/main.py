from __future__ import annotations

import datetime as dt
import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from .config import settings
from .data_files import group_by_day, group_history, today_intervals
from .day_editor import DayEditorRow, build_day_editor, reconcile
from .errors import DataFileNotFound, ParseError, ValidationError
from .intervals import UTC, is_same_day, local_date
from .schemas import (
    DataFileResponse,
    DateIntervalsResponse,
    DayEditorResponse,
    DaySaveRequest,
    DaySaveResponse,
    HistoryResponse,
    IntervalResponse,
    MonthSummaryResponse,
    YearGroupResponse,
)
from .state import RuntimeState
from .summary import build_month_summary

logger = logging.getLogger(__name__)

runtime_state = RuntimeState(settings)

app = FastAPI(title=settings.app_name)
app.state.runtime_state = runtime_state
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_state(request: Request) -> RuntimeState:
    return request.app.state.runtime_state


def get_now() -> dt.datetime:
    return dt.datetime.now(UTC).replace(microsecond=0)


@app.exception_handler(ValidationError)
def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse({"detail": f"Could not save day: {exc}"}, status_code=status.HTTP_400_BAD_REQUEST)


@app.exception_handler(ParseError)
def _parse_error_handler(request: Request, exc: ParseError) -> JSONResponse:
    logger.warning("Rejected stored record: %s", exc)
    return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


@app.exception_handler(DataFileNotFound)
def _not_found_handler(request: Request, exc: DataFileNotFound) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_404_NOT_FOUND)


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/data-files", response_model=HistoryResponse)
def data_files(
    state: RuntimeState = Depends(get_state),
    now: dt.datetime = Depends(get_now),
) -> HistoryResponse:
    today = local_date(now)
    top_level, year_groups = group_history(state.store.list_data_files(), today)
    return HistoryResponse(
        data_files=[DataFileResponse.from_data_file(data_file, today) for data_file in top_level],
        years=[
            YearGroupResponse(
                year=group.year,
                data_files=[DataFileResponse.from_data_file(data_file, today) for data_file in group.data_files],
            )
            for group in year_groups
        ],
    )


@app.get("/data-files/{key}/days", response_model=list[DateIntervalsResponse])
def data_file_days(key: str, state: RuntimeState = Depends(get_state)) -> list[DateIntervalsResponse]:
    data_file = state.store.get(key)
    return [
        DateIntervalsResponse(
            day=group.day,
            intervals=[IntervalResponse.model_validate(interval) for interval in group.intervals],
        )
        for group in group_by_day(data_file.get_intervals())
    ]


@app.get("/data-files/{key}/summary", response_model=MonthSummaryResponse)
def month_summary(
    key: str,
    state: RuntimeState = Depends(get_state),
    now: dt.datetime = Depends(get_now),
) -> MonthSummaryResponse:
    data_file = state.store.get(key)
    summary = build_month_summary(data_file.date, data_file.get_intervals(), now)
    return MonthSummaryResponse.from_summary(data_file.key, state.revision(data_file.key), summary)


@app.get("/days/{day}/editor", response_model=DayEditorResponse)
def day_editor(
    day: dt.date,
    state: RuntimeState = Depends(get_state),
    now: dt.datetime = Depends(get_now),
) -> DayEditorResponse:
    data_file = state.store.for_day(day)
    editor = build_day_editor(day, data_file.get_intervals(), now)
    return DayEditorResponse.model_validate(editor)


@app.put("/days/{day}", response_model=DaySaveResponse)
def save_day(
    day: dt.date,
    payload: DaySaveRequest,
    state: RuntimeState = Depends(get_state),
) -> DaySaveResponse:
    data_file = state.store.for_day(day)
    rows = [DayEditorRow(start=row.start, end=row.end, tags=row.tags) for row in payload.rows]
    result = reconcile(day, rows, data_file.get_intervals())
    data_file.write(result.content)
    revision = state.mark_saved(data_file)
    return DaySaveResponse(
        day=day,
        key=data_file.key,
        revision=revision,
        message=f"Saved {day.isoformat()}",
        intervals=[
            IntervalResponse.model_validate(interval)
            for interval in result.intervals
            if is_same_day(interval.start, day)
        ],
    )


@app.get("/today", response_model=list[IntervalResponse])
def today(
    state: RuntimeState = Depends(get_state),
    now: dt.datetime = Depends(get_now),
) -> list[IntervalResponse]:
    current_day = local_date(now)
    data_file = state.store.active_file(current_day)
    if data_file is None:
        return []
    intervals = today_intervals(data_file.get_intervals(), current_day)
    return [IntervalResponse.model_validate(interval) for interval in intervals]

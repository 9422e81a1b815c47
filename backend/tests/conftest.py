from __future__ import annotations

import datetime as dt
import os
import tempfile
from pathlib import Path
from typing import Generator
from zoneinfo import ZoneInfo

os.environ["WL_TIMEZONE"] = "UTC"
os.environ.setdefault("WL_DATA_DIR", tempfile.mkdtemp(prefix="worklog-"))

import pytest
from fastapi.testclient import TestClient

from worklog import intervals
from worklog.config import settings
from worklog.main import app, get_now, get_state
from worklog.state import RuntimeState


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture()
def now() -> dt.datetime:
    return dt.datetime(2023, 9, 10, 12, 0, 0, tzinfo=dt.timezone.utc)


@pytest.fixture()
def berlin(monkeypatch: pytest.MonkeyPatch) -> ZoneInfo:
    """Local zone with DST changes on 2023-03-26 and 2023-10-29."""
    zone = ZoneInfo("Europe/Berlin")
    monkeypatch.setattr(intervals, "LOCAL_TZ", zone)
    return zone


@pytest.fixture()
def state(data_dir: Path) -> RuntimeState:
    return RuntimeState(settings, data_dir=data_dir)


@pytest.fixture()
def client(state: RuntimeState, now: dt.datetime) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_state] = lambda: state
    app.dependency_overrides[get_now] = lambda: now
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Annotated, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_CORS_ORIGINS = ["http://127.0.0.1:5173", "http://localhost:5173"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="WL_", case_sensitive=False, extra="ignore")
    """Application runtime configuration, read from ``WL_*`` variables."""

    app_name: str = "Worklog"
    environment: str = "development"
    host: str = "127.0.0.1"
    port: int = 8080

    data_dir: Path = Path("./data/timewarrior")
    log_level: str = "INFO"
    timezone: str = os.getenv("TZ", "Europe/Berlin")

    cors_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, list):
            return value
        if not value:
            return []
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"Unknown log level {value!r}")
        return normalized

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {value!r}") from exc
        return value


settings = Settings()

# Ensure the data directory exists
settings.data_dir.mkdir(parents=True, exist_ok=True)

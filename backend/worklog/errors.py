from __future__ import annotations

from typing import Optional


class WorklogError(Exception):
    """Base class for errors raised by the worklog core."""


class ParseError(WorklogError, ValueError):
    """A stored record could not be turned into an interval."""

    def __init__(self, message: str, *, line_number: Optional[int] = None) -> None:
        if line_number is not None:
            message = f"Line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class ValidationError(WorklogError, ValueError):
    """An edited day row was rejected; nothing has been written."""

    def __init__(self, message: str, *, row: Optional[int] = None) -> None:
        if row is not None:
            message = f"Row {row}: {message}"
        super().__init__(message)
        self.row = row


class DataFileNotFound(WorklogError, LookupError):
    def __init__(self, key: str) -> None:
        super().__init__(f"No data file for {key}")
        self.key = key

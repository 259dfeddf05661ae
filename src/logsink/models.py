"""Log entry models.

Entries are transient: one is assembled per event and discarded once the row
has been written.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from .fields import FieldVisitor, record_field, storable_text


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


class Level(str, Enum):
    """Severity labels as stored in the `level` column."""

    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"

    @property
    def verbosity(self) -> int:
        """Rank where ERROR is the least verbose level."""
        return _VERBOSITY[self]

    def allows(self, level: Level) -> bool:
        """Return True when `level` is at most as verbose as this one."""
        return level.verbosity <= self.verbosity

    @classmethod
    def from_levelno(cls, levelno: int) -> Level:
        """Map a stdlib `logging` numeric level onto a label."""
        if levelno >= 40:
            return cls.ERROR
        if levelno >= 30:
            return cls.WARN
        if levelno >= 20:
            return cls.INFO
        if levelno >= 10:
            return cls.DEBUG
        return cls.TRACE

    @classmethod
    def parse(cls, text: str) -> Level:
        """Parse a label case-insensitively (WARNING and CRITICAL are accepted)."""
        normalized = text.strip().upper()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(level.value for level in cls)
            raise ValueError(f"Unknown level {text!r}. Expected one of: {choices}") from exc


_VERBOSITY = {Level.ERROR: 0, Level.WARN: 1, Level.INFO: 2, Level.DEBUG: 3, Level.TRACE: 4}
_ALIASES = {"WARNING": "WARN", "CRITICAL": "ERROR", "FATAL": "ERROR"}


class Event(BaseModel):
    """An event as delivered by the instrumentation layer."""

    model_config = ConfigDict(frozen=True)

    level: Level
    # Originating path, e.g. "app.db.pool".
    target: str = ""
    file: str | None = None
    line: int | None = None
    # Ordered (name, value) pairs; values keep their runtime type.
    fields: tuple[tuple[str, Any], ...] = ()

    def record(self, visitor: FieldVisitor) -> None:
        """Feed every field to `visitor`, dispatched by value kind."""
        for name, value in self.fields:
            record_field(visitor, name, value)


class LogEntry(BaseModel):
    """One persistable row."""

    model_config = ConfigDict(frozen=True)

    # ISO-8601 UTC capture time; None for the legacy schema without a time column.
    time: str | None = None
    level: Level
    module: str | None = None
    file: str | None = None
    line: int | None = None
    message: str = ""
    # JSON object text, never empty.
    structured: str = "{}"


def assemble_entry(
    level: Level,
    module: str | None,
    file: str | None,
    line: int | None,
    message: str,
    structured: str,
    *,
    with_time: bool = True,
) -> LogEntry:
    """Combine event metadata and collected fields into a `LogEntry`."""
    return LogEntry(
        time=utc_now().isoformat() if with_time else None,
        level=level,
        module=storable_text(module) if module is not None else None,
        file=storable_text(file) if file is not None else None,
        line=line,
        message=message,
        structured=structured,
    )

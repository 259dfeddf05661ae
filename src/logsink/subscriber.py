"""Event subscriber: filter, collect, assemble, persist."""

from __future__ import annotations

import sys
import threading
from datetime import datetime
from typing import Any

from .errors import PersistError
from .fields import collect_fields
from .filters import TargetFilter
from .models import Event, Level, assemble_entry, utc_now
from .sinks import LogSink


class Subscriber:
    """Receives events and writes the eligible ones through a sink.

    Persistence failures never leave `event()`: they are counted in a
    degraded-status window and reported on stderr.
    """

    def __init__(
        self,
        *,
        sink: LogSink,
        target_filter: TargetFilter | None = None,
        max_level: Level = Level.TRACE,
    ) -> None:
        """Create a subscriber.

        Args:
            sink: Storage backend, typically sharing a `SharedConnection`.
            target_filter: Allow/deny prefixes; permissive when omitted.
            max_level: Most verbose level that is still recorded.
        """
        self._sink = sink
        self._filter = target_filter or TargetFilter()
        self._max_level = max_level

        self._failures_lock = threading.Lock()
        self._write_failures = 0
        self._first_failure_at: datetime | None = None
        self._last_failure_at: datetime | None = None

    @property
    def sink(self) -> LogSink:
        return self._sink

    @property
    def target_filter(self) -> TargetFilter:
        return self._filter

    @property
    def max_level(self) -> Level:
        return self._max_level

    def enabled(self, target: str, level: Level) -> bool:
        """Fast-path check used before an event is built."""
        return self._max_level.allows(level) and self._filter.should_emit(target)

    def event(self, event: Event) -> bool:
        """Record one event. Returns True when a row was written."""
        if not self.enabled(event.target, event.level):
            return False

        message, structured = collect_fields(event)
        entry = assemble_entry(
            event.level,
            event.target or None,
            event.file,
            event.line,
            message,
            structured,
            with_time=self._sink.schema.has_time,
        )

        try:
            self._sink.write(entry)
        except PersistError as exc:
            self._note_failure(exc)
            return False
        return True

    def _note_failure(self, exc: PersistError) -> None:
        now = utc_now()
        with self._failures_lock:
            self._write_failures += 1
            self._first_failure_at = self._first_failure_at or now
            self._last_failure_at = now
        print(f"logsink: dropped log entry: {exc}", file=sys.stderr)

    def degraded_status(self) -> dict[str, Any]:
        """Return a minimal degraded-status snapshot."""
        with self._failures_lock:
            return {
                "write_failures": self._write_failures,
                "first_failure_at": self._first_failure_at,
                "last_failure_at": self._last_failure_at,
            }

    def close(self) -> None:
        """Close the sink. The shared connection stays open."""
        self._sink.close()

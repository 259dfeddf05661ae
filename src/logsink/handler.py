"""Bridge from the stdlib `logging` package into a `Subscriber`.

Install the handler wherever the application configures logging, e.g.
`logging.getLogger().addHandler(handler)`. Attributes passed through
`extra=` become the structured payload; the logger name is the path that
the allow/deny lists match against.
"""

from __future__ import annotations

import logging
from typing import Any

from .models import Event, Level
from .subscriber import Subscriber

# Records from this package are never persisted, so a failing write can not
# feed back into the handler.
_OWN_NAMESPACE = "logsink"

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

_formatter = logging.Formatter()


def _is_own_record(name: str) -> bool:
    return name == _OWN_NAMESPACE or name.startswith(_OWN_NAMESPACE + ".")


def _message_text(record: logging.LogRecord) -> str:
    try:
        return record.getMessage()
    except (TypeError, ValueError):
        # Mismatched %-args; keep the raw template rather than dropping the entry.
        return str(record.msg)


def event_from_record(record: logging.LogRecord) -> Event:
    """Convert a stdlib log record into an `Event`."""
    fields: list[tuple[str, Any]] = [("message", _message_text(record))]
    fields.extend(
        (name, value) for name, value in record.__dict__.items() if name not in _STANDARD_ATTRS
    )
    if record.exc_info:
        fields.append(("exception", _formatter.formatException(record.exc_info)))
    elif record.exc_text:
        fields.append(("exception", record.exc_text))
    if record.stack_info:
        fields.append(("stack", _formatter.formatStack(record.stack_info)))

    return Event(
        level=Level.from_levelno(record.levelno),
        target=record.name,
        file=record.pathname or None,
        line=record.lineno,
        fields=tuple(fields),
    )


class SQLLogHandler(logging.Handler):
    """`logging.Handler` that persists records through a `Subscriber`."""

    def __init__(self, subscriber: Subscriber, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.subscriber = subscriber

    def filter(self, record: logging.LogRecord) -> bool:
        """Apply the subscriber's level and path rules before regular filters."""
        if _is_own_record(record.name):
            return False
        if not self.subscriber.enabled(record.name, Level.from_levelno(record.levelno)):
            return False
        return bool(super().filter(record))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.subscriber.event(event_from_record(record))
        except Exception:  # noqa: BLE001 - report via logging's own fallback
            self.handleError(record)

    def close(self) -> None:
        try:
            self.subscriber.close()
        finally:
            super().close()

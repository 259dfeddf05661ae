"""SQL log sink.

This package persists log events as rows in a relational store:
- Allow/deny prefix filtering over the event's originating path.
- Conversion of structured fields into a JSON object payload.
- Lock-guarded writes through one shared DuckDB or sqlite3 connection, with
  ad-hoc or prepared inserts.

`SQLLogHandler` plugs the pipeline into the stdlib `logging` package.
"""

from .builder import Strategy, SubscriberBuilder
from .errors import LogSinkError, PersistError, SetupError
from .fields import FieldCollector, FieldVisitor, collect_fields, record_field
from .filters import TargetFilter, prefix_matches
from .handler import SQLLogHandler, event_from_record
from .models import Event, Level, LogEntry, assemble_entry
from .sinks import (
    AdHocLogSink,
    InMemoryLogSink,
    LogSink,
    PreparedLogSink,
    SchemaVariant,
    SharedConnection,
    ensure_schema,
    open_connection,
)
from .subscriber import Subscriber

__all__ = [
    "AdHocLogSink",
    "Event",
    "FieldCollector",
    "FieldVisitor",
    "InMemoryLogSink",
    "Level",
    "LogEntry",
    "LogSink",
    "LogSinkError",
    "PersistError",
    "PreparedLogSink",
    "SQLLogHandler",
    "SchemaVariant",
    "SetupError",
    "SharedConnection",
    "Strategy",
    "Subscriber",
    "SubscriberBuilder",
    "TargetFilter",
    "assemble_entry",
    "collect_fields",
    "ensure_schema",
    "event_from_record",
    "open_connection",
    "prefix_matches",
    "record_field",
]

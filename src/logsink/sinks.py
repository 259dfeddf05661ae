"""Log sinks (storage backends).

Every sink writes through a `SharedConnection`: one DB-API connection (DuckDB
or sqlite3) guarded by one lock. The lock is held for a single statement at a
time, so writers on different threads serialize but never interleave.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Protocol

import duckdb

from .errors import PersistError, SetupError
from .models import LogEntry

logger = logging.getLogger(__name__)

Backend = Literal["duckdb", "sqlite"]


class SchemaVariant(str, Enum):
    """Supported table layouts."""

    V0 = "logs_v0"
    # Legacy layout without a time column.
    LEGACY = "logs"

    @property
    def table(self) -> str:
        return self.value

    @property
    def has_time(self) -> bool:
        return self is SchemaVariant.V0

    @property
    def columns(self) -> tuple[str, ...]:
        base = ("level", "module", "file", "line", "message", "structured")
        return ("time", *base) if self.has_time else base


_DDL = {
    SchemaVariant.V0: """
        CREATE TABLE IF NOT EXISTS logs_v0 (
            time TEXT NOT NULL,
            level TEXT NOT NULL,
            module TEXT,
            file TEXT,
            line INTEGER,
            message TEXT NOT NULL,
            structured TEXT NOT NULL
        )
    """,
    SchemaVariant.LEGACY: """
        CREATE TABLE IF NOT EXISTS logs (
            level TEXT NOT NULL,
            module TEXT,
            file TEXT,
            line INTEGER,
            message TEXT NOT NULL,
            structured TEXT NOT NULL
        )
    """,
}


class SharedConnection:
    """Exclusive-access wrapper around one database connection.

    Hand the same instance to every sink that should share the connection;
    each wrapper owns its own lock, so wrapping a connection twice defeats the
    serialization.
    """

    def __init__(self, connection: Any) -> None:
        self._connection = connection
        self._lock = threading.Lock()

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """Hold the lock and yield the raw connection."""
        with self._lock:
            yield self._connection

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._connection.close()


def open_connection(path: str | Path, backend: Backend = "duckdb") -> SharedConnection:
    """Open a DuckDB or sqlite3 database and wrap it for sharing."""
    if backend == "duckdb":
        return SharedConnection(duckdb.connect(str(path)))
    if backend == "sqlite":
        # Access is serialized by SharedConnection, so cross-thread use is safe.
        return SharedConnection(sqlite3.connect(str(path), check_same_thread=False))
    raise ValueError(f"Unsupported backend {backend!r}. Expected 'duckdb' or 'sqlite'.")


def _commit_if_needed(conn: Any) -> None:
    # sqlite3 opens an implicit transaction for DML; DuckDB autocommits.
    if getattr(conn, "in_transaction", False):
        conn.commit()


def ensure_schema(connection: SharedConnection, variant: SchemaVariant = SchemaVariant.V0) -> None:
    """Create the log table if it does not exist yet.

    Safe to call any number of times. Raises `SetupError` when the store
    rejects the statement.
    """
    with connection.acquire() as conn:
        try:
            conn.execute(_DDL[variant])
            _commit_if_needed(conn)
        except Exception as exc:  # noqa: BLE001 - any driver error is a setup failure
            raise SetupError(f"could not create table {variant.table}: {exc}") from exc
    logger.debug("ensured log table %s", variant.table)


def insert_sql(variant: SchemaVariant) -> str:
    """Render the parameterized insert statement for a layout."""
    columns = variant.columns
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {variant.table} ({', '.join(columns)}) VALUES ({placeholders})"


def row_params(entry: LogEntry, variant: SchemaVariant) -> list[Any]:
    """Map an entry onto the parameter list for `insert_sql(variant)`."""
    params: list[Any] = [
        entry.level.value,
        entry.module,
        entry.file,
        entry.line,
        entry.message,
        entry.structured,
    ]
    if variant.has_time:
        if entry.time is None:
            raise PersistError(f"{variant.table} requires a time value")
        params.insert(0, entry.time)
    return params


class LogSink(Protocol):
    """A synchronous sink for log entries."""

    @property
    def schema(self) -> SchemaVariant:
        """Layout the sink writes."""

    def ensure_schema(self) -> None:
        """Create the backing table if needed."""

    def write(self, entry: LogEntry) -> None:
        """Persist a single entry, raising `PersistError` on failure."""

    def close(self) -> None:
        """Release sink-owned resources (never the shared connection)."""


class InMemoryLogSink:
    """In-memory sink for tests and local debugging."""

    def __init__(self, schema: SchemaVariant = SchemaVariant.V0) -> None:
        """Create an empty in-memory sink."""
        self._schema = schema
        self._lock = threading.Lock()
        self._entries: list[LogEntry] = []

    @property
    def schema(self) -> SchemaVariant:
        return self._schema

    def ensure_schema(self) -> None:  # noqa: D401 - keep interface consistent
        """No-op."""

    def write(self, entry: LogEntry) -> None:
        """Append an entry to the in-memory list (thread-safe)."""
        with self._lock:
            self._entries.append(entry)

    def close(self) -> None:  # noqa: D401 - keep interface consistent
        """No-op."""

    def snapshot(self) -> Sequence[LogEntry]:
        """Return a point-in-time copy of all recorded entries."""
        with self._lock:
            return list(self._entries)


class AdHocLogSink:
    """Builds and executes a fresh insert statement on every write."""

    def __init__(self, connection: SharedConnection, schema: SchemaVariant = SchemaVariant.V0) -> None:
        self._connection = connection
        self._schema = schema

    @property
    def schema(self) -> SchemaVariant:
        return self._schema

    def ensure_schema(self) -> None:
        ensure_schema(self._connection, self._schema)

    def write(self, entry: LogEntry) -> None:
        """Insert one row using a statement rendered for this call."""
        sql = insert_sql(self._schema)
        params = row_params(entry, self._schema)
        with self._connection.acquire() as conn:
            try:
                conn.execute(sql, params)
                _commit_if_needed(conn)
            except Exception as exc:  # noqa: BLE001 - logging must not crash the caller
                raise PersistError(f"insert into {self._schema.table} failed: {exc}") from exc

    def close(self) -> None:  # noqa: D401 - keep interface consistent
        """No-op."""


class PreparedLogSink:
    """Reuses one insert statement and a dedicated cursor for every write.

    The statement text is rendered once; sqlite3 and DuckDB keep the compiled
    form for repeated executions of identical SQL on the same cursor, so each
    write only re-binds parameters. The table must exist before the first
    write (see `ensure_schema`).
    """

    def __init__(self, connection: SharedConnection, schema: SchemaVariant = SchemaVariant.V0) -> None:
        self._connection = connection
        self._schema = schema
        self._sql = insert_sql(schema)
        with connection.acquire() as conn:
            self._cursor = conn.cursor()

    @property
    def schema(self) -> SchemaVariant:
        return self._schema

    def ensure_schema(self) -> None:
        ensure_schema(self._connection, self._schema)

    def write(self, entry: LogEntry) -> None:
        """Insert one row by re-binding the prepared statement."""
        params = row_params(entry, self._schema)
        with self._connection.acquire() as conn:
            try:
                self._cursor.execute(self._sql, params)
                _commit_if_needed(conn)
            except Exception as exc:  # noqa: BLE001 - logging must not crash the caller
                raise PersistError(f"insert into {self._schema.table} failed: {exc}") from exc

    def close(self) -> None:
        """Close the dedicated cursor."""
        with self._connection.acquire():
            self._cursor.close()

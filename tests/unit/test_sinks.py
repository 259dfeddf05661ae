import json
import sqlite3
import threading

import pytest

from dbhelpers import column_names, fetch_rows
from logsink.errors import PersistError, SetupError
from logsink.models import Level, assemble_entry
from logsink.sinks import (
    AdHocLogSink,
    InMemoryLogSink,
    PreparedLogSink,
    SchemaVariant,
    SharedConnection,
    ensure_schema,
    insert_sql,
    open_connection,
)


def _entry(message: str = "hello", *, with_time: bool = True, **fields):
    structured = json.dumps(fields, separators=(",", ":"))
    return assemble_entry(Level.INFO, "app.worker", "worker.py", 10, message, structured, with_time=with_time)


def test_ensure_schema_is_idempotent(shared_connection: SharedConnection):
    ensure_schema(shared_connection)
    AdHocLogSink(shared_connection).write(_entry())
    ensure_schema(shared_connection)

    assert column_names(shared_connection, "logs_v0") == [
        "time", "level", "module", "file", "line", "message", "structured",
    ]
    assert len(fetch_rows(shared_connection, "logs_v0")) == 1


def test_legacy_schema_has_no_time_column(shared_connection: SharedConnection):
    ensure_schema(shared_connection, SchemaVariant.LEGACY)
    AdHocLogSink(shared_connection, SchemaVariant.LEGACY).write(_entry(with_time=False, x=1))

    assert column_names(shared_connection, "logs") == ["level", "module", "file", "line", "message", "structured"]
    assert fetch_rows(shared_connection, "logs") == [("INFO", "app.worker", "worker.py", 10, "hello", '{"x":1}')]


@pytest.mark.parametrize("variant", list(SchemaVariant))
def test_adhoc_and_prepared_store_identical_rows(shared_connection: SharedConnection, variant: SchemaVariant):
    ensure_schema(shared_connection, variant)
    entry = _entry("same", with_time=variant.has_time, a=1, b="two")

    AdHocLogSink(shared_connection, variant).write(entry)
    prepared = PreparedLogSink(shared_connection, variant)
    prepared.write(entry)
    prepared.close()

    adhoc_row, prepared_row = fetch_rows(shared_connection, variant.table)
    assert adhoc_row == prepared_row


def test_optional_columns_store_null(shared_connection: SharedConnection):
    ensure_schema(shared_connection)
    entry = assemble_entry(Level.ERROR, None, None, None, "", "{}")
    AdHocLogSink(shared_connection).write(entry)

    (row,) = fetch_rows(shared_connection, "logs_v0")
    assert row[1:] == ("ERROR", None, None, None, "", "{}")


def test_write_without_table_raises_persist_error(shared_connection: SharedConnection):
    with pytest.raises(PersistError):
        AdHocLogSink(shared_connection).write(_entry())


def test_time_is_required_for_v0_layout(shared_connection: SharedConnection):
    ensure_schema(shared_connection)
    with pytest.raises(PersistError):
        AdHocLogSink(shared_connection).write(_entry(with_time=False))


def test_ensure_schema_on_closed_connection_raises_setup_error():
    raw = sqlite3.connect(":memory:")
    raw.close()
    with pytest.raises(SetupError):
        ensure_schema(SharedConnection(raw))


@pytest.mark.parametrize("sink_cls", [AdHocLogSink, PreparedLogSink])
def test_concurrent_writers_lose_nothing(shared_connection: SharedConnection, sink_cls):
    ensure_schema(shared_connection)
    sink = sink_cls(shared_connection)
    threads_n, per_thread = 8, 25

    def _worker(worker_id: int) -> None:
        for i in range(per_thread):
            sink.write(_entry(f"w{worker_id}-{i}", worker=worker_id, seq=i))

    threads = [threading.Thread(target=_worker, args=(n,)) for n in range(threads_n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    sink.close()

    rows = fetch_rows(shared_connection, "logs_v0")
    assert len(rows) == threads_n * per_thread
    for row in rows:
        payload = json.loads(row[6])
        assert row[5] == f"w{payload['worker']}-{payload['seq']}"
    assert len({row[5] for row in rows}) == threads_n * per_thread


def test_open_connection_rejects_unknown_backend(tmp_path):
    with pytest.raises(ValueError):
        open_connection(tmp_path / "logs.db", "oracle")  # type: ignore[arg-type]


def test_insert_statement_lists_layout_columns():
    assert insert_sql(SchemaVariant.LEGACY) == (
        "INSERT INTO logs (level, module, file, line, message, structured) VALUES (?, ?, ?, ?, ?, ?)"
    )


def test_in_memory_sink_snapshot_is_a_copy():
    sink = InMemoryLogSink()
    sink.write(_entry())
    snap = sink.snapshot()
    sink.write(_entry("second"))
    assert [e.message for e in snap] == ["hello"]
    assert [e.message for e in sink.snapshot()] == ["hello", "second"]


@pytest.mark.parametrize("sink_cls", [AdHocLogSink, PreparedLogSink])
def test_sink_can_create_its_own_table(shared_connection: SharedConnection, sink_cls):
    sink = sink_cls(shared_connection, SchemaVariant.LEGACY)
    sink.ensure_schema()
    sink.ensure_schema()
    sink.write(_entry(with_time=False))
    sink.close()

    assert len(fetch_rows(shared_connection, "logs")) == 1

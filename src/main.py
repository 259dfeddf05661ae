"""Demo entrypoint wiring the SQL log sink into stdlib logging.

This module loads configuration from the environment, opens the database,
installs the handler on the root logger and emits a few records. Installing
the handler process-wide is the application's decision; the library itself
never touches global logging state.
"""

from __future__ import annotations

import logging

from logsink.config import load_config
from logsink import SubscriberBuilder, ensure_schema, open_connection
from logsink.sinks import SchemaVariant


def run_demo() -> None:
    """Record a handful of demo log lines and print the stored row count."""
    cfg = load_config().logsink

    connection = open_connection(cfg.db_path, cfg.backend)
    variant = SchemaVariant(cfg.schema_variant)
    ensure_schema(connection, variant)

    handler = SubscriberBuilder.from_config(cfg).build_handler(connection)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    try:
        log = logging.getLogger("demo.orders")
        log.info("order accepted", extra={"order_id": 42, "price": 0.1, "dry_run": True})
        log.debug("book snapshot", extra={"levels": [(0.1, 5), (0.11, 3)]})
        try:
            raise RuntimeError("venue unavailable")
        except RuntimeError:
            log.exception("order rejected", extra={"order_id": 43})

        with connection.acquire() as conn:
            (count,) = conn.execute(f"SELECT count(*) FROM {variant.table}").fetchone()
        print(f"[logsink] {count} rows in {variant.table} at {cfg.db_path}")
    finally:
        root.removeHandler(handler)
        handler.close()
        connection.close()


def main() -> None:
    """CLI entrypoint for running the demo with `python src/main.py`."""
    run_demo()


if __name__ == "__main__":
    main()

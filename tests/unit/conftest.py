from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from logsink.sinks import SharedConnection, open_connection


@pytest.fixture(params=["duckdb", "sqlite"])
def shared_connection(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[SharedConnection]:
    """A file-backed shared connection, once per supported backend."""
    connection = open_connection(tmp_path / f"logs.{request.param}", request.param)
    yield connection
    connection.close()

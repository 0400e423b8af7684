"""Shared pytest fixtures for probe tests.

The database is replaced by small psycopg-shaped fakes so the executor, the
projector and the CLI can be exercised without a running PostgreSQL server.
Driver failures are simulated with the real psycopg exception classes.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from pgprobe.shared.config import ConnectionSettings


class FakeCursor:
    def __init__(
        self,
        rows: Sequence[Sequence[Any]],
        columns: Sequence[str] | None,
        error: Exception | None = None,
    ) -> None:
        self._rows = [tuple(row) for row in rows]
        self._columns = columns
        self._error = error
        self.executed: list[str] = []

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    @property
    def description(self) -> list[SimpleNamespace] | None:
        if self._columns is None:
            return None
        return [SimpleNamespace(name=name) for name in self._columns]

    def execute(self, query: str) -> None:
        self.executed.append(query)
        if self._error is not None:
            raise self._error

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self._rows)


class FakeConnection:
    def __init__(self, cursor: FakeCursor) -> None:
        self._cursor = cursor
        self.read_only = False
        self.closed = False

    def cursor(self) -> FakeCursor:
        return self._cursor

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_db(monkeypatch: pytest.MonkeyPatch) -> Callable[..., SimpleNamespace]:
    """Install a fake connection factory and return a handle to inspect it."""

    def install(
        rows: Sequence[Sequence[Any]] = (),
        columns: Sequence[str] | None = ("value",),
        *,
        execute_error: Exception | None = None,
        connect_error: Exception | None = None,
    ) -> SimpleNamespace:
        cursor = FakeCursor(rows, columns, execute_error)
        connection = FakeConnection(cursor)
        handle = SimpleNamespace(connection=connection, cursor=cursor, settings=[])

        def fake_open(settings: ConnectionSettings) -> FakeConnection:
            handle.settings.append(settings)
            if connect_error is not None:
                raise connect_error
            return connection

        monkeypatch.setattr("pgprobe.shared.database._open_connection", fake_open)
        return handle

    return install


@pytest.fixture()
def connection_settings(tmp_path: Path) -> ConnectionSettings:
    return ConnectionSettings(
        host="db.internal",
        port=5432,
        database="inventory",
        user="monitor",
        password="secret",
        pgpass=tmp_path / "missing.pgpass",
        timeout=5,
    )


@pytest.fixture()
def probe_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate CLI runs from the caller's config file, pgpass and PG* variables."""

    monkeypatch.setenv("PGPROBE_CONFIG_PATH", str(tmp_path / "config.yaml"))
    monkeypatch.setenv("PGPASSFILE", str(tmp_path / "pgpass"))
    for name in ("PGHOST", "PGPORT", "PGDATABASE", "PGUSER", "PGPASSWORD"):
        monkeypatch.delenv(name, raising=False)
    for name in (
        "PGPROBE_HOST",
        "PGPROBE_PORT",
        "PGPROBE_DATABASE",
        "PGPROBE_USER",
        "PGPROBE_PASSWORD",
        "PGPROBE_TIMEOUT",
        "PGPROBE_SCHEME",
        "PGPROBE_COUNT_TUPLES",
        "PGPROBE_MULTIROW",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path

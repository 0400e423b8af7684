"""PostgreSQL connection helpers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import psycopg

from .config import ConnectionSettings


def connection_kwargs(settings: ConnectionSettings) -> dict[str, Any]:
    """Translate connection settings into psycopg/libpq keyword arguments."""
    kwargs: dict[str, Any] = {
        "host": settings.host,
        "port": settings.port,
        "dbname": settings.database,
        "user": settings.user,
        "password": settings.password,
    }
    if settings.timeout is not None:
        kwargs["connect_timeout"] = settings.timeout
        # Bound the query itself too, not only the TCP/auth handshake.
        kwargs["options"] = f"-c statement_timeout={settings.timeout * 1000}"
    return {key: value for key, value in kwargs.items() if value is not None}


def _open_connection(settings: ConnectionSettings) -> psycopg.Connection:
    return psycopg.connect(**connection_kwargs(settings))


@contextmanager
def connect(settings: ConnectionSettings) -> Iterator[psycopg.Connection]:
    """Yield a read-only connection that is closed on every exit path."""
    connection = _open_connection(settings)
    try:
        connection.read_only = True
        yield connection
    finally:
        connection.close()

"""pgpass credential lookup.

Connection fields that were not supplied on the command line or in the config
file are filled in from, in order: the first matching pgpass entry, the libpq
environment variables, and finally the libpq defaults.

Entry format (one per line, ``#`` starts a comment)::

    hostname:port:database:username:password

``*`` matches anything, and ``\\:`` / ``\\\\`` escape a literal colon or
backslash inside a field.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, Mapping

from .config import ConnectionSettings
from .exceptions import ConfigurationError

WILDCARD = "*"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5432
DEFAULT_DATABASE = "postgres"
DEFAULT_USER = "postgres"


@dataclass(frozen=True, slots=True)
class PgpassEntry:
    host: str
    port: str
    database: str
    user: str
    password: str

    def matches(self, settings: ConnectionSettings) -> bool:
        """Return True when every field already known agrees with this entry."""
        wanted = (
            (self.host, settings.host),
            (self.port, None if settings.port is None else str(settings.port)),
            (self.database, settings.database),
            (self.user, settings.user),
        )
        return all(
            pattern == WILDCARD or known is None or pattern == known
            for pattern, known in wanted
        )


def parse_pgpass(text: str) -> list[PgpassEntry]:
    """Parse pgpass file contents, skipping comments and malformed lines."""
    entries: list[PgpassEntry] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        fields = list(_split_fields(stripped))
        if len(fields) != 5:
            continue
        entries.append(PgpassEntry(*fields))
    return entries


def _split_fields(line: str) -> Iterator[str]:
    current: list[str] = []
    escaped = False
    for char in line:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ":":
            yield "".join(current)
            current = []
        else:
            current.append(char)
    yield "".join(current)


def read_pgpass(path: Path) -> list[PgpassEntry]:
    """Read and parse a pgpass file; a missing file yields no entries."""
    if not path.is_file():
        return []
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Unable to read pgpass file {path}: {exc}") from exc
    return parse_pgpass(text)


def _from_entry(settings: ConnectionSettings, entry: PgpassEntry) -> ConnectionSettings:
    def pick(current, candidate):
        if current is not None or candidate in ("", WILDCARD):
            return current
        return candidate

    port = settings.port
    if port is None and entry.port not in ("", WILDCARD):
        try:
            port = int(entry.port)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid port '{entry.port}' in pgpass file.") from exc

    return replace(
        settings,
        host=pick(settings.host, entry.host),
        port=port,
        database=pick(settings.database, entry.database),
        user=pick(settings.user, entry.user),
        password=pick(settings.password, entry.password),
    )


def _from_environment(settings: ConnectionSettings, env: Mapping[str, str]) -> ConnectionSettings:
    port = settings.port
    if port is None:
        raw_port = env.get("PGPORT")
        try:
            port = int(raw_port) if raw_port else DEFAULT_PORT
        except ValueError as exc:
            raise ConfigurationError(f"PGPORT has invalid value '{raw_port}'.") from exc

    return replace(
        settings,
        host=settings.host or env.get("PGHOST") or DEFAULT_HOST,
        port=port,
        database=settings.database or env.get("PGDATABASE") or DEFAULT_DATABASE,
        user=settings.user or env.get("PGUSER") or DEFAULT_USER,
        password=settings.password if settings.password is not None else env.get("PGPASSWORD"),
    )


def resolve_connection(
    settings: ConnectionSettings,
    env: Mapping[str, str] | None = None,
) -> ConnectionSettings:
    """Return connection settings with every missing field filled in."""
    env = os.environ if env is None else env
    resolved = settings
    for entry in read_pgpass(settings.pgpass):
        if entry.matches(settings):
            resolved = _from_entry(settings, entry)
            break
    return _from_environment(resolved, env)

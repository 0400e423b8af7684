"""Query execution helpers for the metrics probes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from importlib import resources
from typing import Any

import psycopg
import yaml

from pgprobe.shared import database
from pgprobe.shared.config import ConnectionSettings
from pgprobe.shared.exceptions import QueryError

from .types import QueryDefinition, QueryResult, Row

QUERIES_PACKAGE = "pgprobe.probe.queries"
MANIFEST_NAME = "index.yaml"
FAILURE_PREFIX = "Unable to query PostgreSQL"


def execute_query(*, connection: ConnectionSettings, query: str) -> QueryResult:
    """Run ``query`` once and return every row it produced.

    Any driver failure, whether it happens while connecting, authenticating or
    executing, is raised as :class:`QueryError`; no partial result escapes.
    """
    try:
        with database.connect(connection) as conn:
            with conn.cursor() as cursor:
                cursor.execute(query)
                description = cursor.description
                rows = cursor.fetchall() if description is not None else []
    except psycopg.Error as exc:
        raise QueryError(f"{FAILURE_PREFIX}: {_describe(exc)}") from exc
    except OSError as exc:
        raise QueryError(f"{FAILURE_PREFIX}: {exc}") from exc

    columns = tuple(col.name for col in description or ())
    return QueryResult(rows=tuple(Row.of(row) for row in rows), columns=columns)


def load_builtin_query(name: str) -> QueryDefinition:
    """Return the built-in query registered under ``name``."""
    catalog = list_builtin_queries()
    for definition in catalog:
        if definition.name == name:
            return definition
    available = ", ".join(definition.name for definition in catalog)
    raise QueryError(f"Built-in query '{name}' is not defined. Available queries: {available or 'none'}.")


def list_builtin_queries() -> Sequence[QueryDefinition]:
    """Return every query declared in the manifest, sorted by name."""
    manifest_resource = resources.files(QUERIES_PACKAGE).joinpath(MANIFEST_NAME)
    if not manifest_resource.is_file():
        raise QueryError("Built-in query manifest is missing; expected index.yaml under probe/queries.")

    manifest_data = yaml.safe_load(manifest_resource.read_text(encoding="utf-8")) or {}
    if not isinstance(manifest_data, Mapping) or manifest_data.get("version") != 1:
        raise QueryError("Unsupported query manifest version; expected version=1.")

    definitions = [_parse_query_definition(entry) for entry in manifest_data.get("queries") or []]
    definitions.sort(key=lambda definition: definition.name)
    return definitions


# ---------------------------------------------------------------------------
# Internal helpers


def _describe(exc: psycopg.Error) -> str:
    message = str(exc).strip()
    return message or exc.__class__.__name__


def _parse_query_definition(entry: Any) -> QueryDefinition:
    if not isinstance(entry, Mapping):
        raise QueryError("Each built-in query entry must be a mapping of properties.")

    try:
        name = str(entry["name"])
        filename = str(entry["file"])
    except KeyError as exc:
        raise QueryError(f"Built-in query missing required field: {exc}") from exc

    sql_resource = resources.files(QUERIES_PACKAGE).joinpath(filename)
    if not sql_resource.is_file():
        raise QueryError(f"Built-in query '{name}' references missing SQL file '{filename}'.")

    suffixes = entry.get("suffixes") or []
    if not isinstance(suffixes, list) or not all(isinstance(item, str) for item in suffixes):
        raise QueryError(f"Suffixes for built-in query '{name}' must be a list of strings.")

    return QueryDefinition(
        name=name,
        description=str(entry.get("description") or ""),
        sql=sql_resource.read_text(encoding="utf-8"),
        suffixes=tuple(suffixes),
        qualify_database=bool(entry.get("qualify_database", False)),
    )

"""Configuration loading utilities for the PostgreSQL metrics probes."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError

DEFAULT_SCHEME = "postgres"


@dataclass(frozen=True, slots=True)
class ConnectionSettings:
    """Connection parameters; ``None`` means "not configured yet"."""

    host: str | None
    port: int | None
    database: str | None
    user: str | None
    password: str | None
    pgpass: Path
    timeout: int | None


@dataclass(frozen=True, slots=True)
class ProbeSettings:
    """Metric naming and projection flags."""

    scheme: str
    count_tuples: bool
    multirow: bool


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    connection: ConnectionSettings
    probe: ProbeSettings

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        pgpass: str | Path | None = None,
        timeout: int | None = None,
        scheme: str | None = None,
        count_tuples: bool | None = None,
        multirow: bool | None = None,
    ) -> AppConfig:
        """Return a copy with every non-``None`` override applied."""
        if scheme is not None and not scheme.strip():
            raise ConfigurationError("Metric scheme must not be empty.")
        connection_changes: dict[str, Any] = {
            key: value
            for key, value in {
                "host": host,
                "port": port,
                "database": database,
                "user": user,
                "password": password,
                "timeout": timeout,
            }.items()
            if value is not None
        }
        if pgpass is not None:
            connection_changes["pgpass"] = paths.resolve_path(pgpass)
        probe_changes: dict[str, Any] = {
            key: value
            for key, value in {
                "scheme": scheme,
                "count_tuples": count_tuples,
                "multirow": multirow,
            }.items()
            if value is not None
        }
        return replace(
            self,
            connection=replace(self.connection, **connection_changes),
            probe=replace(self.probe, **probe_changes),
        )

    def with_connection(self, connection: ConnectionSettings) -> AppConfig:
        """Return a copy carrying fully resolved connection settings."""
        return replace(self, connection=connection)


def _default_config(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        "connection": {
            "host": None,
            "port": None,
            "database": None,
            "user": None,
            "password": None,
            "pgpass": str(paths.default_pgpass_path(env=env)),
            "timeout": None,
        },
        "probe": {
            "scheme": DEFAULT_SCHEME,
            "count_tuples": False,
            "multirow": False,
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "connection.host": ("PGPROBE_HOST", str),
    "connection.port": ("PGPROBE_PORT", int),
    "connection.database": ("PGPROBE_DATABASE", str),
    "connection.user": ("PGPROBE_USER", str),
    "connection.password": ("PGPROBE_PASSWORD", str),
    "connection.timeout": ("PGPROBE_TIMEOUT", int),
    "probe.scheme": ("PGPROBE_SCHEME", str),
    "probe.count_tuples": ("PGPROBE_COUNT_TUPLES", bool),
    "probe.multirow": ("PGPROBE_MULTIROW", bool),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(env or os.environ)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config(env)
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(
    config_path: str | Path | None, env: Mapping[str, str]
) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Unable to read config file {path}: {exc}") from exc
    if not isinstance(data, MutableMapping):
        raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
    return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        lowered = cleaned.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected boolean (true/false)")
    if expected_type is int:
        return int(cleaned)
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        conn_cfg = data["connection"]
        connection = ConnectionSettings(
            host=_optional_str(conn_cfg["host"]),
            port=_optional_int(conn_cfg["port"]),
            database=_optional_str(conn_cfg["database"]),
            user=_optional_str(conn_cfg["user"]),
            password=_optional_str(conn_cfg["password"]),
            pgpass=paths.resolve_path(str(conn_cfg["pgpass"])),
            timeout=_optional_int(conn_cfg["timeout"]),
        )
        probe_cfg = data["probe"]
        probe = ProbeSettings(
            scheme=str(probe_cfg["scheme"]),
            count_tuples=bool(probe_cfg["count_tuples"]),
            multirow=bool(probe_cfg["multirow"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if not probe.scheme.strip():
        raise ConfigurationError("Metric scheme must not be empty.")
    if connection.timeout is not None and connection.timeout <= 0:
        raise ConfigurationError("Connection timeout must be a positive number of seconds.")

    return AppConfig(source_path=source_path, connection=connection, probe=probe)

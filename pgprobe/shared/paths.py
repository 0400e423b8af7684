"""Utilities for resolving configuration and credential file paths."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

DEFAULT_CONFIG_DIR = "~/.pgprobe"
DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_PGPASS_FILE = "~/.pgpass"

CONFIG_DIR_ENV = "PGPROBE_CONFIG_DIR"
CONFIG_FILE_ENV = "PGPROBE_CONFIG_PATH"
PGPASS_FILE_ENV = "PGPASSFILE"


def _expand(path_str: str) -> Path:
    """Return a Path with user and environment variables expanded."""
    return Path(os.path.expandvars(path_str)).expanduser()


def get_config_dir(env: Mapping[str, str] | None = None) -> Path:
    """Return the configuration directory."""
    env = env or os.environ
    return _expand(env.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR))


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Return the default config file path."""
    env = env or os.environ
    override = env.get(CONFIG_FILE_ENV)
    if override:
        return _expand(override)
    return get_config_dir(env=env) / DEFAULT_CONFIG_FILE


def default_pgpass_path(env: Mapping[str, str] | None = None) -> Path:
    """Return the pgpass file libpq would consult (PGPASSFILE or ~/.pgpass)."""
    env = env or os.environ
    override = env.get(PGPASS_FILE_ENV)
    return _expand(override) if override else _expand(DEFAULT_PGPASS_FILE)


def resolve_path(path_str: str | Path) -> Path:
    """Expand user and environment variables for arbitrary paths."""
    if isinstance(path_str, Path):
        return _expand(str(path_str))
    return _expand(path_str)

"""Utilities for resolving application paths."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

DEFAULT_CONFIG_DIR = "~/.muniquery"
DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_DATABASE_DIR = "databases"

CONFIG_DIR_ENV = "MUNI_CONFIG_DIR"
CONFIG_FILE_ENV = "MUNI_CONFIG_PATH"

# Source file names shipped by the initial setup of each logical database.
DEFAULT_DATABASE_FILES: dict[str, str] = {
    "holly": "Holly_data_bronze.db",
    "rockford": "Rockford.db",
    "historical": "historical_budgets.db",
}

DATABASE_PATH_ENVS: dict[str, str] = {
    "holly": "MUNI_HOLLY_DB_PATH",
    "rockford": "MUNI_ROCKFORD_DB_PATH",
    "historical": "MUNI_HISTORICAL_DB_PATH",
}


def _expand(path_str: str) -> Path:
    """Return a Path with user and environment variables expanded."""
    return Path(os.path.expandvars(path_str)).expanduser()


def get_config_dir(create: bool = False, env: Mapping[str, str] | None = None) -> Path:
    """Return the configuration directory, optionally creating it."""
    env = os.environ if env is None else env
    raw = env.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR)
    path = _expand(raw)
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Return the default config file path."""
    env = os.environ if env is None else env
    override = env.get(CONFIG_FILE_ENV)
    if override:
        return _expand(override)
    return get_config_dir(env=env) / DEFAULT_CONFIG_FILE


def default_database_path(name: str, env: Mapping[str, str] | None = None) -> Path:
    """Return the default SQLite file for a logical database name."""
    env = os.environ if env is None else env
    override = env.get(DATABASE_PATH_ENVS[name])
    if override:
        return _expand(override)
    return get_config_dir(env=env) / DEFAULT_DATABASE_DIR / DEFAULT_DATABASE_FILES[name]


def resolve_path(path_str: str | Path) -> Path:
    """Expand user and environment variables for arbitrary paths."""
    if isinstance(path_str, Path):
        return _expand(str(path_str))
    return _expand(path_str)

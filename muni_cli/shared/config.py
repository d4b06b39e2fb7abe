"""Configuration loading utilities for the municipal query suite."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError

DEFAULT_MAX_RESULT_ROWS = "1000"


@dataclass(frozen=True, slots=True)
class DatabaseSettings:
    """Location of one logical database's SQLite file."""

    path: Path


@dataclass(frozen=True, slots=True)
class QuerySettings:
    """Row cap and backend timeout applied to every query."""

    max_result_rows: int
    timeout_ms: int | None


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    databases: Mapping[str, DatabaseSettings]
    query: QuerySettings

    def database_path(self, name: str) -> Path:
        """Return the SQLite path configured for a logical database name."""
        try:
            return self.databases[name].path
        except KeyError as exc:
            raise ConfigurationError(f"No path configured for database '{name}'.") from exc

    def with_database_path(self, name: str, new_path: str | Path) -> AppConfig:
        """Return a copy with one database path replaced."""
        updated = dict(self.databases)
        updated[name] = DatabaseSettings(path=paths.resolve_path(new_path))
        return replace(self, databases=updated)

    def with_max_result_rows(self, max_rows: int) -> AppConfig:
        """Return a copy with a different default row cap."""
        return replace(self, query=replace(self.query, max_result_rows=max_rows))


def _default_config(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        "databases": {
            name: {"path": str(paths.default_database_path(name, env=env))}
            for name in paths.DEFAULT_DATABASE_FILES
        },
        "query": {
            "max_result_rows": DEFAULT_MAX_RESULT_ROWS,
            "timeout_ms": None,
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    **{
        f"databases.{name}.path": (env_key, str)
        for name, env_key in paths.DATABASE_PATH_ENVS.items()
    },
    "query.max_result_rows": ("MAX_RESULT_ROWS", int),
    "query.timeout_ms": ("QUERY_TIMEOUT_MS", int),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config(env)
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(config_path: str | Path | None, env: Mapping[str, str]) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
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
    if expected_type is int:
        return int(cleaned)
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        else:
            current[key] = dict(current[key])
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        databases = {
            name: DatabaseSettings(path=paths.resolve_path(data["databases"][name]["path"]))
            for name in paths.DEFAULT_DATABASE_FILES
        }
        query_cfg = data["query"]
        max_rows = int(query_cfg["max_result_rows"])
        raw_timeout = query_cfg.get("timeout_ms")
        timeout_ms = int(raw_timeout) if raw_timeout not in (None, "") else None
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if max_rows < 1:
        raise ConfigurationError(f"query.max_result_rows must be a positive integer, got {max_rows}.")
    if timeout_ms is not None and timeout_ms < 0:
        raise ConfigurationError(f"query.timeout_ms must not be negative, got {timeout_ms}.")

    return AppConfig(
        source_path=source_path,
        databases=databases,
        query=QuerySettings(max_result_rows=max_rows, timeout_ms=timeout_ms),
    )

"""Bundled data dictionary describing every database, table, and notable column."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from typing import Any

import yaml

from muni_cli.shared.database import LogicalDatabase
from muni_cli.shared.exceptions import DictionaryError

DICTIONARY_PACKAGE = "muni_cli.muni_query"
DICTIONARY_RESOURCE = ("data", "dictionary.yaml")


@dataclass(frozen=True, slots=True)
class ColumnMetadata:
    description: str
    display_name: str | None = None
    unit: str | None = None
    known_values: Mapping[str, str] | None = None


@dataclass(frozen=True, slots=True)
class TableMetadata:
    description: str
    category: str | None = None
    columns: Mapping[str, ColumnMetadata] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TableGroup:
    description: str
    tables: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DatabaseMetadata:
    """Descriptive context for one logical database."""

    municipality: str
    state: str
    description: str
    fiscal_year_convention: str
    currency: str
    customer_class_codes: Mapping[str, str]
    tables: Mapping[str, TableMetadata]
    table_groups: Mapping[str, TableGroup] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DataDictionary:
    """Process-wide, read-only view of the dictionary resource."""

    databases: Mapping[str, DatabaseMetadata]
    instructions: Mapping[str, Any]


@lru_cache(maxsize=1)
def load_dictionary() -> DataDictionary:
    """Load and cache the bundled dictionary; parsed once per process."""
    resource = resources.files(DICTIONARY_PACKAGE)
    for part in DICTIONARY_RESOURCE:
        resource = resource.joinpath(part)
    if not resource.is_file():
        raise DictionaryError("Data dictionary resource is missing; expected data/dictionary.yaml.")

    try:
        payload = yaml.safe_load(resource.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise DictionaryError(f"Unable to parse data dictionary: {exc}") from exc

    return parse_dictionary(payload)


def parse_dictionary(payload: Mapping[str, Any]) -> DataDictionary:
    if not isinstance(payload, Mapping) or payload.get("version") != 1:
        raise DictionaryError("Unsupported data dictionary version; expected version=1.")

    raw_databases = payload.get("databases") or {}
    if not isinstance(raw_databases, Mapping):
        raise DictionaryError("Dictionary 'databases' must be a mapping.")

    databases: dict[str, DatabaseMetadata] = {}
    for name, entry in raw_databases.items():
        try:
            databases[str(name)] = _parse_database(entry)
        except (KeyError, TypeError, AttributeError) as exc:
            raise DictionaryError(f"Invalid dictionary entry for database '{name}': {exc}") from exc

    instructions = payload.get("instructions") or {}
    if not isinstance(instructions, Mapping):
        raise DictionaryError("Dictionary 'instructions' must be a mapping.")
    return DataDictionary(databases=databases, instructions=dict(instructions))


def database_metadata(database: LogicalDatabase) -> DatabaseMetadata | None:
    return load_dictionary().databases.get(database.value)


def table_metadata(database: LogicalDatabase, table: str) -> TableMetadata | None:
    meta = database_metadata(database)
    if meta is None:
        return None
    return meta.tables.get(table)


def column_metadata(database: LogicalDatabase, table: str, column: str) -> ColumnMetadata | None:
    meta = table_metadata(database, table)
    if meta is None:
        return None
    return meta.columns.get(column)


def instructions() -> Mapping[str, Any]:
    return load_dictionary().instructions


def _parse_database(entry: Mapping[str, Any]) -> DatabaseMetadata:
    tables = {str(name): _parse_table(table) for name, table in (entry.get("tables") or {}).items()}
    groups = {
        str(name): TableGroup(description=str(group["description"]), tables=tuple(group.get("tables") or ()))
        for name, group in (entry.get("tableGroups") or {}).items()
    }
    return DatabaseMetadata(
        municipality=str(entry["municipality"]),
        state=str(entry["state"]),
        description=str(entry["description"]).strip(),
        fiscal_year_convention=str(entry["fiscalYearConvention"]),
        currency=str(entry.get("currency") or "USD"),
        customer_class_codes={str(k): str(v) for k, v in (entry.get("customerClassCodes") or {}).items()},
        tables=tables,
        table_groups=groups,
    )


def _parse_table(entry: Mapping[str, Any]) -> TableMetadata:
    columns = {str(name): _parse_column(column) for name, column in (entry.get("columns") or {}).items()}
    category = entry.get("category")
    return TableMetadata(
        description=str(entry["description"]).strip(),
        category=str(category) if category else None,
        columns=columns,
    )


def _parse_column(entry: Mapping[str, Any]) -> ColumnMetadata:
    known = entry.get("knownValues")
    return ColumnMetadata(
        description=str(entry["description"]),
        display_name=entry.get("displayName"),
        unit=entry.get("unit"),
        known_values={str(k): str(v) for k, v in known.items()} if known else None,
    )

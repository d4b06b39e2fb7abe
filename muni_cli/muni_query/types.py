"""Data structures shared across muni-query modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

Row = dict[str, Any]


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Uniform envelope for every query, successful or not."""

    success: bool
    database: str
    rows: Sequence[Row] = field(default_factory=tuple)
    truncated: bool = False
    error: str | None = None
    statement: str | None = None
    limit_value: int | None = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def columns(self) -> tuple[str, ...]:
        if not self.rows:
            return ()
        return tuple(self.rows[0].keys())

    @classmethod
    def failure(cls, database: str, error: str, *, statement: str | None = None) -> QueryResult:
        return cls(success=False, database=database, error=error, statement=statement)

    def to_payload(self) -> dict[str, Any]:
        """Return the wire shape handed to tool callers."""
        if not self.success:
            return {"success": False, "error": self.error or "Unknown database error", "database": self.database}
        return {
            "success": True,
            "data": [dict(row) for row in self.rows],
            "rowCount": self.row_count,
            "truncated": self.truncated,
            "database": self.database,
        }


@dataclass(frozen=True, slots=True)
class Statement:
    """SQL text plus positional parameters for its ``?`` placeholders."""

    sql: str
    params: tuple[Any, ...] = ()


class ColumnKind(Enum):
    """Coarse classification of a declared SQLite column type."""

    TEXT = "text"
    NUMERIC = "numeric"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """One row of ``PRAGMA table_info``."""

    cid: int
    name: str
    type: str
    not_null: bool
    default_value: str | None
    primary_key: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ColumnInfo:
        return cls(
            cid=int(row["cid"]),
            name=str(row["name"]),
            type=str(row["type"] or ""),
            not_null=bool(row["notnull"]),
            default_value=row["dflt_value"],
            primary_key=bool(row["pk"]),
        )


@dataclass(frozen=True, slots=True)
class TableInfo:
    name: str
    type: str


@dataclass(frozen=True, slots=True)
class TableSchema:
    """Columns, size and optional sample rows for one table."""

    name: str
    type: str
    row_count: int
    columns: Sequence[ColumnInfo]
    sample_rows: Sequence[Row] | None = None


@dataclass(frozen=True, slots=True)
class DatabaseSchema:
    """Aggregated schema details for one logical database."""

    name: str
    display_name: str
    tables: Sequence[TableSchema]

    @property
    def total_tables(self) -> int:
        return len(self.tables)

    @property
    def total_rows(self) -> int:
        return sum(table.row_count for table in self.tables)


@dataclass(frozen=True, slots=True)
class Relationship:
    """A ``<table>_id`` column that appears to reference another table."""

    source_table: str
    source_column: str
    target_table: str


@dataclass(frozen=True, slots=True)
class ColumnStats:
    column: str
    minimum: Any
    maximum: Any
    average: float | None
    count: int

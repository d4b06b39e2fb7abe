"""Translate structured tool arguments into parameterized SQL.

Identifiers are validated and double-quoted before they reach SQL text;
values always travel as ``?`` bindings. No builder appends a row limit, the
executor does that from the caller's limit policy.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .executor import SUMMARY_GROUP_LIMIT
from .types import ColumnInfo, ColumnKind, Statement
from .validator import is_valid_identifier, quote_identifier, validate_date

_TEXT_MARKERS = ("TEXT", "VARCHAR", "CHAR")
_NUMERIC_MARKERS = ("INT", "REAL", "FLOAT", "DOUBLE", "NUMERIC", "DECIMAL")


def classify_column_type(declared_type: str | None) -> ColumnKind:
    """Map a declared column type onto text, numeric or other."""
    upper = (declared_type or "").upper()
    if any(marker in upper for marker in _TEXT_MARKERS):
        return ColumnKind.TEXT
    if any(marker in upper for marker in _NUMERIC_MARKERS):
        return ColumnKind.NUMERIC
    return ColumnKind.OTHER


def build_where_clause(filters: Mapping[str, Any]) -> Statement:
    """Build a ``WHERE`` clause from column/value pairs.

    Keys that are not valid identifiers are skipped rather than failing the
    whole filter. ``None`` becomes ``IS NULL``, strings containing ``%`` use
    ``LIKE`` with the caller's own wildcards, everything else is ``=``.
    """
    conditions: list[str] = []
    params: list[Any] = []

    for column, value in filters.items():
        if not is_valid_identifier(column):
            continue

        if value is None:
            conditions.append(f'"{column}" IS NULL')
        elif isinstance(value, str) and "%" in value:
            conditions.append(f'"{column}" LIKE ?')
            params.append(value)
        else:
            conditions.append(f'"{column}" = ?')
            params.append(value)

    clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return Statement(sql=clause, params=tuple(params))


def build_recent_records_query(table: str) -> Statement:
    return Statement(sql=f"SELECT * FROM {quote_identifier(table)}")


def build_filter_query(table: str, filters: Mapping[str, Any]) -> Statement:
    where = build_where_clause(filters)
    sql = f"SELECT * FROM {quote_identifier(table)}"
    if where.sql:
        sql = f"{sql} {where.sql}"
    return Statement(sql=sql, params=where.params)


def build_text_search(table: str, columns: Iterable[ColumnInfo], term: str) -> Statement | None:
    """Search every text column of ``table`` for ``term``; None if there are none."""
    quoted_table = quote_identifier(table)
    text_columns = [
        column
        for column in columns
        if classify_column_type(column.type) is ColumnKind.TEXT and is_valid_identifier(column.name)
    ]
    if not text_columns:
        return None

    conditions = [f'"{column.name}" LIKE ? COLLATE NOCASE' for column in text_columns]
    pattern = f"%{term}%"
    return Statement(
        sql=f"SELECT * FROM {quoted_table} WHERE {' OR '.join(conditions)}",
        params=tuple(pattern for _ in text_columns),
    )


def build_date_range_query(table: str, date_column: str, start_date: str, end_date: str) -> Statement:
    """Rows whose ``date_column`` falls in ``[start_date, end_date]``, newest first."""
    quoted_table = quote_identifier(table)
    quoted_column = quote_identifier(date_column, "column")
    validate_date(start_date, "start_date")
    validate_date(end_date, "end_date")
    return Statement(
        sql=(
            f"SELECT * FROM {quoted_table} "
            f"WHERE {quoted_column} >= ? AND {quoted_column} <= ? "
            f"ORDER BY {quoted_column} DESC"
        ),
        params=(start_date, end_date),
    )


def build_summary_query(table: str, column: str | None = None, group_by: str | None = None) -> Statement:
    """Row count, whole-table aggregates, or per-group aggregates."""
    quoted_table = quote_identifier(table)
    if not column:
        return Statement(sql=f"SELECT COUNT(*) AS total_rows FROM {quoted_table}")

    quoted_column = quote_identifier(column, "column")
    aggregates = (
        f"COUNT(*) AS count, SUM({quoted_column}) AS sum, AVG({quoted_column}) AS average, "
        f"MIN({quoted_column}) AS min, MAX({quoted_column}) AS max"
    )
    if not group_by:
        return Statement(sql=f"SELECT {aggregates} FROM {quoted_table}")

    quoted_group = quote_identifier(group_by, "group by column")
    return Statement(
        sql=(
            f"SELECT {quoted_group} AS group_value, {aggregates} FROM {quoted_table} "
            f"GROUP BY {quoted_group} ORDER BY count DESC LIMIT {SUMMARY_GROUP_LIMIT}"
        )
    )


def build_distinct_values_query(table: str, column: str, limit: int = 50) -> Statement:
    quoted_table = quote_identifier(table)
    quoted_column = quote_identifier(column, "column")
    return Statement(
        sql=(
            f"SELECT {quoted_column} AS value, COUNT(*) AS count FROM {quoted_table} "
            f"GROUP BY {quoted_column} ORDER BY count DESC LIMIT {int(limit)}"
        )
    )


def build_numeric_stats_query(table: str, column: str) -> Statement:
    quoted_table = quote_identifier(table)
    quoted_column = quote_identifier(column, "column")
    return Statement(
        sql=(
            f"SELECT MIN({quoted_column}) AS min_val, MAX({quoted_column}) AS max_val, "
            f"AVG({quoted_column}) AS avg_val, COUNT({quoted_column}) AS count_val "
            f"FROM {quoted_table}"
        )
    )

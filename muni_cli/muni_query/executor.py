"""Query execution helpers for muni-query."""

from __future__ import annotations

import re
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from muni_cli.shared.config import AppConfig
from muni_cli.shared.database import LogicalDatabase, connect
from muni_cli.shared.exceptions import QueryError
from muni_cli.shared.logging import Logger

from .types import QueryResult, Row
from .validator import validate_read_only_query

_LIMIT_RE = re.compile(r"\bLIMIT\b", re.IGNORECASE)

# sqlite3 reports binding and encoding failures (integers past 64 bits, lone
# surrogates) as OverflowError or ValueError rather than sqlite3.Error.
_EXECUTION_ERRORS = (QueryError, sqlite3.Error, OverflowError, ValueError)


@dataclass(frozen=True, slots=True)
class ToolLimit:
    """Default and ceiling for one tool's row count."""

    default: int
    maximum: int

    def clamp(self, requested: Any) -> int:
        return clamp_limit(requested, maximum=self.maximum, default=self.default)


RECENT_RECORDS_LIMIT = ToolLimit(default=10, maximum=100)
FILTER_LIMIT = ToolLimit(default=100, maximum=500)
SEARCH_LIMIT = ToolLimit(default=50, maximum=200)
DATE_RANGE_LIMIT = ToolLimit(default=100, maximum=500)
SUMMARY_GROUP_LIMIT = 50


def execute_query(
    *,
    config: AppConfig,
    database: LogicalDatabase,
    sql: str,
    params: Sequence[Any] = (),
    limit: int | None = None,
    logger: Logger | None = None,
) -> QueryResult:
    """Validate, bound and run one read-only statement.

    Every failure (rejected SQL, missing file, bad table, type errors) comes
    back as a failure ``QueryResult``; nothing is raised to the caller.
    """

    display_name = database.display_name
    statement: str | None = None
    try:
        validate_read_only_query(sql)
        cap = _resolve_cap(config, limit)
        statement = apply_row_limit(sql, cap + 1)
        bindings = tuple(params)
        if logger:
            logger.debug(f"[{database.value}] {statement} params={list(bindings)}")
        with connect(config, database) as connection:
            cursor = connection.execute(statement, bindings)
            rows, truncated = _fetch_rows(cursor, cap)
    except _EXECUTION_ERRORS as exc:
        message = str(exc) or "Unknown database error"
        if logger:
            logger.error(f"Database query error ({database.value}): {message}")
        return QueryResult.failure(display_name, message, statement=statement)

    return QueryResult(
        success=True,
        database=display_name,
        rows=rows,
        truncated=truncated,
        statement=statement,
        limit_value=cap,
    )


def apply_row_limit(sql: str, limit: int) -> str:
    """Append ``LIMIT <limit>`` unless the statement is a PRAGMA or has one."""
    upper = sql.upper()
    if upper.strip().startswith("PRAGMA"):
        return sql
    if _LIMIT_RE.search(sql):
        return sql

    trimmed = sql.strip()
    if trimmed.endswith(";"):
        trimmed = trimmed[:-1].rstrip()
    return f"{trimmed} LIMIT {limit}"


def clamp_limit(requested: Any, *, maximum: int, default: int) -> int:
    """Clamp a caller-requested row count into ``[1, maximum]``."""
    if requested is None:
        return min(default, maximum)
    try:
        value = int(requested)
    except (TypeError, ValueError, OverflowError) as exc:
        raise QueryError(f"Limit must be a number, got {requested!r}") from exc
    return max(1, min(value, maximum))


# ---------------------------------------------------------------------------
# Internal helpers


def _resolve_cap(config: AppConfig, limit: int | None) -> int:
    if limit is None:
        return config.query.max_result_rows
    return max(1, int(limit))


def _fetch_rows(cursor: sqlite3.Cursor, limit: int) -> tuple[list[Row], bool]:
    rows = cursor.fetchmany(limit + 1)
    truncated = len(rows) > limit
    return [dict(row) for row in rows[:limit]], truncated

"""Schema discovery for the logical databases.

All lookups go through ``execute_query`` so they share the read-only gate and
row cap with caller SQL. Failed lookups degrade to empty results.

``list_tables``, ``table_columns`` and ``describe_database`` back the tools and
the ``tables``/``describe``/``schema`` commands. The search helpers
(``find_tables``, ``find_columns``, ``infer_relationships``,
``numeric_column_stats``, ``distinct_values``) back the ``find``,
``relationships``, ``stats`` and ``values`` commands.
"""

from __future__ import annotations

from muni_cli.shared.config import AppConfig
from muni_cli.shared.database import LogicalDatabase
from muni_cli.shared.logging import Logger

from .builders import (
    build_distinct_values_query,
    build_numeric_stats_query,
    classify_column_type,
)
from .executor import execute_query
from .types import (
    ColumnInfo,
    ColumnKind,
    ColumnStats,
    DatabaseSchema,
    Relationship,
    Row,
    TableInfo,
    TableSchema,
)
from .validator import is_valid_identifier, quote_identifier

SAMPLE_ROW_COUNT = 3
TABLE_LISTING_LIMIT = 10_000

_TABLES_SQL = """
    SELECT name, type
    FROM sqlite_master
    WHERE type IN ('table', 'view')
    AND name NOT LIKE 'sqlite_%'
    AND name NOT LIKE '_cf_%'
    ORDER BY name
"""


def list_tables(
    config: AppConfig, database: LogicalDatabase, *, logger: Logger | None = None
) -> list[TableInfo]:
    result = execute_query(
        config=config,
        database=database,
        sql=_TABLES_SQL,
        limit=TABLE_LISTING_LIMIT,
        logger=logger,
    )
    if not result.success:
        return []
    if result.truncated and logger:
        logger.warning(
            f"{database.display_name} has more than {TABLE_LISTING_LIMIT} tables; listing the first {TABLE_LISTING_LIMIT}."
        )
    return [TableInfo(name=str(row["name"]), type=str(row["type"])) for row in result.rows]


def table_columns(
    config: AppConfig, database: LogicalDatabase, table: str, *, logger: Logger | None = None
) -> list[ColumnInfo]:
    """Return ``PRAGMA table_info`` for ``table``; raises on an invalid name."""
    columns, _ = lookup_table_columns(config, database, table, logger=logger)
    return columns


def lookup_table_columns(
    config: AppConfig, database: LogicalDatabase, table: str, *, logger: Logger | None = None
) -> tuple[list[ColumnInfo], str | None]:
    """Like ``table_columns`` but also returns the backend error, if any."""
    sql = f"PRAGMA table_info({quote_identifier(table)})"
    result = execute_query(config=config, database=database, sql=sql, logger=logger)
    if not result.success:
        return [], result.error or "Unknown database error"
    return [ColumnInfo.from_row(row) for row in result.rows], None


def table_row_count(
    config: AppConfig, database: LogicalDatabase, table: str, *, logger: Logger | None = None
) -> int:
    sql = f"SELECT COUNT(*) AS count FROM {quote_identifier(table)}"
    result = execute_query(config=config, database=database, sql=sql, logger=logger)
    if not result.success or not result.rows:
        return 0
    return int(result.rows[0]["count"])


def describe_database(
    config: AppConfig,
    database: LogicalDatabase,
    *,
    include_samples: bool = False,
    logger: Logger | None = None,
) -> DatabaseSchema:
    """Collect columns, row counts and optional sample rows for every table."""
    schemas: list[TableSchema] = []
    for table in _queryable(list_tables(config, database, logger=logger)):
        columns = table_columns(config, database, table.name, logger=logger)
        row_count = table_row_count(config, database, table.name, logger=logger)
        samples: list[Row] | None = None
        if include_samples and row_count > 0:
            sample = execute_query(
                config=config,
                database=database,
                sql=f"SELECT * FROM {quote_identifier(table.name)}",
                limit=SAMPLE_ROW_COUNT,
                logger=logger,
            )
            if sample.success:
                samples = list(sample.rows)
        schemas.append(
            TableSchema(
                name=table.name,
                type=table.type,
                row_count=row_count,
                columns=columns,
                sample_rows=samples,
            )
        )

    return DatabaseSchema(name=database.value, display_name=database.display_name, tables=schemas)


def find_tables(
    config: AppConfig, database: LogicalDatabase, pattern: str, *, logger: Logger | None = None
) -> list[TableInfo]:
    needle = pattern.lower()
    return [table for table in list_tables(config, database, logger=logger) if needle in table.name.lower()]


def find_columns(
    config: AppConfig, database: LogicalDatabase, pattern: str, *, logger: Logger | None = None
) -> dict[str, list[ColumnInfo]]:
    """Map table name to the columns whose names contain ``pattern``."""
    needle = pattern.lower()
    matches: dict[str, list[ColumnInfo]] = {}
    for table in _queryable(list_tables(config, database, logger=logger)):
        columns = [
            column
            for column in table_columns(config, database, table.name, logger=logger)
            if needle in column.name.lower()
        ]
        if columns:
            matches[table.name] = columns
    return matches


def infer_relationships(
    config: AppConfig, database: LogicalDatabase, *, logger: Logger | None = None
) -> list[Relationship]:
    """Guess references from ``<table>_id`` naming."""
    tables = list_tables(config, database, logger=logger)
    table_names = {table.name.lower() for table in tables}
    relationships: list[Relationship] = []
    for table in _queryable(tables):
        for column in table_columns(config, database, table.name, logger=logger):
            lowered = column.name.lower()
            if not lowered.endswith("_id"):
                continue
            target = lowered[: -len("_id")]
            if target in table_names:
                relationships.append(
                    Relationship(source_table=table.name, source_column=column.name, target_table=target)
                )
    return relationships


def numeric_column_stats(
    config: AppConfig, database: LogicalDatabase, table: str, *, logger: Logger | None = None
) -> list[ColumnStats]:
    stats: list[ColumnStats] = []
    for column in table_columns(config, database, table, logger=logger):
        if classify_column_type(column.type) is not ColumnKind.NUMERIC:
            continue
        if not is_valid_identifier(column.name):
            continue
        statement = build_numeric_stats_query(table, column.name)
        result = execute_query(config=config, database=database, sql=statement.sql, logger=logger)
        if not result.success or not result.rows:
            continue
        row = result.rows[0]
        stats.append(
            ColumnStats(
                column=column.name,
                minimum=row["min_val"],
                maximum=row["max_val"],
                average=row["avg_val"],
                count=int(row["count_val"]),
            )
        )
    return stats


def distinct_values(
    config: AppConfig,
    database: LogicalDatabase,
    table: str,
    column: str,
    *,
    limit: int = 50,
    logger: Logger | None = None,
) -> list[Row]:
    statement = build_distinct_values_query(table, column, limit)
    result = execute_query(config=config, database=database, sql=statement.sql, logger=logger)
    if not result.success:
        return []
    return list(result.rows)


def _queryable(tables: list[TableInfo]) -> list[TableInfo]:
    # Names that cannot be quoted safely are listed but never interpolated.
    return [table for table in tables if is_valid_identifier(table.name)]

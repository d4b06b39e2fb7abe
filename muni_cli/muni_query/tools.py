"""Tool registry for the JSON-RPC surface.

Each tool has a frozen argument dataclass parsed from the raw ``arguments``
mapping and a handler that turns those arguments into a JSON-serialisable
payload. Query tools answer with ``QueryResult.to_payload()``; argument
shape problems raise ``ToolArgumentError`` before any handler runs.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from muni_cli.shared.config import AppConfig
from muni_cli.shared.database import LogicalDatabase, available_databases
from muni_cli.shared.exceptions import QueryError, ToolArgumentError, UnknownDatabaseError, UnknownToolError
from muni_cli.shared.logging import Logger, get_logger

from . import dictionary, schema
from .builders import (
    build_date_range_query,
    build_filter_query,
    build_recent_records_query,
    build_summary_query,
    build_text_search,
    classify_column_type,
)
from .executor import DATE_RANGE_LIMIT, FILTER_LIMIT, RECENT_RECORDS_LIMIT, SEARCH_LIMIT, execute_query
from .types import QueryResult
from .validator import validate_identifier

Payload = dict[str, Any]


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Per-process collaborators handed to every tool handler."""

    config: AppConfig
    logger: Logger = field(default_factory=get_logger)


# ---------------------------------------------------------------------------
# Argument types


@dataclass(frozen=True, slots=True)
class NoArgs:
    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> NoArgs:
        return cls()


@dataclass(frozen=True, slots=True)
class ListTablesArgs:
    database: LogicalDatabase

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> ListTablesArgs:
        return cls(database=_database(arguments))


@dataclass(frozen=True, slots=True)
class DescribeTableArgs:
    database: LogicalDatabase
    table: str

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> DescribeTableArgs:
        return cls(database=_database(arguments), table=_required_str(arguments, "table"))


@dataclass(frozen=True, slots=True)
class DataDictionaryArgs:
    database: LogicalDatabase
    table: str | None = None

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> DataDictionaryArgs:
        return cls(database=_database(arguments), table=_optional_str(arguments, "table"))


@dataclass(frozen=True, slots=True)
class RecentRecordsArgs:
    database: LogicalDatabase
    table: str
    limit: int | None = None

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> RecentRecordsArgs:
        return cls(
            database=_database(arguments),
            table=_required_str(arguments, "table"),
            limit=_optional_number(arguments, "limit"),
        )


@dataclass(frozen=True, slots=True)
class FilterByColumnArgs:
    database: LogicalDatabase
    table: str
    filters: Mapping[str, Any]
    limit: int | None = None

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> FilterByColumnArgs:
        filters = arguments.get("filters")
        if not isinstance(filters, Mapping):
            raise ToolArgumentError("Argument 'filters' must be an object of column/value pairs.")
        return cls(
            database=_database(arguments),
            table=_required_str(arguments, "table"),
            filters=dict(filters),
            limit=_optional_number(arguments, "limit"),
        )


@dataclass(frozen=True, slots=True)
class SearchRecordsArgs:
    database: LogicalDatabase
    table: str
    search_term: str
    limit: int | None = None

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> SearchRecordsArgs:
        return cls(
            database=_database(arguments),
            table=_required_str(arguments, "table"),
            search_term=_required_str(arguments, "search_term"),
            limit=_optional_number(arguments, "limit"),
        )


@dataclass(frozen=True, slots=True)
class SummaryStatsArgs:
    database: LogicalDatabase
    table: str
    column: str | None = None
    group_by: str | None = None

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> SummaryStatsArgs:
        return cls(
            database=_database(arguments),
            table=_required_str(arguments, "table"),
            column=_optional_str(arguments, "column"),
            group_by=_optional_str(arguments, "group_by"),
        )


@dataclass(frozen=True, slots=True)
class DateRangeArgs:
    database: LogicalDatabase
    table: str
    date_column: str
    start_date: str
    end_date: str
    limit: int | None = None

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> DateRangeArgs:
        return cls(
            database=_database(arguments),
            table=_required_str(arguments, "table"),
            date_column=_required_str(arguments, "date_column"),
            start_date=_required_str(arguments, "start_date"),
            end_date=_required_str(arguments, "end_date"),
            limit=_optional_number(arguments, "limit"),
        )


@dataclass(frozen=True, slots=True)
class ExecuteQueryArgs:
    database: LogicalDatabase
    query: str

    @classmethod
    def parse(cls, arguments: Mapping[str, Any]) -> ExecuteQueryArgs:
        return cls(database=_database(arguments), query=_required_str(arguments, "query"))


# ---------------------------------------------------------------------------
# Handlers


def _get_instructions(_: NoArgs, context: ToolContext) -> Payload:
    return dict(dictionary.instructions())


def _list_databases(_: NoArgs, context: ToolContext) -> Payload:
    entries: list[Payload] = []
    for name, display_name in available_databases():
        meta = dictionary.database_metadata(LogicalDatabase.parse(name))
        entries.append(
            {
                "name": name,
                "displayName": display_name,
                "municipality": meta.municipality if meta else None,
                "state": meta.state if meta else None,
                "description": meta.description if meta else display_name,
                "fiscalYearConvention": meta.fiscal_year_convention if meta else None,
                "customerClassCodes": dict(meta.customer_class_codes) if meta else None,
            }
        )
    return {
        "databases": entries,
        "usage": (
            "Use get_data_dictionary to understand what tables and columns contain before querying. "
            "Use list_tables to see all table names."
        ),
    }


def _list_tables(args: ListTablesArgs, context: ToolContext) -> Payload:
    tables = schema.list_tables(context.config, args.database, logger=context.logger)
    meta = dictionary.database_metadata(args.database)
    enriched = []
    for table in tables:
        table_meta = meta.tables.get(table.name) if meta else None
        enriched.append(
            {
                "name": table.name,
                "type": table.type,
                "description": table_meta.description if table_meta else None,
            }
        )
    return {
        "database": args.database.value,
        "municipality": meta.municipality if meta else None,
        "tableCount": len(tables),
        "tables": enriched,
        "hint": "Use get_data_dictionary for detailed column descriptions, or describe_table for column names and types.",
    }


def _describe_table(args: DescribeTableArgs, context: ToolContext) -> Payload:
    try:
        validate_identifier(args.table)
    except QueryError as exc:
        return _failure(args.database, exc)

    columns, error = schema.lookup_table_columns(
        context.config, args.database, args.table, logger=context.logger
    )
    if error is not None:
        return _failure(args.database, error)
    if not columns:
        return _failure(
            args.database,
            f"Table '{args.table}' was not found. Use list_tables to see available tables.",
        )
    row_count = schema.table_row_count(context.config, args.database, args.table, logger=context.logger)
    table_meta = dictionary.table_metadata(args.database, args.table)

    described = []
    for column in columns:
        column_meta = dictionary.column_metadata(args.database, args.table, column.name)
        described.append(
            {
                "name": column.name,
                "displayName": column_meta.display_name if column_meta else None,
                "type": column.type,
                "kind": classify_column_type(column.type).value,
                "description": column_meta.description if column_meta else None,
                "unit": column_meta.unit if column_meta else None,
                "knownValues": dict(column_meta.known_values) if column_meta and column_meta.known_values else None,
                "nullable": not column.not_null,
                "primaryKey": column.primary_key,
                "defaultValue": column.default_value,
            }
        )

    return {
        "database": args.database.value,
        "table": args.table,
        "tableDescription": table_meta.description if table_meta else None,
        "rowCount": row_count,
        "columnCount": len(columns),
        "columns": described,
    }


def _get_data_dictionary(args: DataDictionaryArgs, context: ToolContext) -> Payload:
    meta = dictionary.database_metadata(args.database)
    if meta is None:
        return {"success": False, "error": f"No metadata found for database: {args.database.value}"}

    common = {
        "database": args.database.value,
        "municipality": meta.municipality,
        "fiscalYearConvention": meta.fiscal_year_convention,
        "currency": meta.currency,
        "customerClassCodes": dict(meta.customer_class_codes),
    }
    if args.table:
        table_meta = meta.tables.get(args.table)
        if table_meta is None:
            return {
                "success": False,
                "error": f"No metadata found for table: {args.table}. Use list_tables to see available tables.",
            }
        return {
            **common,
            "table": args.table,
            "tableDescription": table_meta.description,
            "columns": {
                name: _column_payload(column) for name, column in table_meta.columns.items()
            },
        }

    return {
        **common,
        "state": meta.state,
        "description": meta.description,
        "tableGroups": {
            name: {"description": group.description, "tables": list(group.tables)}
            for name, group in meta.table_groups.items()
        },
        "tables": {name: table.description for name, table in meta.tables.items()},
    }


def _get_recent_records(args: RecentRecordsArgs, context: ToolContext) -> Payload:
    return _run_built(
        context,
        args.database,
        lambda: build_recent_records_query(args.table),
        limit=RECENT_RECORDS_LIMIT.clamp(args.limit),
    )


def _filter_by_column(args: FilterByColumnArgs, context: ToolContext) -> Payload:
    return _run_built(
        context,
        args.database,
        lambda: build_filter_query(args.table, args.filters),
        limit=FILTER_LIMIT.clamp(args.limit),
    )


def _search_records(args: SearchRecordsArgs, context: ToolContext) -> Payload:
    try:
        validate_identifier(args.table)
    except QueryError as exc:
        return _failure(args.database, exc)

    columns, error = schema.lookup_table_columns(
        context.config, args.database, args.table, logger=context.logger
    )
    if error is not None:
        return _failure(args.database, error)
    statement = build_text_search(args.table, columns, args.search_term)
    if statement is None:
        return _failure(args.database, "No text columns found in table to search")

    result = execute_query(
        config=context.config,
        database=args.database,
        sql=statement.sql,
        params=statement.params,
        limit=SEARCH_LIMIT.clamp(args.limit),
        logger=context.logger,
    )
    return result.to_payload()


def _get_summary_stats(args: SummaryStatsArgs, context: ToolContext) -> Payload:
    return _run_built(
        context,
        args.database,
        lambda: build_summary_query(args.table, args.column, args.group_by),
    )


def _query_by_date_range(args: DateRangeArgs, context: ToolContext) -> Payload:
    return _run_built(
        context,
        args.database,
        lambda: build_date_range_query(args.table, args.date_column, args.start_date, args.end_date),
        limit=DATE_RANGE_LIMIT.clamp(args.limit),
    )


def _execute_query(args: ExecuteQueryArgs, context: ToolContext) -> Payload:
    result = execute_query(
        config=context.config,
        database=args.database,
        sql=args.query,
        logger=context.logger,
    )
    return result.to_payload()


# ---------------------------------------------------------------------------
# Registry


@dataclass(frozen=True)
class ToolSpec:
    """Registry entry describing one tool."""

    name: str
    description: str
    input_schema: Mapping[str, Any]
    parse: Callable[[Mapping[str, Any]], Any]
    handler: Callable[[Any, ToolContext], Payload]

    def definition(self) -> Payload:
        return {"name": self.name, "description": self.description, "inputSchema": dict(self.input_schema)}


def _database_property(description: str) -> Payload:
    return {
        "type": "string",
        "enum": [member.value for member in LogicalDatabase],
        "description": description,
    }


def _object_schema(properties: Mapping[str, Any], required: Sequence[str] = ()) -> Payload:
    schema_: Payload = {"type": "object", "properties": dict(properties)}
    if required:
        schema_["required"] = list(required)
    return schema_


_TABLE_PROPERTY = {"type": "string", "description": "Table name"}

_TOOL_SPECS: Sequence[ToolSpec] = (
    ToolSpec(
        name="get_instructions",
        description=(
            "CALL THIS FIRST before any other tool. Returns guidance for querying the municipal analytics "
            "databases: recommended workflow, table selection guide, data type warnings, and tips."
        ),
        input_schema=_object_schema({}),
        parse=NoArgs.parse,
        handler=_get_instructions,
    ),
    ToolSpec(
        name="list_databases",
        description=(
            "List all available municipal analytics databases with descriptions, municipality info, "
            "fiscal year conventions, and customer class codes."
        ),
        input_schema=_object_schema({}),
        parse=NoArgs.parse,
        handler=_list_databases,
    ),
    ToolSpec(
        name="list_tables",
        description="List all tables in a specific database. Shows table names and types.",
        input_schema=_object_schema(
            {
                "database": _database_property(
                    "Database to query: 'holly' (Holly Data Bronze), 'rockford' (Rockford), "
                    "or 'historical' (Historical Budgets)"
                )
            },
            ["database"],
        ),
        parse=ListTablesArgs.parse,
        handler=_list_tables,
    ),
    ToolSpec(
        name="describe_table",
        description="Get detailed information about a table including column names, types, and row count.",
        input_schema=_object_schema(
            {
                "database": _database_property("Database containing the table"),
                "table": {"type": "string", "description": "Name of the table to describe"},
            },
            ["database", "table"],
        ),
        parse=DescribeTableArgs.parse,
        handler=_describe_table,
    ),
    ToolSpec(
        name="get_data_dictionary",
        description=(
            "Get descriptions of databases, tables, and columns including units and code meanings. "
            "Use this BEFORE querying. Returns a whole database or one table."
        ),
        input_schema=_object_schema(
            {
                "database": _database_property("Database to get the dictionary for"),
                "table": {
                    "type": "string",
                    "description": "Specific table name (optional; omit for all table descriptions)",
                },
            },
            ["database"],
        ),
        parse=DataDictionaryArgs.parse,
        handler=_get_data_dictionary,
    ),
    ToolSpec(
        name="get_recent_records",
        description="Get the most recent records from a table. Useful for seeing sample data.",
        input_schema=_object_schema(
            {
                "database": _database_property("Database to query"),
                "table": _TABLE_PROPERTY,
                "limit": {
                    "type": "number",
                    "description": f"Number of records to return (default: {RECENT_RECORDS_LIMIT.default}, "
                    f"max: {RECENT_RECORDS_LIMIT.maximum})",
                },
            },
            ["database", "table"],
        ),
        parse=RecentRecordsArgs.parse,
        handler=_get_recent_records,
    ),
    ToolSpec(
        name="filter_by_column",
        description=(
            "Filter records by one or more column values. Supports exact match and LIKE patterns "
            "(use % as wildcard)."
        ),
        input_schema=_object_schema(
            {
                "database": _database_property("Database to query"),
                "table": _TABLE_PROPERTY,
                "filters": {
                    "type": "object",
                    "description": 'Column-value pairs to filter by. Use % for wildcards (e.g., {"name": "%Smith%"})',
                },
                "limit": {
                    "type": "number",
                    "description": f"Maximum records to return (default: {FILTER_LIMIT.default}, "
                    f"max: {FILTER_LIMIT.maximum})",
                },
            },
            ["database", "table", "filters"],
        ),
        parse=FilterByColumnArgs.parse,
        handler=_filter_by_column,
    ),
    ToolSpec(
        name="search_records",
        description="Search for records containing a text value across all text columns in a table.",
        input_schema=_object_schema(
            {
                "database": _database_property("Database to search"),
                "table": {"type": "string", "description": "Table to search"},
                "search_term": {"type": "string", "description": "Text to search for (case-insensitive)"},
                "limit": {
                    "type": "number",
                    "description": f"Maximum records to return (default: {SEARCH_LIMIT.default}, "
                    f"max: {SEARCH_LIMIT.maximum})",
                },
            },
            ["database", "table", "search_term"],
        ),
        parse=SearchRecordsArgs.parse,
        handler=_search_records,
    ),
    ToolSpec(
        name="get_summary_stats",
        description="Get summary statistics for a table or column (count, sum, average, min, max).",
        input_schema=_object_schema(
            {
                "database": _database_property("Database to query"),
                "table": _TABLE_PROPERTY,
                "column": {
                    "type": "string",
                    "description": "Numeric column to calculate statistics for (optional; omit for a row count)",
                },
                "group_by": {"type": "string", "description": "Column to group results by (optional)"},
            },
            ["database", "table"],
        ),
        parse=SummaryStatsArgs.parse,
        handler=_get_summary_stats,
    ),
    ToolSpec(
        name="query_by_date_range",
        description="Query records within an inclusive date range on a date column.",
        input_schema=_object_schema(
            {
                "database": _database_property("Database to query"),
                "table": _TABLE_PROPERTY,
                "date_column": {"type": "string", "description": "Name of the date/datetime column"},
                "start_date": {"type": "string", "description": "Start date (YYYY-MM-DD format)"},
                "end_date": {"type": "string", "description": "End date (YYYY-MM-DD format)"},
                "limit": {
                    "type": "number",
                    "description": f"Maximum records to return (default: {DATE_RANGE_LIMIT.default}, "
                    f"max: {DATE_RANGE_LIMIT.maximum})",
                },
            },
            ["database", "table", "date_column", "start_date", "end_date"],
        ),
        parse=DateRangeArgs.parse,
        handler=_query_by_date_range,
    ),
    ToolSpec(
        name="execute_query",
        description=(
            "Execute a custom read-only SQL SELECT query. For advanced users who need specific queries "
            "not covered by other tools."
        ),
        input_schema=_object_schema(
            {
                "database": _database_property("Database to query"),
                "query": {
                    "type": "string",
                    "description": "SQL SELECT query to execute. Must be read-only (no INSERT, UPDATE, DELETE, etc.)",
                },
            },
            ["database", "query"],
        ),
        parse=ExecuteQueryArgs.parse,
        handler=_execute_query,
    ),
)

TOOLS: Mapping[str, ToolSpec] = {spec.name: spec for spec in _TOOL_SPECS}


def tool_definitions() -> list[Payload]:
    """Return the ``tools/list`` payload entries in registration order."""
    return [spec.definition() for spec in _TOOL_SPECS]


def get_tool(name: str) -> ToolSpec:
    try:
        return TOOLS[name]
    except KeyError as exc:
        raise UnknownToolError(f"Unknown tool: {name}") from exc


def parse_tool_call(name: str, arguments: Mapping[str, Any] | None) -> tuple[ToolSpec, Any]:
    """Resolve a tool and parse its arguments into the tool's argument type."""
    spec = get_tool(name)
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ToolArgumentError("Tool arguments must be an object.")
    return spec, spec.parse(arguments)


def call_tool(name: str, arguments: Mapping[str, Any] | None, context: ToolContext) -> Payload:
    spec, parsed = parse_tool_call(name, arguments)
    context.logger.debug(f"tool {name} invoked")
    return spec.handler(parsed, context)


# ---------------------------------------------------------------------------
# Internal helpers


def _run_built(
    context: ToolContext,
    database: LogicalDatabase,
    build: Callable[[], Any],
    *,
    limit: int | None = None,
) -> Payload:
    try:
        statement = build()
    except QueryError as exc:
        return _failure(database, exc)
    result = execute_query(
        config=context.config,
        database=database,
        sql=statement.sql,
        params=statement.params,
        limit=limit,
        logger=context.logger,
    )
    return result.to_payload()


def _failure(database: LogicalDatabase, error: object) -> Payload:
    return QueryResult.failure(database.display_name, str(error)).to_payload()


def _column_payload(column: dictionary.ColumnMetadata) -> Payload:
    payload: Payload = {"description": column.description}
    if column.display_name:
        payload["displayName"] = column.display_name
    if column.unit:
        payload["unit"] = column.unit
    if column.known_values:
        payload["knownValues"] = dict(column.known_values)
    return payload


def _database(arguments: Mapping[str, Any]) -> LogicalDatabase:
    if arguments.get("database") is None:
        raise ToolArgumentError("Missing required argument 'database'.")
    try:
        return LogicalDatabase.parse(arguments["database"])
    except UnknownDatabaseError as exc:
        raise ToolArgumentError(str(exc)) from exc


def _required_str(arguments: Mapping[str, Any], key: str) -> str:
    value = arguments.get(key)
    if value is None:
        raise ToolArgumentError(f"Missing required argument '{key}'.")
    if not isinstance(value, str):
        raise ToolArgumentError(f"Argument '{key}' must be a string.")
    return value


def _optional_str(arguments: Mapping[str, Any], key: str) -> str | None:
    value = arguments.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ToolArgumentError(f"Argument '{key}' must be a string.")
    return value


def _optional_number(arguments: Mapping[str, Any], key: str) -> int | None:
    value = arguments.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ToolArgumentError(f"Argument '{key}' must be a number.")
    if isinstance(value, float) and not math.isfinite(value):
        raise ToolArgumentError(f"Argument '{key}' must be a finite number.")
    return int(value)

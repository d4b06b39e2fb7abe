"""Output rendering helpers for muni-query."""

from __future__ import annotations

import csv
import json
import sys
from typing import IO, Any, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from muni_cli.shared.logging import Logger

from .types import ColumnInfo, DatabaseSchema, QueryResult, TableInfo


def render_query_result(
    result: QueryResult,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
) -> None:
    """Render a successful query result set to the desired format."""
    output_stream = stream or sys.stdout
    fmt = (output_format or "table").lower()

    if fmt == "table":
        _render_table(result, logger=logger, stream=output_stream)
    elif fmt == "csv":
        _render_delimited(result, stream=output_stream, delimiter=",")
    elif fmt == "tsv":
        _render_delimited(result, stream=output_stream, delimiter="\t")
    elif fmt == "json":
        render_json(result.to_payload(), stream=output_stream)
    else:
        raise ValueError(f"Unsupported output format '{output_format}'.")

    if result.truncated:
        logger.warning(f"Result truncated to {result.limit_value} rows. Re-run with --limit to see more.")


def render_databases(databases: Sequence[tuple[str, str]], *, stream=None) -> None:
    output_stream = stream or sys.stdout
    console = Console(file=output_stream, highlight=False, force_terminal=False)
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Display Name")
    for name, display_name in databases:
        table.add_row(name, display_name)
    console.print(table)


def render_tables(tables: Sequence[TableInfo], *, logger: Logger, stream=None) -> None:
    output_stream = stream or sys.stdout
    if not tables:
        logger.info("No tables found.")
        return
    console = Console(file=output_stream, highlight=False, force_terminal=False)
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("Table", style="bold")
    table.add_column("Type")
    for info in tables:
        table.add_row(info.name, info.type)
    console.print(table)


def render_columns(name: str, columns: Sequence[ColumnInfo], row_count: int, *, stream=None) -> None:
    output_stream = stream or sys.stdout
    console = Console(file=output_stream, highlight=False, force_terminal=False)
    console.print(f"[bold]{escape(name)}[/bold]")
    _print_column_table(console, columns)
    console.print(f"{row_count} rows")


def render_schema(
    schema: DatabaseSchema,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
) -> None:
    """Render a database schema overview."""
    output_stream = stream or sys.stdout
    fmt = (output_format or "table").lower()

    if fmt == "json":
        payload = {
            "database": schema.name,
            "displayName": schema.display_name,
            "totalTables": schema.total_tables,
            "totalRows": schema.total_rows,
            "tables": [
                {
                    "name": table.name,
                    "type": table.type,
                    "rowCount": table.row_count,
                    "columns": [
                        {
                            "name": column.name,
                            "type": column.type,
                            "nullable": not column.not_null,
                            "primaryKey": column.primary_key,
                        }
                        for column in table.columns
                    ],
                    **({"sampleRows": list(table.sample_rows)} if table.sample_rows is not None else {}),
                }
                for table in schema.tables
            ],
        }
        render_json(payload, stream=output_stream)
        return

    console = Console(file=output_stream, highlight=False, force_terminal=False)
    console.print(f"[bold]{escape(schema.display_name)}[/bold] ({schema.total_tables} tables, {schema.total_rows} rows)\n")
    for table in schema.tables:
        console.print(f"[bold]{escape(table.name)}[/bold] ({table.type}) ~{table.row_count} rows")
        _print_column_table(console, table.columns)
        if table.sample_rows:
            sample = Table(box=box.MINIMAL, show_header=True, header_style="dim")
            for column in table.sample_rows[0]:
                sample.add_column(column)
            for row in table.sample_rows:
                sample.add_row(*[escape(_stringify(value)) for value in row.values()])
            console.print(sample)

    if not schema.tables:
        logger.info(f"No tables found in database {schema.name}.")


def render_json(payload: Any, *, stream=None) -> None:
    output_stream = stream or sys.stdout
    json.dump(payload, output_stream, indent=2, default=_convert_json_value)
    output_stream.write("\n")


def _print_column_table(console: Console, columns: Sequence[ColumnInfo]) -> None:
    column_table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    column_table.add_column("Column")
    column_table.add_column("Type")
    column_table.add_column("Not Null")
    column_table.add_column("PK")
    for column in columns:
        column_table.add_row(
            column.name,
            column.type,
            "✅" if column.not_null else "",
            "✅" if column.primary_key else "",
        )
    console.print(column_table)


def _render_table(result: QueryResult, *, logger: Logger, stream: IO[str]) -> None:
    console = Console(file=stream, highlight=False, force_terminal=False)
    table = Table(box=box.SIMPLE_HEAVY, show_header=bool(result.columns), header_style="bold")
    for column in result.columns:
        table.add_column(column or "")

    if result.rows:
        for row in result.rows:
            table.add_row(*[escape(_stringify(cell)) for cell in row.values()])
    else:
        logger.info("Query returned zero rows.")

    console.print(table)


def _render_delimited(result: QueryResult, *, stream: IO[str], delimiter: str) -> None:
    writer = csv.writer(stream, delimiter=delimiter)
    if result.columns:
        writer.writerow(result.columns)
    for row in result.rows:
        writer.writerow(_stringify(cell) for cell in row.values())


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _convert_json_value(value: object) -> object:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

"""muni-query CLI entrypoint."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

import click

from muni_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from muni_cli.shared.database import LogicalDatabase, available_databases

from . import render, rpc, schema
from .executor import execute_query
from .tools import ToolContext, call_tool
from .validator import validate_identifier

OUTPUT_FORMAT_CHOICES = ("table", "tsv", "csv", "json")
SCHEMA_FORMAT_CHOICES = ("table", "json")

database_argument = click.argument(
    "database",
    type=click.Choice([member.value for member in LogicalDatabase], case_sensitive=False),
)


@click.group(help="Query the municipal analytics databases (read-only).")
@common_cli_options
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for muni-query commands."""
    cli_ctx.logger.debug(f"muni-query loaded config from {cli_ctx.config.source_path}")


@cli.command("databases")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(SCHEMA_FORMAT_CHOICES),
)
@pass_cli_context
def list_databases(cli_ctx: CLIContext, output_format: str) -> None:
    """List the logical databases that can be queried."""
    databases = available_databases()
    if output_format == "json":
        render.render_json([{"name": name, "displayName": display} for name, display in databases])
        return
    render.render_databases(databases)


@cli.command("tables")
@database_argument
@pass_cli_context
@handle_cli_errors
def list_tables(cli_ctx: CLIContext, database: str) -> None:
    """List tables and views in DATABASE."""
    target = LogicalDatabase.parse(database)
    tables = schema.list_tables(cli_ctx.config, target, logger=cli_ctx.logger)
    render.render_tables(tables, logger=cli_ctx.logger)


@cli.command("describe")
@database_argument
@click.argument("table", type=str)
@pass_cli_context
@handle_cli_errors
def describe_table(cli_ctx: CLIContext, database: str, table: str) -> None:
    """Show columns and row count for TABLE."""
    target = LogicalDatabase.parse(database)
    validate_identifier(table)
    columns, error = schema.lookup_table_columns(cli_ctx.config, target, table, logger=cli_ctx.logger)
    if error is not None:
        raise click.ClickException(error)
    if not columns:
        raise click.ClickException(f"Table '{table}' was not found in {target.display_name}.")
    row_count = schema.table_row_count(cli_ctx.config, target, table, logger=cli_ctx.logger)
    render.render_columns(table, columns, row_count)


@cli.command("dictionary")
@database_argument
@click.option("--table", type=str, help="Limit output to one table's column descriptions.")
@pass_cli_context
@handle_cli_errors
def show_dictionary(cli_ctx: CLIContext, database: str, table: str | None) -> None:
    """Print data dictionary entries for DATABASE as JSON."""
    payload = call_tool(
        "get_data_dictionary",
        {"database": database, "table": table},
        _tool_context(cli_ctx),
    )
    _emit_payload(payload)


@cli.command("schema")
@database_argument
@click.option("--samples", is_flag=True, help="Include a few sample rows per table.")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(SCHEMA_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def show_schema(cli_ctx: CLIContext, database: str, samples: bool, output_format: str) -> None:
    """Display every table in DATABASE with its columns and row count."""
    target = LogicalDatabase.parse(database)
    overview = schema.describe_database(
        cli_ctx.config,
        target,
        include_samples=samples,
        logger=cli_ctx.logger,
    )
    render.render_schema(overview, output_format=output_format, logger=cli_ctx.logger)


@cli.command("sql")
@database_argument
@click.argument("query", type=str)
@click.option(
    "-p",
    "--param",
    "params",
    multiple=True,
    metavar="VALUE",
    help="Bind a positional value to the next ? placeholder.",
)
@click.option("--limit", type=click.IntRange(min=1), help="Override the default row limit.")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(OUTPUT_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def run_sql(
    cli_ctx: CLIContext,
    database: str,
    query: str,
    params: Iterable[str],
    limit: int | None,
    output_format: str,
) -> None:
    """Execute a read-only SQL statement against DATABASE."""
    if not query.strip():
        raise click.ClickException("Query text must not be empty.")

    result = execute_query(
        config=cli_ctx.config,
        database=LogicalDatabase.parse(database),
        sql=query,
        params=tuple(params),
        limit=limit,
        logger=cli_ctx.logger,
    )
    if not result.success:
        raise click.ClickException(result.error or "Query failed.")
    render.render_query_result(result, output_format=output_format, logger=cli_ctx.logger)


@cli.command("find")
@database_argument
@click.argument("pattern", type=str)
@pass_cli_context
@handle_cli_errors
def find_schema(cli_ctx: CLIContext, database: str, pattern: str) -> None:
    """Find tables and columns in DATABASE whose names contain PATTERN."""
    target = LogicalDatabase.parse(database)
    tables = schema.find_tables(cli_ctx.config, target, pattern, logger=cli_ctx.logger)
    columns = schema.find_columns(cli_ctx.config, target, pattern, logger=cli_ctx.logger)
    render.render_json(
        {
            "database": target.value,
            "pattern": pattern,
            "tables": [{"name": table.name, "type": table.type} for table in tables],
            "columns": {
                table: [{"name": column.name, "type": column.type} for column in matches]
                for table, matches in columns.items()
            },
        }
    )


@cli.command("relationships")
@database_argument
@pass_cli_context
@handle_cli_errors
def show_relationships(cli_ctx: CLIContext, database: str) -> None:
    """List likely references between tables, inferred from <table>_id columns."""
    target = LogicalDatabase.parse(database)
    relationships = schema.infer_relationships(cli_ctx.config, target, logger=cli_ctx.logger)
    render.render_json(
        [
            {"table": item.source_table, "column": item.source_column, "references": item.target_table}
            for item in relationships
        ]
    )


@cli.command("stats")
@database_argument
@click.argument("table", type=str)
@pass_cli_context
@handle_cli_errors
def show_stats(cli_ctx: CLIContext, database: str, table: str) -> None:
    """Show min/max/average/count for every numeric column of TABLE."""
    target = LogicalDatabase.parse(database)
    validate_identifier(table)
    stats = schema.numeric_column_stats(cli_ctx.config, target, table, logger=cli_ctx.logger)
    if not stats:
        cli_ctx.logger.info(f"No numeric columns found in {table}.")
    render.render_json(
        [
            {
                "column": item.column,
                "min": item.minimum,
                "max": item.maximum,
                "avg": item.average,
                "count": item.count,
            }
            for item in stats
        ]
    )


@cli.command("values")
@database_argument
@click.argument("table", type=str)
@click.argument("column", type=str)
@click.option("--limit", type=click.IntRange(min=1), default=50, show_default=True)
@pass_cli_context
@handle_cli_errors
def show_values(cli_ctx: CLIContext, database: str, table: str, column: str, limit: int) -> None:
    """Show the most common values of COLUMN in TABLE with their counts."""
    target = LogicalDatabase.parse(database)
    values = schema.distinct_values(cli_ctx.config, target, table, column, limit=limit, logger=cli_ctx.logger)
    render.render_json(values)


@cli.command("tool")
@click.argument("name", type=str)
@click.option("--args", "raw_args", default="{}", show_default=True, help="Tool arguments as a JSON object.")
@pass_cli_context
@handle_cli_errors
def run_tool(cli_ctx: CLIContext, name: str, raw_args: str) -> None:
    """Invoke tool NAME exactly as a JSON-RPC client would."""
    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"--args must be valid JSON: {exc}") from exc
    payload = call_tool(name, arguments, _tool_context(cli_ctx))
    _emit_payload(payload)


@cli.command("serve")
@pass_cli_context
def serve(cli_ctx: CLIContext) -> None:
    """Serve the tool registry as JSON-RPC over stdin/stdout."""
    rpc.serve_stdio(
        _tool_context(cli_ctx),
        click.get_text_stream("stdin"),
        click.get_text_stream("stdout"),
    )


def _tool_context(cli_ctx: CLIContext) -> ToolContext:
    return ToolContext(config=cli_ctx.config, logger=cli_ctx.logger)


def _emit_payload(payload: Any) -> None:
    render.render_json(payload)
    if isinstance(payload, dict) and payload.get("success") is False:
        raise click.ClickException(str(payload.get("error") or "Tool call failed."))


def main() -> None:
    """Entry point for console_scripts."""
    cli(prog_name="muni-query")


if __name__ == "__main__":  # pragma: no cover
    main()

from __future__ import annotations

import sqlite3

import pytest

from muni_cli.muni_query import schema
from muni_cli.muni_query.types import Relationship
from muni_cli.shared.config import AppConfig
from muni_cli.shared.database import LogicalDatabase
from muni_cli.shared.exceptions import IdentifierRejection

HOLLY = LogicalDatabase.HOLLY


def test_list_tables_excludes_internal_tables(app_config: AppConfig) -> None:
    tables = schema.list_tables(app_config, HOLLY)

    names = [table.name for table in tables]
    assert names == ["customers", "history_register_data", "north_orders", "orders"]
    assert {table.name: table.type for table in tables}["north_orders"] == "view"


def test_list_tables_on_missing_database_is_empty(app_config: AppConfig, tmp_path) -> None:
    config = app_config.with_database_path("holly", tmp_path / "missing.db")

    assert schema.list_tables(config, HOLLY) == []


def test_table_columns_and_row_count(app_config: AppConfig) -> None:
    columns = schema.table_columns(app_config, HOLLY, "customers")

    assert [column.name for column in columns] == ["id", "name", "city"]
    assert columns[0].primary_key is True
    assert columns[1].not_null is True
    assert columns[2].type == "VARCHAR(64)"
    assert schema.table_row_count(app_config, HOLLY, "customers") == 5


def test_unknown_table_has_no_columns(app_config: AppConfig) -> None:
    assert schema.table_columns(app_config, HOLLY, "missing") == []
    assert schema.table_row_count(app_config, HOLLY, "missing") == 0


def test_table_columns_rejects_invalid_names(app_config: AppConfig) -> None:
    with pytest.raises(IdentifierRejection):
        schema.table_columns(app_config, HOLLY, "orders); DROP TABLE orders; --")


def test_describe_database_with_samples(app_config: AppConfig) -> None:
    overview = schema.describe_database(app_config, HOLLY, include_samples=True)

    assert overview.display_name == "Holly Data Bronze"
    assert overview.total_tables == 4
    orders = next(table for table in overview.tables if table.name == "orders")
    assert orders.row_count == 40
    assert orders.sample_rows is not None
    assert len(orders.sample_rows) == schema.SAMPLE_ROW_COUNT
    assert overview.total_rows == 5 + 3 + 20 + 40


def test_describe_database_without_samples(app_config: AppConfig) -> None:
    overview = schema.describe_database(app_config, LogicalDatabase.ROCKFORD)

    assert [table.name for table in overview.tables] == ["rate_schedule_history"]
    assert overview.tables[0].sample_rows is None


def test_find_tables_and_columns(app_config: AppConfig) -> None:
    assert [table.name for table in schema.find_tables(app_config, HOLLY, "ORDER")] == [
        "north_orders",
        "orders",
    ]

    matches = schema.find_columns(app_config, HOLLY, "name")
    assert sorted(matches) == ["customers", "history_register_data"]
    assert [column.name for column in matches["history_register_data"]] == ["name", "bill_item_name"]


def test_infer_relationships(app_config: AppConfig) -> None:
    relationships = schema.infer_relationships(app_config, HOLLY)

    # ``customer_id`` does not match ``customers`` exactly, so nothing is inferred.
    assert relationships == []


def test_infer_relationships_matches_table_name(app_config: AppConfig, tmp_path) -> None:
    db_path = tmp_path / "related.db"
    connection = sqlite3.connect(db_path)
    connection.executescript(
        """
        CREATE TABLE account (id INTEGER PRIMARY KEY);
        CREATE TABLE bills (id INTEGER PRIMARY KEY, Account_ID INTEGER, rate_id INTEGER);
        """
    )
    connection.close()
    config = app_config.with_database_path("rockford", db_path)

    relationships = schema.infer_relationships(config, LogicalDatabase.ROCKFORD)

    assert relationships == [Relationship(source_table="bills", source_column="Account_ID", target_table="account")]


def test_numeric_column_stats(app_config: AppConfig) -> None:
    stats = {item.column: item for item in schema.numeric_column_stats(app_config, HOLLY, "orders")}

    assert sorted(stats) == ["amount", "customer_id", "id"]
    assert stats["amount"].minimum == 10.0
    assert stats["amount"].maximum == 400.0
    assert stats["amount"].count == 40


def test_numeric_column_stats_skips_unquotable_columns(app_config: AppConfig) -> None:
    stats = schema.numeric_column_stats(app_config, LogicalDatabase.HISTORICAL, "historical_budget_data")

    assert [item.column for item in stats] == ["amount_2026"]


def test_distinct_values(app_config: AppConfig) -> None:
    values = schema.distinct_values(app_config, HOLLY, "orders", "region", limit=2)

    assert len(values) == 2
    assert all(row["count"] == 10 for row in values)


class _RecordingLogger:
    def __init__(self) -> None:
        self.warnings: list[str] = []

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    def debug(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass


def test_list_tables_warns_when_listing_is_cut_short(
    app_config: AppConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    logger = _RecordingLogger()
    monkeypatch.setattr(schema, "TABLE_LISTING_LIMIT", 2)

    tables = schema.list_tables(app_config, HOLLY, logger=logger)

    assert [table.name for table in tables] == ["customers", "history_register_data"]
    assert logger.warnings == ["Holly Data Bronze has more than 2 tables; listing the first 2."]


def test_list_tables_is_not_bound_by_result_row_cap(app_config: AppConfig) -> None:
    config = app_config.with_max_result_rows(1)

    assert len(schema.list_tables(config, HOLLY)) == 4


def test_lookup_table_columns_reports_backend_error(app_config: AppConfig, tmp_path) -> None:
    config = app_config.with_database_path("holly", tmp_path / "missing.db")

    columns, error = schema.lookup_table_columns(config, HOLLY, "orders")

    assert columns == []
    assert error is not None and "unable to open database file" in error

    found, none = schema.lookup_table_columns(app_config, HOLLY, "customers")
    assert [column.name for column in found] == ["id", "name", "city"]
    assert none is None

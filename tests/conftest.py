"""Shared pytest fixtures for muni-query tests.

Each test gets three freshly seeded SQLite files in ``tmp_path`` (one per
logical database) and an ``AppConfig`` pointing at them through the same
environment overrides a deployment would use.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from muni_cli.muni_query.tools import ToolContext
from muni_cli.shared import paths
from muni_cli.shared.config import AppConfig, load_config
from muni_cli.shared.logging import get_logger

REGIONS = ("North East", "North West", "South", "West")
ORDER_COUNT = 40


def _seed_holly(path: Path) -> None:
    connection = sqlite3.connect(path)
    try:
        connection.executescript(
            """
            CREATE TABLE customers (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                city VARCHAR(64)
            );
            CREATE TABLE orders (
                id INTEGER PRIMARY KEY,
                region TEXT,
                amount REAL,
                order_date TEXT,
                customer_id INTEGER,
                notes TEXT
            );
            CREATE TABLE history_register_data (
                account_number TEXT,
                name TEXT,
                class TEXT,
                bill_item_name TEXT,
                amount REAL,
                posted TEXT
            );
            CREATE TABLE _cf_KV (key TEXT, value BLOB);
            CREATE VIEW north_orders AS SELECT * FROM orders WHERE region LIKE 'North%';
            """
        )
        connection.executemany(
            "INSERT INTO customers (id, name, city) VALUES (?, ?, ?)",
            [
                (1, "Alice Smith", "Holly"),
                (2, "Bob Jones", "Fenton"),
                (3, "Carol Smith", "Holly"),
                (4, "Dan Brown", "Flint"),
                (5, "Eve Black", "Holly"),
            ],
        )
        connection.executemany(
            "INSERT INTO orders (id, region, amount, order_date, customer_id, notes) VALUES (?, ?, ?, ?, ?, ?)",
            [
                (
                    i,
                    REGIONS[i % len(REGIONS)],
                    float(i * 10),
                    f"2024-01-{(i % 28) + 1:02d}",
                    (i % 5) + 1,
                    None if i % 2 else f"note {i}",
                )
                for i in range(1, ORDER_COUNT + 1)
            ],
        )
        connection.executemany(
            "INSERT INTO history_register_data VALUES (?, ?, ?, ?, ?, ?)",
            [
                ("100-1-0-1", "Alice Smith", "RE", "Water Rate", 45.5, "2024-07-15"),
                ("100-1-0-1", "Alice Smith", "RE", "Sewer", 60.25, "2024-07-15"),
                ("200-4-0-1", "Holly Hardware", "CO", "Water Rate", 120.0, "2024-08-15"),
            ],
        )
        connection.commit()
    finally:
        connection.close()


def _seed_rockford(path: Path) -> None:
    connection = sqlite3.connect(path)
    try:
        connection.executescript(
            """
            CREATE TABLE rate_schedule_history (
                rate_code TEXT,
                description TEXT,
                FYE_2026 REAL
            );
            INSERT INTO rate_schedule_history VALUES ('01-001', '5/8-3/4 inch water', 21.5);
            INSERT INTO rate_schedule_history VALUES ('01-002', '1 inch water', 35.0);
            """
        )
        connection.commit()
    finally:
        connection.close()


def _seed_historical(path: Path) -> None:
    connection = sqlite3.connect(path)
    try:
        connection.executescript(
            """
            CREATE TABLE historical_budget_data (
                model_name TEXT,
                amount_2026 REAL,
                "...7" TEXT,
                "...8" REAL
            );
            INSERT INTO historical_budget_data VALUES ('Lexington model 2-9-24', 1500.0, 'x', 2.5);
            """
        )
        connection.commit()
    finally:
        connection.close()


@pytest.fixture()
def database_files(tmp_path: Path) -> dict[str, Path]:
    """Create one seeded SQLite file per logical database."""

    db_dir = tmp_path / "databases"
    db_dir.mkdir()
    files = {name: db_dir / filename for name, filename in paths.DEFAULT_DATABASE_FILES.items()}
    _seed_holly(files["holly"])
    _seed_rockford(files["rockford"])
    _seed_historical(files["historical"])
    return files


@pytest.fixture()
def muni_env(tmp_path: Path, database_files: dict[str, Path]) -> dict[str, str]:
    """Environment variables pointing every database at the seeded files."""

    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "config")}
    for name, path in database_files.items():
        env[paths.DATABASE_PATH_ENVS[name]] = str(path)
    return env


@pytest.fixture()
def app_config(muni_env: dict[str, str]) -> AppConfig:
    return load_config(env=muni_env)


@pytest.fixture()
def tool_context(app_config: AppConfig) -> ToolContext:
    return ToolContext(config=app_config, logger=get_logger(verbose=False))

"""Logical database identities and read-only SQLite connections."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterator

from .config import AppConfig
from .exceptions import UnknownDatabaseError

DEFAULT_BUSY_TIMEOUT_SECONDS = 5.0


class LogicalDatabase(Enum):
    """The fixed set of databases a caller may query."""

    HOLLY = "holly"
    ROCKFORD = "rockford"
    HISTORICAL = "historical"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, name: object) -> LogicalDatabase:
        """Resolve a caller-supplied database name."""
        if isinstance(name, cls):
            return name
        if isinstance(name, str):
            cleaned = name.strip().lower()
            for member in cls:
                if member.value == cleaned:
                    return member
        valid = ", ".join(member.value for member in cls)
        raise UnknownDatabaseError(f"Unknown database: {name}. Expected one of: {valid}.")


_DISPLAY_NAMES: dict[LogicalDatabase, str] = {
    LogicalDatabase.HOLLY: "Holly Data Bronze",
    LogicalDatabase.ROCKFORD: "Rockford",
    LogicalDatabase.HISTORICAL: "Historical Budgets",
}


def available_databases() -> list[tuple[str, str]]:
    """Return ``(name, display_name)`` for every logical database."""
    return [(member.value, member.display_name) for member in LogicalDatabase]


def _open_connection(path: Path, *, timeout_ms: int | None = None) -> sqlite3.Connection:
    timeout = timeout_ms / 1000 if timeout_ms is not None else DEFAULT_BUSY_TIMEOUT_SECONDS
    uri = f"file:{path}?mode=ro"
    conn = sqlite3.connect(uri, uri=True, timeout=timeout)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def connect(config: AppConfig, database: LogicalDatabase) -> Iterator[sqlite3.Connection]:
    """Yield a fresh read-only connection to one logical database."""
    db_path = config.database_path(database.value)
    connection = _open_connection(db_path, timeout_ms=config.query.timeout_ms)
    try:
        yield connection
    finally:
        connection.close()

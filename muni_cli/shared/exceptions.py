"""Project-wide custom exceptions."""

from __future__ import annotations


class MuniQueryError(Exception):
    """Base exception for the municipal query suite."""


class ConfigurationError(MuniQueryError):
    """Raised when configuration loading or validation fails."""


class DatabaseError(MuniQueryError):
    """Raised for database-related issues."""


class UnknownDatabaseError(DatabaseError):
    """Raised when a caller names a database outside the configured set."""


class QueryError(DatabaseError):
    """Raised when query validation or execution fails."""


class ReadOnlyViolation(QueryError):
    """Raised when SQL fails the read-only gate."""

    def __init__(self, message: str, *, keyword: str | None = None) -> None:
        super().__init__(message)
        self.keyword = keyword


class IdentifierRejection(QueryError):
    """Raised when a table or column name fails the identifier rule."""


class DateFormatRejection(QueryError):
    """Raised when a date boundary is not in YYYY-MM-DD form."""


class DictionaryError(MuniQueryError):
    """Raised when the bundled data dictionary cannot be loaded."""


class ToolError(MuniQueryError):
    """Raised for tool dispatch failures."""


class UnknownToolError(ToolError):
    """Raised when a tool name is not registered."""


class ToolArgumentError(ToolError):
    """Raised when tool arguments are missing or have the wrong shape."""

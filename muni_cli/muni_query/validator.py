"""Lexical read-only gate and identifier checks for caller-supplied SQL.

The gate is pattern-based, not a SQL parser. It refuses
anything that does not start with SELECT, WITH or PRAGMA and anything that
mentions a data-modifying keyword as a whole word, anywhere in the text,
including string literals and comments. Harmless queries such as
``SELECT 'I will not DROP it'`` are rejected too.
"""

from __future__ import annotations

import re

from muni_cli.shared.exceptions import DateFormatRejection, IdentifierRejection, ReadOnlyViolation

ALLOWED_PREFIXES = ("SELECT", "WITH", "PRAGMA")

FORBIDDEN_KEYWORDS = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "ALTER",
    "CREATE",
    "REPLACE",
    "TRUNCATE",
    "ATTACH",
    "DETACH",
)

_FORBIDDEN_PATTERNS = tuple(
    (keyword, re.compile(rf"\b{keyword}\b", re.IGNORECASE)) for keyword in FORBIDDEN_KEYWORDS
)

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def validate_read_only_query(sql: str) -> None:
    """Raise ``ReadOnlyViolation`` unless ``sql`` passes the read-only gate."""
    trimmed = sql.strip().upper()
    if not trimmed.startswith(ALLOWED_PREFIXES):
        raise ReadOnlyViolation(
            "Query is not a read-only statement: only SELECT, WITH, or PRAGMA queries are allowed"
        )

    for keyword, pattern in _FORBIDDEN_PATTERNS:
        if pattern.search(sql):
            raise ReadOnlyViolation(f"Query contains forbidden keyword: {keyword}", keyword=keyword)


def is_read_only_query(sql: str) -> bool:
    try:
        validate_read_only_query(sql)
    except ReadOnlyViolation:
        return False
    return True


def is_valid_identifier(name: object) -> bool:
    """Return True when ``name`` can be interpolated as a quoted identifier."""
    return isinstance(name, str) and _IDENTIFIER_RE.fullmatch(name) is not None


def validate_identifier(name: object, kind: str = "table") -> str:
    """Return ``name`` unchanged or raise ``IdentifierRejection``."""
    if not is_valid_identifier(name):
        raise IdentifierRejection(f"Invalid {kind} name: {name!r}")
    return name  # type: ignore[return-value]


def quote_identifier(name: object, kind: str = "table") -> str:
    """Validate an identifier and wrap it in double quotes for SQL text."""
    return f'"{validate_identifier(name, kind)}"'


def validate_date(value: object, label: str = "date") -> str:
    """Require a literal ``YYYY-MM-DD`` string.

    Only the shape is checked: ``2024-13-01`` passes, ``2024-1-1`` does not.
    """
    if not isinstance(value, str) or _DATE_RE.fullmatch(value) is None:
        raise DateFormatRejection(f"Invalid {label} format: {value!r}. Use YYYY-MM-DD")
    return value

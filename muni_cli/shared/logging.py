"""Rich-based logging for muni-query.

stdout belongs to payloads: rendered tables, JSON, and JSON-RPC frames when
``muni-query serve`` is running. The logger therefore owns only stderr
consoles and never writes to stdout.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from rich.console import Console
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "debug": "dim",
    }
)

# Highlighting is off so SQL text and numbers are printed without injected
# ANSI sequences.
_stderr_console = Console(stderr=True, theme=_THEME, highlight=False)


@dataclass(frozen=True, slots=True)
class Logger:
    """Lightweight logger facade backed by a Rich stderr console.

    ``scope`` tags every line (``[rpc] ...``) so server chatter can be told
    apart from query diagnostics in a shared stderr stream.
    """

    verbose: bool = False
    scope: str | None = None

    def scoped(self, scope: str) -> Logger:
        return dataclasses.replace(self, scope=scope)

    def info(self, message: str) -> None:
        self._emit(message, "info")

    def success(self, message: str) -> None:
        self._emit(message, "success")

    def warning(self, message: str) -> None:
        self._emit(message, "warning")

    def error(self, message: str) -> None:
        self._emit(message, "error")

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit(message, "debug")

    def _emit(self, message: str, style: str) -> None:
        text = f"[{self.scope}] {message}" if self.scope else message
        _stderr_console.print(text, style=style, markup=False)


def get_logger(verbose: bool = False) -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose)

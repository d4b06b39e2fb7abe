"""Smoke tests verifying CLI entry points load and expose every command."""

from __future__ import annotations

import importlib
from typing import Callable

import pytest
from click.testing import CliRunner


@pytest.mark.parametrize(
    "module_path, attr_name, prog_name",
    [
        ("muni_cli.muni_query.main", "cli", "muni-query"),
    ],
)
def test_cli_entrypoint_help(module_path: str, attr_name: str, prog_name: str) -> None:
    module = importlib.import_module(module_path)
    cli: Callable[..., object] = getattr(module, attr_name)

    runner = CliRunner()
    result = runner.invoke(cli, ["--help"], prog_name=prog_name)

    assert result.exit_code == 0, result.output
    assert "Usage" in result.output
    for command in ("databases", "tables", "describe", "dictionary", "schema", "sql", "tool", "serve"):
        assert command in result.output


def test_main_is_console_script_target() -> None:
    from muni_cli.muni_query import main as main_module

    assert callable(main_module.main)

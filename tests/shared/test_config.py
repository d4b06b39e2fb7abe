from __future__ import annotations

from pathlib import Path

import pytest

from muni_cli.shared import paths
from muni_cli.shared.config import AppConfig, load_config
from muni_cli.shared.exceptions import ConfigurationError


def test_load_config_defaults(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "config")}
    cfg = load_config(env=env)

    assert isinstance(cfg, AppConfig)
    assert cfg.source_path == tmp_path / "config" / "config.yaml"
    assert cfg.database_path("holly") == tmp_path / "config" / "databases" / "Holly_data_bronze.db"
    assert cfg.database_path("historical") == paths.default_database_path("historical", env=env)
    assert cfg.query.max_result_rows == 1000
    assert cfg.query.timeout_ms is None


def test_load_config_from_yaml(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(
        """
        databases:
          rockford:
            path: ~/alt/rockford.db
        query:
          max_result_rows: "250"
          timeout_ms: 1500
        """,
        encoding="utf-8",
    )
    env = {paths.CONFIG_DIR_ENV: str(tmp_path)}

    cfg = load_config(config_path=cfg_file, env=env)

    assert cfg.database_path("rockford") == paths.resolve_path("~/alt/rockford.db")
    assert cfg.database_path("holly") == paths.default_database_path("holly", env=env)
    assert cfg.query.max_result_rows == 250
    assert cfg.query.timeout_ms == 1500


def test_load_config_env_overrides(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("query:\n  max_result_rows: 50\n", encoding="utf-8")
    custom_db = tmp_path / "custom.db"
    env = {
        paths.CONFIG_FILE_ENV: str(cfg_file),
        "MUNI_HISTORICAL_DB_PATH": str(custom_db),
        "MAX_RESULT_ROWS": " 75 ",
        "QUERY_TIMEOUT_MS": "200",
    }

    cfg = load_config(env=env)

    assert cfg.source_path == cfg_file
    assert cfg.database_path("historical") == custom_db
    assert cfg.query.max_result_rows == 75
    assert cfg.query.timeout_ms == 200


@pytest.mark.parametrize(
    "env_value, message",
    [("lots", "MAX_RESULT_ROWS"), ("0", "positive integer"), ("-3", "positive integer")],
)
def test_invalid_max_result_rows(tmp_path: Path, env_value: str, message: str) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path), "MAX_RESULT_ROWS": env_value}

    with pytest.raises(ConfigurationError, match=message):
        load_config(env=env)


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("databases: [oops", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="not valid YAML"):
        load_config(config_path=cfg_file, env={})


def test_non_mapping_yaml_raises(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="mapping root"):
        load_config(config_path=cfg_file, env={})


def test_config_copies(tmp_path: Path) -> None:
    cfg = load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path)})

    moved = cfg.with_database_path("holly", tmp_path / "other.db")
    smaller = cfg.with_max_result_rows(5)

    assert moved.database_path("holly") == tmp_path / "other.db"
    assert cfg.database_path("holly") != moved.database_path("holly")
    assert smaller.query.max_result_rows == 5
    assert cfg.query.max_result_rows == 1000

    with pytest.raises(ConfigurationError, match="lansing"):
        cfg.database_path("lansing")

import os

import pytest
from pydantic import ValidationError

from entitystore.config import DBConfig, load_config


def test_env_path_wins(tmp_path, monkeypatch):
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("db_path: from_yaml.db\n", encoding="utf-8")
    monkeypatch.setenv("CUSTDB_DB_PATH", str(tmp_path / "env.db"))
    assert load_config(str(cfg_file)).db_path == str(tmp_path / "env.db")


def test_yaml_paths_and_options(tmp_path, monkeypatch):
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(
        "db_path: prod.db\ntest_db_path: test.db\ntimeout: 1.5\nforeign_keys: false\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("CUSTDB_DB_PATH", raising=False)

    monkeypatch.setenv("APP_ENV", "test")
    cfg = load_config(str(cfg_file))
    assert cfg.db_path == "test.db"
    assert cfg.timeout == 1.5
    assert cfg.foreign_keys is False

    monkeypatch.delenv("APP_ENV")
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    assert load_config(str(cfg_file)).db_path == "prod.db"


def test_missing_file_falls_back_to_project_db(tmp_path, monkeypatch):
    monkeypatch.delenv("CUSTDB_DB_PATH", raising=False)
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert cfg.db_path.endswith("customer.db")
    assert cfg.timeout == 5.0
    assert cfg.foreign_keys is True


def test_config_env_selects_file(tmp_path, monkeypatch):
    cfg_file = tmp_path / "alt.yaml"
    cfg_file.write_text("db_path: alt.db\n", encoding="utf-8")
    monkeypatch.delenv("CUSTDB_DB_PATH", raising=False)
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    monkeypatch.setenv("CUSTDB_CONFIG", str(cfg_file))
    assert load_config().db_path == "alt.db"


def test_non_mapping_yaml_rejected(tmp_path, monkeypatch):
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(cfg_file))


def test_config_is_frozen():
    cfg = DBConfig(db_path="x.db")
    with pytest.raises(ValidationError):
        cfg.db_path = "y.db"


def test_suite_runs_against_temp_db(tmp_db_path):
    assert os.environ["CUSTDB_DB_PATH"] == tmp_db_path
    assert load_config().db_path == tmp_db_path

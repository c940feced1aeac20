from __future__ import annotations

# entitystore/config.py
import os

import yaml
from pydantic import BaseModel, ConfigDict

# DB 路径解析顺序：
# 1) 环境变量 CUSTDB_DB_PATH（最高优先级）
# 2) config.yaml 的 test_db_path（当检测到测试环境时）
# 3) config.yaml 的 db_path（生产默认）
# 4) 兜底：项目根 customer.db
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_ROOT_DB = os.path.join(_PROJECT_ROOT, "customer.db")
_DEFAULT_CONFIG = os.path.join(_PROJECT_ROOT, "config.yaml")


class DBConfig(BaseModel):
    """Connection settings handed explicitly to get_conn(); never module state."""

    model_config = ConfigDict(frozen=True)

    db_path: str
    timeout: float = 5.0
    foreign_keys: bool = True


def _read_config_yaml(path: str) -> dict:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    out = {}
    for k in ("db_path", "test_db_path"):
        v = cfg.get(k)
        if isinstance(v, str) and v.strip():
            out[k] = v.strip()
    for k in ("timeout", "foreign_keys"):
        if k in cfg:
            out[k] = cfg[k]
    return out


def load_config(path: str | None = None) -> DBConfig:
    cfg_path = path or os.environ.get("CUSTDB_CONFIG") or _DEFAULT_CONFIG
    cfg = _read_config_yaml(cfg_path)
    env_path = os.environ.get("CUSTDB_DB_PATH")
    is_test = (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)

    if env_path:
        db_path = env_path
    elif is_test and cfg.get("test_db_path"):
        db_path = cfg["test_db_path"]
    elif cfg.get("db_path"):
        db_path = cfg["db_path"]
    else:
        db_path = _ROOT_DB

    extra = {k: cfg[k] for k in ("timeout", "foreign_keys") if k in cfg}
    return DBConfig(db_path=db_path, **extra)

from __future__ import annotations

# entitystore/db.py
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from .config import DBConfig, load_config
from .errors import ConnectionError

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schema.sql")


def open_conn(cfg: DBConfig) -> sqlite3.Connection:
    """
    打开 SQLite 连接（autocommit 模式，事务只能显式 BEGIN）。
    打开 foreign_keys，设置 row_factory 为 Row。调用方负责 close()。
    """
    path = cfg.db_path
    if path != ":memory:":
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    try:
        conn = sqlite3.connect(
            path,
            timeout=cfg.timeout,
            check_same_thread=False,
            isolation_level=None,
        )
    except sqlite3.Error as e:
        raise ConnectionError(str(e), "open", path, e) from e
    try:
        conn.execute("PRAGMA foreign_keys = %s;" % ("ON" if cfg.foreign_keys else "OFF"))
    except sqlite3.Error as e:
        conn.close()
        raise ConnectionError(str(e), "open", path, e) from e
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_conn(cfg: DBConfig | None = None) -> Iterator[sqlite3.Connection]:
    """获取连接并在退出时关闭（每条路径恰好关闭一次）。未传 cfg 时走 load_config()。"""
    conn = open_conn(cfg or load_config())
    try:
        yield conn
    finally:
        conn.close()


def ensure_schema(conn: sqlite3.Connection, schema_path: str = SCHEMA_PATH) -> None:
    with open(schema_path, "r", encoding="utf-8") as f:
        conn.executescript(f.read())

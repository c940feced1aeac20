import os
import sys
import sqlite3
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


@pytest.fixture(scope="session")
def tmp_db_path(tmp_path_factory):
    path = tmp_path_factory.mktemp("db") / "customer_test.db"
    # Point the package to this temp DB
    os.environ["CUSTDB_DB_PATH"] = str(path)
    schema = Path(_PROJECT_ROOT / "entitystore" / "schema.sql").read_text(encoding="utf-8")
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(schema)
        conn.commit()
    finally:
        conn.close()
    return str(path)


@pytest.fixture()
def cfg(tmp_db_path):
    from entitystore.config import DBConfig
    return DBConfig(db_path=tmp_db_path)


@pytest.fixture()
def conn(cfg):
    from entitystore.db import get_conn
    with get_conn(cfg) as c:
        yield c


@pytest.fixture()
def client(tmp_db_path):
    from entitystore.api import app
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture(autouse=True)
def _clean_db(tmp_db_path):
    # Clean tables before each test for isolation
    # Safety: ensure we only ever wipe the temp DB, never a real one
    assert os.environ.get("CUSTDB_DB_PATH") == tmp_db_path, "Refusing to clean non-temp DB"
    tables = ["customer", "user", "comments", "operation_log"]
    conn = sqlite3.connect(tmp_db_path)
    try:
        for t in tables:
            conn.execute(f'DELETE FROM "{t}"')
        conn.commit()
    finally:
        conn.close()
    yield

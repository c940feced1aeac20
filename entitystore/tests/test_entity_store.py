import datetime as dt
import sqlite3

import pytest

from entitystore import errors
from entitystore.db import open_conn
from entitystore.repository import Comment, CommentStore, Customer, CustomerStore, User, UserStore


def _customer(cid: str = "arya", **kw) -> Customer:
    base = dict(id=cid, name="Nafis", created_at=dt.datetime(2024, 1, 2, 3, 4, 5))
    base.update(kw)
    return Customer(**base)


def test_insert_then_find_keeps_nulls(conn):
    store = CustomerStore(conn)
    rec = _customer()
    assert store.insert(rec) == "arya"

    got = store.find_by_id("arya")
    assert got == rec
    assert got.email is None and got.birth_date is None

    # NULL 存储为 NULL，而不是空串/0
    raw = conn.execute("SELECT email, birth_date FROM customer WHERE id=?", ("arya",)).fetchone()
    assert raw["email"] is None
    assert raw["birth_date"] is None


def test_insert_then_find_all_fields(conn):
    store = CustomerStore(conn)
    rec = _customer(
        "fathir",
        email="fathirarya@gmail.com",
        balance=100000,
        rating=4.5,
        birth_date=dt.date(1999, 10, 10),
        married=True,
    )
    store.insert(rec)
    got = store.find_by_id("fathir")
    assert got == rec
    assert isinstance(got.created_at, dt.datetime)
    assert got.married is True


def test_find_missing_raises_not_found(conn):
    store = CustomerStore(conn)
    with pytest.raises(errors.NotFound) as ei:
        store.find_by_id("nobody")
    assert ei.value.operation == "find_by_id"
    assert ei.value.table == "customer"
    assert "customer" in str(ei.value)


def test_duplicate_key_is_constraint_error(conn):
    store = CustomerStore(conn)
    store.insert(_customer())
    with pytest.raises(errors.ConstraintError) as ei:
        store.insert(_customer(name="Other"))
    assert isinstance(ei.value, errors.WriteFailed)
    assert isinstance(ei.value.__cause__, sqlite3.IntegrityError)
    assert ei.value.operation == "insert"
    # 原记录不受影响
    assert store.find_by_id("arya").name == "Nafis"


def test_bound_values_do_not_alter_query(conn):
    conn.execute("CREATE TABLE IF NOT EXISTS t (x TEXT)")
    try:
        store = CustomerStore(conn)
        nasty = "x'; DROP TABLE t; --"
        store.insert(_customer(nasty, name="Robert'); DROP TABLE customer;--"))

        got = store.find_by_id(nasty)
        assert got.id == nasty
        assert got.name == "Robert'); DROP TABLE customer;--"
        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert {"t", "customer"} <= tables
    finally:
        conn.execute("DROP TABLE IF EXISTS t")


def test_find_all_order_is_stable(conn):
    store = CustomerStore(conn)
    for cid in ["m", "c", "x", "a", "q"]:
        store.insert(_customer(cid))
    first = [c.id for c in store.find_all()]
    second = [c.id for c in store.find_all()]
    assert first == second
    assert sorted(first) == ["a", "c", "m", "q", "x"]
    assert [c.id for c in store.find_all(order_by_key=True)] == ["a", "c", "m", "q", "x"]


def test_update_and_delete(conn):
    store = CustomerStore(conn)
    store.insert(_customer(email="old@example.com", birth_date=dt.date(2000, 1, 1)))

    changed = store.find_by_id("arya").model_copy(update={"name": "Arya", "email": None, "balance": 7})
    store.update(changed)
    got = store.find_by_id("arya")
    assert got == changed
    assert got.email is None
    assert got.birth_date == dt.date(2000, 1, 1)

    store.delete("arya")
    with pytest.raises(errors.NotFound):
        store.find_by_id("arya")
    assert store.count() == 0


def test_update_or_delete_missing_raises_not_found(conn):
    store = CustomerStore(conn)
    with pytest.raises(errors.NotFound):
        store.update(_customer("ghost"))
    with pytest.raises(errors.NotFound):
        store.delete("ghost")


def test_insert_rejects_wrong_record_type(conn):
    with pytest.raises(TypeError):
        CustomerStore(conn).insert(User(username="u", password="p"))


def test_auto_key_insert_returns_generated_id(conn):
    store = CommentStore(conn)
    first = store.insert(Comment(email="fathirarya@gmail.com", comment="Test Comment1"))
    second = store.insert(Comment(email="fathirarya@gmail.com", comment=None))
    assert isinstance(first, int)
    assert second > first
    assert store.find_by_id(second).comment is None
    assert store.find_by_id(first) == Comment(id=first, email="fathirarya@gmail.com", comment="Test Comment1")


def test_insert_many_reuses_one_statement(conn):
    store = CommentStore(conn)
    recs = [Comment(email=f"fathirarya{i}@gmail.com", comment=f"Komentar ke{i}") for i in range(10)]
    ids = store.insert_many(recs)
    assert len(ids) == 10
    assert ids == sorted(ids) and len(set(ids)) == 10
    for i, cid in enumerate(ids):
        assert store.find_by_id(cid).email == f"fathirarya{i}@gmail.com"


def test_list_by_email_ordered_by_id(conn):
    store = CommentStore(conn)
    store.insert_many([Comment(email="a@x.com", comment=str(i)) for i in range(3)])
    store.insert(Comment(email="b@x.com", comment="other"))
    with store.list_by_email("a@x.com") as rows:
        got = [c.comment for c in rows]
    assert got == ["0", "1", "2"]


def test_list_by_email_only_runs_declared_statements(conn):
    store = CommentStore(conn)
    store.insert(Comment(email="a@x.com", comment="hi"))
    assert not hasattr(store, "stream")
    assert list(store.list_by_email("a@x.com' OR '1'='1")) == []
    with pytest.raises(KeyError):
        store._stream("SELECT * FROM comments", ())


def test_find_by_credentials_uses_bound_values(conn):
    users = UserStore(conn)
    users.insert(User(username="admin", password="admin"))

    assert users.find_by_credentials("admin", "admin") == "admin"
    assert users.find_by_credentials("admin", "salah") is None
    assert users.find_by_credentials("admin'; #", "salah") is None
    assert users.find_by_credentials("admin' --", "x") is None
    assert users.find_by_credentials("' OR '1'='1", "' OR '1'='1") is None


def test_independent_connections_see_committed_rows(conn, cfg):
    other = open_conn(cfg)
    try:
        CustomerStore(conn).insert(_customer())
        assert CustomerStore(other).find_by_id("arya").name == "Nafis"
    finally:
        other.close()


def test_closed_connection_is_connection_error(cfg):
    c = open_conn(cfg)
    store = CustomerStore(c)
    c.close()
    with pytest.raises(errors.ConnectionError):
        store.find_by_id("arya")
    with pytest.raises(errors.WriteConnectionError) as ei:
        store.insert(_customer())
    assert isinstance(ei.value, errors.WriteFailed)
    assert isinstance(ei.value, errors.ConnectionError)

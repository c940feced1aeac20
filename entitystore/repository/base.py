"""Single-table entity store over a DB-API (sqlite3) connection.

Every statement is built once from a fixed TableSchema when the store is
constructed; caller values only ever travel as bound ``?`` parameters.
"""
from __future__ import annotations

import datetime as dt
import logging
import re
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Generic, Iterable, Iterator, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import NotFound, ScanError, StoreError, TransactionError, translate

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class Column:
    name: str
    nullable: bool = False


@dataclass(frozen=True)
class TableSchema:
    """表结构声明：表名、主键列、按顺序排列的列，以及主键是否由引擎分配。"""

    name: str
    key: str
    columns: tuple[Column, ...]
    auto_key: bool = False

    def __post_init__(self):
        for ident in (self.name, *self.column_names):
            if not _IDENT.match(ident):
                raise ValueError(f"not a plain SQL identifier: {ident!r}")
        if len(set(self.column_names)) != len(self.columns):
            raise ValueError(f"duplicate column in schema {self.name}")
        if self.key not in self.column_names:
            raise ValueError(f"key column {self.key!r} not among columns of {self.name}")

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    @property
    def value_columns(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns if c.name != self.key)


def _q(ident: str) -> str:
    # [ident] 不会像 "ident" 那样在列不存在时退化成字符串字面值
    return f"[{ident}]"


def to_db_value(value: Any) -> Any:
    # datetime 是 date 的子类，isoformat 两者通用
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    return value


class ResultSet(Generic[R]):
    """Lazy, one-shot row stream.

    The cursor is closed on exhaustion, close(), ``with`` exit, a mapping
    error, or when an abandoned stream is garbage collected.
    """

    def __init__(self, cursor: sqlite3.Cursor, mapper: Callable[[sqlite3.Row], R], table: str, operation: str):
        self._cursor: Optional[sqlite3.Cursor] = cursor
        self._mapper = mapper
        self._table = table
        self._operation = operation

    def __iter__(self) -> Iterator[R]:
        return self

    def __next__(self) -> R:
        if self._cursor is None:
            raise StopIteration
        try:
            row = self._cursor.fetchone()
        except sqlite3.Error as e:
            self.close()
            raise translate(e, self._operation, self._table) from e
        if row is None:
            self.close()
            raise StopIteration
        try:
            return self._mapper(row)
        except BaseException:
            self.close()
            raise

    @property
    def closed(self) -> bool:
        return self._cursor is None

    def close(self) -> None:
        cur, self._cursor = self._cursor, None
        if cur is None:
            return
        try:
            cur.close()
        except sqlite3.ProgrammingError:
            # 连接已先于游标关闭：语句已随连接一起释放
            pass

    def __enter__(self) -> "ResultSet[R]":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __del__(self):
        if getattr(self, "_cursor", None) is not None:
            self.close()


class Transaction:
    """Explicit transaction on one connection.

    Never auto-commits: leaving the ``with`` block while still active rolls back.
    """

    def __init__(self, conn: sqlite3.Connection, table: str):
        self._conn = conn
        self._table = table
        self.state = "new"

    def _run(self, sql: str, operation: str, write: bool = False) -> None:
        try:
            self._conn.execute(sql)
        except sqlite3.Error as e:
            raise translate(e, operation, self._table, write=write) from e

    def _in_transaction(self, operation: str) -> bool:
        try:
            return self._conn.in_transaction
        except sqlite3.Error as e:
            raise translate(e, operation, self._table) from e

    def _abort(self, cause: BaseException) -> None:
        """回滚一个因 cause 而失败的事务；回滚本身失败只记日志，向上抛出的仍是 cause。"""
        try:
            if self._in_transaction("rollback"):
                self._run("ROLLBACK", "rollback")
        except StoreError as e:
            self.state = "failed"
            logger.warning(f"rollback on {self._table} after {type(cause).__name__} failed: {e}")
            return
        self.state = "rolled_back"

    def begin(self) -> "Transaction":
        if self.state != "new":
            raise TransactionError(f"cannot begin a transaction in state {self.state}", "begin", self._table)
        if self._in_transaction("begin"):
            raise TransactionError("a transaction is already active on this connection", "begin", self._table)
        self._run("BEGIN", "begin")
        self.state = "active"
        return self

    def commit(self) -> None:
        if self.state != "active":
            raise TransactionError(f"cannot commit a transaction in state {self.state}", "commit", self._table)
        try:
            self._run("COMMIT", "commit", write=True)
        except StoreError as e:
            self._abort(e)
            self.state = "failed"
            raise
        self.state = "committed"

    def rollback(self) -> None:
        if self.state != "active":
            raise TransactionError(f"cannot roll back a transaction in state {self.state}", "rollback", self._table)
        try:
            self._run("ROLLBACK", "rollback")
        except StoreError:
            self.state = "failed"
            raise
        self.state = "rolled_back"

    def __enter__(self) -> "Transaction":
        return self.begin()

    def __exit__(self, exc_type, exc, tb):
        if self.state != "active":
            return False
        if exc is None:
            self.rollback()
        else:
            self._abort(exc)
        return False


class EntityStore(Generic[R]):
    """Insert / point lookup / full scan / update / delete for one table."""

    # 子类的额外查询在此按名字声明（固定 SQL 文本），只能通过 _stream/_fetch_one 按名字执行
    statements: ClassVar[Mapping[str, str]] = {}

    def __init__(self, conn: sqlite3.Connection, schema: TableSchema, model: Type[R]):
        fields = set(model.model_fields)
        if fields != set(schema.column_names):
            raise ScanError(
                f"record fields {sorted(fields)} do not match columns {list(schema.column_names)}",
                "bind", schema.name,
            )
        self.conn = conn
        self.schema = schema
        self.model = model

        t = _q(schema.name)
        cols = ", ".join(_q(c) for c in schema.column_names)
        vals = ", ".join(_q(c) for c in schema.value_columns)
        key = _q(schema.key)
        self._insert_sql = f"INSERT INTO {t}({cols}) VALUES({', '.join('?' * len(schema.columns))})"
        self._insert_auto_sql = f"INSERT INTO {t}({vals}) VALUES({', '.join('?' * len(schema.value_columns))})"
        self._select_one_sql = f"SELECT {cols} FROM {t} WHERE {key} = ?"
        self._select_all_sql = f"SELECT {cols} FROM {t}"
        self._select_all_ordered_sql = f"SELECT {cols} FROM {t} ORDER BY {key}"
        self._update_sql = f"UPDATE {t} SET {', '.join(_q(c) + ' = ?' for c in schema.value_columns)} WHERE {key} = ?"
        self._delete_sql = f"DELETE FROM {t} WHERE {key} = ?"
        self._count_sql = f"SELECT COUNT(1) AS c FROM {t}"

    # ---------------- mapping ----------------

    def map_row(self, row: sqlite3.Row, operation: str = "scan") -> R:
        names = tuple(row.keys())
        if names != self.schema.column_names:
            raise ScanError(f"row columns {list(names)} do not match {list(self.schema.column_names)}",
                            operation, self.schema.name)
        data = {}
        for col, value in zip(self.schema.columns, row):
            if value is None and not col.nullable:
                raise ScanError(f"NULL in non-nullable column {col.name}", operation, self.schema.name)
            data[col.name] = value
        try:
            return self.model.model_validate(data)
        except ValidationError as e:
            raise ScanError(str(e), operation, self.schema.name, e) from e

    def _check(self, record: R, operation: str) -> dict:
        if not isinstance(record, self.model):
            raise TypeError(f"{operation} expects {self.model.__name__}, got {type(record).__name__}")
        return record.model_dump()

    def _insert_params(self, data: dict) -> tuple[str, tuple]:
        if self.schema.auto_key and data.get(self.schema.key) is None:
            return self._insert_auto_sql, tuple(to_db_value(data[c]) for c in self.schema.value_columns)
        return self._insert_sql, tuple(to_db_value(data[c]) for c in self.schema.column_names)

    def _generated_id(self, cur: sqlite3.Cursor, data: dict) -> Any:
        if self.schema.auto_key and data.get(self.schema.key) is None:
            return int(cur.lastrowid)
        return data[self.schema.key]

    def _execute(self, sql: str, params: Sequence[Any], operation: str, write: bool = False) -> sqlite3.Cursor:
        try:
            cur = self.conn.cursor()
            # 映射依赖列名，不依赖连接上的 row_factory 设置
            cur.row_factory = sqlite3.Row
            cur.execute(sql, params)
        except sqlite3.Error as e:
            raise translate(e, operation, self.schema.name, write=write) from e
        return cur

    # ---------------- operations ----------------

    def insert(self, record: R) -> Any:
        data = self._check(record, "insert")
        sql, params = self._insert_params(data)
        cur = self._execute(sql, params, "insert", write=True)
        try:
            return self._generated_id(cur, data)
        finally:
            cur.close()

    def insert_many(self, records: Iterable[R]) -> list:
        """同一条语句、同一个游标逐条执行（prepared statement 用法），按顺序返回生成的 id。"""
        ids = []
        try:
            cur = self.conn.cursor()
        except sqlite3.Error as e:
            raise translate(e, "insert_many", self.schema.name, write=True) from e
        try:
            for record in records:
                data = self._check(record, "insert_many")
                sql, params = self._insert_params(data)
                try:
                    cur.execute(sql, params)
                except sqlite3.Error as e:
                    raise translate(e, "insert_many", self.schema.name, write=True) from e
                ids.append(self._generated_id(cur, data))
        finally:
            cur.close()
        return ids

    def find_by_id(self, key: Any) -> R:
        cur = self._execute(self._select_one_sql, (to_db_value(key),), "find_by_id")
        try:
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise translate(e, "find_by_id", self.schema.name) from e
        finally:
            cur.close()
        if row is None:
            raise NotFound(f"no row with {self.schema.key}={key!r}", "find_by_id", self.schema.name)
        return self.map_row(row, "find_by_id")

    def find_all(self, order_by_key: bool = False) -> ResultSet[R]:
        sql = self._select_all_ordered_sql if order_by_key else self._select_all_sql
        return self._open_stream(sql, (), "find_all")

    def _open_stream(self, sql: str, params: Sequence[Any], operation: str) -> ResultSet[R]:
        cur = self._execute(sql, params, operation)
        return ResultSet(cur, lambda row: self.map_row(row, operation), self.schema.name, operation)

    def _statement(self, name: str) -> str:
        try:
            return self.statements[name]
        except KeyError:
            raise KeyError(f"{type(self).__name__} declares no statement {name!r}") from None

    def _stream(self, name: str, params: Sequence[Any]) -> ResultSet[R]:
        """Stream rows of a statement the subclass declared in ``statements``."""
        return self._open_stream(self._statement(name), params, name)

    def _fetch_one(self, name: str, params: Sequence[Any]) -> Optional[sqlite3.Row]:
        cur = self._execute(self._statement(name), params, name)
        try:
            return cur.fetchone()
        except sqlite3.Error as e:
            raise translate(e, name, self.schema.name) from e
        finally:
            cur.close()

    def update(self, record: R) -> None:
        data = self._check(record, "update")
        params = tuple(to_db_value(data[c]) for c in self.schema.value_columns) + (to_db_value(data[self.schema.key]),)
        cur = self._execute(self._update_sql, params, "update", write=True)
        changed = cur.rowcount
        cur.close()
        if changed == 0:
            raise NotFound(f"no row with {self.schema.key}={data[self.schema.key]!r}", "update", self.schema.name)

    def delete(self, key: Any) -> None:
        cur = self._execute(self._delete_sql, (to_db_value(key),), "delete", write=True)
        changed = cur.rowcount
        cur.close()
        if changed == 0:
            raise NotFound(f"no row with {self.schema.key}={key!r}", "delete", self.schema.name)

    def count(self) -> int:
        cur = self._execute(self._count_sql, (), "count")
        try:
            return int(cur.fetchone()[0])
        finally:
            cur.close()

    # ---------------- transactions ----------------

    def transaction(self) -> Transaction:
        return Transaction(self.conn, self.schema.name)

    def run_in_transaction(self, operations: Iterable[Callable[["EntityStore[R]"], Any]]) -> list:
        """
        在同一个事务中依次执行 operations（每个都是接收 store 的可调用对象）。
        全部成功则提交并按顺序返回结果；任何一个失败则回滚并原样抛出该异常。
        """
        results = []
        with self.transaction() as tx:
            for op in operations:
                results.append(op(self))
            tx.commit()
        return results

from __future__ import annotations

# entitystore/errors.py
import sqlite3
from typing import Optional


class StoreError(Exception):
    """所有存储层错误的基类，携带失败的操作名与目标表。"""

    def __init__(self, message: str, operation: str = "", table: str = "", cause: Optional[BaseException] = None):
        self.operation = operation
        self.table = table
        self.cause = cause
        prefix = f"{operation} on {table}: " if operation and table else ""
        super().__init__(f"{prefix}{message}")


class ConnectionError(StoreError):
    """Transport / open / closed-connection failures."""


class WriteFailed(StoreError):
    pass


class ConstraintError(WriteFailed):
    """Uniqueness, NOT NULL or foreign-key violation."""


class WriteConnectionError(WriteFailed, ConnectionError):
    """Connection lost while writing."""


class ScanError(StoreError):
    """Row shape does not match the record it is mapped into."""


class NotFound(StoreError):
    pass


class TransactionError(StoreError):
    pass


_MISSING_COLUMN_MARKERS = ("no such column", "has no column named")


def translate(exc: BaseException, operation: str, table: str, write: bool = False) -> StoreError:
    """把 sqlite3 驱动异常映射为存储层错误类型（不吞掉原始异常，调用方负责 raise ... from）。"""
    msg = str(exc)
    if isinstance(exc, sqlite3.IntegrityError):
        return ConstraintError(msg, operation, table, exc)
    if isinstance(exc, sqlite3.OperationalError) and any(m in msg for m in _MISSING_COLUMN_MARKERS):
        return ScanError(msg, operation, table, exc)
    lost = isinstance(exc, sqlite3.ProgrammingError) and "closed" in msg
    if lost or (isinstance(exc, sqlite3.DatabaseError) and not isinstance(exc, sqlite3.ProgrammingError)):
        if write:
            return WriteConnectionError(msg, operation, table, exc)
        return ConnectionError(msg, operation, table, exc)
    if write:
        return WriteFailed(msg, operation, table, exc)
    return StoreError(msg, operation, table, exc)

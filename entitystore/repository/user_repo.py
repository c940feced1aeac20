from __future__ import annotations

from sqlite3 import Connection
from typing import Optional

from pydantic import BaseModel

from .base import Column, EntityStore, TableSchema


class User(BaseModel):
    username: str
    password: str


USER_SCHEMA = TableSchema(
    name="user",
    key="username",
    columns=(Column("username"), Column("password")),
)

_CREDENTIALS_SQL = "SELECT [username] FROM [user] WHERE [username] = ? AND [password] = ? LIMIT 1"


class UserStore(EntityStore[User]):
    statements = {"find_by_credentials": _CREDENTIALS_SQL}

    def __init__(self, conn: Connection):
        super().__init__(conn, USER_SCHEMA, User)

    def find_by_credentials(self, username: str, password: str) -> Optional[str]:
        """账号密码均以绑定参数传入；注入字符串（如 "admin'; #"）只会被当作字面值匹配。"""
        row = self._fetch_one("find_by_credentials", (username, password))
        return row["username"] if row else None

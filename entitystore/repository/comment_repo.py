from __future__ import annotations

from sqlite3 import Connection
from typing import Optional

from pydantic import BaseModel

from .base import Column, EntityStore, ResultSet, TableSchema


class Comment(BaseModel):
    id: Optional[int] = None  # 由引擎分配（AUTOINCREMENT）
    email: str
    comment: Optional[str] = None


COMMENT_SCHEMA = TableSchema(
    name="comments",
    key="id",
    columns=(Column("id"), Column("email"), Column("comment", nullable=True)),
    auto_key=True,
)

_BY_EMAIL_SQL = "SELECT [id], [email], [comment] FROM [comments] WHERE [email] = ? ORDER BY [id]"


class CommentStore(EntityStore[Comment]):
    statements = {"list_by_email": _BY_EMAIL_SQL}

    def __init__(self, conn: Connection):
        super().__init__(conn, COMMENT_SCHEMA, Comment)

    def list_by_email(self, email: str) -> ResultSet[Comment]:
        return self._stream("list_by_email", (email,))

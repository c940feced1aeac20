from __future__ import annotations

import logging
from typing import Any

from ..config import DBConfig
from ..db import get_conn
from ..logs import LogContext
from ..repository.comment_repo import Comment, CommentStore

logger = logging.getLogger(__name__)


def add_comment(email: str, comment: str | None, log: LogContext, cfg: DBConfig | None = None) -> int:
    with get_conn(cfg) as conn:
        new_id = CommentStore(conn).insert(Comment(email=email, comment=comment))
    log.set_entity("COMMENT", str(new_id))
    return new_id


def add_comments(rows: list[dict], log: LogContext, cfg: DBConfig | None = None) -> list[int]:
    """批量写入（同一语句逐条执行）。非原子：中途失败时之前的行已落库。"""
    records = [Comment.model_validate(r) for r in rows]
    with get_conn(cfg) as conn:
        ids = CommentStore(conn).insert_many(records)
    log.set_after({"ids": ids})
    return ids


def add_comments_atomic(rows: list[dict], log: LogContext, cfg: DBConfig | None = None) -> list[int]:
    """批量写入，全部成功才提交；任何一行失败则整批回滚。"""
    records = [Comment.model_validate(r) for r in rows]
    with get_conn(cfg) as conn:
        store = CommentStore(conn)
        try:
            ids = store.run_in_transaction([lambda s, rec=rec: s.insert(rec) for rec in records])
        except Exception as e:
            logger.warning(f"comment batch rolled back ({len(records)} rows): {e}")
            raise
    log.set_after({"ids": ids})
    return ids


def list_comments(email: str | None = None, cfg: DBConfig | None = None) -> list[dict[str, Any]]:
    with get_conn(cfg) as conn:
        store = CommentStore(conn)
        rows = store.list_by_email(email) if email else store.find_all(order_by_key=True)
        with rows:
            return [r.model_dump() for r in rows]

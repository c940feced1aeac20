from __future__ import annotations

from ..config import DBConfig
from ..db import get_conn
from ..logs import LogContext
from ..repository.user_repo import User, UserStore


def register_user(username: str, password: str, log: LogContext, cfg: DBConfig | None = None) -> str:
    with get_conn(cfg) as conn:
        UserStore(conn).insert(User(username=username, password=password))
    log.set_entity("USER", username)
    return username


def login(username: str, password: str, cfg: DBConfig | None = None) -> bool:
    with get_conn(cfg) as conn:
        return UserStore(conn).find_by_credentials(username, password) is not None

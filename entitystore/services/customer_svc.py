from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from ..config import DBConfig
from ..db import get_conn
from ..logs import LogContext
from ..repository.customer_repo import Customer, CustomerStore

logger = logging.getLogger(__name__)


def create_customer(data: dict, log: LogContext, cfg: DBConfig | None = None) -> dict[str, Any]:
    """新建客户；created_at 未提供时使用当前 UTC 时间。主键重复时抛出 ConstraintError。"""
    payload = dict(data)
    if payload.get("created_at") is None:
        payload["created_at"] = dt.datetime.now(dt.timezone.utc)
    rec = Customer.model_validate(payload)
    with get_conn(cfg) as conn:
        CustomerStore(conn).insert(rec)
    out = rec.model_dump(mode="json")
    log.set_entity("CUSTOMER", rec.id)
    log.set_after(out)
    return out


def get_customer(customer_id: str, cfg: DBConfig | None = None) -> dict[str, Any]:
    with get_conn(cfg) as conn:
        return CustomerStore(conn).find_by_id(customer_id).model_dump(mode="json")


def list_customers(cfg: DBConfig | None = None) -> list[dict[str, Any]]:
    with get_conn(cfg) as conn:
        with CustomerStore(conn).find_all(order_by_key=True) as rows:
            return [r.model_dump(mode="json") for r in rows]


def update_customer(customer_id: str, data: dict, log: LogContext, cfg: DBConfig | None = None) -> dict[str, Any]:
    """读-改-写放在同一个事务里；主键不可修改。"""
    changes = {k: v for k, v in data.items() if k != "id"}
    with get_conn(cfg) as conn:
        store = CustomerStore(conn)
        with store.transaction() as tx:
            before = store.find_by_id(customer_id)
            after = Customer.model_validate({**before.model_dump(), **changes})
            store.update(after)
            tx.commit()
    log.set_entity("CUSTOMER", customer_id)
    log.set_before(before.model_dump(mode="json"))
    log.set_after(after.model_dump(mode="json"))
    return after.model_dump(mode="json")


def delete_customer(customer_id: str, log: LogContext, cfg: DBConfig | None = None) -> None:
    with get_conn(cfg) as conn:
        CustomerStore(conn).delete(customer_id)
    logger.info(f"customer deleted: {customer_id}")
    log.set_entity("CUSTOMER", customer_id)

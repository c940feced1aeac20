from __future__ import annotations

import datetime as dt
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ValidationError

from ..errors import ConstraintError, NotFound, StoreError
from ..logs import LogContext
from ..services.customer_svc import create_customer, delete_customer, get_customer, list_customers, update_customer

router = APIRouter()


class CustomerCreate(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    balance: int = 0
    rating: float = 0.0
    created_at: Optional[dt.datetime] = None
    birth_date: Optional[dt.date] = None
    married: bool = False


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    balance: Optional[int] = None
    rating: Optional[float] = None
    birth_date: Optional[dt.date] = None
    married: Optional[bool] = None


@router.get("/api/customers")
def api_customer_list():
    try:
        return {"items": list_customers()}
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/api/customers/{customer_id}")
def api_customer_get(customer_id: str):
    try:
        return get_customer(customer_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/customers", status_code=201)
def api_customer_create(body: CustomerCreate):
    log = LogContext("CREATE_CUSTOMER")
    log.set_payload(body.model_dump(mode="json"))
    try:
        res = create_customer(body.model_dump(), log)
        log.write("OK")
        return {"message": "ok", "customer": res}
    except ConstraintError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/api/customers/{customer_id}")
def api_customer_update(customer_id: str, body: CustomerUpdate):
    log = LogContext("UPDATE_CUSTOMER")
    # 只提交客户端显式给出的字段，允许把 email/birth_date 置为 null
    changes = body.model_dump(exclude_unset=True)
    log.set_payload({"id": customer_id, **changes})
    try:
        res = update_customer(customer_id, changes, log)
        log.write("OK")
        return {"message": "ok", "customer": res}
    except NotFound as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        log.write("ERROR", "invalid update")
        raise HTTPException(status_code=422, detail=str(e))
    except ConstraintError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/api/customers/{customer_id}")
def api_customer_delete(customer_id: str):
    log = LogContext("DELETE_CUSTOMER")
    try:
        delete_customer(customer_id, log)
        log.write("OK")
        return {"message": "ok"}
    except NotFound as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=500, detail=str(e))

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..errors import ConstraintError, StoreError
from ..logs import LogContext
from ..services.user_svc import login, register_user

router = APIRouter()


class Credentials(BaseModel):
    username: str
    password: str


@router.post("/api/users/register", status_code=201)
def api_user_register(body: Credentials):
    log = LogContext("REGISTER_USER")
    log.set_payload({"username": body.username})
    try:
        register_user(body.username, body.password, log)
        log.write("OK")
        return {"message": "ok", "username": body.username}
    except ConstraintError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=409, detail="username already exists")
    except StoreError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/users/login")
def api_user_login(body: Credentials):
    try:
        ok = login(body.username, body.password)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not ok:
        raise HTTPException(status_code=401, detail="invalid credentials")
    return {"message": "ok", "username": body.username}

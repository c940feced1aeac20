from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..errors import ConstraintError, StoreError
from ..logs import LogContext
from ..services.comment_svc import add_comment, add_comments, add_comments_atomic, list_comments

router = APIRouter()


class CommentCreate(BaseModel):
    email: str
    comment: Optional[str] = None


class CommentBatch(BaseModel):
    items: List[CommentCreate]
    atomic: bool = True


@router.get("/api/comments")
def api_comment_list(email: str | None = None):
    try:
        return {"items": list_comments(email)}
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/comments", status_code=201)
def api_comment_create(body: CommentCreate):
    log = LogContext("CREATE_COMMENT")
    log.set_payload(body.model_dump())
    try:
        new_id = add_comment(body.email, body.comment, log)
        log.write("OK")
        return {"message": "ok", "id": new_id}
    except ConstraintError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/comments/batch", status_code=201)
def api_comment_batch(body: CommentBatch):
    log = LogContext("BATCH_COMMENT")
    log.set_payload({"count": len(body.items), "atomic": body.atomic})
    rows = [it.model_dump() for it in body.items]
    try:
        ids = add_comments_atomic(rows, log) if body.atomic else add_comments(rows, log)
        log.write("OK")
        return {"message": "ok", "ids": ids}
    except ConstraintError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=500, detail=str(e))

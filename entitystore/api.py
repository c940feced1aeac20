"""
FastAPI app entry point aggregating per-table routers under entitystore/routes.
Keep as `uvicorn entitystore.api:app`.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI

from . import PACKAGE_VERSION
from .config import load_config
from .db import ensure_schema, get_conn

logger = logging.getLogger(__name__)

app = FastAPI(title="customer-store-api", version=PACKAGE_VERSION)


@app.on_event("startup")
def on_startup():
    cfg = load_config()
    with get_conn(cfg) as conn:
        ensure_schema(conn)
    logger.info(f"schema ensured at {cfg.db_path}")


# Include routers (split by table)
from .routes import base as base_routes
from .routes import customers as customer_routes
from .routes import comments as comment_routes
from .routes import users as user_routes
from .routes import logs as logs_routes

app.include_router(base_routes.router)
app.include_router(customer_routes.router)
app.include_router(comment_routes.router)
app.include_router(user_routes.router)
app.include_router(logs_routes.router)

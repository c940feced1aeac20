from __future__ import annotations

import datetime as dt
from sqlite3 import Connection
from typing import Optional

from pydantic import BaseModel

from .base import Column, EntityStore, TableSchema


class Customer(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    balance: int = 0
    rating: float = 0.0
    created_at: dt.datetime
    birth_date: Optional[dt.date] = None
    married: bool = False


CUSTOMER_SCHEMA = TableSchema(
    name="customer",
    key="id",
    columns=(
        Column("id"),
        Column("name"),
        Column("email", nullable=True),
        Column("balance"),
        Column("rating"),
        Column("created_at"),
        Column("birth_date", nullable=True),
        Column("married"),
    ),
)


class CustomerStore(EntityStore[Customer]):
    def __init__(self, conn: Connection):
        super().__init__(conn, CUSTOMER_SCHEMA, Customer)

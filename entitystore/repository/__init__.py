"""Repository layer: one EntityStore per table (SQLite).

Keep query text here so services/routes never build SQL strings.
"""
from __future__ import annotations

from .base import Column, EntityStore, ResultSet, TableSchema, Transaction
from .comment_repo import Comment, CommentStore
from .customer_repo import Customer, CustomerStore
from .user_repo import User, UserStore

__all__ = [
    "Column", "EntityStore", "ResultSet", "TableSchema", "Transaction",
    "Comment", "CommentStore", "Customer", "CustomerStore", "User", "UserStore",
]

"""Database layer - engine, base classes, types."""

from approval_kernel.db.base import UUID, Base, UUIDString
from approval_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from approval_kernel.db.types import is_storable_money, round_money, to_decimal

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "UUIDString",
    "UUID",
    "is_storable_money",
    "round_money",
    "to_decimal",
]

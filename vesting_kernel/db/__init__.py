"""Database layer - engine, base classes, column types, immutability listeners."""

from vesting_kernel.db.base import UUID, Base, TrackedBase, UnitAmount, UUIDString
from vesting_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UnitAmount",
    "UUIDString",
    "UUID",
]

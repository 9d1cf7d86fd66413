"""Database layer - engine, base classes, and transaction scopes."""

from donation_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from donation_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    run_in_transaction,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "run_in_transaction",
    "session_scope",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
]

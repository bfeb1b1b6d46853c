"""Database layer - engine, base classes and column types."""

from procurement_kernel.db.base import Base, TrackedBase, UUIDString
from procurement_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from procurement_kernel.db.types import ZERO, round_money, to_decimal

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "ZERO",
    "to_decimal",
    "round_money",
]

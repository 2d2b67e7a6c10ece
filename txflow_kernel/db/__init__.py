"""Database layer - engine, base classes and column types."""

from txflow_kernel.db.base import UUID, Base, UTCDateTime, UUIDString
from txflow_kernel.db.engine import create_tables, get_engine, get_session, session_scope

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "UTCDateTime",
    "UUIDString",
    "UUID",
]

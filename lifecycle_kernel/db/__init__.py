"""Database layer - engine, base classes and column types."""

from lifecycle_kernel.db.base import (
    UUID,
    Base,
    LifecycleEntityBase,
    TrackedBase,
    UTCDateTime,
    UUIDString,
)
from lifecycle_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "LifecycleEntityBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]

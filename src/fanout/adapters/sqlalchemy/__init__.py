"""SQLAlchemy adapter package for fanout."""

from __future__ import annotations

from .mappings import child_table, create_all_tables, metadata, parent_table
from .migrations import upgrade_head
from .session import (
    StartupError,
    configured_engine,
    is_started,
    session_factory,
    shutdown,
    startup,
)
from .store import SqlAlchemyResourceStore

__all__ = [
    "SqlAlchemyResourceStore",
    "StartupError",
    "child_table",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "parent_table",
    "session_factory",
    "shutdown",
    "startup",
    "upgrade_head",
]

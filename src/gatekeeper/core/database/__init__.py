"""Database layer - session management and base models."""

from gatekeeper.core.database.base import Base, RecordMixin
from gatekeeper.core.database.session import create_engine, create_session_factory


__all__ = [
    "Base",
    "RecordMixin",
    "create_engine",
    "create_session_factory",
]

"""Database layer for Chapters.

This module handles database connections, session management, and provides
the SQLAlchemy async engine configuration.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    Base: SQLAlchemy declarative base for all models.
"""

from chapters.database.connection import get_engine, get_session_factory
from chapters.database.models import (
    Base,
    CycleRecord,
    RatingRecord,
    SuggestionRecord,
    TimestampMixin,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "Base",
    "TimestampMixin",
    "CycleRecord",
    "SuggestionRecord",
    "RatingRecord",
]

"""SQLAlchemy ORM models for Chapters.

This module defines the database schema: cycles, suggestions and ratings.

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from chapters.database.models.base import Base, JSONDocument, TimestampMixin
from chapters.database.models.cycle import CycleRecord
from chapters.database.models.rating import RatingRecord
from chapters.database.models.suggestion import SuggestionRecord

__all__ = [
    "Base",
    "JSONDocument",
    "TimestampMixin",
    "CycleRecord",
    "SuggestionRecord",
    "RatingRecord",
]

"""SQLAlchemy declarative base and common column mixins for Chapters.

This module defines the DeclarativeBase class, a TimestampMixin that
provides id, created_at, and updated_at columns shared across all models,
and the portable JSON column type used for document-shaped fields.

Column types are chosen so the same models run on PostgreSQL in production
and on SQLite in tests.

Example:
    >>> class MyModel(TimestampMixin, Base):
    ...     __tablename__ = "my_table"
    ...     name: Mapped[str] = mapped_column(Text, nullable=False)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base for all Chapters models."""

    pass


class TimestampMixin:
    """Mixin providing id (UUID), created_at, and updated_at columns.

    This mixin should be listed before Base in the class hierarchy
    to ensure the columns are included in the model's table definition.

    Attributes:
        id: UUID primary key generated client-side.
        created_at: Timestamp set on row creation.
        updated_at: Timestamp set on row creation and on each modification.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

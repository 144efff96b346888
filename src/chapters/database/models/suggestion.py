"""Suggestion model for Chapters.

Defines the suggestions table. Each suggestion carries its own ranked-choice
tally (``total_points``) and the list of members whose ballots ranked it.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from chapters.database.models.base import Base, JSONDocument, TimestampMixin


class SuggestionRecord(TimestampMixin, Base):
    """A book suggested within a cycle.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        cycle_id: Foreign key to the owning cycle.
        user_id: Member who suggested the book.
        book_name: Book title.
        author: Book author.
        link: Optional link to the book.
        notes: Optional notes.
        total_points: Accumulated ranked-choice points.
        voters: Member ids whose ballots ranked this suggestion.
    """

    __tablename__ = "suggestions"

    cycle_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    book_name: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    voters: Mapped[list[str]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
    )

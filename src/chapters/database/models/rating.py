"""Rating model for Chapters.

Defines the ratings table: one row per member per cycle, recording a 1-5
score for the selected book and whether the member recommends it.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from chapters.database.models.base import Base, TimestampMixin


class RatingRecord(TimestampMixin, Base):
    """A member's rating of a cycle's selected book.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        cycle_id: Foreign key to the owning cycle.
        book_id: Foreign key to the rated suggestion.
        user_id: Member who rated the book.
        rating: Score from 1 to 5.
        recommend: Whether the member recommends the book.
    """

    __tablename__ = "ratings"
    __table_args__ = (UniqueConstraint("cycle_id", "user_id", name="uq_ratings_cycle_user"),)

    cycle_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suggestions.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    recommend: Mapped[bool] = mapped_column(Boolean, nullable=False)

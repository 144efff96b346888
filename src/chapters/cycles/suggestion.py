"""Suggestion and rating snapshots."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chapters.cycles.entity import ensure_utc


class Suggestion(BaseModel):
    """A book proposed within a cycle, with its ranked-choice tally.

    Attributes:
        id: Suggestion identifier.
        cycle_id: Owning cycle.
        user_id: Member who proposed the book.
        book_name: Title of the book.
        author: Author of the book.
        link: Optional link to the book.
        notes: Optional notes from the proposer.
        total_points: Sum of ranked-choice weights received.
        voters: Members whose ballots ranked this suggestion.
        created_at: Creation timestamp.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    cycle_id: uuid.UUID
    user_id: str
    book_name: str
    author: str
    link: str | None = None
    notes: str | None = None
    total_points: int = 0
    voters: tuple[str, ...] = ()
    created_at: datetime | None = None

    @field_validator("created_at")
    @classmethod
    def _normalise_tz(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @property
    def unique_voter_count(self) -> int:
        return len(set(self.voters))


class Rating(BaseModel):
    """A member's rating of the cycle's selected book."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    cycle_id: uuid.UUID
    book_id: uuid.UUID
    user_id: str
    rating: int = Field(ge=1, le=5)
    recommend: bool
    created_at: datetime | None = None


class RatingStats(BaseModel):
    """Aggregate ratings for one cycle."""

    average_rating: float = 0.0
    recommendation_percentage: int = 0
    total_ratings: int = 0


class CycleStats(BaseModel):
    """Participation figures for one cycle."""

    total_suggestions: int = 0
    total_voters: int = 0

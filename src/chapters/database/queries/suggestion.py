"""Suggestion query functions for Chapters.

Provides async functions for creating and listing suggestions and for the
ranked-choice bookkeeping stored on them: adding ballot points, checking
whether a member already voted, and resetting a cycle's votes.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chapters.database.models.suggestion import SuggestionRecord

logger = structlog.get_logger(__name__)


async def create_suggestion(
    session: AsyncSession,
    cycle_id: UUID,
    user_id: str,
    book_name: str,
    author: str,
    link: str | None = None,
    notes: str | None = None,
) -> SuggestionRecord:
    """Create a new suggestion with an empty tally.

    Args:
        session: Active async database session.
        cycle_id: UUID of the owning cycle.
        user_id: Member proposing the book.
        book_name: Book title.
        author: Book author.
        link: Optional link to the book.
        notes: Optional notes.

    Returns:
        The newly created SuggestionRecord instance.
    """
    suggestion = SuggestionRecord(
        cycle_id=cycle_id,
        user_id=user_id,
        book_name=book_name,
        author=author,
        link=link,
        notes=notes,
        total_points=0,
        voters=[],
    )

    async with session.begin():
        session.add(suggestion)
        await session.flush()
        await session.refresh(suggestion)

    logger.info(
        "suggestion_created",
        suggestion_id=str(suggestion.id),
        cycle_id=str(cycle_id),
        user_id=user_id,
    )

    return suggestion


async def get_suggestion(
    session: AsyncSession,
    suggestion_id: UUID,
) -> SuggestionRecord | None:
    """Retrieve a suggestion by ID.

    Args:
        session: Active async database session.
        suggestion_id: UUID of the suggestion to retrieve.

    Returns:
        The SuggestionRecord instance if found, None otherwise.
    """
    stmt = select(SuggestionRecord).where(SuggestionRecord.id == suggestion_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_suggestions(
    session: AsyncSession,
    cycle_id: UUID,
) -> list[SuggestionRecord]:
    """List a cycle's suggestions in the order they were made."""
    stmt = (
        select(SuggestionRecord)
        .where(SuggestionRecord.cycle_id == cycle_id)
        .order_by(SuggestionRecord.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_suggestions(
    session: AsyncSession,
    cycle_id: UUID,
) -> int:
    """Count a cycle's suggestions."""
    stmt = (
        select(func.count())
        .select_from(SuggestionRecord)
        .where(SuggestionRecord.cycle_id == cycle_id)
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def add_ranked_choice_points(
    session: AsyncSession,
    cycle_id: UUID,
    user_id: str,
    weighted_choices: Sequence[tuple[UUID, int]],
) -> int:
    """Apply one ballot's point deltas and register the voter.

    Every ranked suggestion gains its weight and records ``user_id`` among
    its voters. All deltas are written in a single transaction.

    Args:
        session: Active async database session.
        cycle_id: UUID of the cycle the ballot belongs to.
        user_id: Member casting the ballot.
        weighted_choices: Suggestion ids paired with the points they receive.

    Returns:
        Number of suggestions updated.
    """
    points = dict(weighted_choices)

    async with session.begin():
        stmt = (
            select(SuggestionRecord)
            .where(SuggestionRecord.cycle_id == cycle_id)
            .where(SuggestionRecord.id.in_(list(points)))
        )
        result = await session.execute(stmt)
        records = list(result.scalars().all())
        for record in records:
            record.total_points = record.total_points + points[record.id]
            if user_id not in record.voters:
                record.voters = [*record.voters, user_id]
        await session.flush()

    logger.info(
        "ballot_recorded",
        cycle_id=str(cycle_id),
        user_id=user_id,
        suggestions_updated=len(records),
    )

    return len(records)


async def list_voters(
    session: AsyncSession,
    cycle_id: UUID,
) -> set[str]:
    """Union of every member who voted on any of a cycle's suggestions."""
    stmt = select(SuggestionRecord.voters).where(SuggestionRecord.cycle_id == cycle_id)
    result = await session.execute(stmt)
    voters: set[str] = set()
    for row_voters in result.scalars().all():
        voters.update(row_voters or [])
    return voters


async def reset_votes_for_cycle(
    session: AsyncSession,
    cycle_id: UUID,
) -> int:
    """Zero the points and clear the voters of every suggestion in a cycle.

    Args:
        session: Active async database session.
        cycle_id: UUID of the cycle whose votes are reset.

    Returns:
        Number of suggestions reset.
    """
    async with session.begin():
        stmt = (
            update(SuggestionRecord)
            .where(SuggestionRecord.cycle_id == cycle_id)
            .values(total_points=0, voters=[])
        )
        result = await session.execute(stmt)

    reset = result.rowcount or 0

    logger.info("cycle_votes_reset", cycle_id=str(cycle_id), suggestions_reset=reset)

    return reset

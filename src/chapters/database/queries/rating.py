"""Rating query functions for Chapters."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chapters.database.models.rating import RatingRecord

logger = structlog.get_logger(__name__)


async def create_rating(
    session: AsyncSession,
    cycle_id: UUID,
    book_id: UUID,
    user_id: str,
    rating: int,
    recommend: bool,
) -> RatingRecord:
    """Store a member's rating of a cycle's selected book.

    Args:
        session: Active async database session.
        cycle_id: UUID of the cycle being rated.
        book_id: UUID of the selected suggestion.
        user_id: Member submitting the rating.
        rating: Score from 1 to 5.
        recommend: Whether the member recommends the book.

    Returns:
        The newly created RatingRecord instance.
    """
    record = RatingRecord(
        cycle_id=cycle_id,
        book_id=book_id,
        user_id=user_id,
        rating=rating,
        recommend=recommend,
    )

    async with session.begin():
        session.add(record)
        await session.flush()
        await session.refresh(record)

    logger.info(
        "rating_created",
        rating_id=str(record.id),
        cycle_id=str(cycle_id),
        user_id=user_id,
        rating=rating,
    )

    return record


async def get_rating_for_user(
    session: AsyncSession,
    cycle_id: UUID,
    user_id: str,
) -> RatingRecord | None:
    """Retrieve a member's rating for a cycle, if they submitted one."""
    stmt = (
        select(RatingRecord)
        .where(RatingRecord.cycle_id == cycle_id)
        .where(RatingRecord.user_id == user_id)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_ratings(
    session: AsyncSession,
    cycle_id: UUID,
) -> list[RatingRecord]:
    """List every rating submitted for a cycle."""
    stmt = (
        select(RatingRecord)
        .where(RatingRecord.cycle_id == cycle_id)
        .order_by(RatingRecord.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())

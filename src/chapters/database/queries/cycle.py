"""Cycle CRUD query functions for Chapters.

Provides async functions for creating, reading, updating, and deleting
cycle records. Deleting a cycle also removes its suggestions and ratings.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chapters.cycles.phases import CyclePhase, CycleStatus, DurationUnit
from chapters.database.models.cycle import CycleRecord
from chapters.database.models.rating import RatingRecord
from chapters.database.models.suggestion import SuggestionRecord

logger = structlog.get_logger(__name__)


async def create_cycle(
    session: AsyncSession,
    channel_id: str,
    name: str,
    duration_unit: DurationUnit,
    phase_durations: dict[str, int],
    current_phase: CyclePhase = CyclePhase.PENDING,
    phase_timings: dict[str, Any] | None = None,
) -> CycleRecord:
    """Create a new active cycle.

    Args:
        session: Active async database session.
        channel_id: Channel the cycle belongs to.
        name: Display name of the cycle.
        duration_unit: Unit of every phase duration.
        phase_durations: Per-phase amounts keyed by phase name.
        current_phase: Initial phase.
        phase_timings: Initial timing document.

    Returns:
        The newly created CycleRecord instance.
    """
    cycle = CycleRecord(
        channel_id=channel_id,
        name=name,
        status=CycleStatus.ACTIVE,
        current_phase=current_phase,
        duration_unit=duration_unit,
        phase_durations=phase_durations,
        phase_timings=phase_timings or {},
    )

    async with session.begin():
        session.add(cycle)
        await session.flush()
        await session.refresh(cycle)

    logger.info(
        "cycle_created",
        cycle_id=str(cycle.id),
        channel_id=channel_id,
        name=name,
        duration_unit=duration_unit.value,
    )

    return cycle


async def get_cycle(
    session: AsyncSession,
    cycle_id: UUID,
) -> CycleRecord | None:
    """Retrieve a cycle by ID.

    Args:
        session: Active async database session.
        cycle_id: UUID of the cycle to retrieve.

    Returns:
        The CycleRecord instance if found, None otherwise.
    """
    stmt = select(CycleRecord).where(CycleRecord.id == cycle_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_active_cycle_for_channel(
    session: AsyncSession,
    channel_id: str,
) -> CycleRecord | None:
    """Retrieve the active cycle of a channel, if there is one."""
    stmt = (
        select(CycleRecord)
        .where(CycleRecord.channel_id == channel_id)
        .where(CycleRecord.status == CycleStatus.ACTIVE)
        .order_by(CycleRecord.created_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_cycles(
    session: AsyncSession,
    status_filter: CycleStatus | None = None,
    channel_id: str | None = None,
) -> list[CycleRecord]:
    """List cycles with optional filters, oldest first.

    Args:
        session: Active async database session.
        status_filter: Optional status to filter by.
        channel_id: Optional channel to filter by.

    Returns:
        List of matching CycleRecord instances.
    """
    stmt = select(CycleRecord)

    if status_filter is not None:
        stmt = stmt.where(CycleRecord.status == status_filter)

    if channel_id is not None:
        stmt = stmt.where(CycleRecord.channel_id == channel_id)

    stmt = stmt.order_by(CycleRecord.created_at.asc())

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_active_cycles(session: AsyncSession) -> int:
    """Count cycles the scheduler will look at on its next poll."""
    stmt = (
        select(func.count())
        .select_from(CycleRecord)
        .where(CycleRecord.status == CycleStatus.ACTIVE)
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def update_cycle(
    session: AsyncSession,
    cycle_id: UUID,
    **updates: Any,
) -> int:
    """Write the supplied columns of a cycle.

    Args:
        session: Active async database session.
        cycle_id: UUID of the cycle to update.
        **updates: Column names and values to write.

    Returns:
        Number of rows modified (0 if the cycle does not exist).
    """
    async with session.begin():
        stmt = (
            update(CycleRecord)
            .where(CycleRecord.id == cycle_id)
            .values(**updates)
        )
        result = await session.execute(stmt)

    modified = result.rowcount or 0

    logger.info(
        "cycle_updated",
        cycle_id=str(cycle_id),
        fields_updated=list(updates.keys()),
        modified=modified,
    )

    return modified


async def delete_cycle(
    session: AsyncSession,
    cycle_id: UUID,
) -> bool:
    """Delete a cycle together with its suggestions and ratings.

    Args:
        session: Active async database session.
        cycle_id: UUID of the cycle to delete.

    Returns:
        True if the cycle was deleted, False if not found.
    """
    async with session.begin():
        await session.execute(delete(RatingRecord).where(RatingRecord.cycle_id == cycle_id))
        suggestions = await session.execute(
            delete(SuggestionRecord).where(SuggestionRecord.cycle_id == cycle_id)
        )
        result = await session.execute(delete(CycleRecord).where(CycleRecord.id == cycle_id))

    deleted = result.rowcount > 0

    if deleted:
        logger.info(
            "cycle_deleted",
            cycle_id=str(cycle_id),
            suggestions_deleted=suggestions.rowcount,
        )
    else:
        logger.warning("cycle_not_found", cycle_id=str(cycle_id))

    return deleted

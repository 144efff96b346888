"""Repository boundary between the domain and the database.

``CycleRepository`` is the contract the services and the scheduler depend
on; it only ever hands out immutable snapshots (``Cycle``, ``Suggestion``,
``Rating``). ``SqlCycleRepository`` implements it over the SQLAlchemy query
modules, opening a fresh session per call so no state is cached between
polls.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chapters.cycles.entity import Cycle, timings_from_document, timings_to_document
from chapters.cycles.phases import CyclePhase, CycleStatus, PhaseDurations
from chapters.cycles.suggestion import Rating, Suggestion
from chapters.cycles.updates import CycleUpdate
from chapters.database import queries
from chapters.database.models import CycleRecord, RatingRecord, SuggestionRecord


class CycleRepository(Protocol):
    """Persistence operations used by the services and the scheduler."""

    async def list_active_cycles(self) -> list[Cycle]: ...

    async def get_cycle_by_id(self, cycle_id: uuid.UUID) -> Cycle | None: ...

    async def get_active_cycle_for_channel(self, channel_id: str) -> Cycle | None: ...

    async def create_cycle(
        self,
        channel_id: str,
        name: str,
        phase_durations: PhaseDurations,
    ) -> Cycle: ...

    async def update_cycle(self, cycle_id: uuid.UUID, update: CycleUpdate) -> int: ...

    async def delete_cycle(self, cycle_id: uuid.UUID) -> bool: ...

    async def list_suggestions_for_cycle(self, cycle_id: uuid.UUID) -> list[Suggestion]: ...

    async def get_suggestion_by_id(self, suggestion_id: uuid.UUID) -> Suggestion | None: ...

    async def count_suggestions(self, cycle_id: uuid.UUID) -> int: ...

    async def list_voters(self, cycle_id: uuid.UUID) -> set[str]: ...

    async def create_suggestion(
        self,
        cycle_id: uuid.UUID,
        user_id: str,
        book_name: str,
        author: str,
        link: str | None = None,
        notes: str | None = None,
    ) -> Suggestion: ...

    async def add_ranked_choice_points(
        self,
        cycle_id: uuid.UUID,
        user_id: str,
        weighted_choices: Sequence[tuple[uuid.UUID, int]],
    ) -> int: ...

    async def reset_suggestion_votes(self, cycle_id: uuid.UUID) -> int: ...

    async def create_rating(
        self,
        cycle_id: uuid.UUID,
        book_id: uuid.UUID,
        user_id: str,
        rating: int,
        recommend: bool,
    ) -> Rating: ...

    async def get_rating_for_user(self, cycle_id: uuid.UUID, user_id: str) -> Rating | None: ...

    async def list_ratings(self, cycle_id: uuid.UUID) -> list[Rating]: ...


def cycle_from_record(record: CycleRecord) -> Cycle:
    """Build a snapshot from a cycle row."""
    durations = PhaseDurations(unit=record.duration_unit, **(record.phase_durations or {}))
    return Cycle(
        id=record.id,
        channel_id=record.channel_id,
        name=record.name,
        status=record.status,
        current_phase=record.current_phase,
        phase_durations=durations,
        phase_timings=timings_from_document(record.phase_timings),
        selected_book_id=record.selected_book_id,
        created_at=record.created_at,
    )


def suggestion_from_record(record: SuggestionRecord) -> Suggestion:
    """Build a snapshot from a suggestion row."""
    return Suggestion(
        id=record.id,
        cycle_id=record.cycle_id,
        user_id=record.user_id,
        book_name=record.book_name,
        author=record.author,
        link=record.link,
        notes=record.notes,
        total_points=record.total_points,
        voters=tuple(record.voters or ()),
        created_at=record.created_at,
    )


def rating_from_record(record: RatingRecord) -> Rating:
    """Build a snapshot from a rating row."""
    return Rating(
        id=record.id,
        cycle_id=record.cycle_id,
        book_id=record.book_id,
        user_id=record.user_id,
        rating=record.rating,
        recommend=record.recommend,
        created_at=record.created_at,
    )


def update_to_columns(update: CycleUpdate) -> dict[str, Any]:
    """Translate a partial update into column values.

    Raises:
        ValueError: If the update carries no changes.
    """
    changes = update.changed_fields()
    if not changes:
        raise ValueError("Cycle update must change at least one field")

    columns: dict[str, Any] = {}
    for field, value in changes.items():
        match field:
            case "phase_durations":
                columns["duration_unit"] = value.unit
                columns["phase_durations"] = value.amounts()
            case "phase_timings":
                columns["phase_timings"] = timings_to_document(value)
            case "status":
                columns["status"] = CycleStatus(value)
            case "current_phase":
                columns["current_phase"] = CyclePhase(value)
            case _:
                columns[field] = value
    return columns


class SqlCycleRepository:
    """``CycleRepository`` backed by the SQLAlchemy query functions.

    Args:
        session_factory: Factory producing a new AsyncSession per call.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_active_cycles(self) -> list[Cycle]:
        async with self._session_factory() as session:
            records = await queries.list_cycles(session, status_filter=CycleStatus.ACTIVE)
        return [cycle_from_record(r) for r in records]

    async def get_cycle_by_id(self, cycle_id: uuid.UUID) -> Cycle | None:
        async with self._session_factory() as session:
            record = await queries.get_cycle(session, cycle_id)
        return cycle_from_record(record) if record is not None else None

    async def get_active_cycle_for_channel(self, channel_id: str) -> Cycle | None:
        async with self._session_factory() as session:
            record = await queries.get_active_cycle_for_channel(session, channel_id)
        return cycle_from_record(record) if record is not None else None

    async def create_cycle(
        self,
        channel_id: str,
        name: str,
        phase_durations: PhaseDurations,
    ) -> Cycle:
        async with self._session_factory() as session:
            record = await queries.create_cycle(
                session,
                channel_id=channel_id,
                name=name,
                duration_unit=phase_durations.unit,
                phase_durations=phase_durations.amounts(),
            )
        return cycle_from_record(record)

    async def update_cycle(self, cycle_id: uuid.UUID, update: CycleUpdate) -> int:
        columns = update_to_columns(update)
        async with self._session_factory() as session:
            return await queries.update_cycle(session, cycle_id, **columns)

    async def delete_cycle(self, cycle_id: uuid.UUID) -> bool:
        async with self._session_factory() as session:
            return await queries.delete_cycle(session, cycle_id)

    async def list_suggestions_for_cycle(self, cycle_id: uuid.UUID) -> list[Suggestion]:
        async with self._session_factory() as session:
            records = await queries.list_suggestions(session, cycle_id)
        return [suggestion_from_record(r) for r in records]

    async def get_suggestion_by_id(self, suggestion_id: uuid.UUID) -> Suggestion | None:
        async with self._session_factory() as session:
            record = await queries.get_suggestion(session, suggestion_id)
        return suggestion_from_record(record) if record is not None else None

    async def count_suggestions(self, cycle_id: uuid.UUID) -> int:
        async with self._session_factory() as session:
            return await queries.count_suggestions(session, cycle_id)

    async def list_voters(self, cycle_id: uuid.UUID) -> set[str]:
        async with self._session_factory() as session:
            return await queries.list_voters(session, cycle_id)

    async def create_suggestion(
        self,
        cycle_id: uuid.UUID,
        user_id: str,
        book_name: str,
        author: str,
        link: str | None = None,
        notes: str | None = None,
    ) -> Suggestion:
        async with self._session_factory() as session:
            record = await queries.create_suggestion(
                session,
                cycle_id=cycle_id,
                user_id=user_id,
                book_name=book_name,
                author=author,
                link=link,
                notes=notes,
            )
        return suggestion_from_record(record)

    async def add_ranked_choice_points(
        self,
        cycle_id: uuid.UUID,
        user_id: str,
        weighted_choices: Sequence[tuple[uuid.UUID, int]],
    ) -> int:
        async with self._session_factory() as session:
            return await queries.add_ranked_choice_points(
                session, cycle_id, user_id, weighted_choices
            )

    async def reset_suggestion_votes(self, cycle_id: uuid.UUID) -> int:
        async with self._session_factory() as session:
            return await queries.reset_votes_for_cycle(session, cycle_id)

    async def create_rating(
        self,
        cycle_id: uuid.UUID,
        book_id: uuid.UUID,
        user_id: str,
        rating: int,
        recommend: bool,
    ) -> Rating:
        async with self._session_factory() as session:
            record = await queries.create_rating(
                session,
                cycle_id=cycle_id,
                book_id=book_id,
                user_id=user_id,
                rating=rating,
                recommend=recommend,
            )
        return rating_from_record(record)

    async def get_rating_for_user(self, cycle_id: uuid.UUID, user_id: str) -> Rating | None:
        async with self._session_factory() as session:
            record = await queries.get_rating_for_user(session, cycle_id, user_id)
        return rating_from_record(record) if record is not None else None

    async def list_ratings(self, cycle_id: uuid.UUID) -> list[Rating]:
        async with self._session_factory() as session:
            records = await queries.list_ratings(session, cycle_id)
        return [rating_from_record(r) for r in records]

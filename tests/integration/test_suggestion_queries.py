"""Integration tests for suggestion and rating query functions."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chapters.cycles.phases import DurationUnit
from chapters.database.models.cycle import CycleRecord
from chapters.database.models.suggestion import SuggestionRecord
from chapters.database.queries.cycle import create_cycle
from chapters.database.queries.rating import create_rating, get_rating_for_user, list_ratings
from chapters.database.queries.suggestion import (
    add_ranked_choice_points,
    count_suggestions,
    create_suggestion,
    get_suggestion,
    list_suggestions,
    list_voters,
    reset_votes_for_cycle,
)

DURATIONS = {"suggestion": 7, "voting": 7, "reading": 30, "discussion": 7}


async def make_cycle(session: AsyncSession, channel_id: str = "C001") -> CycleRecord:
    return await create_cycle(session, channel_id, "March", DurationUnit.DAYS, DURATIONS)


async def make_books(session: AsyncSession, cycle: CycleRecord) -> list[SuggestionRecord]:
    return [
        await create_suggestion(session, cycle.id, "U1", "Piranesi", "Susanna Clarke"),
        await create_suggestion(session, cycle.id, "U2", "Dune", "Frank Herbert"),
        await create_suggestion(
            session, cycle.id, "U3", "Beloved", "Toni Morrison", link="https://example.org/b"
        ),
    ]


@pytest.mark.asyncio
async def test_create_suggestion(db_session: AsyncSession) -> None:
    """A new suggestion starts with an empty tally."""
    cycle = await make_cycle(db_session)

    suggestion = await create_suggestion(
        db_session, cycle.id, "U1", "Piranesi", "Susanna Clarke", notes="Short"
    )

    assert suggestion.cycle_id == cycle.id
    assert suggestion.total_points == 0
    assert suggestion.voters == []
    assert suggestion.notes == "Short"
    assert suggestion.link is None


@pytest.mark.asyncio
async def test_list_and_count_in_creation_order(db_session: AsyncSession) -> None:
    cycle = await make_cycle(db_session)
    other = await make_cycle(db_session, "C002")
    books = await make_books(db_session, cycle)
    await create_suggestion(db_session, other.id, "U9", "Elsewhere", "Nobody")

    listed = await list_suggestions(db_session, cycle.id)

    assert [s.id for s in listed] == [b.id for b in books]
    assert await count_suggestions(db_session, cycle.id) == 3
    assert await get_suggestion(db_session, books[1].id) is not None
    assert await get_suggestion(db_session, uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_ranked_choice_points(
    db_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Each ballot adds its weights and registers the voter once."""
    cycle = await make_cycle(db_session)
    piranesi, dune, beloved = await make_books(db_session, cycle)

    updated = await add_ranked_choice_points(
        db_session, cycle.id, "U1", [(dune.id, 3), (piranesi.id, 2), (beloved.id, 1)]
    )
    await add_ranked_choice_points(
        db_session, cycle.id, "U2", [(dune.id, 3), (beloved.id, 2), (piranesi.id, 1)]
    )

    assert updated == 3
    async with session_factory() as session:
        stored = {s.book_name: s for s in await list_suggestions(session, cycle.id)}
        voters = await list_voters(session, cycle.id)
    assert stored["Dune"].total_points == 6
    assert stored["Piranesi"].total_points == 3
    assert stored["Beloved"].total_points == 3
    assert stored["Dune"].voters == ["U1", "U2"]
    assert voters == {"U1", "U2"}


@pytest.mark.asyncio
async def test_points_ignore_other_cycles(db_session: AsyncSession) -> None:
    cycle = await make_cycle(db_session)
    other = await make_cycle(db_session, "C002")
    foreign = await create_suggestion(db_session, other.id, "U9", "Elsewhere", "Nobody")

    updated = await add_ranked_choice_points(db_session, cycle.id, "U1", [(foreign.id, 3)])

    assert updated == 0


@pytest.mark.asyncio
async def test_reset_votes_keeps_suggestions(
    db_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    cycle = await make_cycle(db_session)
    piranesi, dune, beloved = await make_books(db_session, cycle)
    await add_ranked_choice_points(
        db_session, cycle.id, "U1", [(dune.id, 3), (piranesi.id, 2), (beloved.id, 1)]
    )

    reset = await reset_votes_for_cycle(db_session, cycle.id)

    assert reset == 3
    async with session_factory() as session:
        stored = await list_suggestions(session, cycle.id)
        voters = await list_voters(session, cycle.id)
    assert len(stored) == 3
    assert all(s.total_points == 0 and s.voters == [] for s in stored)
    assert voters == set()


@pytest.mark.asyncio
async def test_ratings(db_session: AsyncSession) -> None:
    """Ratings are stored per member and listed per cycle."""
    cycle = await make_cycle(db_session)
    book = await create_suggestion(db_session, cycle.id, "U1", "Piranesi", "Susanna Clarke")

    await create_rating(db_session, cycle.id, book.id, "U1", 5, True)
    await create_rating(db_session, cycle.id, book.id, "U2", 3, False)

    ratings = await list_ratings(db_session, cycle.id)
    assert [(r.user_id, r.rating, r.recommend) for r in ratings] == [
        ("U1", 5, True),
        ("U2", 3, False),
    ]
    mine = await get_rating_for_user(db_session, cycle.id, "U2")
    assert mine is not None and mine.rating == 3
    assert await get_rating_for_user(db_session, cycle.id, "U3") is None


@pytest.mark.asyncio
async def test_one_rating_per_member(db_session: AsyncSession) -> None:
    cycle = await make_cycle(db_session)
    book = await create_suggestion(db_session, cycle.id, "U1", "Piranesi", "Susanna Clarke")
    await create_rating(db_session, cycle.id, book.id, "U1", 5, True)

    with pytest.raises(IntegrityError):
        await create_rating(db_session, cycle.id, book.id, "U1", 2, False)

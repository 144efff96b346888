"""Pytest fixtures for integration tests.

Provides async database fixtures for testing query functions, the SQL
repository and the scheduler against an in-memory SQLite database. The
production system uses PostgreSQL; the models only use column types that
behave the same on both.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chapters.database.models.base import Base
from chapters.repository import SqlCycleRepository


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine with every table created.

    StaticPool keeps the single in-memory database alive across sessions.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a new async database session for each test.

    Query functions that write open their own transaction, so a test must
    not read through this session before a later write.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def sql_repository(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlCycleRepository:
    """Repository opening one session per call against the test database."""
    return SqlCycleRepository(session_factory)

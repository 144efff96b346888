"""Database connection management for Chapters.

This module provides factory functions for creating SQLAlchemy async engines
and session factories, configured from the application's DatabaseConfig.

PostgreSQL is reached through asyncpg with connection pooling and a bounded
per-command timeout. Other async drivers (aiosqlite in tests) receive only
the options they understand.

Example usage:
    >>> from chapters.config import DatabaseConfig
    >>> from chapters.database.connection import get_engine, get_session_factory
    >>>
    >>> config = DatabaseConfig(url="postgresql+asyncpg://localhost/chapters")
    >>> engine = get_engine(config)
    >>> SessionFactory = get_session_factory(engine)
    >>>
    >>> async with SessionFactory() as session:
    ...     result = await session.execute(select(CycleRecord))
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from chapters.config import DatabaseConfig


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Pool sizing and the command timeout only apply to the asyncpg driver.

    Args:
        config: Database configuration containing URL, pool settings,
                timeout and SQL echo preference.

    Returns:
        Configured AsyncEngine instance.
    """
    options: dict[str, Any] = {"echo": config.echo}
    if config.url.startswith("postgresql+asyncpg"):
        options.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            connect_args={"command_timeout": config.command_timeout_seconds},
        )
    return create_async_engine(config.url, **options)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    The returned factory produces AsyncSession instances configured with
    expire_on_commit=False so snapshots can be built from rows after the
    transaction has committed.

    Args:
        engine: AsyncEngine to bind sessions to.

    Returns:
        Configured async_sessionmaker that produces AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

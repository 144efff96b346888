"""FastAPI application factory for Chapters.

The web process hosts the phase transition scheduler. On startup the
lifespan wires the database, the repository, the Slack client and the
scheduler together, stores them on ``app.state``, and starts the
in-process timer when ``scheduler.enabled`` is set. Deployments that rely
on an external cron instead disable the timer and call
``/cron/phase-transition``.

Example usage:
    >>> from chapters.config import ChaptersConfig
    >>> from chapters.web.app import create_app
    >>>
    >>> app = create_app(ChaptersConfig())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=3000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chapters import __version__
from chapters.config import ChaptersConfig
from chapters.database.connection import get_engine, get_session_factory
from chapters.integrations.slack import SlackClient
from chapters.logging import get_logger
from chapters.repository import SqlCycleRepository
from chapters.scheduler.phase_transition import PhaseTransitionScheduler
from chapters.web.middleware import RequestLoggingMiddleware
from chapters.web.routes.cron import create_cron_router
from chapters.web.routes.health import create_health_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


def build_slack_client(config: ChaptersConfig) -> SlackClient | None:
    """Build the Slack client, or None while no bot token is configured."""
    if not config.slack.bot_token:
        logger.warning("slack_token_missing")
        return None
    return SlackClient(config.slack)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire the database, Slack client and scheduler for the app's lifetime.

    Args:
        app: FastAPI application instance

    Yields:
        None after startup, stops the scheduler and disposes of the
        database engine on exit
    """
    config: ChaptersConfig = app.state.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine = get_engine(config.database)
    session_factory = get_session_factory(engine)
    repository = SqlCycleRepository(session_factory)

    slack_clients: list[SlackClient] = []

    def notifier_factory() -> SlackClient | None:
        client = build_slack_client(config)
        if client is not None:
            slack_clients.append(client)
        return client

    scheduler = PhaseTransitionScheduler(
        repository,
        config,
        notifier_factory=notifier_factory,
    )

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.repository = repository
    app.state.scheduler = scheduler

    if config.scheduler.enabled:
        await scheduler.start()

    yield

    logger.info("app_shutdown_begin")
    if scheduler.is_running:
        await scheduler.stop()
    for client in slack_clients:
        await client.close()
    await engine.dispose()
    logger.info("database_pool_disposed")


def create_app(config: ChaptersConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Args:
        config: Optional ChaptersConfig. If None, creates default config.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = ChaptersConfig()

    app = FastAPI(
        title="Chapters",
        version=__version__,
        description="Book club cycle scheduler",
        lifespan=lifespan,
    )

    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(create_health_router())
    app.include_router(create_cron_router())

    logger.info(
        "app_created",
        cors_origins=config.web.cors_origins,
        scheduler_enabled=config.scheduler.enabled,
        version=__version__,
    )

    return app

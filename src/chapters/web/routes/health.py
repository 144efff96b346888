"""Health endpoints for Chapters.

``/health/`` answers as long as the process is up. ``/health/ready`` also
queries the database for the number of active cycles and reports what the
phase scheduler last did, so a stalled timer shows up as an old
``last_poll_at`` rather than as silence. It responds 503 while the
database is unreachable.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel

from chapters import __version__
from chapters.database.queries.cycle import count_active_cycles
from chapters.logging import get_logger
from chapters.scheduler.phase_transition import PollReport

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from chapters.scheduler.phase_transition import PhaseTransitionScheduler

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str
    version: str


class SchedulerStatus(BaseModel):
    """What the phase scheduler is doing.

    Attributes:
        state: "running" while the in-process timer polls, "stopped" when
            polls only come from the cron endpoint.
        last_poll_at: When the last poll finished, from either source.
        last_poll: Counts from that poll.
    """

    state: str
    last_poll_at: datetime | None = None
    last_poll: PollReport | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response model.

    Attributes:
        status: "ok" or "unhealthy"
        database: "connected" or "disconnected"
        active_cycles: Cycles the next poll will check, when known
        scheduler: Scheduler state and last poll
    """

    status: str
    database: str
    active_cycles: int | None = None
    scheduler: SchedulerStatus


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory  # type: ignore[return-value]


def scheduler_status(scheduler: PhaseTransitionScheduler | None) -> SchedulerStatus:
    if scheduler is None:
        return SchedulerStatus(state="stopped")
    return SchedulerStatus(
        state="running" if scheduler.is_running else "stopped",
        last_poll_at=scheduler.last_poll_at,
        last_poll=scheduler.last_report,
    )


def create_health_router() -> APIRouter:
    """Create the health router.

    Routes:
        GET /health/ - Liveness
        GET /health/ready - Database and scheduler readiness
    """
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=HealthResponse)
    async def health() -> dict[str, Any]:
        return {"status": "ok", "version": __version__}

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(
        request: Request,
        response: Response,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ReadinessResponse:
        """Count active cycles and report the scheduler's last poll."""
        scheduler = scheduler_status(getattr(request.app.state, "scheduler", None))

        try:
            async with session_factory() as session:
                active = await count_active_cycles(session)
        except Exception as exc:
            logger.warning("readiness_check_failed", error=str(exc))
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return ReadinessResponse(
                status="unhealthy", database="disconnected", scheduler=scheduler
            )

        logger.debug("readiness_check_passed", active_cycles=active)
        return ReadinessResponse(
            status="ok", database="connected", active_cycles=active, scheduler=scheduler
        )

    return router

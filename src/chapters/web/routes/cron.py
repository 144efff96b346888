"""Externally triggered phase check endpoint.

An external cron system calls ``/cron/phase-transition`` to run one poll of
the phase transition scheduler. Callers authenticate with the shared
``cron_secret``, sent either as ``Authorization: Bearer <secret>`` or as an
``X-Cron-Secret`` header. Unauthenticated calls are rejected before the
poll runs.
"""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from chapters.logging import get_logger
from chapters.scheduler.phase_transition import PhaseTransitionScheduler, PollReport

if TYPE_CHECKING:
    from chapters.config import ChaptersConfig

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


class CronResponse(BaseModel):
    """Result of a triggered phase check.

    Attributes:
        success: Whether the poll ran to completion
        message: Human-readable summary
        report: Counts of what the poll did
    """

    success: bool
    message: str
    report: PollReport


def get_scheduler(request: Request) -> PhaseTransitionScheduler:
    """Dependency that retrieves the scheduler from app state."""
    return request.app.state.scheduler  # type: ignore[no-any-return]


def _presented_secret(request: Request) -> str | None:
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip()
    return request.headers.get("X-Cron-Secret")


def verify_cron_secret(request: Request) -> None:
    """Reject the request unless it carries the configured cron secret.

    Raises:
        HTTPException: 503 when no secret is configured, 401 when the
            presented secret is missing or wrong.
    """
    config: ChaptersConfig = request.app.state.config
    expected = config.web.cron_secret
    if not expected:
        logger.error("cron_secret_not_configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cron trigger is not configured",
        )

    presented = _presented_secret(request)
    if presented is None or not hmac.compare_digest(
        presented.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning(
            "cron_request_unauthorized",
            client=request.client.host if request.client else None,
            user_agent=request.headers.get("User-Agent"),
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def create_cron_router() -> APIRouter:
    """Create the cron trigger router.

    Routes:
        GET /cron/phase-transition - Run one phase check
        POST /cron/phase-transition - Run one phase check
    """
    router = APIRouter(prefix="/cron", tags=["cron"])

    @router.api_route(
        "/phase-transition",
        methods=["GET", "POST"],
        response_model=CronResponse,
        dependencies=[Depends(verify_cron_secret)],
    )
    async def phase_transition(
        scheduler: PhaseTransitionScheduler = Depends(get_scheduler),  # noqa: B008
    ) -> CronResponse:
        """Run exactly one phase transition poll."""
        try:
            report = await scheduler.trigger_check()
        except Exception as exc:
            logger.error("cron_phase_check_failed", error=str(exc), exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Phase transition check failed",
            ) from exc

        return CronResponse(
            success=True,
            message="Phase transition check completed",
            report=report,
        )

    return router

"""FastAPI route definitions for Chapters.

This module contains the health check and cron trigger route handlers.
"""

from __future__ import annotations

from chapters.web.routes.cron import CronResponse, create_cron_router, verify_cron_secret
from chapters.web.routes.health import (
    HealthResponse,
    ReadinessResponse,
    create_health_router,
)

__all__ = [
    # Cron
    "CronResponse",
    "create_cron_router",
    "verify_cron_secret",
    # Health
    "HealthResponse",
    "ReadinessResponse",
    "create_health_router",
]

"""Web interface for Chapters.

This module provides the FastAPI application that hosts the in-process
phase scheduler and the cron trigger endpoint used by external schedulers.
"""

from __future__ import annotations

from chapters.web.app import create_app
from chapters.web.middleware import RequestLoggingMiddleware

__all__ = [
    "create_app",
    "RequestLoggingMiddleware",
]

"""Request logging middleware for Chapters.

Every request gets a correlation id (taken from ``X-Correlation-ID`` or
generated) that is bound to the logging context while the request is
handled and echoed back on the response. Health checks are logged at debug
level so frequent liveness checks do not drown out cron triggers.

Example:
    >>> from fastapi import FastAPI
    >>> from chapters.web.middleware import RequestLoggingMiddleware
    >>>
    >>> app = FastAPI()
    >>> app.add_middleware(RequestLoggingMiddleware)
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from chapters.logging import get_logger, set_correlation_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
QUIET_PREFIXES = ("/health",)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request's outcome and duration under a correlation id."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Handle one request with a bound correlation id.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware or route handler

        Returns:
            HTTP response from downstream handlers, carrying the correlation id
        """
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)

        path = request.url.path
        log = logger.debug if path.startswith(QUIET_PREFIXES) else logger.info
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error=str(exc),
                exc_info=True,
            )
            raise
        else:
            log(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            set_correlation_id(None)

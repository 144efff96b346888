"""Structured logging for Chapters.

Every module logs through structlog with snake_case event names and keyword
fields. The pipeline configured here adds:

- the log level, logger name and an ISO timestamp
- the correlation id of the current poll or HTTP request
- cycle and channel identifiers bound while one cycle is processed
- plain JSON-friendly values for UUIDs, phase enums and UTC datetimes

Output goes to stdout or to a size-rotated file, rendered as JSON lines or
for the console. Chatty library loggers such as the HTTP client and the SQL
engine are held at their own level so a DEBUG run stays readable.

Example usage:
    >>> from chapters.config import LoggingConfig
    >>> from chapters.logging import setup_logging, get_logger, correlation_scope
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> with correlation_scope():
    ...     logger.info("phase_transitioned", to_phase=CyclePhase.VOTING)
"""

from __future__ import annotations

import contextvars
import enum
import logging
import logging.handlers
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

import structlog

from chapters.config import LoggingConfig

NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite", "uvicorn.access")

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID for current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Run a block of work under one correlation id.

    An explicit id wins. Otherwise the id already in context is kept, so a
    poll triggered by an HTTP request logs under that request's id, and a
    fresh one is generated only when none is set. The previous value is
    restored on exit.

    Yields:
        The correlation id in effect inside the block.
    """
    effective = correlation_id or _correlation_id.get() or uuid.uuid4().hex
    token = _correlation_id.set(effective)
    try:
        yield effective
    finally:
        _correlation_id.reset(token)


def bind_cycle_context(cycle_id: str, channel_id: str) -> None:
    """Bind cycle and channel identifiers to all subsequent logs.

    Each cycle is processed in its own asyncio task during a poll, so the
    binding stays local to that cycle's work.
    """
    structlog.contextvars.bind_contextvars(cycle_id=cycle_id, channel_id=channel_id)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Processor adding ``correlation_id`` when one is set."""
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.isoformat().replace("+00:00", "Z")
    return value


def normalize_values(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Processor rendering domain values as plain strings.

    Lets callers pass ``cycle.id`` or ``cycle.current_phase`` straight into a
    log call. Only top-level fields are converted.
    """
    for key, value in event_dict.items():
        if key != "event":
            event_dict[key] = _plain(value)
    return event_dict


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(sys.stdout)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


def setup_logging(config: LoggingConfig) -> None:
    """Configure stdlib handlers and the structlog processor chain.

    Calling it again replaces the previous configuration, which the CLI
    relies on when ``--verbose`` raises the level.

    Args:
        config: Logging section of ChaptersConfig
    """
    log_level = getattr(logging, config.level)

    handler = _build_handler(config)
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    library_level = max(log_level, getattr(logging, config.library_level))
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    renderer: Any
    if config.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_correlation_id,
            normalize_values,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

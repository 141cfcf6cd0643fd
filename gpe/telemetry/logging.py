"""Structured logging configuration.

Configures structlog for the engine and its host process.

Features:
- JSON-formatted logs in production (human-readable in dev)
- Goal ID bound into every entry emitted while a goal is being processed
- ISO8601 timestamps in UTC
- Stack traces for exceptions

Log format (production):
    {
        "timestamp": "2026-02-17T10:30:45.123456Z",
        "level": "info",
        "event": "engine.recomputed",
        "logger": "gpe.services.engine",
        "goal_id": "dream-car",
        "percent": 82.0
    }
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from gpe.config import Settings


def configure_logging(
    *,
    json_logs: bool = False,
    log_level: str = "INFO",
) -> None:
    """Configure structured logging for the engine.

    Args:
        json_logs: Use JSON format (True for production, False for dev)
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,  # goal_id and friends
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.RichTracebackFormatter(),
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_settings(settings: Settings) -> None:
    """Configure logging from a ``gpe.config.Settings`` instance."""
    configure_logging(
        json_logs=settings.json_logs,
        log_level=settings.log_level,
    )


# ------------------------------------------------------------------ #
# Context Binding Helpers
# ------------------------------------------------------------------ #


def bind_goal_context(goal_id: str) -> None:
    """Bind goal ID to the log context for the current operation.

    Args:
        goal_id: Goal identifier
    """
    structlog.contextvars.bind_contextvars(goal_id=goal_id)


def unbind_goal_context() -> None:
    """Remove the goal ID bound by :func:`bind_goal_context`."""
    structlog.contextvars.unbind_contextvars("goal_id")


def clear_context() -> None:
    """Clear all context variables (useful for testing)."""
    structlog.contextvars.clear_contextvars()

"""Logging setup for the goal progress engine."""

from gpe.telemetry.logging import (
    bind_goal_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
    unbind_goal_context,
)

__all__ = [
    "configure_logging",
    "configure_logging_from_settings",
    "bind_goal_context",
    "unbind_goal_context",
    "clear_context",
]

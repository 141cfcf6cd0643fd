"""Bounded per-goal event log.

Each goal keeps a strict FIFO window of its most recent events. Appending
past the limit evicts from the head, oldest first, with no priority
retention for any event kind.
"""

from __future__ import annotations

from collections import deque

import structlog

from gpe.models.events import GoalProgressEvent

log = structlog.get_logger(__name__)

MAX_EVENTS_PER_GOAL = 240


class EventLog:
    def __init__(self, max_entries: int = MAX_EVENTS_PER_GOAL) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._events: dict[str, deque[GoalProgressEvent]] = {}

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def append_event(self, event: GoalProgressEvent) -> None:
        window = self._events.get(event.goal_id)
        if window is None:
            window = deque(maxlen=self._max_entries)
            self._events[event.goal_id] = window
        evicting = len(window) == self._max_entries
        window.append(event)
        if evicting:
            log.debug("event_log.evicted_oldest", goal_id=event.goal_id)

    def get_events(self, goal_id: str) -> list[GoalProgressEvent]:
        """Return the goal's events in insertion order (oldest first)."""
        return list(self._events.get(goal_id, ()))

    def goal_ids(self) -> list[str]:
        return list(self._events)

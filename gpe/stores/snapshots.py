"""Day-bucketed progress snapshots.

Snapshots are grouped by ISO day key. Within a day bucket a goal has at
most one entry: a second write for the same goal replaces the first in
place, while a goal's first write of the day is prepended.
"""

from __future__ import annotations

import structlog

from gpe.models.progress import GoalProgressSnapshot

log = structlog.get_logger(__name__)


class SnapshotStore:
    def __init__(self) -> None:
        self._buckets: dict[str, list[GoalProgressSnapshot]] = {}

    def append_snapshot(self, snapshot: GoalProgressSnapshot) -> None:
        bucket = self._buckets.setdefault(snapshot.date, [])
        for index, existing in enumerate(bucket):
            if existing.goal_id == snapshot.goal_id:
                bucket[index] = snapshot
                log.debug("snapshots.replaced", goal_id=snapshot.goal_id, date=snapshot.date)
                return
        bucket.insert(0, snapshot)
        log.debug("snapshots.added", goal_id=snapshot.goal_id, date=snapshot.date)

    def get_snapshots_for_date(self, date: str) -> list[GoalProgressSnapshot]:
        """Return every goal's snapshot for *date*; empty for unknown days."""
        return list(self._buckets.get(date, ()))

    def history_for_goal(self, goal_id: str, limit: int | None = None) -> list[GoalProgressSnapshot]:
        """Return the goal's snapshots oldest day first, for trend charts.

        Args:
            goal_id: Goal to collect.
            limit: Keep only the most recent *limit* days when given.
        """
        series = [
            snapshot
            for date in sorted(self._buckets)
            for snapshot in self._buckets[date]
            if snapshot.goal_id == goal_id
        ]
        if limit is not None:
            series = series[-limit:] if limit > 0 else []
        return series

    def dates(self) -> list[str]:
        return sorted(self._buckets)

"""The engine's owned state, bundled into one explicit context object.

One ``EngineState`` belongs to one engine instance. Nothing here is
module-global, so several engines can coexist in the same process.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from gpe.models.progress import GoalProgressRecord
from gpe.stores.contributions import TrackContributionStore
from gpe.stores.event_log import MAX_EVENTS_PER_GOAL, EventLog
from gpe.stores.registry import GoalRegistry
from gpe.stores.snapshots import SnapshotStore


@dataclass
class EngineState:
    registry: GoalRegistry = field(default_factory=GoalRegistry)
    contributions: TrackContributionStore = field(default_factory=TrackContributionStore)
    progress: dict[str, GoalProgressRecord] = field(default_factory=dict)
    events: EventLog = field(default_factory=EventLog)
    snapshots: SnapshotStore = field(default_factory=SnapshotStore)

    @classmethod
    def create(cls, max_events_per_goal: int = MAX_EVENTS_PER_GOAL) -> EngineState:
        return cls(events=EventLog(max_entries=max_events_per_goal))

    def export(self) -> dict[str, Any]:
        """Serialize every store into JSON-compatible documents.

        Documents are keyed by goal id, and snapshots by day key, matching
        how a host document store addresses them.
        """
        goal_ids = sorted(
            {d.goal_id for d in self.registry.list_definitions(include_archived=True)}
            | set(self.contributions.goal_ids())
            | set(self.events.goal_ids())
        )
        return {
            "definitions": {
                d.goal_id: d.model_dump(mode="json")
                for d in self.registry.list_definitions(include_archived=True)
            },
            "contributions": {
                goal_id: {
                    track_id: [entry.model_dump(mode="json") for entry in entries]
                    for track_id, entries in self.contributions.tracks_for(goal_id).items()
                }
                for goal_id in goal_ids
                if self.contributions.tracks_for(goal_id)
            },
            "progress": {
                goal_id: record.model_dump(mode="json") for goal_id, record in self.progress.items()
            },
            "events": {
                goal_id: [event.model_dump(mode="json") for event in self.events.get_events(goal_id)]
                for goal_id in goal_ids
                if self.events.get_events(goal_id)
            },
            "snapshots": {
                date: [s.model_dump(mode="json") for s in self.snapshots.get_snapshots_for_date(date)]
                for date in self.snapshots.dates()
            },
        }

"""Engine-owned stores.

Public API:
    GoalRegistry            - Goal definitions keyed by goal id
    TrackContributionStore  - Ordered contribution lists per (goal, track)
    EventLog                - Bounded FIFO event window per goal
    SnapshotStore           - One snapshot per (goal, day)
    EngineState             - Context object bundling all of the above
"""

from gpe.stores.contributions import TrackContributionStore, UpsertOutcome
from gpe.stores.event_log import MAX_EVENTS_PER_GOAL, EventLog
from gpe.stores.registry import GoalRegistry
from gpe.stores.snapshots import SnapshotStore
from gpe.stores.state import EngineState

__all__ = [
    "MAX_EVENTS_PER_GOAL",
    "EngineState",
    "EventLog",
    "GoalRegistry",
    "SnapshotStore",
    "TrackContributionStore",
    "UpsertOutcome",
]

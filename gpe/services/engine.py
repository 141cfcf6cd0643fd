"""Goal progress engine: the facade the host talks to.

The engine owns one ``EngineState`` (registry, contribution store, progress
records, event log, snapshots) and is the only writer of it. The host
drives it with explicit calls after it observes changes in its own task,
habit and finance stores:

- ``register_goal`` / ``archive_goal`` from goal CRUD
- ``upsert_track_contributions`` with the full desired list for a track
- ``apply_manual_adjustment`` when the user types in a new value

Every contribution write triggers a recompute, which appends a
``recomputed`` event and upserts today's snapshot for the goal. Unknown
goals yield ``None`` instead of raising, since presentation code may hold
stale goal ids.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

import structlog

from gpe.config import Settings, get_settings
from gpe.models.events import (
    ContributionAppliedPayload,
    EventPayload,
    GoalProgressEvent,
    ManualAdjustmentPayload,
    RecomputedPayload,
)
from gpe.models.goal import FINANCE_TRACK, MANUAL_TRACK, FinanceMode, GoalDefinition, MetricType
from gpe.models.progress import (
    GoalProgressRecord,
    GoalProgressSnapshot,
    GoalTrackContribution,
    day_key,
)
from gpe.services.aggregator import AggregateResult, aggregate
from gpe.services.pacing import summarize_pace
from gpe.stores.state import EngineState

log = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def default_manual_track(definition: GoalDefinition) -> str:
    """Track that receives manual adjustments when the caller names none."""
    if definition.metric_type == MetricType.AMOUNT:
        return FINANCE_TRACK
    if definition.metric_type == MetricType.NONE and definition.tracks:
        return definition.tracks[0].track_id
    return MANUAL_TRACK


class GoalProgressEngine:
    """Reconciles track contributions into per-goal progress."""

    def __init__(
        self,
        settings: Settings | None = None,
        state: EngineState | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialise the engine.

        Args:
            settings: Engine settings; defaults to the cached process settings
            state: Pre-built state, e.g. restored by the host; a fresh one
                sized from *settings* is created when omitted
            clock: Returns the current UTC time; injectable for tests
        """
        self._settings = settings or get_settings()
        self.state = state or EngineState.create(self._settings.event_log_max_entries)
        self._clock = clock or _utcnow

    @property
    def settings(self) -> Settings:
        return self._settings

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------ #
    # Goal registry
    # ------------------------------------------------------------------ #

    def register_goal(self, definition: GoalDefinition) -> GoalProgressRecord:
        """Register or replace a goal definition and recompute its progress."""
        self.state.registry.register_goal(definition)
        return self._recompute(definition)

    def get_definition(self, goal_id: str) -> GoalDefinition | None:
        return self.state.registry.get_definition(goal_id)

    def archive_goal(self, goal_id: str) -> GoalDefinition | None:
        return self.state.registry.archive_goal(goal_id)

    def list_goals(self, include_archived: bool = False) -> list[GoalDefinition]:
        return self.state.registry.list_definitions(include_archived=include_archived)

    # ------------------------------------------------------------------ #
    # Contributions
    # ------------------------------------------------------------------ #

    def upsert_track_contributions(
        self,
        goal_id: str,
        track_id: str,
        entries: Iterable[GoalTrackContribution],
    ) -> GoalProgressRecord | None:
        """Replace a track's contribution list and recompute the goal.

        Returns:
            The new progress record, or None when the goal is not registered
            (nothing is stored in that case)
        """
        if goal_id not in self.state.registry:
            log.warning("engine.upsert_unknown_goal", goal_id=goal_id, track_id=track_id)
            return None

        outcome = self.state.contributions.upsert_track_contributions(goal_id, track_id, entries)
        self.record_event(
            goal_id,
            ContributionAppliedPayload(
                track_id=track_id,
                accepted=outcome.stored,
                duplicates_dropped=outcome.duplicates_dropped,
            ),
        )
        return self.recompute(goal_id)

    def get_track_contributions(self, goal_id: str, track_id: str) -> list[GoalTrackContribution]:
        return self.state.contributions.get_track_contributions(goal_id, track_id)

    def apply_manual_adjustment(
        self,
        goal_id: str,
        value: float,
        *,
        track_id: str | None = None,
        note: str | None = None,
        source_id: str | None = None,
    ) -> GoalProgressRecord | None:
        """Set a goal's measured value to *value* by appending the difference.

        Weight goals record *value* as a new absolute reading. Other metrics
        append ``value - current`` to the target track, so later
        contributions keep accumulating on top of the adjusted value.
        """
        definition = self.state.registry.get_definition(goal_id)
        if definition is None:
            log.warning("engine.manual_adjustment_unknown_goal", goal_id=goal_id)
            return None

        track = track_id or default_manual_track(definition)
        before = aggregate(definition, self.state.contributions.tracks_for(goal_id))
        current = _measured_value(definition, before, track)
        delta = value - current

        if definition.metric_type == MetricType.WEIGHT:
            entry_value = value
        elif _moves_negative(definition, before):
            entry_value = -delta
        else:
            entry_value = delta

        now = self.now()
        entries = self.state.contributions.get_track_contributions(goal_id, track)
        entries.append(
            GoalTrackContribution(
                track_id=track,
                value=entry_value,
                occurred_at=now,
                source_id=source_id,
                note=note,
            )
        )
        self.state.contributions.upsert_track_contributions(goal_id, track, entries)
        self.record_event(
            goal_id,
            ManualAdjustmentPayload(track_id=track, value=value, delta=delta, note=note),
        )
        log.info(
            "engine.manual_adjustment",
            goal_id=goal_id,
            track_id=track,
            value=value,
            delta=delta,
        )
        return self.recompute(goal_id)

    # ------------------------------------------------------------------ #
    # Aggregation
    # ------------------------------------------------------------------ #

    def recompute(self, goal_id: str) -> GoalProgressRecord | None:
        """Fold all tracks of a goal into a fresh progress record.

        Always appends a ``recomputed`` event, even when the percent did not
        change; callers that want less churn must call this less often.
        """
        definition = self.state.registry.get_definition(goal_id)
        if definition is None:
            return None
        return self._recompute(definition)

    def _recompute(self, definition: GoalDefinition) -> GoalProgressRecord:
        goal_id = definition.goal_id
        now = self.now()
        result = aggregate(definition, self.state.contributions.tracks_for(goal_id))

        for rejection in result.rejections:
            self.record_event(
                goal_id,
                ContributionAppliedPayload(
                    track_id=rejection.track_id,
                    status="rejected",
                    value=rejection.value,
                    dedupe_key=rejection.dedupe_key,
                    reason=rejection.reason,
                ),
            )
        if result.rejections:
            log.warning(
                "engine.contributions_rejected",
                goal_id=goal_id,
                count=len(result.rejections),
            )

        pace = summarize_pace(
            definition,
            percent=result.percent,
            remaining=result.remaining,
            deltas=result.progress_deltas,
            now=now,
            default_window_days=self._settings.default_pacing_window_days,
        )
        record = GoalProgressRecord(
            goal_id=goal_id,
            percent=result.percent,
            per_track_breakdown=result.breakdown,
            updated_at=now,
            current=result.current,
            target=result.target,
            remaining=result.remaining,
            status=pace.status,
            pace_actual=pace.pace_actual,
            pace_required=pace.pace_required,
            pace_cadence=definition.cadence,
            eta=pace.eta,
            confidence=pace.confidence,
            rejected_count=len(result.rejections),
        )

        previous = self.state.progress.get(goal_id)
        self.state.progress[goal_id] = record
        self.record_event(
            goal_id,
            RecomputedPayload(
                percent=record.percent,
                previous_percent=previous.percent if previous is not None else None,
                rejected_count=record.rejected_count,
                tracks=tuple(sorted(record.per_track_breakdown)),
            ),
        )
        self.state.snapshots.append_snapshot(
            GoalProgressSnapshot(
                goal_id=goal_id,
                date=day_key(now),
                percent=record.percent,
                current=record.current,
                status=record.status,
                confidence=record.confidence,
            )
        )

        log.info(
            "engine.recomputed",
            goal_id=goal_id,
            percent=round(record.percent, 2),
            status=record.status.value,
        )
        return record

    # ------------------------------------------------------------------ #
    # Read projections
    # ------------------------------------------------------------------ #

    def get_progress(self, goal_id: str) -> GoalProgressRecord | None:
        return self.state.progress.get(goal_id)

    def list_progress(self, include_archived: bool = False) -> list[GoalProgressRecord]:
        return [
            self.state.progress[definition.goal_id]
            for definition in self.list_goals(include_archived=include_archived)
            if definition.goal_id in self.state.progress
        ]

    def append_event(self, event: GoalProgressEvent) -> None:
        """Append a prebuilt event, e.g. one replayed from the host's own log."""
        self.state.events.append_event(event)

    def get_events(self, goal_id: str) -> list[GoalProgressEvent]:
        return self.state.events.get_events(goal_id)

    def get_snapshots_for_date(self, date: str) -> list[GoalProgressSnapshot]:
        return self.state.snapshots.get_snapshots_for_date(date)

    def get_snapshot_history(self, goal_id: str, limit: int | None = None) -> list[GoalProgressSnapshot]:
        return self.state.snapshots.history_for_goal(goal_id, limit=limit)

    def export_state(self) -> dict[str, Any]:
        """JSON-compatible dump of all stores for the host to persist."""
        return self.state.export()

    # ------------------------------------------------------------------ #
    # Event recording
    # ------------------------------------------------------------------ #

    def record_event(self, goal_id: str, payload: EventPayload) -> GoalProgressEvent:
        """Append an event with *payload* to the goal's log, stamped with the engine clock."""
        event = GoalProgressEvent(goal_id=goal_id, payload=payload, timestamp=self.now())
        self.state.events.append_event(event)
        return event


def _measured_value(definition: GoalDefinition, result: AggregateResult, track_id: str) -> float:
    if definition.metric_type == MetricType.NONE:
        breakdown = result.breakdown.get(track_id)
        if breakdown is not None:
            return breakdown.raw_value
        config = definition.track_config(track_id)
        return config.baseline if config is not None else 0.0
    return result.current


def _moves_negative(definition: GoalDefinition, result: AggregateResult) -> bool:
    """True when progress on an amount goal is currently carried by negative sums."""
    if definition.metric_type != MetricType.AMOUNT:
        return False
    if definition.finance_mode in (None, FinanceMode.SAVE):
        return False
    finance = result.breakdown.get(FINANCE_TRACK)
    return finance is not None and finance.raw_value < 0

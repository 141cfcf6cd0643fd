"""Signal ingestion.

Adapts facts the host observes in its task, habit, focus and ledger stores
into track contributions. Each handler appends one contribution to the
matching track, keyed by a dedupe key derived from the source record, and
submits the full list through ``upsert_track_contributions``. Delivering
the same signal twice therefore leaves progress unchanged. Habit marks are
the exception: a later mark for the same habit and day replaces the earlier
one.

The engine never subscribes to those stores itself; the host calls these
handlers after it sees a change.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from gpe.models.goal import (
    FINANCE_TRACK,
    FOCUS_TRACK,
    HABITS_TRACK,
    TASKS_TRACK,
    MetricType,
)
from gpe.models.progress import GoalProgressRecord, GoalTrackContribution, day_key
from gpe.models.signals import (
    FinanceSignal,
    FocusSessionSignal,
    HabitMarkedSignal,
    ManualUpdateSignal,
    TaskCompletedSignal,
)
from gpe.services.engine import GoalProgressEngine

log = structlog.get_logger(__name__)

# (amount, from_currency, to_currency) -> converted amount
RateLookup = Callable[[float, str, str], float]


class SignalIngestor:
    """Routes host signals into the engine's track contribution store."""

    def __init__(self, engine: GoalProgressEngine, rate_lookup: RateLookup | None = None) -> None:
        """Initialise the ingestor.

        Args:
            engine: Engine receiving the contributions
            rate_lookup: Converts amounts between currencies. Without one,
                finance amounts are taken as-is whatever their currency.
        """
        self._engine = engine
        self._rate_lookup = rate_lookup

    def handle_finance_transaction(self, signal: FinanceSignal) -> GoalProgressRecord | None:
        definition = self._engine.get_definition(signal.goal_id)
        if definition is None:
            return None

        signed = signal.amount if signal.direction == "inflow" else -signal.amount
        value = self._convert(signed, signal.currency, definition.currency)
        return self._submit(
            signal.goal_id,
            signal.track_id or FINANCE_TRACK,
            GoalTrackContribution(
                track_id=signal.track_id or FINANCE_TRACK,
                value=value,
                occurred_at=signal.timestamp,
                dedupe_key=_key("txn", signal.source_id),
                source_id=signal.source_id,
            ),
        )

    def handle_task_completed(self, signal: TaskCompletedSignal) -> GoalProgressRecord | None:
        """Count a completed task, and complete its milestone if it names one.

        The milestone must be declared on one of the goal's tracks; its
        weight is added to that track once, however often the task is
        reported.
        """
        definition = self._engine.get_definition(signal.goal_id)
        if definition is None:
            return None

        if definition.metric_type == MetricType.DURATION:
            value = signal.duration_minutes or 0.0
        else:
            value = 1.0
        track_id = signal.track_id or TASKS_TRACK
        record = self._submit(
            signal.goal_id,
            track_id,
            GoalTrackContribution(
                track_id=track_id,
                value=value,
                occurred_at=signal.timestamp,
                dedupe_key=_key("task", signal.task_id),
                source_id=signal.task_id,
            ),
        )
        if signal.milestone_id is None:
            return record

        found = definition.find_milestone(signal.milestone_id)
        if found is None:
            log.debug(
                "ingest.unknown_milestone",
                goal_id=signal.goal_id,
                milestone_id=signal.milestone_id,
            )
            return record
        track, milestone = found
        return self._submit(
            signal.goal_id,
            track.track_id,
            GoalTrackContribution(
                track_id=track.track_id,
                value=milestone.weight,
                occurred_at=signal.timestamp,
                dedupe_key=_key("milestone", milestone.milestone_id),
                source_id=milestone.milestone_id,
            ),
        )

    def handle_habit_marked(self, signal: HabitMarkedSignal) -> GoalProgressRecord | None:
        """Record a habit check-in.

        Each habit has one entry per day; a later mark on the same day
        (e.g. unchecking, then checking again) replaces the earlier one.
        """
        definition = self._engine.get_definition(signal.goal_id)
        if definition is None:
            return None

        if definition.metric_type == MetricType.DURATION:
            value = (signal.minutes or 0.0) if signal.completed else 0.0
        else:
            value = 1.0 if signal.completed else 0.0
        track_id = signal.track_id or HABITS_TRACK
        return self._submit(
            signal.goal_id,
            track_id,
            GoalTrackContribution(
                track_id=track_id,
                value=value,
                occurred_at=signal.timestamp,
                dedupe_key=_key("habit", f"{signal.habit_id}:{day_key(signal.timestamp)}"),
                source_id=signal.habit_id,
            ),
            replace=True,
        )

    def handle_focus_session(self, signal: FocusSessionSignal) -> GoalProgressRecord | None:
        if self._engine.get_definition(signal.goal_id) is None:
            return None

        track_id = signal.track_id or FOCUS_TRACK
        return self._submit(
            signal.goal_id,
            track_id,
            GoalTrackContribution(
                track_id=track_id,
                value=signal.minutes,
                occurred_at=signal.timestamp,
                dedupe_key=_key("focus", signal.session_id),
                source_id=signal.session_id,
            ),
        )

    def handle_manual_update(self, signal: ManualUpdateSignal) -> GoalProgressRecord | None:
        return self._engine.apply_manual_adjustment(
            signal.goal_id,
            signal.value,
            track_id=signal.track_id,
            note=signal.note,
            source_id=signal.source_id,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _submit(
        self,
        goal_id: str,
        track_id: str,
        contribution: GoalTrackContribution,
        *,
        replace: bool = False,
    ) -> GoalProgressRecord | None:
        """Append *contribution* to its track and resubmit the full list.

        An entry with the same dedupe key makes this a no-op, unless
        *replace* is set and the values differ: then the new entry takes the
        old one's place.
        """
        entries = self._engine.get_track_contributions(goal_id, track_id)
        key = contribution.dedupe_key
        existing = next((entry for entry in entries if key is not None and entry.dedupe_key == key), None)
        if existing is not None:
            if not replace or existing.value == contribution.value:
                log.debug(
                    "ingest.duplicate_signal",
                    goal_id=goal_id,
                    track_id=track_id,
                    dedupe_key=key,
                )
                return self._engine.get_progress(goal_id)
            entries = [entry for entry in entries if entry.dedupe_key != key]
        entries.append(contribution)
        return self._engine.upsert_track_contributions(goal_id, track_id, entries)

    def _convert(self, amount: float, from_currency: str, to_currency: str | None) -> float:
        if not to_currency or from_currency == to_currency or self._rate_lookup is None:
            return amount
        return self._rate_lookup(amount, from_currency, to_currency)


def _key(prefix: str, source_id: str | None) -> str | None:
    return f"{prefix}:{source_id}" if source_id else None

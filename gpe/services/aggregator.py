"""Progress aggregation: fold every track of a goal into one percent.

Everything in this module is a pure function of a goal definition and its
contribution lists. The engine calls :func:`aggregate` on every recompute
and turns the result into a ``GoalProgressRecord`` plus audit events.

Fold policy by metric type:

- ``amount``: only the ``finance`` track counts. ``save`` measures the
  signed sum against ``|target - initial|``; ``spend`` measures the sum's
  magnitude (outflows arrive negative); ``debt_close`` measures the paid
  magnitude against the opening balance (``initial_value`` when positive,
  otherwise ``target_value``).
- ``count`` / ``duration`` / ``custom``: ``current = initial + sum`` over
  all tracks.
- ``weight``: ``current`` is the latest accepted reading across tracks.
- ``none``: weighted mean of the tracks declared in ``definition.tracks``.

A zero range (``target == initial``) yields 100 once any nonzero accepted
contribution exists and 0 before, never a division by zero.

Habit tracks also report a streak, and milestone tracks the ids of the
milestones completed so far, in their ``TrackBreakdown``.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime

from gpe.models.goal import (
    FINANCE_TRACK,
    HABITS_TRACK,
    MILESTONES_TRACK,
    FinanceMode,
    GoalDefinition,
    MetricType,
)
from gpe.models.progress import GoalTrackContribution, StreakMeta, TrackBreakdown, day_key

NON_FINITE_REASON = "non-finite value"


@dataclass(frozen=True)
class RejectedContribution:
    track_id: str
    value: float
    reason: str
    dedupe_key: str | None = None


@dataclass(frozen=True)
class AggregateResult:
    """Outcome of one fold.

    ``progress_deltas`` are the accepted contributions that measure progress,
    re-signed so positive always means "toward the target". It is None when
    pace is meaningless for the metric (absolute readings, multi-track
    means).
    """

    percent: float
    current: float
    target: float
    remaining: float
    breakdown: dict[str, TrackBreakdown]
    rejections: list[RejectedContribution] = field(default_factory=list)
    progress_deltas: list[tuple[datetime, float]] | None = None
    has_data: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def range_percent(current: float, initial: float, target: float, has_data: bool) -> float:
    """Percent of the way from *initial* to *target*, clamped to [0, 100]."""
    span = target - initial
    if span == 0:
        return 100.0 if has_data else 0.0
    return clamp01((current - initial) / span) * 100.0


def split_valid(
    track_id: str,
    entries: Sequence[GoalTrackContribution],
) -> tuple[list[GoalTrackContribution], list[RejectedContribution]]:
    valid: list[GoalTrackContribution] = []
    rejected: list[RejectedContribution] = []
    for entry in entries:
        if math.isfinite(entry.value):
            valid.append(entry)
        else:
            rejected.append(
                RejectedContribution(
                    track_id=track_id,
                    value=entry.value,
                    reason=NON_FINITE_REASON,
                    dedupe_key=entry.dedupe_key,
                )
            )
    return valid, rejected


def _latest(entries: Sequence[GoalTrackContribution]) -> GoalTrackContribution | None:
    if not entries:
        return None
    # sorted() is stable, so among equal timestamps the last submitted wins
    return sorted(entries, key=lambda entry: entry.occurred_at)[-1]


def _sum(entries: Sequence[GoalTrackContribution]) -> float:
    return math.fsum(entry.value for entry in entries)


def _has_progress(entries: Sequence[GoalTrackContribution]) -> bool:
    return any(entry.value != 0 for entry in entries)


def streak_meta(entries: Sequence[GoalTrackContribution], grace_days: int = 0) -> StreakMeta:
    """Walk marked days in order and measure the run of completed ones.

    A day counts as completed when any of its marks is positive. Days with
    no mark at all are skipped; an explicit miss breaks the run unless
    grace days remain.
    """
    days: dict[str, datetime | None] = {}
    for entry in entries:
        key = day_key(entry.occurred_at)
        completed_at = days.get(key)
        if entry.value > 0 and (completed_at is None or entry.occurred_at > completed_at):
            days[key] = entry.occurred_at
        else:
            days.setdefault(key, None)

    current = best = grace_used = 0
    last_completion: datetime | None = None
    for key in sorted(days):
        completed_at = days[key]
        if completed_at is not None:
            current += 1
            best = max(best, current)
            last_completion = completed_at
        elif grace_used < grace_days:
            grace_used += 1
        else:
            current = 0
            grace_used = 0
    return StreakMeta(current=current, best=best, grace_used=grace_used, last_completion=last_completion)


def completed_milestones(entries: Sequence[GoalTrackContribution]) -> list[str]:
    """Milestone ids with a positive contribution, in first-completion order."""
    done: list[str] = []
    for entry in entries:
        if entry.source_id and entry.value > 0 and entry.source_id not in done:
            done.append(entry.source_id)
    return done


def _annotate_tracks(
    definition: GoalDefinition,
    breakdown: Mapping[str, TrackBreakdown],
    valid: Mapping[str, list[GoalTrackContribution]],
) -> dict[str, TrackBreakdown]:
    annotated: dict[str, TrackBreakdown] = {}
    for track_id, track in breakdown.items():
        config = definition.track_config(track_id)
        entries = valid.get(track_id, [])
        update: dict[str, object] = {}
        if track_id == HABITS_TRACK or (config is not None and config.grace_days > 0):
            update["streak"] = streak_meta(entries, config.grace_days if config is not None else 0)
        if track_id == MILESTONES_TRACK or (config is not None and config.milestones):
            update["completed_milestones"] = completed_milestones(entries)
        annotated[track_id] = track.model_copy(update=update) if update else track
    return annotated


# ---------------------------------------------------------------------------
# Per-metric folds
# ---------------------------------------------------------------------------


def _fold_amount(
    definition: GoalDefinition,
    valid: Mapping[str, list[GoalTrackContribution]],
    rejected_counts: Mapping[str, int],
) -> AggregateResult:
    finance = valid.get(FINANCE_TRACK, [])
    total = _sum(finance)
    has_data = _has_progress(finance)
    mode = definition.finance_mode or FinanceMode.SAVE

    if mode == FinanceMode.DEBT_CLOSE:
        balance = definition.initial_value if definition.initial_value > 0 else definition.target_value
        balance = abs(balance)
        moved = abs(total)
        target = balance
    else:
        target = abs(definition.target_value - definition.initial_value)
        moved = total if mode == FinanceMode.SAVE else abs(total)

    if target == 0:
        percent = 100.0 if has_data else 0.0
    else:
        percent = clamp01(moved / target) * 100.0

    # debt payments and spend outflows may arrive with either sign
    sign = 1.0 if mode == FinanceMode.SAVE or total >= 0 else -1.0
    deltas = [(entry.occurred_at, entry.value * sign) for entry in finance]

    breakdown = {
        track_id: TrackBreakdown(
            track_id=track_id,
            raw_value=_sum(entries),
            percent=percent if track_id == FINANCE_TRACK else 0.0,
            accepted=len(entries),
            rejected=rejected_counts.get(track_id, 0),
            counted=track_id == FINANCE_TRACK,
        )
        for track_id, entries in valid.items()
    }
    return AggregateResult(
        percent=percent,
        current=moved,
        target=target,
        remaining=max(0.0, target - moved),
        breakdown=breakdown,
        progress_deltas=deltas,
        has_data=has_data,
    )


def _fold_additive(
    definition: GoalDefinition,
    valid: Mapping[str, list[GoalTrackContribution]],
    rejected_counts: Mapping[str, int],
) -> AggregateResult:
    initial = definition.initial_value
    target = definition.target_value
    direction = 1.0 if target >= initial else -1.0

    all_entries = [entry for entries in valid.values() for entry in entries]
    has_data = _has_progress(all_entries)
    current = initial + _sum(all_entries)

    breakdown = {
        track_id: TrackBreakdown(
            track_id=track_id,
            raw_value=_sum(entries),
            percent=range_percent(initial + _sum(entries), initial, target, _has_progress(entries)),
            accepted=len(entries),
            rejected=rejected_counts.get(track_id, 0),
            counted=True,
        )
        for track_id, entries in valid.items()
    }
    progressed = (current - initial) * direction
    return AggregateResult(
        percent=range_percent(current, initial, target, has_data),
        current=current,
        target=target,
        remaining=max(0.0, abs(target - initial) - progressed),
        breakdown=breakdown,
        progress_deltas=[(entry.occurred_at, entry.value * direction) for entry in all_entries],
        has_data=has_data,
    )


def _fold_weight(
    definition: GoalDefinition,
    valid: Mapping[str, list[GoalTrackContribution]],
    rejected_counts: Mapping[str, int],
) -> AggregateResult:
    initial = definition.initial_value
    target = definition.target_value

    latest = _latest([entry for entries in valid.values() for entry in entries])
    current = latest.value if latest is not None else initial
    has_data = latest is not None

    breakdown: dict[str, TrackBreakdown] = {}
    for track_id, entries in valid.items():
        track_latest = _latest(entries)
        reading = track_latest.value if track_latest is not None else initial
        breakdown[track_id] = TrackBreakdown(
            track_id=track_id,
            raw_value=reading,
            percent=range_percent(reading, initial, target, track_latest is not None),
            accepted=len(entries),
            rejected=rejected_counts.get(track_id, 0),
            counted=True,
        )
    return AggregateResult(
        percent=range_percent(current, initial, target, has_data),
        current=current,
        target=target,
        remaining=abs(target - current),
        breakdown=breakdown,
        progress_deltas=None,
        has_data=has_data,
    )


def _fold_declared_tracks(
    definition: GoalDefinition,
    valid: Mapping[str, list[GoalTrackContribution]],
    rejected_counts: Mapping[str, int],
) -> AggregateResult:
    breakdown: dict[str, TrackBreakdown] = {}
    weighted = 0.0
    total_weight = 0.0
    for config in definition.tracks:
        entries = valid.get(config.track_id, [])
        current = config.baseline + _sum(entries)
        percent = range_percent(current, config.baseline, config.target, _has_progress(entries))
        weighted += percent * config.weight
        total_weight += config.weight
        breakdown[config.track_id] = TrackBreakdown(
            track_id=config.track_id,
            raw_value=current,
            percent=percent,
            accepted=len(entries),
            rejected=rejected_counts.get(config.track_id, 0),
            counted=True,
        )

    for track_id, entries in valid.items():
        if track_id not in breakdown:
            breakdown[track_id] = TrackBreakdown(
                track_id=track_id,
                raw_value=_sum(entries),
                percent=0.0,
                accepted=len(entries),
                rejected=rejected_counts.get(track_id, 0),
                counted=False,
            )

    percent = weighted / total_weight if total_weight > 0 else 0.0
    primary = definition.tracks[0] if definition.tracks else None
    if primary is not None:
        current = breakdown[primary.track_id].raw_value
        target = primary.target
        primary_entries = valid.get(primary.track_id, [])
    else:
        current = target = 0.0
        primary_entries = []
    return AggregateResult(
        percent=max(0.0, min(100.0, percent)),
        current=current,
        target=target,
        remaining=max(0.0, target - current),
        breakdown=breakdown,
        progress_deltas=[(entry.occurred_at, entry.value) for entry in primary_entries],
        has_data=any(_has_progress(entries) for entries in valid.values()),
    )


_FOLDS = {
    MetricType.AMOUNT: _fold_amount,
    MetricType.COUNT: _fold_additive,
    MetricType.DURATION: _fold_additive,
    MetricType.CUSTOM: _fold_additive,
    MetricType.WEIGHT: _fold_weight,
    MetricType.NONE: _fold_declared_tracks,
}


def aggregate(
    definition: GoalDefinition,
    contributions_by_track: Mapping[str, Sequence[GoalTrackContribution]],
) -> AggregateResult:
    """Fold all tracks of *definition* into one progress result.

    Non-finite contributions are left out of the fold and reported in
    ``rejections``; they never raise.
    """
    valid: dict[str, list[GoalTrackContribution]] = {}
    rejections: list[RejectedContribution] = []
    rejected_counts: dict[str, int] = {}
    for track_id, entries in contributions_by_track.items():
        kept, rejected = split_valid(track_id, entries)
        valid[track_id] = kept
        rejections.extend(rejected)
        if rejected:
            rejected_counts[track_id] = len(rejected)

    result = _FOLDS[definition.metric_type](definition, valid, rejected_counts)
    return replace(
        result,
        breakdown=_annotate_tracks(definition, result.breakdown, valid),
        rejections=rejections,
    )

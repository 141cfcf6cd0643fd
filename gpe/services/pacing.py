"""Pace, ETA, confidence and status for a goal's progress record.

Works on the progress deltas produced by the aggregator, i.e. accepted
contributions re-signed so positive values move toward the target.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from gpe.models.goal import GoalDefinition, PaceCadence
from gpe.models.progress import ProgressStatus

_CADENCE_DAYS = {
    PaceCadence.DAILY: 1,
    PaceCadence.WEEKLY: 7,
    PaceCadence.MONTHLY: 30,
    PaceCadence.NONE: 0,
}

# Floor for the number of periods left before a deadline, so pace_required
# stays finite in the last moments before it.
_MIN_PERIODS = 0.1


@dataclass(frozen=True)
class PaceSummary:
    pace_actual: float | None
    pace_required: float | None
    eta: datetime | None
    confidence: float
    status: ProgressStatus


def cadence_to_days(cadence: PaceCadence) -> int:
    return _CADENCE_DAYS[cadence]


def compute_pace_actual(
    deltas: Sequence[tuple[datetime, float]] | None,
    cadence: PaceCadence,
    window_days: int,
    now: datetime,
) -> float | None:
    """Average progress per cadence period over the last *window_days*."""
    if deltas is None or cadence == PaceCadence.NONE:
        return None
    window_start = now - timedelta(days=window_days)
    in_window = [value for moment, value in deltas if moment >= window_start]
    if not in_window:
        return 0.0
    cadence_days = cadence_to_days(cadence) or window_days
    return math.fsum(in_window) / window_days * cadence_days


def compute_pace_required(
    remaining: float,
    cadence: PaceCadence,
    deadline: datetime | None,
    now: datetime,
) -> float | None:
    if deadline is None or cadence == PaceCadence.NONE:
        return None
    if deadline <= now:
        return None
    period = timedelta(days=cadence_to_days(cadence) or 30)
    periods_left = (deadline - now) / period if remaining > 0 else 0.0
    return remaining / max(periods_left, _MIN_PERIODS)


def compute_eta(
    remaining: float,
    cadence: PaceCadence,
    pace_actual: float | None,
    deadline: datetime | None,
    now: datetime,
) -> datetime | None:
    """Projected completion date at the current pace.

    Falls back to the deadline when there is no positive pace to project.
    """
    if remaining <= 0:
        return now
    if not pace_actual or pace_actual <= 0 or cadence == PaceCadence.NONE:
        return deadline
    periods = remaining / pace_actual
    return now + timedelta(days=periods * (cadence_to_days(cadence) or 30))


def daily_series(deltas: Sequence[tuple[datetime, float]], cadence: PaceCadence) -> list[float]:
    """Sum deltas per calendar day and keep the most recent cadence-worth of days."""
    if cadence == PaceCadence.NONE or not deltas:
        return []
    buckets: dict[str, float] = {}
    for moment, value in deltas:
        key = moment.date().isoformat()
        buckets[key] = buckets.get(key, 0.0) + value
    keep = cadence_to_days(cadence) or 7
    return [buckets[key] for key in sorted(buckets)][-keep:]


def series_confidence(values: Sequence[float]) -> float:
    """Confidence in [0, 1] from the steadiness of a series.

    One minus the coefficient of variation; 0.4 for an empty or zero-mean
    series and 0.6 for a single point.
    """
    if not values:
        return 0.4
    if len(values) == 1:
        return 0.6
    mean = math.fsum(values) / len(values)
    if mean == 0:
        return 0.4
    variance = math.fsum((value - mean) ** 2 for value in values) / len(values)
    cov = math.sqrt(variance) / abs(mean)
    return max(0.0, min(1.0, 1 - min(cov, 1.0)))


def resolve_status(
    percent: float,
    pace_required: float | None,
    pace_actual: float | None,
) -> ProgressStatus:
    if percent >= 100:
        return ProgressStatus.ON_TRACK
    if pace_required is None or pace_actual is None:
        if percent >= 85:
            return ProgressStatus.ON_TRACK
        if percent >= 65:
            return ProgressStatus.AT_RISK
        return ProgressStatus.BEHIND
    if pace_actual <= 0:
        return ProgressStatus.BEHIND
    ratio = pace_actual / max(pace_required, 0.0001)
    if ratio >= 0.95:
        return ProgressStatus.ON_TRACK
    if ratio >= 0.6:
        return ProgressStatus.AT_RISK
    return ProgressStatus.BEHIND


def summarize_pace(
    definition: GoalDefinition,
    percent: float,
    remaining: float,
    deltas: Sequence[tuple[datetime, float]] | None,
    now: datetime,
    default_window_days: int = 30,
) -> PaceSummary:
    cadence = definition.cadence
    window = definition.pacing_window_days or default_window_days
    pace_actual = compute_pace_actual(deltas, cadence, window, now)
    pace_required = compute_pace_required(remaining, cadence, definition.deadline, now)
    return PaceSummary(
        pace_actual=pace_actual,
        pace_required=pace_required,
        eta=compute_eta(remaining, cadence, pace_actual, definition.deadline, now),
        confidence=series_confidence(daily_series(deltas or [], cadence)),
        status=resolve_status(percent, pace_required, pace_actual),
    )

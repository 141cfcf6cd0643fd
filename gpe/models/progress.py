"""Contribution facts and the progress projections derived from them."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gpe.models.goal import PaceCadence, ensure_utc


class GoalTrackContribution(BaseModel):
    """One fact from a track that moves a goal's measured value.

    ``value`` is a delta for additive metrics and an absolute reading for
    ``weight`` goals. Non-finite values are accepted here and rejected by
    the aggregator so a bad reading never blocks a whole submission.
    """

    model_config = ConfigDict(frozen=True)

    track_id: str
    value: float
    occurred_at: datetime
    dedupe_key: str | None = None
    source_id: str | None = None
    note: str | None = None

    @field_validator("occurred_at")
    @classmethod
    def _normalize_occurred_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ProgressStatus(StrEnum):
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BEHIND = "behind"


class StreakMeta(BaseModel):
    """Run of consecutive completed days on a habit track."""

    current: int = 0
    best: int = 0
    grace_used: int = 0
    last_completion: datetime | None = None


class TrackBreakdown(BaseModel):
    """Explains how a single track contributes to a goal's percent."""

    track_id: str
    raw_value: float  # sum of deltas, or latest reading for weight goals
    percent: float  # the track's own normalized progress, 0-100
    accepted: int
    rejected: int
    counted: bool  # False when the metric policy ignores this track
    streak: StreakMeta | None = None  # habit tracks only
    completed_milestones: list[str] = Field(default_factory=list)


class GoalProgressRecord(BaseModel):
    """Latest derived progress of a goal. Written only by the aggregator."""

    goal_id: str
    percent: float = Field(ge=0, le=100)
    per_track_breakdown: dict[str, TrackBreakdown] = Field(default_factory=dict)
    updated_at: datetime

    current: float = 0.0
    target: float = 0.0
    remaining: float = 0.0
    status: ProgressStatus = ProgressStatus.BEHIND
    pace_actual: float | None = None
    pace_required: float | None = None
    pace_cadence: PaceCadence = PaceCadence.MONTHLY
    eta: datetime | None = None
    confidence: float = 0.4
    rejected_count: int = 0


class GoalProgressSnapshot(BaseModel):
    """Frozen progress of a goal for one calendar day."""

    model_config = ConfigDict(frozen=True)

    goal_id: str
    date: str  # ISO day key, YYYY-MM-DD
    percent: float
    current: float = 0.0
    status: ProgressStatus = ProgressStatus.BEHIND
    confidence: float = 0.4

    @property
    def on_track(self) -> bool:
        return self.status == ProgressStatus.ON_TRACK


def day_key(moment: datetime) -> str:
    """Return the ISO calendar-day key for *moment* (UTC)."""
    return ensure_utc(moment).astimezone(UTC).date().isoformat()

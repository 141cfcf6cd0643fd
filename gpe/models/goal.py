"""Goal definitions.

A ``GoalDefinition`` is the declarative description of a goal: how its
progress is measured, what it aims for, and which financial entities it is
tied to. Definitions are written by goal CRUD in the host and read by every
engine component.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class MetricType(StrEnum):
    """How a goal's measured value is expressed."""

    AMOUNT = "amount"  # money, folded from the finance track
    WEIGHT = "weight"  # absolute readings, latest wins
    COUNT = "count"
    DURATION = "duration"  # minutes
    CUSTOM = "custom"
    NONE = "none"  # no single metric, weighted mean of declared tracks


class FinanceMode(StrEnum):
    """Direction of an amount goal. Ignored for other metric types."""

    SAVE = "save"
    SPEND = "spend"
    DEBT_CLOSE = "debt_close"


class GoalCategory(StrEnum):
    FINANCIAL = "financial"
    PERSONAL = "personal"
    CAREER = "career"
    HEALTH = "health"
    EDUCATION = "education"


class PaceCadence(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Well-known track ids. Hosts may submit any other string as a custom track.
FINANCE_TRACK = "finance"
TASKS_TRACK = "tasks"
HABITS_TRACK = "habits"
FOCUS_TRACK = "focus"
MANUAL_TRACK = "manual"
MILESTONES_TRACK = "milestones"


class MilestoneConfig(BaseModel):
    """A named checkpoint on a milestone track, completed by a task."""

    model_config = ConfigDict(frozen=True)

    milestone_id: str
    title: str = ""
    weight: float = Field(default=1.0, ge=0)


class TrackConfig(BaseModel):
    """Per-track target used by goals that combine several tracks.

    ``milestones`` turns the track into a milestone track: each completed
    milestone contributes its weight. ``grace_days`` is the number of missed
    days a habit streak on this track survives.
    """

    model_config = ConfigDict(frozen=True)

    track_id: str
    target: float
    baseline: float = 0.0
    weight: float = Field(default=1.0, ge=0)
    milestones: tuple[MilestoneConfig, ...] = ()
    grace_days: int = Field(default=0, ge=0)

    def milestone(self, milestone_id: str) -> MilestoneConfig | None:
        for milestone in self.milestones:
            if milestone.milestone_id == milestone_id:
                return milestone
        return None


class GoalDefinition(BaseModel):
    """Declarative definition of a goal, keyed by ``goal_id``.

    A goal with ``finance_mode`` set is expected to resolve to exactly one
    financial counterpart (a budget or a debt). That is checked lazily by
    the finance bridge at the point of use, never here.
    """

    model_config = ConfigDict(frozen=True)

    goal_id: str
    metric_type: MetricType = MetricType.NONE
    finance_mode: FinanceMode | None = None
    target_value: float = 0.0
    initial_value: float = 0.0
    currency: str | None = None
    linked_budget_id: str | None = None
    linked_debt_id: str | None = None

    title: str = ""
    category: GoalCategory = GoalCategory.PERSONAL
    unit: str = ""
    cadence: PaceCadence = PaceCadence.MONTHLY
    deadline: datetime | None = None
    pacing_window_days: int | None = Field(default=None, ge=1)
    tracks: tuple[TrackConfig, ...] = ()
    archived: bool = False

    @field_validator("deadline")
    @classmethod
    def _normalize_deadline(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @property
    def display_title(self) -> str:
        return self.title or self.goal_id

    def track_config(self, track_id: str) -> TrackConfig | None:
        for track in self.tracks:
            if track.track_id == track_id:
                return track
        return None

    def find_milestone(self, milestone_id: str) -> tuple[TrackConfig, MilestoneConfig] | None:
        """Return the declared track holding *milestone_id* and the milestone itself."""
        for track in self.tracks:
            milestone = track.milestone(milestone_id)
            if milestone is not None:
                return track, milestone
        return None

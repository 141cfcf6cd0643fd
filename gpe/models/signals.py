"""Raw facts observed by the host in the task, habit, focus and ledger stores.

The host builds one of these after it sees a change and hands it to
``SignalIngestor``; the ingestor turns it into a track contribution.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(UTC)


class _Signal(BaseModel):
    goal_id: str
    timestamp: datetime = Field(default_factory=_now)
    track_id: str | None = None  # overrides the default track for the signal
    source_id: str | None = None


class FinanceSignal(_Signal):
    amount: float
    currency: str
    direction: Literal["inflow", "outflow"] = "inflow"


class TaskCompletedSignal(_Signal):
    task_id: str
    duration_minutes: float | None = None
    milestone_id: str | None = None  # completes this milestone when the goal declares it


class HabitMarkedSignal(_Signal):
    habit_id: str
    completed: bool
    minutes: float | None = None


class FocusSessionSignal(_Signal):
    session_id: str
    minutes: float


class ManualUpdateSignal(_Signal):
    value: float
    note: str | None = None

"""Progress events recorded in the per-goal audit log.

Each event carries a payload whose shape is fixed by its ``kind``. The
payload union is discriminated on ``kind`` so serialized events round-trip
to the right payload class.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class EventKind(StrEnum):
    CONTRIBUTION_APPLIED = "contribution-applied"
    RECOMPUTED = "recomputed"
    MANUAL_ADJUSTMENT = "manual-adjustment"
    FINANCE_TRANSACTION = "finance-transaction"
    BUDGET_LINKED = "budget-linked"


class ContributionAppliedPayload(BaseModel):
    """A track submission was stored, or one of its entries was rejected."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["contribution-applied"] = "contribution-applied"
    track_id: str
    status: Literal["applied", "rejected"] = "applied"
    accepted: int = 0
    duplicates_dropped: int = 0
    value: float | None = None
    dedupe_key: str | None = None
    reason: str | None = None


class RecomputedPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["recomputed"] = "recomputed"
    percent: float
    previous_percent: float | None = None
    rejected_count: int = 0
    tracks: tuple[str, ...] = ()


class ManualAdjustmentPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["manual-adjustment"] = "manual-adjustment"
    track_id: str
    value: float
    delta: float
    note: str | None = None


class FinanceTransactionPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["finance-transaction"] = "finance-transaction"
    transaction_id: str
    transaction_type: str
    amount: float
    currency: str | None
    account_id: str
    budget_id: str | None = None
    debt_id: str | None = None
    event_type: str = "goal-progress"


class BudgetLinkedPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["budget-linked"] = "budget-linked"
    budget_id: str
    previous_goal_id: str | None = None


EventPayload = Annotated[
    ContributionAppliedPayload
    | RecomputedPayload
    | ManualAdjustmentPayload
    | FinanceTransactionPayload
    | BudgetLinkedPayload,
    Field(discriminator="kind"),
]


class GoalProgressEvent(BaseModel):
    """Immutable entry of a goal's event log."""

    model_config = ConfigDict(frozen=True)

    goal_id: str
    payload: EventPayload
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def kind(self) -> EventKind:
        return EventKind(self.payload.kind)

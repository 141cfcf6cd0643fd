"""Domain models for the goal progress engine.

Import all models here so callers can use ``from gpe.models import ...``.
"""

from gpe.models.events import (
    BudgetLinkedPayload,
    ContributionAppliedPayload,
    EventKind,
    FinanceTransactionPayload,
    GoalProgressEvent,
    ManualAdjustmentPayload,
    RecomputedPayload,
)
from gpe.models.goal import (
    FINANCE_TRACK,
    FOCUS_TRACK,
    HABITS_TRACK,
    MANUAL_TRACK,
    MILESTONES_TRACK,
    TASKS_TRACK,
    FinanceMode,
    GoalCategory,
    GoalDefinition,
    MetricType,
    MilestoneConfig,
    PaceCadence,
    TrackConfig,
)
from gpe.models.ledger import (
    Account,
    Budget,
    Debt,
    DebtDirection,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from gpe.models.progress import (
    GoalProgressRecord,
    GoalProgressSnapshot,
    GoalTrackContribution,
    ProgressStatus,
    StreakMeta,
    TrackBreakdown,
    day_key,
)
from gpe.models.signals import (
    FinanceSignal,
    FocusSessionSignal,
    HabitMarkedSignal,
    ManualUpdateSignal,
    TaskCompletedSignal,
)

__all__ = [
    "FINANCE_TRACK",
    "FOCUS_TRACK",
    "HABITS_TRACK",
    "MANUAL_TRACK",
    "MILESTONES_TRACK",
    "TASKS_TRACK",
    "Account",
    "Budget",
    "BudgetLinkedPayload",
    "ContributionAppliedPayload",
    "Debt",
    "DebtDirection",
    "EventKind",
    "FinanceMode",
    "FinanceSignal",
    "FinanceTransactionPayload",
    "FocusSessionSignal",
    "GoalCategory",
    "GoalDefinition",
    "GoalProgressEvent",
    "GoalProgressRecord",
    "GoalProgressSnapshot",
    "GoalTrackContribution",
    "HabitMarkedSignal",
    "ManualAdjustmentPayload",
    "ManualUpdateSignal",
    "MetricType",
    "MilestoneConfig",
    "PaceCadence",
    "ProgressStatus",
    "RecomputedPayload",
    "StreakMeta",
    "TaskCompletedSignal",
    "TrackBreakdown",
    "TrackConfig",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "day_key",
]

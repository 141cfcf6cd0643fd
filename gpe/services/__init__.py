"""Engine services.

Public API:
    GoalProgressEngine        - Facade owning the engine state
    aggregate                 - Pure fold of a goal's tracks into progress
    SignalIngestor            - Adapts host signals into track contributions
    FinanceBridge             - Creates goal-linked ledger transactions
    build_goals_widget_state  - Home dashboard projection
"""

from gpe.services.aggregator import AggregateResult, RejectedContribution, aggregate
from gpe.services.engine import GoalProgressEngine
from gpe.services.finance_bridge import BridgeStatus, FinanceBridge, FinanceBridgeResult
from gpe.services.home_bridge import GoalsWidgetState, HomeGoalItem, build_goals_widget_state
from gpe.services.ingest import RateLookup, SignalIngestor

__all__ = [
    "AggregateResult",
    "BridgeStatus",
    "FinanceBridge",
    "FinanceBridgeResult",
    "GoalProgressEngine",
    "GoalsWidgetState",
    "HomeGoalItem",
    "RateLookup",
    "RejectedContribution",
    "SignalIngestor",
    "aggregate",
    "build_goals_widget_state",
]

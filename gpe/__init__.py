"""Goal Progress Engine.

Reconciles task, habit and finance signals into one explainable progress
percentage per goal, with a bounded audit log, per-day snapshots and an
optional bridge into the finance ledger.
"""

from gpe.config import Settings, get_settings
from gpe.services import (
    BridgeStatus,
    FinanceBridge,
    FinanceBridgeResult,
    GoalProgressEngine,
    SignalIngestor,
    build_goals_widget_state,
)

__version__ = "0.1.0"

__all__ = [
    "BridgeStatus",
    "FinanceBridge",
    "FinanceBridgeResult",
    "GoalProgressEngine",
    "Settings",
    "SignalIngestor",
    "build_goals_widget_state",
    "get_settings",
]

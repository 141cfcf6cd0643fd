"""Exception types shared across the engine.

Most failure states are returned as values (``None`` for unknown goals,
``FinanceBridgeResult`` statuses for unresolvable links). Exceptions are
reserved for collaborator contracts that cannot be expressed that way.
"""

from __future__ import annotations


class GoalProgressError(Exception):
    """Base class for all engine exceptions."""


class LedgerRejectedError(GoalProgressError):
    """Raised by a ledger port when it refuses to create a transaction."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

"""Ledger port: the engine's view of the external finance subsystem.

The finance bridge is the only engine component that talks to the ledger,
and the only writes it may perform are ``create_transaction`` and the
goal-link patch through ``update_budget``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from gpe.models.ledger import Account, Budget, Debt, Transaction, TransactionDraft


class LedgerPort(ABC):
    """Abstract interface all ledger adapters must implement."""

    @abstractmethod
    async def create_transaction(self, draft: TransactionDraft) -> Transaction:
        """Persist *draft* and return the created record.

        Raises:
            LedgerRejectedError: If the ledger refuses the transaction.
        """

    @abstractmethod
    async def get_budget(self, budget_id: str) -> Budget | None:
        """Return the budget, or None when it does not exist."""

    @abstractmethod
    async def get_debt(self, debt_id: str) -> Debt | None:
        """Return the debt, or None when it does not exist."""

    @abstractmethod
    async def find_budgets_by_goal(self, goal_id: str) -> list[Budget]:
        """Return budgets whose ``linked_goal_id`` is *goal_id*, in ledger order."""

    @abstractmethod
    async def find_debts_by_goal(self, goal_id: str) -> list[Debt]:
        """Return debts whose ``linked_goal_id`` is *goal_id*, in ledger order."""

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """Return all accounts in ledger order."""

    @abstractmethod
    async def update_budget(self, budget_id: str, patch: dict[str, Any]) -> Budget | None:
        """Apply *patch* to a budget. Returns the updated budget or None if missing."""

"""Dict-backed ledger for tests and single-process hosts.

Keeps budgets, debts and accounts in insertion order so "first matching"
lookups in the finance bridge are deterministic. Does NOT persist across
process restarts.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog

from gpe.errors import LedgerRejectedError
from gpe.ledger.port import LedgerPort
from gpe.models.ledger import Account, Budget, Debt, Transaction, TransactionDraft

log = structlog.get_logger(__name__)


class InMemoryLedger(LedgerPort):
    def __init__(
        self,
        *,
        budgets: list[Budget] | None = None,
        debts: list[Debt] | None = None,
        accounts: list[Account] | None = None,
    ) -> None:
        self._budgets: dict[str, Budget] = {b.budget_id: b for b in budgets or []}
        self._debts: dict[str, Debt] = {d.debt_id: d for d in debts or []}
        self._accounts: dict[str, Account] = {a.account_id: a for a in accounts or []}
        self.transactions: list[Transaction] = []
        self.budget_updates: list[tuple[str, dict[str, Any]]] = []

    # ------------------------------------------------------------------ #
    # Seeding helpers
    # ------------------------------------------------------------------ #

    def add_budget(self, budget: Budget) -> None:
        self._budgets[budget.budget_id] = budget

    def add_debt(self, debt: Debt) -> None:
        self._debts[debt.debt_id] = debt

    def add_account(self, account: Account) -> None:
        self._accounts[account.account_id] = account

    # ------------------------------------------------------------------ #
    # LedgerPort
    # ------------------------------------------------------------------ #

    async def create_transaction(self, draft: TransactionDraft) -> Transaction:
        if draft.account_id not in self._accounts:
            raise LedgerRejectedError(f"Unknown account '{draft.account_id}'")
        transaction = Transaction(
            transaction_id=f"txn_{uuid.uuid4().hex[:12]}",
            **draft.model_dump(),
        )
        self.transactions.append(transaction)
        log.debug(
            "ledger.memory.transaction_created",
            transaction_id=transaction.transaction_id,
            amount=transaction.amount,
            currency=transaction.currency,
        )
        return transaction

    async def get_budget(self, budget_id: str) -> Budget | None:
        return self._budgets.get(budget_id)

    async def get_debt(self, debt_id: str) -> Debt | None:
        return self._debts.get(debt_id)

    async def find_budgets_by_goal(self, goal_id: str) -> list[Budget]:
        return [b for b in self._budgets.values() if b.linked_goal_id == goal_id]

    async def find_debts_by_goal(self, goal_id: str) -> list[Debt]:
        return [d for d in self._debts.values() if d.linked_goal_id == goal_id]

    async def list_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    async def update_budget(self, budget_id: str, patch: dict[str, Any]) -> Budget | None:
        budget = self._budgets.get(budget_id)
        if budget is None:
            return None
        updated = budget.model_copy(update=patch)
        self._budgets[budget_id] = updated
        self.budget_updates.append((budget_id, dict(patch)))
        return updated

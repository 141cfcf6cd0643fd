"""Ledger entities as seen by the finance bridge.

These mirror the records of the external ledger subsystem. The engine
never owns them; it reads budgets, debts and accounts and asks the ledger
to create transactions or patch a budget's goal link.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class DebtDirection(StrEnum):
    THEY_OWE_ME = "they_owe_me"  # counterparty owes the user
    I_OWE = "i_owe"


class Account(BaseModel):
    account_id: str
    currency: str
    name: str = ""


class Budget(BaseModel):
    budget_id: str
    name: str = ""
    currency: str | None = None
    account_id: str | None = None
    linked_goal_id: str | None = None
    is_archived: bool = False


class Debt(BaseModel):
    debt_id: str
    direction: DebtDirection = DebtDirection.I_OWE
    currency: str | None = None
    counterparty_name: str = ""
    funding_account_id: str | None = None
    linked_goal_id: str | None = None


class TransactionDraft(BaseModel):
    """Fields submitted to ``LedgerPort.create_transaction``."""

    type: TransactionType
    amount: float = Field(gt=0)
    currency: str
    account_id: str
    goal_id: str | None = None
    budget_id: str | None = None
    debt_id: str | None = None
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    date: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Transaction(TransactionDraft):
    transaction_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

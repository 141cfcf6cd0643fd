"""Finance bridge: turns goal progress into a ledger transaction.

Given a goal and an amount, the bridge resolves exactly one financial
counterpart (a budget or a debt), picks a currency and an account, and asks
the ledger to record the transaction. Every failure is reported through
``FinanceBridgeResult.status``; nothing here raises into the caller.

Resolution order, first match wins (budget checked before debt each step):

1. explicit ``budget_id`` / ``debt_id`` arguments
2. the goal's own ``linked_budget_id`` / ``linked_debt_id``
3. the first budget, then the first debt, whose ``linked_goal_id`` is the goal

Ids the ledger does not know are skipped rather than treated as errors.

Direction: a debt where the counterparty owes the user records ``income``;
everything else records ``expense``. This decides the ledger sign and is
relied on by downstream balance math.

Currency: explicit -> budget -> goal -> base currency -> account.
Account: explicit -> budget's account -> first account in the resolved
currency -> first account (best effort).

When a budget was used and is not yet linked to the goal, the bridge sets
its ``linked_goal_id``. Re-linking an already linked budget is a no-op. A
failed link is logged and reported as ``budget_linked=False``; the
transaction still counts as created.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum

import structlog

from gpe.errors import LedgerRejectedError
from gpe.ledger.port import LedgerPort
from gpe.models.events import BudgetLinkedPayload, FinanceTransactionPayload
from gpe.models.goal import GoalDefinition
from gpe.models.ledger import (
    Account,
    Budget,
    Debt,
    DebtDirection,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from gpe.services.engine import GoalProgressEngine

log = structlog.get_logger(__name__)


class BridgeStatus(StrEnum):
    CREATED = "created"
    NO_TARGET = "no_target"  # neither a budget nor a debt resolved
    NO_ACCOUNT = "no_account"
    INVALID_AMOUNT = "invalid_amount"
    GOAL_NOT_FOUND = "goal_not_found"
    REJECTED = "rejected"  # the ledger refused or failed before a transaction existed


@dataclass(frozen=True)
class FinanceBridgeResult:
    status: BridgeStatus
    transaction: Transaction | None = None
    budget: Budget | None = None
    debt: Debt | None = None
    budget_linked: bool = False
    error: str | None = None

    @property
    def created(self) -> bool:
        return self.status == BridgeStatus.CREATED


def resolve_direction(debt: Debt | None) -> TransactionType:
    if debt is not None and debt.direction == DebtDirection.THEY_OWE_ME:
        return TransactionType.INCOME
    return TransactionType.EXPENSE


class FinanceBridge:
    """Creates goal-linked ledger transactions on explicit request."""

    def __init__(self, engine: GoalProgressEngine, ledger: LedgerPort) -> None:
        """Initialise the bridge.

        Args:
            engine: Engine whose goals and event log the bridge uses
            ledger: Ledger adapter that owns budgets, debts and accounts
        """
        self._engine = engine
        self._ledger = ledger

    async def create_goal_transaction(
        self,
        goal_id: str,
        amount: float,
        *,
        budget_id: str | None = None,
        debt_id: str | None = None,
        account_id: str | None = None,
        currency: str | None = None,
        note: str | None = None,
        event_type: str = "goal-progress",
    ) -> FinanceBridgeResult:
        """Record *amount* against the goal's financial counterpart.

        Args:
            goal_id: Goal the money moved for
            amount: Positive amount of money moved
            budget_id: Explicit budget target, overrides the goal's links
            debt_id: Explicit debt target, overrides the goal's links
            account_id: Explicit account to book against
            currency: Explicit transaction currency
            note: Transaction description; a default is built from the goal
            event_type: Tag such as ``goal-progress`` or ``goal-completed``

        Returns:
            FinanceBridgeResult whose status tells whether a transaction was
            created and, if not, why
        """
        definition = self._engine.get_definition(goal_id)
        if definition is None:
            log.info("finance_bridge.goal_not_found", goal_id=goal_id)
            return FinanceBridgeResult(status=BridgeStatus.GOAL_NOT_FOUND)

        if not math.isfinite(amount) or amount <= 0:
            log.info("finance_bridge.invalid_amount", goal_id=goal_id, amount=amount)
            return FinanceBridgeResult(status=BridgeStatus.INVALID_AMOUNT)

        budget: Budget | None = None
        debt: Debt | None = None
        try:
            budget, debt = await self.resolve_target(definition, budget_id=budget_id, debt_id=debt_id)
            if budget is None and debt is None:
                log.info("finance_bridge.no_target", goal_id=goal_id)
                return FinanceBridgeResult(status=BridgeStatus.NO_TARGET)

            resolved_currency = (
                currency
                or (budget.currency if budget is not None else None)
                or definition.currency
                or self._engine.settings.base_currency
            )
            account = await self._resolve_account(account_id, budget, resolved_currency)
        except LedgerRejectedError as exc:
            log.warning("finance_bridge.resolution_rejected", goal_id=goal_id, reason=exc.reason)
            return FinanceBridgeResult(
                status=BridgeStatus.REJECTED, budget=budget, debt=debt, error=exc.reason
            )
        except Exception as exc:
            log.error(
                "finance_bridge.resolution_failed",
                goal_id=goal_id,
                error=str(exc),
                exc_info=True,
            )
            return FinanceBridgeResult(
                status=BridgeStatus.REJECTED, budget=budget, debt=debt, error=str(exc)
            )

        if account is None:
            log.warning(
                "finance_bridge.no_account",
                goal_id=goal_id,
                budget_id=budget.budget_id if budget else None,
                debt_id=debt.debt_id if debt else None,
            )
            return FinanceBridgeResult(status=BridgeStatus.NO_ACCOUNT, budget=budget, debt=debt)
        resolved_currency = resolved_currency or account.currency

        draft = TransactionDraft(
            type=resolve_direction(debt),
            amount=abs(amount),
            currency=resolved_currency,
            account_id=account.account_id,
            goal_id=goal_id,
            budget_id=budget.budget_id if budget is not None else None,
            debt_id=debt.debt_id if debt is not None else None,
            description=note or _default_description(definition, budget, debt),
            tags=["goal", event_type, definition.display_title],
            date=self._engine.now(),
        )

        try:
            transaction = await self._ledger.create_transaction(draft)
        except LedgerRejectedError as exc:
            log.warning("finance_bridge.rejected", goal_id=goal_id, reason=exc.reason)
            return FinanceBridgeResult(
                status=BridgeStatus.REJECTED, budget=budget, debt=debt, error=exc.reason
            )
        except Exception as exc:
            log.error(
                "finance_bridge.ledger_exception",
                goal_id=goal_id,
                error=str(exc),
                exc_info=True,
            )
            return FinanceBridgeResult(
                status=BridgeStatus.REJECTED, budget=budget, debt=debt, error=str(exc)
            )

        self._engine.record_event(
            goal_id,
            FinanceTransactionPayload(
                transaction_id=transaction.transaction_id,
                transaction_type=transaction.type.value,
                amount=transaction.amount,
                currency=transaction.currency,
                account_id=transaction.account_id,
                budget_id=transaction.budget_id,
                debt_id=transaction.debt_id,
                event_type=event_type,
            ),
        )

        linked = False
        if budget is not None:
            linked = await self._ensure_budget_linked(budget, goal_id)

        log.info(
            "finance_bridge.transaction_created",
            goal_id=goal_id,
            transaction_id=transaction.transaction_id,
            type=transaction.type.value,
            amount=transaction.amount,
            currency=transaction.currency,
            budget_linked=linked,
        )
        return FinanceBridgeResult(
            status=BridgeStatus.CREATED,
            transaction=transaction,
            budget=budget,
            debt=debt,
            budget_linked=linked,
        )

    async def resolve_target(
        self,
        definition: GoalDefinition,
        *,
        budget_id: str | None = None,
        debt_id: str | None = None,
    ) -> tuple[Budget | None, Debt | None]:
        """Return the single budget or debt the goal's money should go to.

        At most one element of the returned pair is set.
        """
        steps = (
            (budget_id, debt_id),
            (definition.linked_budget_id, definition.linked_debt_id),
        )
        for step_budget_id, step_debt_id in steps:
            if step_budget_id:
                budget = await self._ledger.get_budget(step_budget_id)
                if budget is not None:
                    return budget, None
            if step_debt_id:
                debt = await self._ledger.get_debt(step_debt_id)
                if debt is not None:
                    return None, debt

        for budget in await self._ledger.find_budgets_by_goal(definition.goal_id):
            if not budget.is_archived:
                return budget, None
        debts = await self._ledger.find_debts_by_goal(definition.goal_id)
        if debts:
            return None, debts[0]
        return None, None

    async def _resolve_account(
        self,
        account_id: str | None,
        budget: Budget | None,
        currency: str | None,
    ) -> Account | None:
        accounts = await self._ledger.list_accounts()
        by_id = {account.account_id: account for account in accounts}

        for candidate in (account_id, budget.account_id if budget is not None else None):
            if candidate and candidate in by_id:
                return by_id[candidate]
        if currency:
            for account in accounts:
                if account.currency == currency:
                    return account
        # Best effort: any account beats dropping the transaction.
        return accounts[0] if accounts else None

    async def _ensure_budget_linked(self, budget: Budget, goal_id: str) -> bool:
        if budget.linked_goal_id == goal_id:
            return False
        try:
            updated = await self._ledger.update_budget(budget.budget_id, {"linked_goal_id": goal_id})
        except Exception as exc:
            # The transaction already exists; linking is retried on the next call.
            log.error(
                "finance_bridge.budget_link_failed",
                goal_id=goal_id,
                budget_id=budget.budget_id,
                error=str(exc),
                exc_info=True,
            )
            return False
        if updated is None:
            return False
        self._engine.record_event(
            goal_id,
            BudgetLinkedPayload(budget_id=budget.budget_id, previous_goal_id=budget.linked_goal_id),
        )
        log.info("finance_bridge.budget_linked", goal_id=goal_id, budget_id=budget.budget_id)
        return True


def _default_description(definition: GoalDefinition, budget: Budget | None, debt: Debt | None) -> str:
    description = f"Goal: {definition.display_title}"
    if budget is not None and budget.name:
        description += f" · Budget: {budget.name}"
    elif debt is not None and debt.counterparty_name:
        description += f" · Debt: {debt.counterparty_name}"
    return description

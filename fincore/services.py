import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fincore.config import ADJUSTMENT, OPENING_BALANCE
from fincore.domain import (
    Account, Category, EXPENSE, INCOME, LedgerIntent, ObligationUpdate,
    RecurringTemplate, Transaction, UpcomingBill,
)
from fincore.errors import CollaboratorError, ExecutionError
from fincore.events import OBLIGATION_EXECUTED, TRANSACTION_APPENDED, EventBus
from fincore.functional import Either, Left, Right
from fincore.ledger import Ledger
from fincore.scheduler import Execution, mark_paid, process_early
from fincore.scheduler import deactivate_bill as bill_deactivation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    transaction: Transaction
    update: ObligationUpdate


class ObligationService:
    """Applies scheduler executions to the ledger: append first, then update.

    The two writes are not atomic here. If the append fails nothing was
    written and the obligation is untouched. If the update fails the
    transaction exists but the obligation did not advance; retry the update
    only, never the append. Callers must not run two executions for the
    same obligation at the same time.
    """

    def __init__(self, ledger: Ledger, bus: Optional[EventBus] = None):
        self.ledger = ledger
        self.bus = bus

    async def pay_bill(self, bill: UpcomingBill, now: datetime) -> Either[dict, ExecutionResult]:
        return await self.apply(mark_paid(bill, now))

    async def process_template_early(
        self, template: RecurringTemplate, now: datetime
    ) -> Either[dict, ExecutionResult]:
        return await self.apply(process_early(template, now))

    async def apply(self, execution: Execution) -> Either[dict, ExecutionResult]:
        update = execution.update
        try:
            transaction = await self.ledger.append_transaction(execution.intent)
        except CollaboratorError as e:
            return Left({
                "error": "append_failed",
                "stage": "append",
                "message": f"Could not record transaction for {update.kind} {update.obligation_id}: {e}",
                "obligation_id": update.obligation_id,
                "cause": e,
            })

        try:
            applied = await self.ledger.update_obligation(update.obligation_id, update)
            if not applied:
                raise CollaboratorError(f"{update.kind} {update.obligation_id} was not updated")
        except CollaboratorError as e:
            logger.warning(
                "transaction %s recorded but %s %s did not advance: %s",
                transaction.id, update.kind, update.obligation_id, e,
            )
            return Left({
                "error": "update_failed",
                "stage": "update",
                "message": f"Transaction recorded but {update.kind} {update.obligation_id} was not updated: {e}",
                "obligation_id": update.obligation_id,
                "transaction": transaction,
                "pending_update": update,
                "cause": e,
            })

        logger.info("executed %s %s as transaction %s", update.kind, update.obligation_id, transaction.id)
        if self.bus is not None:
            self.bus.publish(OBLIGATION_EXECUTED, {
                "obligation_id": update.obligation_id,
                "kind": update.kind,
                "transaction_id": transaction.id,
                "user_id": transaction.user_id,
            })
        return Right(ExecutionResult(transaction, update))

    async def apply_or_raise(self, execution: Execution) -> ExecutionResult:
        result = await self.apply(execution)
        if result.is_left():
            err = result.get_error()
            raise ExecutionError(err["stage"], err["cause"]) from err["cause"]
        return result.get_or_else(None)

    async def retry_update(self, update: ObligationUpdate) -> bool:
        return await self.ledger.update_obligation(update.obligation_id, update)

    async def deactivate_bill(self, bill: UpcomingBill) -> bool:
        update = bill_deactivation(bill)
        return await self.ledger.update_obligation(update.obligation_id, update)

    async def stop_template(self, template: RecurringTemplate) -> bool:
        return await self.ledger.delete_obligation(template.id)


class AccountService:
    """Account setup steps that write to the ledger."""

    def __init__(self, ledger: Ledger, bus: Optional[EventBus] = None):
        self.ledger = ledger
        self.bus = bus

    async def ensure_category(self, user_id: str, synthetic: tuple[str, str, str, str]) -> Category:
        """Find a well-known category by name and type, creating it when absent."""
        name, icon, color, type_ = synthetic
        for cat in await self.ledger.query_categories(user_id, type_):
            if cat.name == name:
                return cat
        logger.info("creating %s category for user %s", name, user_id)
        return await self.ledger.create_category(user_id, name, icon, color, type_)

    async def seed_opening_balance(self, account: Account, now: datetime) -> Optional[Transaction]:
        # for cards the balance is available credit, still recorded as income
        if account.balance <= 0:
            return None
        cat = await self.ensure_category(account.user_id, OPENING_BALANCE)
        return await self._append(LedgerIntent(
            user_id=account.user_id,
            account_id=account.id,
            amount=account.balance,
            type=INCOME,
            date=now,
            name="Opening Balance",
            description=f"Opening balance for {account.name}",
            category_id=cat.id,
        ))

    async def adjust_balance(self, account: Account, target: float, now: datetime) -> Optional[Transaction]:
        """Record the difference between the tracked and the real balance."""
        diff = round(target - account.balance, 2)
        if diff == 0:
            return None
        name, icon, color, _ = ADJUSTMENT
        type_ = INCOME if diff > 0 else EXPENSE
        cat = await self.ensure_category(account.user_id, (name, icon, color, type_))
        return await self._append(LedgerIntent(
            user_id=account.user_id,
            account_id=account.id,
            amount=abs(diff),
            type=type_,
            date=now,
            name="Balance Correction",
            description=f"Balance adjusted from {account.balance:.2f} to {target:.2f}",
            category_id=cat.id,
        ))

    async def _append(self, intent: LedgerIntent) -> Transaction:
        transaction = await self.ledger.append_transaction(intent)
        logger.info("recorded %s %s on account %s", intent.name, transaction.id, intent.account_id)
        if self.bus is not None:
            self.bus.publish(TRANSACTION_APPENDED, {
                "transaction_id": transaction.id,
                "account_id": intent.account_id,
                "user_id": intent.user_id,
            })
        return transaction

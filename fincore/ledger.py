"""The ledger collaborator: the only way the engine reaches stored data.

``Ledger`` is the capability surface the engine needs. ``InMemoryLedger``
implements it over plain tuples; adapters over a real store implement the
same coroutines and raise ``CollaboratorError`` on failure.
"""

import asyncio
import json
from dataclasses import replace
from datetime import datetime
from typing import Optional, Protocol
from uuid import uuid4

from fincore.domain import (
    Account, Budget, Category, Group, LedgerIntent, Loan, ObligationUpdate,
    RecurringTemplate, Savings, Transaction, Trip, UpcomingBill, BILL, RECURRING,
)
from fincore.errors import CollaboratorError
from fincore.filters import TransactionFilter, iter_transactions, predicate_for
from fincore.functional import require, safe_account, validate_intent_shape

_DATE_FIELDS = {"date", "due_date", "start_date", "last_executed", "end_date", "next_due_date"}


class Ledger(Protocol):

    async def query_transactions(self, user_id: str, filters: TransactionFilter) -> tuple[Transaction, ...]: ...

    async def append_transaction(self, data: LedgerIntent) -> Transaction: ...

    async def query_accounts(self, user_id: str, active_only: bool = True) -> tuple[Account, ...]: ...

    async def query_categories(self, user_id: str, type: Optional[str] = None) -> tuple[Category, ...]: ...

    async def create_category(self, user_id: str, name: str, icon: str, color: str, type: str) -> Category: ...

    async def query_budgets(self, user_id: str) -> tuple[Budget, ...]: ...

    async def query_loans(self, user_id: str, status: str = "active") -> tuple[Loan, ...]: ...

    async def query_savings(self, user_id: str) -> tuple[Savings, ...]: ...

    async def query_trips(self, user_id: str) -> tuple[Trip, ...]: ...

    async def query_groups(self, user_id: str) -> tuple[Group, ...]: ...

    async def update_obligation(self, id: str, patch: ObligationUpdate) -> bool: ...

    async def delete_obligation(self, id: str) -> bool: ...


def _parse_value(key: str, value):
    if key in _DATE_FIELDS and isinstance(value, str):
        return datetime.fromisoformat(value)
    if isinstance(value, list):
        return tuple(value)
    return value


def _parse_row(cls, row: dict):
    return cls(**{k: _parse_value(k, v) for k, v in row.items()})


def load_snapshot(path: str) -> "InMemoryLedger":
    """Load a JSON snapshot with one list per entity kind (all optional)."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return InMemoryLedger(
        accounts=tuple(_parse_row(Account, a) for a in data.get("accounts", ())),
        categories=tuple(_parse_row(Category, c) for c in data.get("categories", ())),
        transactions=tuple(_parse_row(Transaction, t) for t in data.get("transactions", ())),
        budgets=tuple(_parse_row(Budget, b) for b in data.get("budgets", ())),
        loans=tuple(_parse_row(Loan, lo) for lo in data.get("loans", ())),
        savings=tuple(_parse_row(Savings, s) for s in data.get("savings", ())),
        trips=tuple(_parse_row(Trip, tr) for tr in data.get("trips", ())),
        groups=tuple(_parse_row(Group, g) for g in data.get("groups", ())),
        templates=tuple(_parse_row(RecurringTemplate, r) for r in data.get("templates", ())),
        bills=tuple(_parse_row(UpcomingBill, b) for b in data.get("bills", ())),
    )


class InMemoryLedger:

    def __init__(
        self,
        accounts=(),
        categories=(),
        transactions=(),
        budgets=(),
        loans=(),
        savings=(),
        trips=(),
        groups=(),
        templates=(),
        bills=(),
    ):
        self.accounts: tuple[Account, ...] = tuple(accounts)
        self.categories: tuple[Category, ...] = tuple(categories)
        self.transactions: tuple[Transaction, ...] = tuple(transactions)
        self.budgets: tuple[Budget, ...] = tuple(budgets)
        self.loans: tuple[Loan, ...] = tuple(loans)
        self.savings: tuple[Savings, ...] = tuple(savings)
        self.trips: tuple[Trip, ...] = tuple(trips)
        self.groups: tuple[Group, ...] = tuple(groups)
        self.templates: dict[str, RecurringTemplate] = {r.id: r for r in templates}
        self.bills: dict[str, UpcomingBill] = {b.id: b for b in bills}

    async def query_transactions(self, user_id: str, filters: TransactionFilter) -> tuple[Transaction, ...]:
        pred = predicate_for(filters)
        own = (t for t in self.transactions if t.user_id == user_id)
        result = tuple(iter_transactions(own, pred))
        await asyncio.sleep(0)  # cooperate
        return result

    async def append_transaction(self, data: LedgerIntent) -> Transaction:
        require(validate_intent_shape(data.type, data.amount, data.to_account_id))
        if safe_account(self.accounts, data.account_id).is_none():
            raise CollaboratorError(f"account {data.account_id} does not exist")
        t = Transaction(
            id=str(uuid4()),
            user_id=data.user_id,
            account_id=data.account_id,
            amount=data.amount,
            type=data.type,
            date=data.date,
            category_id=data.category_id,
            to_account_id=data.to_account_id,
            recurring_id=data.recurring_id,
            name=data.name,
            description=data.description,
        )
        self.transactions = self.transactions + (t,)
        await asyncio.sleep(0)
        return t

    async def query_accounts(self, user_id: str, active_only: bool = True) -> tuple[Account, ...]:
        await asyncio.sleep(0)
        return tuple(
            a for a in self.accounts
            if a.user_id == user_id and (a.is_active or not active_only)
        )

    async def query_categories(self, user_id: str, type: Optional[str] = None) -> tuple[Category, ...]:
        await asyncio.sleep(0)
        return tuple(
            c for c in self.categories
            if c.user_id == user_id and (type is None or c.type == type)
        )

    async def create_category(self, user_id: str, name: str, icon: str, color: str, type: str) -> Category:
        cat = Category(id=str(uuid4()), user_id=user_id, name=name, type=type, icon=icon, color=color)
        self.categories = self.categories + (cat,)
        await asyncio.sleep(0)
        return cat

    async def query_budgets(self, user_id: str) -> tuple[Budget, ...]:
        await asyncio.sleep(0)
        return tuple(b for b in self.budgets if b.user_id == user_id)

    async def query_loans(self, user_id: str, status: str = "active") -> tuple[Loan, ...]:
        await asyncio.sleep(0)
        return tuple(lo for lo in self.loans if lo.user_id == user_id and lo.status == status)

    async def query_savings(self, user_id: str) -> tuple[Savings, ...]:
        await asyncio.sleep(0)
        return tuple(s for s in self.savings if s.user_id == user_id)

    async def query_trips(self, user_id: str) -> tuple[Trip, ...]:
        await asyncio.sleep(0)
        return tuple(tr for tr in self.trips if tr.user_id == user_id)

    async def query_groups(self, user_id: str) -> tuple[Group, ...]:
        # groups the user is a member of
        await asyncio.sleep(0)
        return tuple(g for g in self.groups if user_id in g.member_ids)

    async def update_obligation(self, id: str, patch: ObligationUpdate) -> bool:
        store = self._store(patch.kind)
        if id not in store:
            raise CollaboratorError(f"{patch.kind} {id} does not exist")
        store[id] = replace(store[id], **patch.as_dict())
        await asyncio.sleep(0)
        return True

    async def delete_obligation(self, id: str) -> bool:
        await asyncio.sleep(0)
        for store in (self.templates, self.bills):
            if id in store:
                del store[id]
                return True
        raise CollaboratorError(f"obligation {id} does not exist")

    def _store(self, kind: str) -> dict:
        if kind == BILL:
            return self.bills
        if kind == RECURRING:
            return self.templates
        raise CollaboratorError(f"unknown obligation kind {kind!r}")

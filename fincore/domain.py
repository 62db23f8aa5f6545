from dataclasses import dataclass
from datetime import datetime
from typing import Optional

INCOME = "income"
EXPENSE = "expense"
TRANSFER = "transfer"


@dataclass(frozen=True)
class Account:
    id: str
    user_id: str
    name: str
    type: str                          # bank | cash | card
    balance: float                     # for cards: available credit
    card_type: Optional[str] = None    # credit | debit, cards only
    credit_limit: Optional[float] = None
    linked_account_id: Optional[str] = None
    is_shared_limit: bool = False
    is_active: bool = True
    currency: str = "INR"


@dataclass(frozen=True)
class Category:
    id: str
    user_id: str
    name: str
    type: str                       # income | expense
    icon: str = ""
    color: str = ""
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    id: str
    user_id: str
    account_id: str
    amount: float                   # magnitude, direction comes from type
    type: str                       # income | expense | transfer
    date: datetime
    category_id: Optional[str] = None
    to_account_id: Optional[str] = None
    recurring_id: Optional[str] = None
    name: str = ""
    description: str = ""
    trip_id: Optional[str] = None
    group_id: Optional[str] = None
    savings_id: Optional[str] = None  # transfer into a savings goal


# A budget (monthly limit for a category)
@dataclass(frozen=True)
class Budget:
    id: str
    user_id: str
    category_id: str
    amount: float


@dataclass(frozen=True)
class Loan:
    id: str
    user_id: str
    person_name: str
    type: str                       # lent | borrowed
    total_amount: float
    remaining_amount: float
    status: str = "active"
    next_due_date: Optional[datetime] = None


# A savings goal; only counts toward net worth when flagged
@dataclass(frozen=True)
class Savings:
    id: str
    user_id: str
    name: str
    target_amount: float
    current_amount: float = 0.0
    include_in_net_worth: bool = False


@dataclass(frozen=True)
class Trip:
    id: str
    user_id: str
    name: str
    end_date: datetime
    budget_amount: float = 0.0
    start_date: Optional[datetime] = None


# Shared expense group; members see the spending of all members
@dataclass(frozen=True)
class Group:
    id: str
    name: str
    member_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class RecurringTemplate:
    id: str
    user_id: str
    account_id: str
    name: str
    amount: float
    type: str                       # income | expense
    frequency: str                  # daily | weekly | monthly | yearly
    start_date: datetime
    interval: int = 1
    category_id: Optional[str] = None
    last_executed: Optional[datetime] = None
    execution_count: int = 0
    total_occurrences: Optional[int] = None
    end_date: Optional[datetime] = None


@dataclass(frozen=True)
class UpcomingBill:
    id: str
    user_id: str
    name: str
    amount: float
    due_date: datetime
    frequency: str                  # once | monthly | quarterly | yearly
    bill_type: str = EXPENSE        # expense | transfer
    is_active: bool = True
    account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    category_id: Optional[str] = None
    reminder_days: int = 1
    description: str = ""


# Requests emitted by the engine; a collaborator applies them.
@dataclass(frozen=True)
class LedgerIntent:
    user_id: str
    account_id: str
    amount: float
    type: str
    date: datetime
    name: str = ""
    description: str = ""
    category_id: Optional[str] = None
    to_account_id: Optional[str] = None
    recurring_id: Optional[str] = None


BILL = "bill"
RECURRING = "recurring"


@dataclass(frozen=True)
class ObligationUpdate:
    obligation_id: str
    kind: str                       # bill | recurring
    patch: tuple[tuple[str, object], ...]

    def as_dict(self) -> dict:
        return dict(self.patch)

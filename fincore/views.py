"""Immutable view-model snapshots produced by the aggregation engine."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from fincore.domain import Transaction


@dataclass(frozen=True)
class CategorySpend:
    category_id: str
    category_name: str
    category_icon: str
    category_color: str
    total: float
    percentage: float


@dataclass(frozen=True)
class CashFlowPoint:
    date: date
    income: float
    expense: float


@dataclass(frozen=True)
class BudgetPerformance:
    category_id: str
    category_name: str
    budget_amount: float
    spent_amount: float
    remaining: float
    percentage: float


@dataclass(frozen=True)
class HistoryPoint:
    date: datetime
    value: float
    label: str


@dataclass(frozen=True)
class NetWorth:
    """Current net worth plus a reconstructed monthly history.

    The history is a simulation: it walks back from today's balances by
    undoing each month's income and expense. Balance changes that never
    reached the ledger (and valuation changes of non-cash assets) are not
    seen, so it must not be used for reconciliation.
    """

    total_assets: float
    total_liabilities: float
    net_worth: float
    trend: str                      # up | down | stable
    change_percentage: float
    history: tuple[HistoryPoint, ...]


@dataclass(frozen=True)
class LargestTransaction:
    name: str
    amount: float
    date: datetime
    category_name: Optional[str] = None
    category_icon: Optional[str] = None
    category_color: Optional[str] = None


@dataclass(frozen=True)
class SpendingInsights:
    current_total: float
    previous_total: float
    percentage_change: float
    top_category: Optional[str]
    daily_average: float
    projected_total: float
    largest_transaction: Optional[LargestTransaction]
    trend_message: str
    suggestion: str


@dataclass(frozen=True)
class Velocity:
    status: str                     # ahead | on-track | behind
    progress_percent: float


@dataclass(frozen=True)
class VelocityPoint:
    day: int
    cumulative: float


@dataclass(frozen=True)
class MonthVelocity:
    current_spend: float
    average_spend: float
    status: str
    progress_percent: float
    projected_overspend: float
    daily: tuple[VelocityPoint, ...]


@dataclass(frozen=True)
class MerchantSpend:
    merchant_name: str
    total: float
    count: int
    percentage: float


@dataclass(frozen=True)
class DebtHealth:
    total_debt: float
    paid_amount: float
    progress: float
    next_payment_date: Optional[datetime]


@dataclass(frozen=True)
class TripSpend:
    trip_id: str
    name: str
    budget: float
    spent: float
    percentage: float


@dataclass(frozen=True)
class GroupSpend:
    group_id: str
    name: str
    color: str
    total_spent: float


@dataclass(frozen=True)
class NeedsWantsSavings:
    """Where the money went in a window: essentials, discretionary, saved.

    Savings are transfers into a savings goal; needs and wants split the
    expenses by category keyword.
    """

    needs: float
    wants: float
    savings: float
    total: float
    needs_transactions: tuple[Transaction, ...]
    wants_transactions: tuple[Transaction, ...]
    savings_transactions: tuple[Transaction, ...]

from collections import defaultdict
from datetime import datetime, time, timedelta
from functools import reduce
from typing import Iterable, Mapping, Optional

from dateutil.relativedelta import relativedelta

from fincore.domain import Category, EXPENSE, INCOME, Transaction


def start_of_day(ts: datetime) -> datetime:
    return datetime.combine(ts.date(), time.min)


def end_of_day(ts: datetime) -> datetime:
    return datetime.combine(ts.date(), time.max)


def trailing_window(now: datetime, days: int) -> tuple[datetime, datetime]:
    """``days`` whole calendar days ending with today, both ends inclusive."""
    return start_of_day(now - timedelta(days=days - 1)), end_of_day(now)


def month_start(ts: datetime, months_back: int = 0) -> datetime:
    first = datetime(ts.year, ts.month, 1)
    return first - relativedelta(months=months_back)


def month_bounds(now: datetime, months_back: int) -> tuple[datetime, datetime]:
    """[start, end) of the calendar month ``months_back`` before ``now``'s month.

    The current month (``months_back == 0``) is cut at ``now``.
    """
    start = month_start(now, months_back)
    if months_back == 0:
        return start, now
    return start, start + relativedelta(months=1)


def sum_amounts(trans: Iterable[Transaction]) -> float:
    return reduce(lambda acc, t: acc + t.amount, trans, 0.0)


def net_delta(trans: Iterable[Transaction]) -> float:
    """Income minus expense; transfers move money between own accounts."""
    def _step(acc: float, t: Transaction) -> float:
        if t.type == INCOME:
            return acc + t.amount
        if t.type == EXPENSE:
            return acc - t.amount
        return acc

    return reduce(_step, trans, 0.0)



def totals_by(trans: Iterable[Transaction], key) -> dict:
    totals: dict = defaultdict(float)
    for t in trans:
        k = key(t)
        if k is not None:
            totals[k] += t.amount
    return dict(totals)


def is_reconciliation(
    t: Transaction,
    cats: Mapping[str, Category],
    markers: Iterable[str],
) -> bool:
    """True for opening balances, balance corrections and adjustments.

    Matches the transaction name, its category name or the parent
    category name against ``markers`` (case-insensitive substring).
    """
    cat: Optional[Category] = cats.get(t.category_id) if t.category_id else None
    parent = cats.get(cat.parent_id) if cat and cat.parent_id else None
    haystacks = (
        t.name.lower(),
        cat.name.lower() if cat else "",
        parent.name.lower() if parent else "",
    )
    return any(m in h for m in markers for h in haystacks if h)


def without_reconciliation(
    trans: Iterable[Transaction],
    cats: Mapping[str, Category],
    markers: Iterable[str],
) -> tuple[Transaction, ...]:
    markers = tuple(m.lower() for m in markers)
    return tuple(t for t in trans if not is_reconciliation(t, cats, markers))


def merchant_key(t: Transaction) -> Optional[str]:
    # "AMAZON-IN Order 123" -> "AMAZON"
    key = t.name.strip().split(" ")[0].split("-")[0].upper()
    return key or None


NEEDS_KEYWORDS = (
    "housing", "rent", "mortgage",
    "utilities", "electricity", "water", "gas", "internet", "phone",
    "groceries", "food",
    "transport", "transportation", "fuel", "public transport",
    "health", "medical", "healthcare", "insurance",
    "education", "tuition",
    "bills", "emi", "loan",
)
# discretionary even when a needs keyword also matches ("Food - Dining")
WANTS_KEYWORDS = ("dining", "restaurant", "entertainment", "shopping", "vacation", "trip")
WANTS_PARENT_KEYWORDS = ("entertainment", "shopping")


def is_need(category_name: str, parent_name: str = "") -> bool:
    cat = (category_name or "").lower()
    parent = (parent_name or "").lower()
    if any(k in cat for k in WANTS_KEYWORDS) or any(k in parent for k in WANTS_PARENT_KEYWORDS):
        return False
    return any(k in cat or k in parent for k in NEEDS_KEYWORDS)

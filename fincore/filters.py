from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Iterator, Optional

from fincore.domain import Transaction

Predicate = Callable[[Transaction], bool]


@dataclass(frozen=True)
class TransactionFilter:
    """Filters understood by the ledger's transaction query.

    ``date_range`` is inclusive on both ends unless ``end_exclusive`` is set.
    """

    type: Optional[str] = None
    date_range: Optional[tuple[datetime, datetime]] = None
    end_exclusive: bool = False
    account_id: Optional[str] = None
    category_id: Optional[str] = None
    trip_id: Optional[str] = None
    group_id: Optional[str] = None


def by_type(type_: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.type == type_

    return _filter


def by_category(cat_id: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.category_id == cat_id

    return _filter


def by_account(acc_id: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        # transfers touch both ends
        return t.account_id == acc_id or t.to_account_id == acc_id

    return _filter


def by_date_range(start: datetime, end: datetime, end_exclusive: bool = False) -> Predicate:
    def _filter(t: Transaction) -> bool:
        if end_exclusive:
            return start <= t.date < end
        return start <= t.date <= end

    return _filter


def by_attr(name: str, value: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return getattr(t, name) == value

    return _filter


def predicate_for(filters: TransactionFilter) -> Predicate:
    """Combine every populated field of ``filters`` into one predicate."""
    preds: list[Predicate] = []
    if filters.type is not None:
        preds.append(by_type(filters.type))
    if filters.date_range is not None:
        start, end = filters.date_range
        preds.append(by_date_range(start, end, filters.end_exclusive))
    if filters.account_id is not None:
        preds.append(by_account(filters.account_id))
    if filters.category_id is not None:
        preds.append(by_category(filters.category_id))
    if filters.trip_id is not None:
        preds.append(by_attr("trip_id", filters.trip_id))
    if filters.group_id is not None:
        preds.append(by_attr("group_id", filters.group_id))

    def _filter(t: Transaction) -> bool:
        return all(p(t) for p in preds)

    return _filter


def iter_transactions(trans: Iterable[Transaction], pred: Predicate) -> Iterator[Transaction]:
    for t in trans:
        if pred(t):
            yield t

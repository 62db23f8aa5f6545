import logging
from dataclasses import replace
from typing import Iterable

from fincore.domain import Account

logger = logging.getLogger(__name__)


def resolve_linked_accounts(accounts: Iterable[Account]) -> tuple[Account, ...]:
    """Return accounts with effective balances for children of a linked parent.

    A shared-limit child mirrors the parent's balance and credit limit. A
    child with its own (capped) limit can never show more than the parent
    has available: ``min(child.balance, parent.balance)``. Only one hop is
    resolved, lookups are by id so input order does not matter, and a
    child whose parent is missing is returned unchanged.
    """
    accounts = tuple(accounts)
    by_id = {acc.id: acc for acc in accounts}

    def _resolve(acc: Account) -> Account:
        if acc.linked_account_id is None:
            return acc
        parent = by_id.get(acc.linked_account_id)
        if parent is None:
            logger.warning("account %s links to missing account %s", acc.id, acc.linked_account_id)
            return acc
        if acc.is_shared_limit:
            return replace(acc, balance=parent.balance, credit_limit=parent.credit_limit)
        return replace(acc, balance=min(acc.balance, parent.balance))

    return tuple(_resolve(acc) for acc in accounts)


def is_credit(acc: Account) -> bool:
    return acc.type == "card" and acc.card_type == "credit"


def account_position(acc: Account) -> tuple[float, float]:
    """(asset, liability) contributed by one account.

    A credit card's balance is its available credit, so the debt is what
    has been drawn from the limit.
    """
    if is_credit(acc):
        return 0.0, max(0.0, (acc.credit_limit or 0.0) - acc.balance)
    return acc.balance, 0.0


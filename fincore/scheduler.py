"""Recurring obligations: bills with due dates and open-ended templates.

Nothing here writes anything. Executing an obligation yields an
``Execution``: the ledger transaction to append and the obligation update
to apply afterwards. The update must only be applied once the append has
succeeded, otherwise the obligation silently skips a cycle.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from fincore.cadence import (
    BILL_FREQUENCIES, TEMPLATE_FREQUENCIES, is_repeating, next_occurrence,
)
from fincore.config import DEFAULT_CONFIG
from fincore.domain import (
    BILL, EXPENSE, INCOME, RECURRING, TRANSFER,
    LedgerIntent, ObligationUpdate, RecurringTemplate, UpcomingBill,
)
from fincore.errors import InputError
from fincore.functional import require, validate_frequency, validate_window


@dataclass(frozen=True)
class Execution:
    intent: LedgerIntent
    update: ObligationUpdate


@dataclass(frozen=True)
class UrgencyPartition:
    overdue: tuple[UpcomingBill, ...]
    due_soon: tuple[UpcomingBill, ...]
    rest: tuple[UpcomingBill, ...]


def partition_by_urgency(
    bills: Iterable[UpcomingBill],
    now: datetime,
    horizon_days: int = DEFAULT_CONFIG.due_soon_days,
) -> UrgencyPartition:
    """Split active bills into overdue, due within the horizon, and the rest.

    A bill due exactly at ``now`` is due soon, not overdue. Inactive bills
    are in none of the groups. Each group is ordered by due date.
    """
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int) or horizon_days < 0:
        raise InputError(f"horizon must be a non-negative number of days, got {horizon_days!r}")
    horizon = now + timedelta(days=horizon_days)
    overdue, due_soon, rest = [], [], []
    for bill in sorted((b for b in bills if b.is_active), key=lambda b: b.due_date):
        if bill.due_date < now:
            overdue.append(bill)
        elif bill.due_date <= horizon:
            due_soon.append(bill)
        else:
            rest.append(bill)
    return UrgencyPartition(tuple(overdue), tuple(due_soon), tuple(rest))


def bills_needing_reminder(bills: Iterable[UpcomingBill], now: datetime) -> tuple[UpcomingBill, ...]:
    """Active bills whose due day is within their own ``reminder_days``."""
    today = now.date()
    return tuple(
        b for b in bills
        if b.is_active and 0 <= (b.due_date.date() - today).days <= b.reminder_days
    )


def mark_paid(bill: UpcomingBill, now: datetime) -> Execution:
    """Pay a bill now.

    One-time bills are deactivated, never advanced. Repeating bills move
    their due date one period forward from the current due date, so paying
    an overdue bill that is two periods late leaves it overdue once more.
    """
    require(validate_frequency(bill.frequency, BILL_FREQUENCIES))
    if not bill.is_active:
        raise InputError(f"bill {bill.id} is not active")
    if bill.account_id is None:
        raise InputError(f"bill {bill.id} has no paying account")
    if bill.bill_type == TRANSFER and bill.to_account_id is None:
        raise InputError(f"transfer bill {bill.id} has no destination account")
    if bill.bill_type not in (EXPENSE, TRANSFER):
        raise InputError(f"bill {bill.id} has unknown type {bill.bill_type!r}")

    intent = LedgerIntent(
        user_id=bill.user_id,
        account_id=bill.account_id,
        amount=bill.amount,
        type=bill.bill_type,
        date=now,
        name=bill.name,
        description=bill.description or f"Payment for {bill.name}",
        category_id=bill.category_id,
        to_account_id=bill.to_account_id if bill.bill_type == TRANSFER else None,
    )
    if not is_repeating(bill.frequency):
        patch = (("is_active", False),)
    else:
        patch = (("due_date", next_occurrence(bill.due_date, bill.frequency)),)
    return Execution(intent, ObligationUpdate(bill.id, BILL, patch))


def deactivate_bill(bill: UpcomingBill) -> ObligationUpdate:
    return ObligationUpdate(bill.id, BILL, (("is_active", False),))


def template_anchor(template: RecurringTemplate) -> datetime:
    return template.last_executed or template.start_date


def template_next_due(template: RecurringTemplate) -> datetime:
    require(validate_frequency(template.frequency, TEMPLATE_FREQUENCIES))
    return next_occurrence(template_anchor(template), template.frequency, template.interval)


def is_exhausted(template: RecurringTemplate) -> bool:
    return (
        template.total_occurrences is not None
        and template.execution_count >= template.total_occurrences
    )


def templates_due_within(
    templates: Iterable[RecurringTemplate],
    now: datetime,
    days: int = 1,
) -> tuple[RecurringTemplate, ...]:
    """Templates whose next occurrence falls in the next ``days`` days."""
    require(validate_window(days))
    horizon = now + timedelta(days=days)
    return tuple(
        t for t in templates
        if not is_exhausted(t) and now <= template_next_due(t) <= horizon
    )


def process_early(template: RecurringTemplate, now: datetime) -> Execution:
    """Materialize the next occurrence of ``template`` today.

    The schedule advances to the computed next due date, not to ``now``:
    the cadence keeps following the template's own anchor.
    """
    if template.type not in (INCOME, EXPENSE):
        raise InputError(f"recurring template {template.id} has unknown type {template.type!r}")
    if is_exhausted(template):
        raise InputError(
            f"recurring template {template.id} already ran {template.execution_count} "
            f"of {template.total_occurrences} times"
        )
    next_due = template_next_due(template)
    if template.end_date is not None and next_due > template.end_date:
        raise InputError(f"recurring template {template.id} ended on {template.end_date:%Y-%m-%d}")

    intent = LedgerIntent(
        user_id=template.user_id,
        account_id=template.account_id,
        amount=template.amount,
        type=template.type,
        date=now,
        name=template.name,
        description="Manually processed recurring transaction early",
        category_id=template.category_id,
        recurring_id=template.id,
    )
    update = ObligationUpdate(
        template.id,
        RECURRING,
        (("last_executed", next_due), ("execution_count", template.execution_count + 1)),
    )
    return Execution(intent, update)


from dataclasses import replace
from datetime import datetime

import pytest

from fincore.domain import RecurringTemplate, UpcomingBill
from fincore.errors import InputError
from fincore.scheduler import (
    bills_needing_reminder, deactivate_bill, mark_paid, partition_by_urgency,
    process_early, template_next_due, templates_due_within,
)

NOW = datetime(2024, 1, 10, 12, 0)


def make_bill(id, due, frequency="monthly", **kw):
    defaults = dict(user_id="u1", name=f"Bill {id}", amount=100.0, account_id="a1")
    defaults.update(kw)
    return UpcomingBill(id=id, due_date=due, frequency=frequency, **defaults)


def make_template(**kw):
    defaults = dict(
        id="r1", user_id="u1", account_id="a1", name="Rent", amount=1200.0,
        type="expense", frequency="monthly", start_date=datetime(2024, 1, 1),
        category_id="c-rent",
    )
    defaults.update(kw)
    return RecurringTemplate(**defaults)


def test_partition_is_exclusive_and_exhaustive():
    bills = [
        make_bill("late", datetime(2024, 1, 5)),
        make_bill("now", NOW),
        make_bill("edge", datetime(2024, 1, 17, 12, 0)),
        make_bill("later", datetime(2024, 2, 1)),
        make_bill("off", datetime(2024, 1, 1), is_active=False),
    ]
    parts = partition_by_urgency(bills, NOW, 7)
    assert [b.id for b in parts.overdue] == ["late"]
    assert [b.id for b in parts.due_soon] == ["now", "edge"]
    assert [b.id for b in parts.rest] == ["later"]

    seen = [b.id for group in (parts.overdue, parts.due_soon, parts.rest) for b in group]
    assert sorted(seen) == ["edge", "late", "later", "now"]


def test_partition_rejects_negative_horizon():
    with pytest.raises(InputError):
        partition_by_urgency([], NOW, -1)


def test_mark_paid_monthly_advances_due_date():
    bill = make_bill("b1", datetime(2024, 1, 15), category_id="c-util")
    execution = mark_paid(bill, NOW)

    assert execution.intent.type == "expense"
    assert execution.intent.date == NOW
    assert execution.intent.name == "Bill b1"
    assert execution.intent.category_id == "c-util"
    assert execution.intent.amount == 100.0
    assert execution.update.kind == "bill"
    assert execution.update.as_dict() == {"due_date": datetime(2024, 2, 15)}


def test_mark_paid_once_deactivates():
    bill = make_bill("b1", datetime(2024, 1, 15), frequency="once")
    patch = mark_paid(bill, NOW).update.as_dict()
    assert patch == {"is_active": False}
    assert "due_date" not in patch


def test_mark_paid_transfer():
    bill = make_bill("b1", datetime(2024, 1, 15), bill_type="transfer", to_account_id="a2")
    intent = mark_paid(bill, NOW).intent
    assert intent.type == "transfer"
    assert intent.to_account_id == "a2"

    with pytest.raises(InputError):
        mark_paid(replace(bill, to_account_id=None), NOW)


@pytest.mark.parametrize("change", [
    {"frequency": "weekly"},
    {"account_id": None},
    {"is_active": False},
    {"bill_type": "income"},
])
def test_mark_paid_rejects_malformed_bills(change):
    bill = replace(make_bill("b1", datetime(2024, 1, 15)), **change)
    with pytest.raises(InputError):
        mark_paid(bill, NOW)


def test_process_early_advances_from_anchor_not_now():
    template = make_template(last_executed=datetime(2024, 1, 1), execution_count=3)
    execution = process_early(template, NOW)

    assert execution.intent.date == NOW
    assert execution.intent.recurring_id == "r1"
    assert execution.intent.amount == 1200.0
    assert execution.update.kind == "recurring"
    assert execution.update.as_dict() == {
        "last_executed": datetime(2024, 2, 1),
        "execution_count": 4,
    }


def test_process_early_uses_start_date_and_interval():
    template = make_template(frequency="weekly", interval=2, start_date=datetime(2024, 1, 3))
    assert process_early(template, NOW).update.as_dict()["last_executed"] == datetime(2024, 1, 17)
    assert template_next_due(template) == datetime(2024, 1, 17)


def test_process_early_limits():
    with pytest.raises(InputError):
        process_early(make_template(total_occurrences=3, execution_count=3), NOW)
    with pytest.raises(InputError):
        process_early(make_template(end_date=datetime(2024, 1, 20)), NOW)
    with pytest.raises(InputError):
        process_early(make_template(frequency="quarterly"), NOW)


def test_reminders_and_due_templates():
    bills = [
        make_bill("today", datetime(2024, 1, 10, 18, 0), reminder_days=0),
        make_bill("soon", datetime(2024, 1, 13), reminder_days=3),
        make_bill("far", datetime(2024, 1, 20), reminder_days=3),
        make_bill("late", datetime(2024, 1, 9), reminder_days=3),
    ]
    assert [b.id for b in bills_needing_reminder(bills, NOW)] == ["today", "soon"]

    due = make_template(id="due", last_executed=datetime(2023, 12, 11))
    not_due = make_template(id="not-due", last_executed=datetime(2024, 1, 1))
    assert [t.id for t in templates_due_within([due, not_due], NOW, 1)] == ["due"]


def test_deactivate_bill():
    update = deactivate_bill(make_bill("b1", NOW))
    assert update.obligation_id == "b1"
    assert update.as_dict() == {"is_active": False}

from datetime import datetime
from itertools import islice

from fincore.domain import Category, Transaction
from fincore.filters import TransactionFilter, iter_transactions, predicate_for
from fincore.transforms import (
    is_need, is_reconciliation, merchant_key, month_bounds, month_start, net_delta,
    totals_by, trailing_window, without_reconciliation,
)


def make_tx(id, amount, type, ts, cat=None, name="", **kw):
    return Transaction(
        id=id, user_id="u1", account_id="a1", amount=amount, type=type,
        date=ts, category_id=cat, name=name, **kw,
    )


def test_trailing_window_covers_whole_days():
    start, end = trailing_window(datetime(2024, 3, 20, 15, 45), 7)
    assert start == datetime(2024, 3, 14)
    assert end.date() == datetime(2024, 3, 20).date()
    assert end.hour == 23 and end.minute == 59


def test_month_bounds():
    now = datetime(2024, 3, 20, 12)
    assert month_bounds(now, 0) == (datetime(2024, 3, 1), now)
    assert month_bounds(now, 1) == (datetime(2024, 2, 1), datetime(2024, 3, 1))
    assert month_bounds(now, 3) == (datetime(2023, 12, 1), datetime(2024, 1, 1))
    assert month_start(datetime(2024, 1, 31), 1) == datetime(2023, 12, 1)


def test_net_delta_ignores_transfers():
    trans = (
        make_tx("t1", 100, "income", datetime(2024, 1, 1)),
        make_tx("t2", 30, "expense", datetime(2024, 1, 2)),
        make_tx("t3", 999, "transfer", datetime(2024, 1, 3), to_account_id="a2"),
    )
    assert net_delta(trans) == 70
    assert net_delta(()) == 0


def test_totals_by_skips_missing_keys():
    trans = (
        make_tx("t1", 10, "expense", datetime(2024, 1, 1), cat="c1"),
        make_tx("t2", 15, "expense", datetime(2024, 1, 1), cat="c1"),
        make_tx("t3", 5, "expense", datetime(2024, 1, 1)),
    )
    assert totals_by(trans, lambda t: t.category_id) == {"c1": 25}


def test_reconciliation_detection():
    cats = {
        "adj": Category("adj", "u1", "Adjustments", "expense"),
        "fix": Category("fix", "u1", "Fixes", "expense", parent_id="adj"),
        "food": Category("food", "u1", "Food", "expense"),
    }
    markers = ("opening balance", "adjustment", "balance correction")
    assert is_reconciliation(make_tx("t1", 1, "income", datetime(2024, 1, 1), name="Opening Balance"), cats, markers)
    assert is_reconciliation(make_tx("t2", 1, "expense", datetime(2024, 1, 1), cat="adj"), cats, markers)
    assert is_reconciliation(make_tx("t3", 1, "expense", datetime(2024, 1, 1), cat="fix"), cats, markers)
    assert not is_reconciliation(make_tx("t4", 1, "expense", datetime(2024, 1, 1), cat="food"), cats, markers)

    kept = without_reconciliation(
        (make_tx("t5", 1, "expense", datetime(2024, 1, 1), name="Balance Correction"),
         make_tx("t6", 1, "expense", datetime(2024, 1, 1), cat="food")),
        cats, ("Balance Correction",),
    )
    assert [t.id for t in kept] == ["t6"]


def test_merchant_key():
    assert merchant_key(make_tx("t1", 1, "expense", datetime(2024, 1, 1), name="  swiggy-food order")) == "SWIGGY"
    assert merchant_key(make_tx("t2", 1, "expense", datetime(2024, 1, 1))) is None


def test_predicate_combines_filters():
    trans = (
        make_tx("t1", 10, "expense", datetime(2024, 1, 1), cat="c1", trip_id="goa"),
        make_tx("t2", 10, "expense", datetime(2024, 1, 2), cat="c1"),
        make_tx("t3", 10, "income", datetime(2024, 1, 3), cat="c1", trip_id="goa", group_id="flat"),
    )
    pred = predicate_for(TransactionFilter(type="expense", trip_id="goa"))
    assert [t.id for t in trans if pred(t)] == ["t1"]
    pred = predicate_for(TransactionFilter(group_id="flat", category_id="c1"))
    assert [t.id for t in trans if pred(t)] == ["t3"]


def test_iter_transactions_is_lazy():
    calls = {"n": 0}

    def pred(t):
        calls["n"] += 1
        return True

    trans = tuple(make_tx(str(i), 1, "expense", datetime(2024, 1, 1)) for i in range(10))
    assert len(list(islice(iter_transactions(trans, pred), 2))) == 2
    assert calls["n"] == 2


def test_is_need():
    assert is_need("Groceries")
    assert is_need("Electricity Bill")
    assert is_need("Doctor", "Healthcare")
    assert not is_need("Food - Dining Out")
    assert not is_need("Fuel", "Shopping")
    assert not is_need("Hobbies")
    assert not is_need("", "")

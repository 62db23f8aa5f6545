from datetime import datetime
from pathlib import Path

import pytest

from fincore.analytics import AnalyticsEngine
from fincore.domain import BILL, LedgerIntent, ObligationUpdate
from fincore.errors import CollaboratorError, InputError
from fincore.filters import TransactionFilter
from fincore.ledger import InMemoryLedger, load_snapshot

SNAPSHOT = Path(__file__).parent / "data" / "snapshot.json"


def test_load_snapshot():
    ledger = load_snapshot(str(SNAPSHOT))

    assert len(ledger.accounts) == 3
    assert len(ledger.transactions) == 3
    assert ledger.transactions[0].date == datetime(2024, 3, 1, 10, 0)
    assert ledger.templates["r1"].start_date == datetime(2024, 1, 1)
    assert ledger.bills["bill1"].due_date == datetime(2024, 3, 25)
    assert ledger.loans[0].status == "active"
    assert ledger.savings[0].include_in_net_worth is False
    assert ledger.trips[0].end_date == datetime(2024, 3, 30)
    assert ledger.groups[0].member_ids == ("u1", "u2")


@pytest.mark.asyncio
async def test_groups_are_found_by_member():
    ledger = load_snapshot(str(SNAPSHOT))
    assert [g.id for g in await ledger.query_groups("u2")] == ["g1"]
    assert await ledger.query_groups("u9") == ()


@pytest.mark.asyncio
async def test_snapshot_net_worth():
    engine = AnalyticsEngine(load_snapshot(str(SNAPSHOT)), clock=lambda: datetime(2024, 3, 20))
    nw = await engine.net_worth("u1")
    assert nw.total_assets == 5500
    assert nw.total_liabilities == 2000
    assert nw.net_worth == 3500


@pytest.mark.asyncio
async def test_query_filters():
    ledger = load_snapshot(str(SNAPSHOT))

    expenses = await ledger.query_transactions("u1", TransactionFilter(type="expense"))
    assert [t.id for t in expenses] == ["t1"]

    card = await ledger.query_transactions("u1", TransactionFilter(account_id="card"))
    assert [t.id for t in card] == ["t3"]

    day = (datetime(2024, 3, 1), datetime(2024, 3, 1, 10, 0))
    assert len(await ledger.query_transactions("u1", TransactionFilter(date_range=day))) == 2
    exclusive = TransactionFilter(date_range=day, end_exclusive=True)
    assert [t.id for t in await ledger.query_transactions("u1", exclusive)] == ["t2"]

    assert await ledger.query_transactions("u2", TransactionFilter()) == ()
    assert len(await ledger.query_accounts("u1", active_only=False)) == 3
    assert len(await ledger.query_categories("u1", "income")) == 1


@pytest.mark.asyncio
async def test_append_validates_shape():
    ledger = load_snapshot(str(SNAPSHOT))
    now = datetime(2024, 3, 20)

    with pytest.raises(InputError):
        await ledger.append_transaction(LedgerIntent("u1", "bank", -5, "expense", now))
    with pytest.raises(InputError):
        await ledger.append_transaction(LedgerIntent("u1", "bank", 5, "transfer", now))
    with pytest.raises(CollaboratorError):
        await ledger.append_transaction(LedgerIntent("u1", "nope", 5, "expense", now))

    t = await ledger.append_transaction(LedgerIntent("u1", "bank", 5, "expense", now, name="Tea"))
    assert ledger.transactions[-1] == t


@pytest.mark.asyncio
async def test_obligation_writes_on_missing_ids():
    ledger = InMemoryLedger()
    with pytest.raises(CollaboratorError):
        await ledger.update_obligation("x", ObligationUpdate("x", BILL, (("is_active", False),)))
    with pytest.raises(CollaboratorError):
        await ledger.delete_obligation("x")

import asyncio
import calendar
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Iterable, Mapping, Optional

import pandas as pd

from fincore.accounts import account_position, resolve_linked_accounts
from fincore.config import DEFAULT_CONFIG, GROUP_COLOR, EngineConfig
from fincore.domain import Category, EXPENSE, Group, INCOME, TRANSFER, Transaction
from fincore.filters import TransactionFilter
from fincore.functional import pipe, require, safe_category, validate_window
from fincore.ledger import Ledger
from fincore.metrics import (
    AHEAD, budget_percentage, change_percentage, period_change, safe_percentage,
    spending_velocity, suggestion, trend, trend_message,
)
from fincore.transforms import (
    is_need, merchant_key, month_bounds, month_start, net_delta, sum_amounts,
    totals_by, trailing_window, without_reconciliation,
)
from fincore.views import (
    BudgetPerformance, CashFlowPoint, CategorySpend, DebtHealth, GroupSpend, HistoryPoint,
    LargestTransaction, MerchantSpend, MonthVelocity, NeedsWantsSavings, NetWorth,
    SpendingInsights, TripSpend, VelocityPoint,
)

logger = logging.getLogger(__name__)


class AnalyticsEngine:
    """Read-only projections over one user's ledger.

    Every call recomputes from the ledger. Sub-queries of a call are issued
    together and joined with ``asyncio.gather``; if any of them fails the
    whole call fails with that error, so a result is never partial.
    """

    def __init__(
        self,
        ledger: Ledger,
        config: EngineConfig = DEFAULT_CONFIG,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ledger = ledger
        self.config = config
        self.clock = clock

    async def category_spend(
        self, user_id: str, window_days: int, now: Optional[datetime] = None
    ) -> tuple[CategorySpend, ...]:
        days = require(validate_window(window_days))
        start, end = trailing_window(now or self.clock(), days)
        trans, cats = await asyncio.gather(
            self._expenses(user_id, start, end),
            self.ledger.query_categories(user_id),
        )

        totals = totals_by(trans, lambda t: t.category_id)
        grand_total = sum(totals.values())
        rows = []
        for cat_id, total in totals.items():
            cat = safe_category(cats, cat_id).get_or_else(None)
            rows.append(CategorySpend(
                category_id=cat_id,
                category_name=cat.name if cat else cat_id,
                category_icon=cat.icon if cat else "",
                category_color=cat.color if cat else "",
                total=total,
                percentage=safe_percentage(total, grand_total),
            ))
        logger.debug("category_spend user=%s window=%s..%s categories=%d", user_id, start, end, len(rows))
        return tuple(sorted(rows, key=lambda r: (-r.total, r.category_name)))

    async def cash_flow(
        self, user_id: str, window_days: int, now: Optional[datetime] = None
    ) -> tuple[CashFlowPoint, ...]:
        days = require(validate_window(window_days))
        start, end = trailing_window(now or self.clock(), days)
        trans = await self.ledger.query_transactions(
            user_id, TransactionFilter(date_range=(start, end))
        )

        days_index = pd.date_range(start=start, periods=days, freq="D")
        flows = [t for t in trans if t.type in (INCOME, EXPENSE)]
        if flows:
            df = pd.DataFrame({
                "day": pd.to_datetime([t.date for t in flows]).normalize().as_unit("ns"),
                "type": [t.type for t in flows],
                "amount": [t.amount for t in flows],
            })
            table = df.groupby(["day", "type"])["amount"].sum().unstack(fill_value=0.0)
        else:
            table = pd.DataFrame(columns=[INCOME, EXPENSE])
        table = table.reindex(index=days_index, columns=[INCOME, EXPENSE], fill_value=0.0)

        logger.debug("cash_flow user=%s days=%d transactions=%d", user_id, days, len(flows))
        return tuple(
            CashFlowPoint(date=day.date(), income=float(income), expense=float(expense))
            for day, income, expense in zip(table.index, table[INCOME], table[EXPENSE])
        )

    async def budget_performance(
        self, user_id: str, now: Optional[datetime] = None
    ) -> tuple[BudgetPerformance, ...]:
        now = now or self.clock()
        start = month_start(now)
        budgets, cats = await asyncio.gather(
            self.ledger.query_budgets(user_id),
            self.ledger.query_categories(user_id),
        )
        spent = await asyncio.gather(*(
            self.ledger.query_transactions(user_id, TransactionFilter(
                type=EXPENSE, date_range=(start, now), category_id=b.category_id,
            ))
            for b in budgets
        ))

        rows = []
        for b, trans in zip(budgets, spent):
            spent_amount = sum_amounts(trans)
            rows.append(BudgetPerformance(
                category_id=b.category_id,
                category_name=safe_category(cats, b.category_id).map(lambda c: c.name).get_or_else(b.category_id),
                budget_amount=b.amount,
                spent_amount=spent_amount,
                remaining=max(0.0, b.amount - spent_amount),
                percentage=budget_percentage(spent_amount, b.amount),
            ))
        return tuple(rows)

    async def net_worth(self, user_id: str, now: Optional[datetime] = None) -> NetWorth:
        """Current assets and liabilities plus a monthly history.

        Assets are non-credit account balances, money lent and savings goals
        flagged for net worth; liabilities are drawn credit and money
        borrowed. Linked cards count with their resolved balance and limit.
        The history walks back one calendar month at a time, undoing that
        month's income and expense, and holds ``history_months + 1`` points, oldest first: the value at
        the start of the earliest month, then at the start of each later
        month, and finally now. Opening balances and adjustments are not
        undone. This is an approximation, not a ledger of record.
        """
        now = now or self.clock()
        months = self.config.history_months
        bounds = [month_bounds(now, k) for k in range(months)]
        trend_start = now - timedelta(days=self.config.trend_window_days)

        accounts, loans, savings, cats, recent, *monthly = await asyncio.gather(
            self.ledger.query_accounts(user_id, True),
            self.ledger.query_loans(user_id, "active"),
            self.ledger.query_savings(user_id),
            self.ledger.query_categories(user_id),
            self.ledger.query_transactions(user_id, TransactionFilter(date_range=(trend_start, now))),
            *(
                self.ledger.query_transactions(
                    user_id, TransactionFilter(date_range=b, end_exclusive=k > 0)
                )
                for k, b in enumerate(bounds)
            ),
        )

        assets = liabilities = 0.0
        for acc in resolve_linked_accounts(accounts):
            asset, liability = account_position(acc)
            assets += asset
            liabilities += liability
        for loan in loans:
            if loan.type == "lent":
                assets += loan.remaining_amount
            else:
                liabilities += loan.remaining_amount
        assets += sum(s.current_amount for s in savings if s.include_in_net_worth)
        current = assets - liabilities

        by_id = {c.id: c for c in cats}
        value = current
        points = [HistoryPoint(date=now, value=value, label=f"{now:%b}")]
        for (start, _), trans in zip(bounds, monthly):
            value -= self._net_change(trans, by_id)
            points.append(HistoryPoint(date=start, value=value, label=f"{start:%b}"))

        change = self._net_change(recent, by_id)
        logger.debug("net_worth user=%s assets=%s liabilities=%s change=%s", user_id, assets, liabilities, change)
        return NetWorth(
            total_assets=assets,
            total_liabilities=liabilities,
            net_worth=current,
            trend=trend(change),
            change_percentage=change_percentage(change, current - change),
            history=tuple(reversed(points)),
        )

    async def spending_insights(
        self, user_id: str, window_days: int, now: Optional[datetime] = None
    ) -> SpendingInsights:
        """Compare the last ``window_days`` with the window right before it."""
        days = require(validate_window(window_days))
        now = now or self.clock()
        width = timedelta(days=days)
        current, previous, cats = await asyncio.gather(
            self._expenses(user_id, now - width, now),
            self.ledger.query_transactions(user_id, TransactionFilter(
                type=EXPENSE, date_range=(now - 2 * width, now - width), end_exclusive=True,
            )),
            self.ledger.query_categories(user_id),
        )
        by_id = {c.id: c for c in cats}
        markers = self.config.reconciliation_markers
        current = without_reconciliation(current, by_id, markers)

        current_total = sum_amounts(current)
        previous_total = pipe(previous, lambda ts: without_reconciliation(ts, by_id, markers), sum_amounts)
        change = period_change(current_total, previous_total)

        totals = totals_by(current, lambda t: t.category_id)
        top_id = max(totals, key=totals.get) if totals else None
        top_category = by_id[top_id].name if top_id in by_id else top_id

        daily_average = current_total / days
        return SpendingInsights(
            current_total=current_total,
            previous_total=previous_total,
            percentage_change=change,
            top_category=top_category,
            daily_average=daily_average,
            projected_total=daily_average * self.config.projection_days,
            largest_transaction=self._largest(current, by_id),
            trend_message=trend_message(change, self.config),
            suggestion=suggestion(top_category),
        )

    async def month_velocity(self, user_id: str, now: Optional[datetime] = None) -> MonthVelocity:
        """Month-to-date spend against earlier months cut at the same day."""
        now = now or self.clock()
        day = now.day
        days_in_month = calendar.monthrange(now.year, now.month)[1]
        lookback = self.config.velocity_lookback_months

        current, *past = await asyncio.gather(
            self._expenses(user_id, month_start(now), now),
            *(
                self.ledger.query_transactions(user_id, TransactionFilter(
                    type=EXPENSE, date_range=month_bounds(now, k), end_exclusive=True,
                ))
                for k in range(1, lookback + 1)
            ),
        )

        current_total = sum_amounts(current)
        # months with nothing spent up to the same day do not count
        cut = [tuple(t for t in trans if t.date.day <= day) for trans in past]
        same_day_totals = [sum_amounts(trans) for trans in cut if trans]
        average = sum(same_day_totals) / len(same_day_totals) if same_day_totals else current_total
        velocity = spending_velocity(current_total, average, self.config)

        per_day = totals_by(current, lambda t: t.date.day)
        cumulative, points = 0.0, []
        for d in range(1, day + 1):
            cumulative += per_day.get(d, 0.0)
            points.append(VelocityPoint(day=d, cumulative=cumulative))

        overspend = 0.0
        if velocity.status == AHEAD:
            overspend = current_total / day * days_in_month - average
        return MonthVelocity(
            current_spend=current_total,
            average_spend=average,
            status=velocity.status,
            progress_percent=velocity.progress_percent,
            projected_overspend=overspend,
            daily=tuple(points),
        )

    async def merchant_spending(
        self, user_id: str, window_days: int, now: Optional[datetime] = None
    ) -> tuple[MerchantSpend, ...]:
        days = require(validate_window(window_days))
        start, end = trailing_window(now or self.clock(), days)
        trans = await self._expenses(user_id, start, end)

        totals = totals_by(trans, merchant_key)
        counts = Counter(k for k in map(merchant_key, trans) if k is not None)
        grand_total = sum(totals.values())
        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        return tuple(
            MerchantSpend(name, total, counts[name], safe_percentage(total, grand_total))
            for name, total in ranked[: self.config.merchant_limit]
        )

    async def needs_wants_savings(
        self, user_id: str, window_days: int, now: Optional[datetime] = None
    ) -> NeedsWantsSavings:
        days = require(validate_window(window_days))
        start, end = trailing_window(now or self.clock(), days)
        trans, cats = await asyncio.gather(
            self.ledger.query_transactions(user_id, TransactionFilter(date_range=(start, end))),
            self.ledger.query_categories(user_id),
        )
        by_id = {c.id: c for c in cats}

        needs, wants, saved = [], [], []
        for t in without_reconciliation(trans, by_id, self.config.reconciliation_markers):
            if t.type == TRANSFER and t.savings_id:
                saved.append(t)
            elif t.type == EXPENSE:
                cat = safe_category(cats, t.category_id)
                parent_name = (
                    cat.bind(lambda c: safe_category(cats, c.parent_id))
                    .map(lambda p: p.name)
                    .get_or_else("")
                )
                if is_need(cat.map(lambda c: c.name).get_or_else(""), parent_name):
                    needs.append(t)
                else:
                    wants.append(t)

        totals = [sum_amounts(group) for group in (needs, wants, saved)]
        return NeedsWantsSavings(
            needs=totals[0],
            wants=totals[1],
            savings=totals[2],
            total=sum(totals),
            needs_transactions=tuple(needs),
            wants_transactions=tuple(wants),
            savings_transactions=tuple(saved),
        )

    async def trips_analytics(self, user_id: str, now: Optional[datetime] = None) -> tuple[TripSpend, ...]:
        """Expense total against budget for each trip that has not ended."""
        today = (now or self.clock()).date()
        trips = [tr for tr in await self.ledger.query_trips(user_id) if tr.end_date.date() >= today]
        spent = await asyncio.gather(*(
            self.ledger.query_transactions(user_id, TransactionFilter(type=EXPENSE, trip_id=tr.id))
            for tr in trips
        ))

        rows = []
        for tr, trans in zip(trips, spent):
            total = sum_amounts(trans)
            rows.append(TripSpend(
                trip_id=tr.id,
                name=tr.name,
                budget=tr.budget_amount,
                spent=total,
                percentage=safe_percentage(total, tr.budget_amount) if tr.budget_amount > 0 else 0.0,
            ))
        return tuple(rows)

    async def groups_analytics(self, user_id: str) -> tuple[GroupSpend, ...]:
        """Expense total of every group the user belongs to, across all members."""
        groups = await self.ledger.query_groups(user_id)
        totals = await asyncio.gather(*(self._group_total(g) for g in groups))
        logger.debug("groups_analytics user=%s groups=%d", user_id, len(groups))
        return tuple(
            GroupSpend(group_id=g.id, name=g.name, color=GROUP_COLOR, total_spent=total)
            for g, total in zip(groups, totals)
        )

    async def debt_health(self, user_id: str) -> DebtHealth:
        loans = [lo for lo in await self.ledger.query_loans(user_id, "active") if lo.type == "borrowed"]
        total = sum(lo.total_amount for lo in loans)
        paid = total - sum(lo.remaining_amount for lo in loans)
        due_dates = [lo.next_due_date for lo in loans if lo.next_due_date is not None]
        return DebtHealth(
            total_debt=total,
            paid_amount=paid,
            progress=safe_percentage(paid, total),
            next_payment_date=min(due_dates) if due_dates else None,
        )

    async def _expenses(self, user_id: str, start: datetime, end: datetime) -> tuple[Transaction, ...]:
        return await self.ledger.query_transactions(
            user_id, TransactionFilter(type=EXPENSE, date_range=(start, end))
        )

    async def _group_total(self, group: Group) -> float:
        per_member = await asyncio.gather(*(
            self.ledger.query_transactions(member, TransactionFilter(type=EXPENSE, group_id=group.id))
            for member in group.member_ids
        ))
        return sum(sum_amounts(trans) for trans in per_member)

    def _net_change(self, trans: Iterable[Transaction], cats: Mapping[str, Category]) -> float:
        return net_delta(without_reconciliation(trans, cats, self.config.reconciliation_markers))

    @staticmethod
    def _largest(trans: Iterable[Transaction], cats: Mapping[str, Category]) -> Optional[LargestTransaction]:
        trans = tuple(trans)
        if not trans:
            return None
        t = max(trans, key=lambda x: x.amount)
        cat = cats.get(t.category_id) if t.category_id else None
        return LargestTransaction(
            name=t.name or t.description,
            amount=t.amount,
            date=t.date,
            category_name=cat.name if cat else None,
            category_icon=cat.icon if cat else None,
            category_color=cat.color if cat else None,
        )

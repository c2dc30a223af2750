"""Analytics service: spending aggregates for the dashboard and reports.

The aggregation helpers are pure functions over transaction-like objects
(anything with ``date``, ``amount``, ``category``, ``merchant`` and
``description`` attributes). Every aggregate sums absolute amounts, so
refunds count as spending.
"""

import calendar
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.security import AuthenticatedUser
from finance_tracker.models.transaction import Transaction

ZERO = Decimal("0")


def _only_categories(transactions: Iterable, selected_categories: Sequence[str] | None) -> list:
    if not selected_categories:
        return list(transactions)
    selected = set(selected_categories)
    return [t for t in transactions if t.category in selected]


def filter_transactions(
    transactions: Iterable,
    category: str | None = None,
    merchant: str | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
) -> list:
    """Dashboard filters, matching the transaction list.

    The merchant filter matches merchant or description; amount bounds apply
    to the absolute amount.
    """
    filtered = list(transactions)
    if category:
        filtered = [t for t in filtered if t.category == category]
    if merchant:
        needle = merchant.lower()
        filtered = [
            t
            for t in filtered
            if needle in (t.merchant or "").lower() or needle in t.description.lower()
        ]
    if min_amount is not None:
        filtered = [t for t in filtered if abs(t.amount) >= min_amount]
    if max_amount is not None:
        filtered = [t for t in filtered if abs(t.amount) <= max_amount]
    return filtered


def category_totals(transactions: Iterable, selected_categories: Sequence[str] | None = None) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for t in _only_categories(transactions, selected_categories):
        totals[t.category] = totals.get(t.category, ZERO) + abs(t.amount)
    return totals


def merchant_totals(transactions: Iterable, selected_categories: Sequence[str] | None = None) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for t in _only_categories(transactions, selected_categories):
        key = t.merchant or t.description
        totals[key] = totals.get(key, ZERO) + abs(t.amount)
    return totals


def monthly_totals(transactions: Iterable, selected_categories: Sequence[str] | None = None) -> list[Decimal]:
    """Twelve slots indexed by calendar month.

    Transactions from different years land in the same slot.
    """
    totals = [ZERO] * 12
    for t in _only_categories(transactions, selected_categories):
        totals[t.date.month - 1] += abs(t.amount)
    return totals


def summary_stats(transactions: Iterable, selected_categories: Sequence[str] | None = None) -> dict:
    relevant = _only_categories(transactions, selected_categories)
    amounts = [abs(t.amount) for t in relevant]
    total_spent = sum(amounts, ZERO)
    return {
        "total_spent": total_spent,
        "avg_transaction": total_spent / (len(relevant) or 1),
        "largest_expense": max(amounts, default=ZERO),
        "transaction_count": len(relevant),
    }


def _sorted_items(totals: dict[str, Decimal]) -> list[dict]:
    return [
        {"key": key, "total": total}
        for key, total in sorted(totals.items(), key=lambda item: item[1], reverse=True)
    ]


def subtract_months(day: date, months: int) -> date:
    """Same day ``months`` earlier, clamped to the end of shorter months."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def report_date_range(period: str, today: date | None = None) -> tuple[date, date]:
    """Date window ending today for a report period (week, month, quarter, year)."""
    end = today or date.today()
    if period == "week":
        start = end - timedelta(weeks=1)
    elif period == "month":
        start = subtract_months(end, 1)
    elif period == "quarter":
        start = subtract_months(end, 3)
    elif period == "year":
        start = subtract_months(end, 12)
    else:
        raise ValueError(f"Unknown report period: {period}")
    return start, end


def build_aggregates(transactions: list, selected_categories: Sequence[str] | None = None) -> dict:
    return {
        "stats": summary_stats(transactions, selected_categories),
        "by_category": _sorted_items(category_totals(transactions, selected_categories)),
        "by_merchant": _sorted_items(merchant_totals(transactions, selected_categories)),
        "monthly": monthly_totals(transactions, selected_categories),
    }


class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(
        self, user: AuthenticatedUser, date_from: date | None, date_to: date | None
    ) -> list[Transaction]:
        query = select(Transaction).where(Transaction.userid == user.id)
        if date_from:
            query = query.where(Transaction.date >= date_from)
        if date_to:
            query = query.where(Transaction.date <= date_to)
        result = await self.db.execute(query.order_by(Transaction.date.desc()))
        return list(result.scalars().all())

    async def dashboard(
        self,
        user: AuthenticatedUser,
        date_from: date | None = None,
        date_to: date | None = None,
        category: str | None = None,
        merchant: str | None = None,
        min_amount: Decimal | None = None,
        max_amount: Decimal | None = None,
        selected_categories: list[str] | None = None,
    ) -> dict:
        """Filtered aggregates for the dashboard."""
        transactions = filter_transactions(
            await self._load(user, date_from, date_to),
            category=category,
            merchant=merchant,
            min_amount=min_amount,
            max_amount=max_amount,
        )
        return {
            "date_from": date_from,
            "date_to": date_to,
            **build_aggregates(transactions, selected_categories),
        }

    async def report(
        self,
        user: AuthenticatedUser,
        period: str | None = "month",
        date_from: date | None = None,
        date_to: date | None = None,
        today: date | None = None,
    ) -> dict:
        """Aggregates over a report window; explicit dates override the period."""
        if date_from is None and date_to is None and period:
            date_from, date_to = report_date_range(period, today)
        transactions = await self._load(user, date_from, date_to)
        return {
            "period": period,
            "date_from": date_from,
            "date_to": date_to,
            **build_aggregates(transactions),
        }

    async def spent_in_category(
        self, user: AuthenticatedUser, category: str, date_from: date, date_to: date
    ) -> Decimal:
        transactions = await self._load(user, date_from, date_to)
        return category_totals(transactions).get(category, ZERO)

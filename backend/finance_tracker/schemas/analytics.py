"""Analytics schemas."""

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel

ReportPeriod = Literal["week", "month", "quarter", "year"]


class SummaryStats(BaseModel):
    total_spent: Decimal
    avg_transaction: Decimal
    largest_expense: Decimal
    transaction_count: int


class AmountByKey(BaseModel):
    key: str
    total: Decimal


class DashboardResponse(BaseModel):
    date_from: date | None = None
    date_to: date | None = None
    stats: SummaryStats
    by_category: list[AmountByKey]
    by_merchant: list[AmountByKey]
    monthly: list[Decimal]  # 12 slots, January first


class ReportResponse(DashboardResponse):
    period: ReportPeriod | None = None

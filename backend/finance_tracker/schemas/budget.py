"""Budget schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

BudgetPeriod = Literal["monthly", "quarterly", "yearly"]


class BudgetCreate(BaseModel):
    category: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    period: BudgetPeriod = "monthly"
    start_date: date


class BudgetUpdate(BaseModel):
    category: str | None = Field(default=None, min_length=1)
    amount: Decimal | None = Field(default=None, gt=0)
    period: BudgetPeriod | None = None
    start_date: date | None = None


class BudgetResponse(BaseModel):
    id: str
    category: str
    amount: Decimal
    period: str
    start_date: date
    spent: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")
    created_at: datetime

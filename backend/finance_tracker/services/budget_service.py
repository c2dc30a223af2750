"""Budget service: per-category spending targets.

Budgets are informational; nothing is enforced. Each budget is reported with
what was spent in its current period window.
"""

from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.exceptions import ForbiddenError, NotFoundError
from finance_tracker.core.security import AuthenticatedUser
from finance_tracker.models.budget import Budget
from finance_tracker.schemas.budget import BudgetCreate, BudgetUpdate
from finance_tracker.services.analytics_service import AnalyticsService, subtract_months

PERIOD_MONTHS = {"monthly": 1, "quarterly": 3, "yearly": 12}


def current_window(start_date: date, period: str, today: date | None = None) -> tuple[date, date]:
    """The period window (inclusive) containing today, counted from start_date.

    Budgets starting in the future report their first window.
    """
    today = today or date.today()
    months = PERIOD_MONTHS[period]
    step = 0
    window_start = start_date
    next_start = subtract_months(start_date, -months)
    while next_start <= today:
        step += 1
        window_start = next_start
        next_start = subtract_months(start_date, -months * (step + 1))
    return window_start, next_start - timedelta(days=1)


class BudgetService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_budgets(self, user: AuthenticatedUser, today: date | None = None) -> list[dict]:
        result = await self.db.execute(
            select(Budget).where(Budget.userid == user.id).order_by(Budget.category)
        )
        return [await self._enrich(b, user, today) for b in result.scalars().all()]

    async def create_budget(self, data: BudgetCreate, user: AuthenticatedUser) -> dict:
        budget = Budget(userid=user.id, **data.model_dump())
        self.db.add(budget)
        await self.db.flush()
        return await self._enrich(budget, user)

    async def update_budget(self, budget_id: str, data: BudgetUpdate, user: AuthenticatedUser) -> dict:
        budget = await self._get_user_budget(budget_id, user)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(budget, key, value)
        await self.db.flush()
        return await self._enrich(budget, user)

    async def delete_budget(self, budget_id: str, user: AuthenticatedUser) -> None:
        budget = await self._get_user_budget(budget_id, user)
        await self.db.delete(budget)
        await self.db.flush()

    async def _enrich(self, budget: Budget, user: AuthenticatedUser, today: date | None = None) -> dict:
        window_start, window_end = current_window(budget.start_date, budget.period, today)
        spent = await AnalyticsService(self.db).spent_in_category(
            user, budget.category, window_start, window_end
        )
        return {
            "id": budget.id,
            "category": budget.category,
            "amount": budget.amount,
            "period": budget.period,
            "start_date": budget.start_date,
            "spent": spent,
            "remaining": budget.amount - spent,
            "created_at": budget.created_at,
        }

    async def _get_user_budget(self, budget_id: str, user: AuthenticatedUser) -> Budget:
        """Fetch a budget and verify ownership."""
        budget = await self.db.get(Budget, budget_id)
        if not budget:
            raise NotFoundError("Budget")
        if budget.userid != user.id:
            raise ForbiddenError()
        return budget

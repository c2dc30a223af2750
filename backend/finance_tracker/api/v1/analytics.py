"""Analytics API routes: dashboard and report aggregates."""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import AuthenticatedUser, get_current_user, get_db
from finance_tracker.schemas.analytics import DashboardResponse, ReportResponse
from finance_tracker.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    date_from: date | None = None,
    date_to: date | None = None,
    category: str | None = None,
    merchant: str | None = None,
    min_amount: Decimal | None = Query(None, ge=0),
    max_amount: Decimal | None = Query(None, ge=0),
    selected_categories: list[str] | None = Query(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Spending totals by category, by merchant and by month, plus summary stats.

    selected_categories restricts the aggregates (not the filters) to those categories.
    """
    service = AnalyticsService(db)
    return await service.dashboard(
        user=current_user,
        date_from=date_from,
        date_to=date_to,
        category=category,
        merchant=merchant,
        min_amount=min_amount,
        max_amount=max_amount,
        selected_categories=selected_categories,
    )


@router.get("/report", response_model=ReportResponse)
async def report(
    period: str | None = Query("month", pattern="^(week|month|quarter|year)$"),
    date_from: date | None = None,
    date_to: date | None = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Aggregates for the last week/month/quarter/year, or an explicit date range."""
    service = AnalyticsService(db)
    return await service.report(
        user=current_user,
        period=period,
        date_from=date_from,
        date_to=date_to,
    )

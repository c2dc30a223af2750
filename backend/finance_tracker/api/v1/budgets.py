"""Budget API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import AuthenticatedUser, get_current_user, get_db
from finance_tracker.schemas.budget import BudgetCreate, BudgetResponse, BudgetUpdate
from finance_tracker.services.budget_service import BudgetService

router = APIRouter()


@router.get("", response_model=list[BudgetResponse])
async def list_budgets(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List budgets with the amount spent in their current period."""
    service = BudgetService(db)
    return await service.list_budgets(current_user)


@router.post("", response_model=BudgetResponse, status_code=201)
async def create_budget(
    data: BudgetCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = BudgetService(db)
    return await service.create_budget(data, current_user)


@router.patch("/{budget_id}", response_model=BudgetResponse)
async def update_budget(
    budget_id: str,
    data: BudgetUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = BudgetService(db)
    return await service.update_budget(budget_id, data, current_user)


@router.delete("/{budget_id}", status_code=204)
async def delete_budget(
    budget_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = BudgetService(db)
    await service.delete_budget(budget_id, current_user)

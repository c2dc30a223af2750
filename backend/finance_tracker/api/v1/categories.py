"""Category API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import AuthenticatedUser, get_current_user, get_db, require_admin
from finance_tracker.schemas.category import (
    CategoryCreate,
    CategoryReassign,
    CategoryReassignResult,
    CategoryResponse,
    CategoryUpdate,
    SystemCategoriesUpdate,
)
from finance_tracker.services.category_service import CategoryService

router = APIRouter()


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List all categories (built-in, system and user custom)."""
    service = CategoryService(db)
    return await service.list_categories(current_user)


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a custom user category."""
    service = CategoryService(db)
    return await service.create_category(data, current_user)


@router.put("/system", response_model=list[CategoryResponse])
async def replace_system_categories(
    data: SystemCategoriesUpdate,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Replace the system-wide category list (admin only)."""
    service = CategoryService(db)
    return await service.replace_system_categories(data.categories, admin)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a user category (cannot modify built-in or system categories)."""
    service = CategoryService(db)
    return await service.update_category(category_id, data, current_user)


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user category (cannot delete built-in or system categories)."""
    service = CategoryService(db)
    await service.delete_category(category_id, current_user)


@router.post("/{category_id}/reassign", response_model=CategoryReassignResult)
async def reassign_category(
    category_id: str,
    data: CategoryReassign,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Move every transaction and learned pattern of this category to another one."""
    service = CategoryService(db)
    return await service.reassign_category(category_id, data.new_category, current_user)

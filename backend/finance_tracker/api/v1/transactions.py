"""Transaction API routes."""

from datetime import date
from decimal import Decimal

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import AuthenticatedUser, get_current_user, get_db
from finance_tracker.schemas.transaction import (
    BulkCategoryUpdate,
    DeleteResult,
    ImportResult,
    RecurringUpdate,
    SimilarTransactionsResponse,
    SuggestCategoryRequest,
    SuggestCategoryResponse,
    TransactionBulkCreate,
    TransactionResponse,
    TransactionUpdate,
    TransactionUpdateResult,
)
from finance_tracker.services.categorization_service import CategorizationService
from finance_tracker.services.import_service import ImportService
from finance_tracker.services.transaction_service import TransactionService

logger = structlog.get_logger()

router = APIRouter()


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(
    date_from: date | None = None,
    date_to: date | None = None,
    category: str | None = None,
    merchant: str | None = None,
    min_amount: Decimal | None = Query(None, ge=0),
    max_amount: Decimal | None = Query(None, ge=0),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's transactions, newest first."""
    service = TransactionService(db)
    return await service.list_transactions(
        user=current_user,
        date_from=date_from,
        date_to=date_to,
        category=category,
        merchant=merchant,
        min_amount=min_amount,
        max_amount=max_amount,
    )


@router.post("", response_model=list[TransactionResponse], status_code=201)
async def create_transactions(
    data: TransactionBulkCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create one or more transactions manually (amounts are recorded as expenses)."""
    service = TransactionService(db)
    return await service.create_transactions(data.transactions, current_user)


@router.post("/import", response_model=ImportResult)
async def import_transactions(
    files: list[UploadFile] = File(...),
    credit_card_id: str | None = Form(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Import transactions from bank statements (.xlsx, .xls).

    Files are processed in order; a file that cannot be parsed is reported in
    ``errors`` without aborting the others.
    """
    uploads = []
    for upload in files:
        uploads.append((upload.filename or "upload", await upload.read()))

    service = ImportService(db)
    return await service.import_files(current_user, uploads, credit_card_id=credit_card_id)


@router.post("/suggest-category", response_model=SuggestCategoryResponse)
async def suggest_category(
    data: SuggestCategoryRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Suggest a category for a description."""
    service = CategorizationService(db)
    category = await service.suggest_category(data.description, current_user.id)
    return {"description": data.description, "category": category}


@router.post("/bulk-category")
async def bulk_update_category(
    data: BulkCategoryUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Recategorize several transactions, each propagated to similar ones."""
    service = TransactionService(db)
    updated = await service.bulk_update_category(data.transaction_ids, data.category, current_user)
    return {"updated": updated}


@router.get("/{transaction_id}/similar", response_model=SimilarTransactionsResponse)
async def similar_transactions(
    transaction_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Count the user's other transactions with the same description.

    Clients use it to offer updating only this transaction or all similar ones.
    """
    service = TransactionService(db)
    return await service.similar_count(transaction_id, current_user)


@router.patch("/{transaction_id}", response_model=TransactionUpdateResult)
async def update_transaction(
    transaction_id: str,
    data: TransactionUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a transaction (scope=all_similar also recategorizes similar ones)."""
    service = TransactionService(db)
    return await service.update_transaction(transaction_id, data, current_user)


@router.patch("/{transaction_id}/recurring")
async def set_recurring(
    transaction_id: str,
    data: RecurringUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a transaction, and every one with the same description, as (non-)recurring."""
    service = TransactionService(db)
    updated = await service.set_recurring(transaction_id, data.is_recurring, current_user)
    return {"is_recurring": data.is_recurring, "updated": updated}


@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = TransactionService(db)
    await service.delete_transaction(transaction_id, current_user)


@router.delete("", response_model=DeleteResult)
async def clear_transactions(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete all of the user's transactions."""
    service = TransactionService(db)
    deleted = await service.clear_transactions(current_user)
    return {"deleted_count": deleted}

"""Receipt API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import AuthenticatedUser, get_current_user, get_db
from finance_tracker.schemas.receipt import ReceiptCreate, ReceiptResponse, ReceiptTransactionCreate
from finance_tracker.schemas.transaction import TransactionResponse
from finance_tracker.services.receipt_service import ReceiptService

router = APIRouter()


@router.get("", response_model=list[ReceiptResponse])
async def list_receipts(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ReceiptService(db)
    return await service.list_receipts(current_user)


@router.post("", response_model=ReceiptResponse, status_code=201)
async def create_receipt(
    data: ReceiptCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Store a receipt and return the fields read from its OCR text."""
    service = ReceiptService(db)
    return await service.create_receipt(data, current_user)


@router.post("/{receipt_id}/transaction", response_model=TransactionResponse, status_code=201)
async def create_receipt_transaction(
    receipt_id: str,
    data: ReceiptTransactionCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an expense from a receipt and link it."""
    service = ReceiptService(db)
    return await service.create_transaction(receipt_id, data, current_user)


@router.delete("/{receipt_id}", status_code=204)
async def delete_receipt(
    receipt_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ReceiptService(db)
    await service.delete_receipt(receipt_id, current_user)

"""Credit card API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import AuthenticatedUser, get_current_user, get_db
from finance_tracker.schemas.credit_card import CreditCardCreate, CreditCardResponse
from finance_tracker.services.credit_card_service import CreditCardService

router = APIRouter()


@router.get("", response_model=list[CreditCardResponse])
async def list_credit_cards(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = CreditCardService(db)
    return await service.list_cards(current_user)


@router.post("", response_model=CreditCardResponse, status_code=201)
async def create_credit_card(
    data: CreditCardCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = CreditCardService(db)
    return await service.create_card(data, current_user)


@router.delete("/{card_id}", status_code=204)
async def delete_credit_card(
    card_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a credit card; its transactions are kept."""
    service = CreditCardService(db)
    await service.delete_card(card_id, current_user)

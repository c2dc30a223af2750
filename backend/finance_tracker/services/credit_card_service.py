"""Credit card service."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.exceptions import ForbiddenError, NotFoundError
from finance_tracker.core.security import AuthenticatedUser
from finance_tracker.models.credit_card import CreditCard
from finance_tracker.models.transaction import Transaction
from finance_tracker.schemas.credit_card import CreditCardCreate


class CreditCardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_cards(self, user: AuthenticatedUser) -> list[CreditCard]:
        result = await self.db.execute(
            select(CreditCard)
            .where(CreditCard.userid == user.id)
            .order_by(CreditCard.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_card(self, data: CreditCardCreate, user: AuthenticatedUser) -> CreditCard:
        card = CreditCard(userid=user.id, name=data.name, last_four=data.last_four)
        self.db.add(card)
        await self.db.flush()
        return card

    async def delete_card(self, card_id: str, user: AuthenticatedUser) -> None:
        """Delete a card. Its transactions keep their payment method but lose the link."""
        card = await self.db.get(CreditCard, card_id)
        if not card:
            raise NotFoundError("Credit card")
        if card.userid != user.id:
            raise ForbiddenError()

        await self.db.execute(
            update(Transaction)
            .where(Transaction.credit_card_id == card.id)
            .values(credit_card_id=None)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.delete(card)
        await self.db.flush()

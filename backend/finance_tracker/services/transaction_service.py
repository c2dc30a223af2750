"""Transaction management service."""

from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy import Numeric, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from finance_tracker.core.security import AuthenticatedUser
from finance_tracker.models.credit_card import CreditCard
from finance_tracker.models.receipt import Receipt
from finance_tracker.models.transaction import PAYMENT_CREDIT_CARD, Transaction
from finance_tracker.schemas.transaction import TransactionCreate, TransactionUpdate
from finance_tracker.services.propagation_service import PropagationService

logger = structlog.get_logger()


class TransactionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_transactions(
        self,
        user: AuthenticatedUser,
        date_from: date | None = None,
        date_to: date | None = None,
        category: str | None = None,
        merchant: str | None = None,
        min_amount: Decimal | None = None,
        max_amount: Decimal | None = None,
    ) -> list[Transaction]:
        """List the user's transactions, newest first.

        Amount bounds apply to the absolute amount.
        """
        query = select(Transaction).where(Transaction.userid == user.id)

        if date_from:
            query = query.where(Transaction.date >= date_from)
        if date_to:
            query = query.where(Transaction.date <= date_to)
        if category:
            query = query.where(Transaction.category == category)
        if merchant:
            query = query.where(
                or_(
                    Transaction.merchant.icontains(merchant, autoescape=True),
                    Transaction.description.icontains(merchant, autoescape=True),
                )
            )
        magnitude = func.abs(Transaction.amount, type_=Numeric(12, 2))
        if min_amount is not None:
            query = query.where(magnitude >= min_amount)
        if max_amount is not None:
            query = query.where(magnitude <= max_amount)

        query = query.order_by(Transaction.date.desc(), Transaction.created_at.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_transactions(
        self, items: list[TransactionCreate], user: AuthenticatedUser
    ) -> list[Transaction]:
        """Create manual entries. Amounts are stored as expenses (negative)."""
        card_ids = {item.credit_card_id for item in items if item.credit_card_id}
        for card_id in card_ids:
            await self._get_user_card(card_id, user)

        transactions = [
            Transaction(
                userid=user.id,
                date=item.date,
                description=item.description,
                amount=-abs(item.amount),
                category=item.category,
                payment_method=item.payment_method,
                credit_card_id=item.credit_card_id,
                is_recurring=item.is_recurring,
            )
            for item in items
        ]
        self.db.add_all(transactions)
        await self.db.flush()

        logger.info("transactions_created", user_id=user.id, count=len(transactions))
        return transactions

    async def update_transaction(
        self, transaction_id: str, data: TransactionUpdate, user: AuthenticatedUser
    ) -> dict:
        """Update a transaction, optionally pushing its category to similar ones.

        The single update and the propagation share the request transaction.
        """
        txn = await self._get_user_transaction(transaction_id, user)
        update_data = data.model_dump(exclude_unset=True, exclude={"scope"})

        if "payment_method" in update_data or "credit_card_id" in update_data:
            payment_method = update_data.get("payment_method") or txn.payment_method
            credit_card_id = update_data.get("credit_card_id", txn.credit_card_id)
            if credit_card_id:
                await self._get_user_card(credit_card_id, user)
            if payment_method == PAYMENT_CREDIT_CARD:
                if not credit_card_id:
                    raise ValidationError("credit_card_id is required when payment_method is credit_card")
            elif update_data.get("credit_card_id"):
                raise ValidationError("credit_card_id is only allowed when payment_method is credit_card")
            else:
                update_data["credit_card_id"] = None
            update_data["payment_method"] = payment_method

        # edits, like manual entries, are expenses
        if update_data.get("amount") is not None:
            update_data["amount"] = -abs(update_data["amount"])

        for key, value in update_data.items():
            if value is None and key in ("date", "description", "amount", "category", "is_recurring"):
                continue
            setattr(txn, key, value)
        await self.db.flush()

        propagated = 0
        if data.scope == "all_similar":
            propagated = await PropagationService(self.db).propagate_similar(txn)

        await self.db.refresh(txn)
        return {"transaction": txn, "propagated_count": propagated}

    async def bulk_update_category(
        self, transaction_ids: list[str], category: str, user: AuthenticatedUser
    ) -> int:
        """Set the category of several transactions and propagate each to similar ones."""
        propagation = PropagationService(self.db)
        updated = 0
        for transaction_id in dict.fromkeys(transaction_ids):
            txn = await self._get_user_transaction(transaction_id, user)
            txn.category = category
            await self.db.flush()
            await propagation.propagate_similar(txn)
            updated += 1
        return updated

    async def set_recurring(
        self, transaction_id: str, is_recurring: bool, user: AuthenticatedUser
    ) -> int:
        """Set the recurring flag on a transaction and every one with the same description.

        Returns the number of transactions updated.
        """
        txn = await self._get_user_transaction(transaction_id, user)
        result = await self.db.execute(
            update(Transaction)
            .where(
                Transaction.userid == user.id,
                Transaction.description == txn.description,
            )
            .values(is_recurring=is_recurring)
            .execution_options(synchronize_session="fetch")
        )
        logger.info(
            "recurring_updated",
            user_id=user.id,
            is_recurring=is_recurring,
            updated=result.rowcount,
        )
        return result.rowcount

    async def similar_count(self, transaction_id: str, user: AuthenticatedUser) -> dict:
        txn = await self._get_user_transaction(transaction_id, user)
        count = await PropagationService(self.db).count_same_description(txn)
        return {"transaction_id": txn.id, "description": txn.description, "similar_count": count}

    async def delete_transaction(self, transaction_id: str, user: AuthenticatedUser) -> None:
        txn = await self._get_user_transaction(transaction_id, user)
        await self._detach_receipts(Receipt.transaction_id == txn.id)
        await self.db.delete(txn)
        await self.db.flush()

    async def clear_transactions(self, user: AuthenticatedUser) -> int:
        """Delete every transaction of the user."""
        owned = select(Transaction.id).where(Transaction.userid == user.id)
        await self._detach_receipts(Receipt.transaction_id.in_(owned))
        result = await self.db.execute(
            delete(Transaction)
            .where(Transaction.userid == user.id)
            .execution_options(synchronize_session="fetch")
        )
        logger.info("transactions_cleared", user_id=user.id, deleted=result.rowcount)
        return result.rowcount

    # ── Helpers ─────────────────────────────────────────

    async def _detach_receipts(self, condition) -> None:
        await self.db.execute(
            update(Receipt)
            .where(condition)
            .values(transaction_id=None)
            .execution_options(synchronize_session="fetch")
        )

    async def _get_user_transaction(self, transaction_id: str, user: AuthenticatedUser) -> Transaction:
        """Fetch a transaction and verify ownership."""
        txn = await self.db.get(Transaction, transaction_id)
        if not txn:
            raise NotFoundError("Transaction")
        if txn.userid != user.id:
            raise ForbiddenError()
        return txn

    async def _get_user_card(self, card_id: str, user: AuthenticatedUser) -> CreditCard:
        card = await self.db.get(CreditCard, card_id)
        if not card or card.userid != user.id:
            raise NotFoundError("Credit card")
        return card

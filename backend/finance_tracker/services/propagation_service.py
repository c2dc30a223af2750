"""Bulk category propagation.

A manual recategorization can be pushed to other transactions: either every
transaction of a category (rename/merge) or every transaction whose
description contains the edited one. Both also update the learned patterns
so later suggestions follow the user's choice. All writes go through the
request session and are committed (or rolled back) together.
"""

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.models.learned_pattern import LearnedPattern
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.categorization_service import (
    BULK_RENAME_CONFIDENCE,
    SINGLE_EDIT_CONFIDENCE,
    remember_pattern,
)
from finance_tracker.services.category_catalog import is_other_category

logger = structlog.get_logger()


class PropagationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def rename_category(self, old_category: str, new_category: str, userid: str) -> dict:
        """Move every transaction and learned pattern of a user from one category to another.

        Renaming into "other" is a no-op.
        """
        if is_other_category(new_category):
            return {"transactions_updated": 0, "patterns_updated": 0}

        txn_result = await self.db.execute(
            update(Transaction)
            .where(Transaction.userid == userid, Transaction.category == old_category)
            .values(category=new_category, learned_category=new_category)
            .execution_options(synchronize_session="fetch")
        )
        pattern_result = await self.db.execute(
            update(LearnedPattern)
            .where(LearnedPattern.userid == userid, LearnedPattern.category == old_category)
            .values(category=new_category, confidence=BULK_RENAME_CONFIDENCE)
            .execution_options(synchronize_session="fetch")
        )

        counts = {
            "transactions_updated": txn_result.rowcount,
            "patterns_updated": pattern_result.rowcount,
        }
        logger.info(
            "category_renamed",
            user_id=userid,
            old_category=old_category,
            new_category=new_category,
            **counts,
        )
        return counts

    async def propagate_similar(self, transaction: Transaction) -> int:
        """Apply a transaction's category to the user's transactions with a similar description.

        Returns the number of transactions updated (including this one).
        """
        if not transaction.id or not transaction.userid or is_other_category(transaction.category):
            return 0

        category = transaction.category
        result = await self.db.execute(
            update(Transaction)
            .where(
                Transaction.userid == transaction.userid,
                Transaction.description.icontains(transaction.description, autoescape=True),
            )
            .values(category=category, learned_category=category)
            .execution_options(synchronize_session="fetch")
        )
        await remember_pattern(
            self.db,
            transaction.userid,
            transaction.description,
            category,
            SINGLE_EDIT_CONFIDENCE,
        )

        logger.info(
            "category_propagated",
            user_id=transaction.userid,
            category=category,
            updated=result.rowcount,
        )
        return result.rowcount

    async def count_same_description(self, transaction: Transaction) -> int:
        """Number of the user's other transactions with exactly the same description."""
        result = await self.db.execute(
            select(func.count(Transaction.id)).where(
                Transaction.userid == transaction.userid,
                Transaction.description == transaction.description,
                Transaction.id != transaction.id,
            )
        )
        return result.scalar_one()

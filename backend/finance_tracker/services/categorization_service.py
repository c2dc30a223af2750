"""Categorization engine.

Suggests a category for a transaction description in three tiers:

1. the user's learned pattern for that exact description;
2. the consensus of recent transactions (any user) whose description contains
   it, which is then remembered as a learned pattern;
3. the keyword heuristic.

The engine never raises and never suggests the "other" category.
"""

from collections import Counter

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.models.learned_pattern import LearnedPattern
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.category_catalog import (
    FALLBACK_CATEGORY_ID,
    OTHER_CATEGORY_ID,
    categorize_by_keywords,
    is_other_category,
)

logger = structlog.get_logger()

PEER_SAMPLE_SIZE = 10

AUTO_LEARNED_CONFIDENCE = 0.7
SINGLE_EDIT_CONFIDENCE = 0.8
BULK_RENAME_CONFIDENCE = 0.9


async def remember_pattern(
    db: AsyncSession,
    userid: str,
    pattern: str,
    category: str,
    confidence: float,
) -> LearnedPattern:
    """Insert or update the learned pattern for (userid, pattern)."""
    result = await db.execute(
        select(LearnedPattern).where(
            LearnedPattern.userid == userid,
            LearnedPattern.pattern == pattern,
        )
    )
    existing = result.scalar_one_or_none()

    if existing:
        existing.category = category
        existing.confidence = confidence
        await db.flush()
        return existing

    learned = LearnedPattern(
        userid=userid,
        pattern=pattern,
        category=category,
        confidence=confidence,
    )
    db.add(learned)
    await db.flush()
    return learned


class CategorizationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def suggest_category(self, description: str, userid: str) -> str:
        """Suggest a category id for a description. Never returns "other"."""
        learned = await self._learned_category(description, userid)
        if learned:
            logger.debug("category_suggested", tier="learned", category=learned)
            return learned

        consensus = await self._peer_consensus(description)
        if consensus:
            await self._remember_consensus(description, userid, consensus)
            logger.debug("category_suggested", tier="peers", category=consensus)
            return consensus

        category = categorize_by_keywords(description)
        if is_other_category(category):
            category = FALLBACK_CATEGORY_ID
        logger.debug("category_suggested", tier="keywords", category=category)
        return category

    # ── Tiers ──────────────────────────────────────────
    # Tiers 1-2 run in savepoints: a storage error rolls back only the tier
    # and counts as a miss, leaving the caller's pending writes intact.

    async def _learned_category(self, description: str, userid: str) -> str | None:
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(
                    select(LearnedPattern.category)
                    .where(
                        LearnedPattern.userid == userid,
                        LearnedPattern.pattern == description,
                        LearnedPattern.category != OTHER_CATEGORY_ID,
                    )
                    .order_by(LearnedPattern.confidence.desc())
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning("learned_pattern_lookup_failed", error=str(e))
            return None

    async def _peer_consensus(self, description: str) -> str | None:
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(
                    select(Transaction.category, Transaction.learned_category)
                    .where(
                        Transaction.description.icontains(description, autoescape=True),
                        Transaction.category != OTHER_CATEGORY_ID,
                    )
                    .order_by(Transaction.created_at.desc())
                    .limit(PEER_SAMPLE_SIZE)
                )
                rows = result.all()
        except SQLAlchemyError as e:
            logger.warning("peer_lookup_failed", error=str(e))
            return None

        return most_common_category(
            learned_category or category for category, learned_category in rows
        )

    async def _remember_consensus(self, description: str, userid: str, category: str) -> None:
        try:
            async with self.db.begin_nested():
                await remember_pattern(
                    self.db, userid, description, category, AUTO_LEARNED_CONFIDENCE
                )
        except SQLAlchemyError as e:
            # The suggestion is still valid when it cannot be remembered
            logger.warning("learned_pattern_persist_failed", error=str(e))


def most_common_category(categories) -> str | None:
    """Most frequent non-"other" category; ties go to the first one seen."""
    counts = Counter(c for c in categories if c and not is_other_category(c))
    if not counts:
        return None
    return max(counts, key=counts.get)

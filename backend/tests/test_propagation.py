"""Bulk category propagation tests."""

import pytest
from sqlalchemy import select

from finance_tracker.models import LearnedPattern, Transaction
from finance_tracker.services.categorization_service import (
    BULK_RENAME_CONFIDENCE,
    SINGLE_EDIT_CONFIDENCE,
    remember_pattern,
)
from finance_tracker.services.propagation_service import PropagationService


async def _categories(db, userid):
    result = await db.execute(
        select(Transaction.description, Transaction.category, Transaction.learned_category)
        .where(Transaction.userid == userid)
        .order_by(Transaction.description)
    )
    return result.all()


class TestRenameCategory:
    @pytest.mark.asyncio
    async def test_moves_transactions_and_patterns(self, db_session, user, add_transaction):
        await add_transaction("Bakery A", "custom-1")
        await add_transaction("Bakery B", "custom-1")
        await add_transaction("Cinema", "entertainment")
        await remember_pattern(db_session, user.id, "Bakery A", "custom-1", 0.7)

        counts = await PropagationService(db_session).rename_category("custom-1", "dining", user.id)

        assert counts == {"transactions_updated": 2, "patterns_updated": 1}
        assert await _categories(db_session, user.id) == [
            ("Bakery A", "dining", "dining"),
            ("Bakery B", "dining", "dining"),
            ("Cinema", "entertainment", None),
        ]
        pattern = (await db_session.execute(select(LearnedPattern))).scalar_one()
        assert (pattern.category, pattern.confidence) == ("dining", BULK_RENAME_CONFIDENCE)

    @pytest.mark.asyncio
    async def test_leaves_other_users_alone(self, db_session, user, other_user, add_transaction):
        await add_transaction("Bakery A", "custom-1", userid=other_user.id)

        counts = await PropagationService(db_session).rename_category("custom-1", "dining", user.id)

        assert counts["transactions_updated"] == 0
        assert await _categories(db_session, other_user.id) == [("Bakery A", "custom-1", None)]

    @pytest.mark.asyncio
    async def test_renaming_into_other_is_a_no_op(self, db_session, user, add_transaction):
        await add_transaction("Bakery A", "custom-1")

        counts = await PropagationService(db_session).rename_category("custom-1", "other", user.id)

        assert counts == {"transactions_updated": 0, "patterns_updated": 0}
        assert await _categories(db_session, user.id) == [("Bakery A", "custom-1", None)]


class TestPropagateSimilar:
    @pytest.mark.asyncio
    async def test_updates_similar_descriptions(self, db_session, user, other_user, add_transaction):
        edited = await add_transaction("UBER", "transportation")
        await add_transaction("Uber Eats order", "dining")
        await add_transaction("uber trip", "other")
        await add_transaction("LYFT", "transportation")
        await add_transaction("UBER", "dining", userid=other_user.id)

        edited.category = "travel"
        await db_session.flush()
        updated = await PropagationService(db_session).propagate_similar(edited)

        assert updated == 3
        assert await _categories(db_session, user.id) == [
            ("LYFT", "transportation", None),
            ("UBER", "travel", "travel"),
            ("Uber Eats order", "travel", "travel"),
            ("uber trip", "travel", "travel"),
        ]
        assert await _categories(db_session, other_user.id) == [("UBER", "dining", None)]

        pattern = (await db_session.execute(select(LearnedPattern))).scalar_one()
        assert (pattern.userid, pattern.pattern, pattern.category, pattern.confidence) == (
            user.id,
            "UBER",
            "travel",
            SINGLE_EDIT_CONFIDENCE,
        )

    @pytest.mark.asyncio
    async def test_other_category_is_never_propagated(self, db_session, user, add_transaction):
        edited = await add_transaction("UBER", "other")
        await add_transaction("UBER trip", "transportation")

        assert await PropagationService(db_session).propagate_similar(edited) == 0
        assert await _categories(db_session, user.id) == [
            ("UBER", "other", None),
            ("UBER trip", "transportation", None),
        ]
        assert (await db_session.execute(select(LearnedPattern))).first() is None

    @pytest.mark.asyncio
    async def test_unsaved_transaction_is_ignored(self, db_session, user):
        txn = Transaction(userid=user.id, description="UBER", category="travel")
        assert await PropagationService(db_session).propagate_similar(txn) == 0

    @pytest.mark.asyncio
    async def test_wildcards_in_description_are_literal(self, db_session, user, add_transaction):
        edited = await add_transaction("100%", "gifts")
        await add_transaction("100% ORGANIC", "groceries")
        await add_transaction("1000 POINTS", "shopping")

        updated = await PropagationService(db_session).propagate_similar(edited)

        assert updated == 2
        assert await _categories(db_session, user.id) == [
            ("100%", "gifts", "gifts"),
            ("100% ORGANIC", "gifts", "gifts"),
            ("1000 POINTS", "shopping", None),
        ]


class TestCountSameDescription:
    @pytest.mark.asyncio
    async def test_counts_other_exact_matches(self, db_session, user, other_user, add_transaction):
        txn = await add_transaction("NETFLIX", "entertainment")
        await add_transaction("NETFLIX", "entertainment")
        await add_transaction("NETFLIX", "subscriptions")
        await add_transaction("NETFLIX.COM", "entertainment")
        await add_transaction("NETFLIX", "entertainment", userid=other_user.id)

        assert await PropagationService(db_session).count_same_description(txn) == 2

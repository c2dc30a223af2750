"""Transaction endpoint tests."""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.models import CreditCard

BASE = "/api/v1/transactions"


@pytest.mark.asyncio
async def test_manual_entries_are_stored_as_expenses(client):
    response = await client.post(
        BASE,
        json={
            "transactions": [
                {"date": "2024-02-01", "description": "Farmers market", "amount": "12.50", "category": "groceries"},
                {"date": "2024-02-02", "description": "Refund", "amount": "-3", "category": "shopping"},
            ]
        },
    )

    assert response.status_code == 201
    created = response.json()
    assert [Decimal(t["amount"]) for t in created] == [Decimal("-12.50"), Decimal("-3")]
    assert {t["payment_method"] for t in created} == {"cash"}
    assert created[0]["merchant"] == "Farmers market"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "entry",
    [
        {"date": "2024-02-01", "description": "  ", "amount": "1", "category": "groceries"},
        {"date": "2024-02-01", "description": "Shop", "amount": "0", "category": "groceries"},
        {"date": "2024-02-01", "description": "Shop", "amount": "5", "category": "groceries",
         "payment_method": "credit_card"},
    ],
)
async def test_invalid_manual_entry(client, entry):
    response = await client.post(BASE, json={"transactions": [entry]})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_card_is_rejected(client):
    response = await client.post(
        BASE,
        json={
            "transactions": [
                {"date": "2024-02-01", "description": "Shop", "amount": "5", "category": "shopping",
                 "payment_method": "credit_card", "credit_card_id": "missing"}
            ]
        },
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_is_scoped_and_filtered(client, other_user, add_transaction):
    await add_transaction("WALMART - 12", "groceries", "-45.67", txn_date=date(2024, 2, 1))
    await add_transaction("UBER", "transportation", "-8.00", txn_date=date(2024, 2, 3))
    await add_transaction("Payroll", "other", "1500.00", txn_date=date(2024, 1, 31))
    await add_transaction("UBER", "transportation", "-9.00", userid=other_user.id)

    listed = (await client.get(BASE)).json()
    assert [t["description"] for t in listed] == ["UBER", "WALMART - 12", "Payroll"]

    by_merchant = (await client.get(BASE, params={"merchant": "walmart"})).json()
    assert [t["description"] for t in by_merchant] == ["WALMART - 12"]

    by_amount = (await client.get(BASE, params={"min_amount": "40", "max_amount": "100"})).json()
    assert [t["description"] for t in by_amount] == ["WALMART - 12"]

    by_date = (await client.get(BASE, params={"date_from": "2024-02-02"})).json()
    assert [t["description"] for t in by_date] == ["UBER"]

    by_category = (await client.get(BASE, params={"category": "other"})).json()
    assert [t["description"] for t in by_category] == ["Payroll"]


@pytest.mark.asyncio
async def test_update_single_transaction(client, add_transaction):
    txn = await add_transaction("UBER", "transportation")
    sibling = await add_transaction("UBER trip", "transportation")

    response = await client.patch(f"{BASE}/{txn.id}", json={"category": "travel"})

    assert response.status_code == 200
    body = response.json()
    assert body["propagated_count"] == 0
    assert body["transaction"]["category"] == "travel"
    assert sibling.category == "transportation"


@pytest.mark.asyncio
async def test_update_all_similar(client, add_transaction):
    txn = await add_transaction("UBER", "transportation")
    await add_transaction("Uber Eats", "dining")
    await add_transaction("LYFT", "transportation")

    response = await client.patch(f"{BASE}/{txn.id}", json={"category": "travel", "scope": "all_similar"})

    body = response.json()
    assert body["propagated_count"] == 2
    assert body["transaction"]["learned_category"] == "travel"

    travel = (await client.get(BASE, params={"category": "travel"})).json()
    assert sorted(t["description"] for t in travel) == ["UBER", "Uber Eats"]


@pytest.mark.asyncio
async def test_update_description_refreshes_merchant(client, add_transaction):
    txn = await add_transaction("POS 123", "shopping")

    response = await client.patch(f"{BASE}/{txn.id}", json={"description": "IKEA - Store 9"})

    assert response.json()["transaction"]["merchant"] == "IKEA"


@pytest.mark.asyncio
async def test_switching_to_cash_drops_the_card(client, db_session, user, add_transaction):
    card = CreditCard(userid=user.id, name="Visa", last_four="4242")
    db_session.add(card)
    await db_session.flush()
    txn = await add_transaction("Shop", "shopping", payment_method="credit_card", credit_card_id=card.id)

    response = await client.patch(f"{BASE}/{txn.id}", json={"payment_method": "cash"})

    assert response.json()["transaction"]["credit_card_id"] is None

    response = await client.patch(f"{BASE}/{txn.id}", json={"payment_method": "credit_card"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_card_edits_are_validated(client, db_session, user, other_user, add_transaction):
    mine = CreditCard(userid=user.id, name="Visa", last_four="4242")
    theirs = CreditCard(userid=other_user.id, name="Amex", last_four="0005")
    db_session.add_all([mine, theirs])
    await db_session.flush()
    txn = await add_transaction("Shop", "shopping")

    foreign = await client.patch(
        f"{BASE}/{txn.id}", json={"payment_method": "credit_card", "credit_card_id": theirs.id}
    )
    assert foreign.status_code == 404
    assert (await client.patch(f"{BASE}/{txn.id}", json={"credit_card_id": theirs.id})).status_code == 404

    without_method = await client.patch(f"{BASE}/{txn.id}", json={"credit_card_id": mine.id})
    assert without_method.status_code == 422

    response = await client.patch(
        f"{BASE}/{txn.id}", json={"payment_method": "credit_card", "credit_card_id": mine.id}
    )
    assert response.status_code == 200
    body = response.json()["transaction"]
    assert (body["payment_method"], body["credit_card_id"]) == ("credit_card", mine.id)


@pytest.mark.asyncio
async def test_edited_amount_stays_an_expense(client, add_transaction):
    txn = await add_transaction("Cafe", "dining", "-4.00")

    response = await client.patch(f"{BASE}/{txn.id}", json={"amount": "25.00"})

    assert Decimal(response.json()["transaction"]["amount"]) == Decimal("-25.00")


@pytest.mark.asyncio
async def test_other_users_transaction_is_forbidden(client, other_user, add_transaction):
    txn = await add_transaction("UBER", "transportation", userid=other_user.id)

    assert (await client.patch(f"{BASE}/{txn.id}", json={"category": "travel"})).status_code == 403
    assert (await client.delete(f"{BASE}/{txn.id}")).status_code == 403
    assert (await client.get(f"{BASE}/missing/similar")).status_code == 404


@pytest.mark.asyncio
async def test_similar_count(client, add_transaction):
    txn = await add_transaction("NETFLIX", "entertainment")
    await add_transaction("NETFLIX", "entertainment")
    await add_transaction("NETFLIX.COM", "entertainment")

    body = (await client.get(f"{BASE}/{txn.id}/similar")).json()

    assert body == {"transaction_id": txn.id, "description": "NETFLIX", "similar_count": 1}


@pytest.mark.asyncio
async def test_recurring_applies_to_same_description(client, add_transaction):
    txn = await add_transaction("NETFLIX", "entertainment")
    twin = await add_transaction("NETFLIX", "entertainment")
    other = await add_transaction("NETFLIX.COM", "entertainment")

    response = await client.patch(f"{BASE}/{txn.id}/recurring", json={"is_recurring": True})

    assert response.json() == {"is_recurring": True, "updated": 2}
    assert twin.is_recurring is True
    assert other.is_recurring is False


@pytest.mark.asyncio
async def test_suggest_category(client):
    response = await client.post(f"{BASE}/suggest-category", json={"description": "WALMART SUPERCENTER"})
    assert response.json() == {"description": "WALMART SUPERCENTER", "category": "groceries"}


@pytest.mark.asyncio
async def test_bulk_category(client, add_transaction):
    first = await add_transaction("UBER", "transportation")
    second = await add_transaction("Cinema", "entertainment")
    await add_transaction("Cinema Paradiso", "entertainment")

    response = await client.post(
        f"{BASE}/bulk-category",
        json={"transaction_ids": [first.id, second.id, first.id], "category": "gifts"},
    )

    assert response.json() == {"updated": 2}
    gifts = (await client.get(BASE, params={"category": "gifts"})).json()
    assert len(gifts) == 3


@pytest.mark.asyncio
async def test_delete_and_clear(client, other_user, add_transaction):
    txn = await add_transaction("UBER", "transportation")
    await add_transaction("LYFT", "transportation")
    await add_transaction("TAXI", "transportation")
    await add_transaction("UBER", "transportation", userid=other_user.id)

    assert (await client.delete(f"{BASE}/{txn.id}")).status_code == 204
    assert len((await client.get(BASE)).json()) == 2

    response = await client.delete(BASE)
    assert response.json() == {"deleted_count": 2}
    assert (await client.get(BASE)).json() == []

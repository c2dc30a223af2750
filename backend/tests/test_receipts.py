"""Receipt tests: OCR field extraction and receipt-to-transaction flow."""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.models import Receipt
from finance_tracker.services.receipt_service import extract_receipt_fields

BASE = "/api/v1/receipts"

STARBUCKS_RECEIPT = """
STARBUCKS COFFEE
Store #1024
03/15/2024 08:14
Latte            $4.75
Muffin           $3.25
TOTAL            $8.00
"""


class TestExtractReceiptFields:
    def test_fields_from_plain_receipt(self):
        assert extract_receipt_fields(STARBUCKS_RECEIPT) == {
            "date": date(2024, 3, 15),
            "amount": Decimal("8.00"),
            "description": "STARBUCKS COFFEE",
        }

    def test_merchant_tag_and_short_year(self):
        fields = extract_receipt_fields("Order 7781\nMERCHANT: Joe's 24h Diner\n1/5/24\nTotal 12.40")

        assert fields["description"] == "Joe's 24h Diner"
        assert fields["date"] == date(2024, 1, 5)
        assert fields["amount"] == Decimal("12.40")

    def test_invalid_date_is_ignored(self):
        assert extract_receipt_fields("SHOP\n13/45/2024\n1.00")["date"] is None

    @pytest.mark.parametrize("text", [None, ""])
    def test_empty_text(self, text):
        assert extract_receipt_fields(text) == {"date": None, "amount": None, "description": None}


class TestReceiptEndpoints:
    @pytest.mark.asyncio
    async def test_create_receipt_returns_extracted_fields(self, client):
        response = await client.post(
            BASE, json={"image_url": "https://files.example.com/r/1.jpg", "ocr_text": STARBUCKS_RECEIPT}
        )

        assert response.status_code == 201
        extracted = response.json()["extracted"]
        assert extracted["date"] == "2024-03-15"
        assert Decimal(extracted["amount"]) == Decimal("8.00")
        assert extracted["description"] == "STARBUCKS COFFEE"

        receipts = (await client.get(BASE)).json()
        assert len(receipts) == 1

    @pytest.mark.asyncio
    async def test_transaction_from_receipt(self, client):
        receipt = (
            await client.post(BASE, json={"image_url": "r/1.jpg", "ocr_text": STARBUCKS_RECEIPT})
        ).json()

        response = await client.post(f"{BASE}/{receipt['id']}/transaction", json={})

        assert response.status_code == 201
        txn = response.json()
        assert txn["date"] == "2024-03-15"
        assert Decimal(txn["amount"]) == Decimal("-8.00")
        assert txn["description"] == "STARBUCKS COFFEE"
        assert txn["category"] == "dining"
        assert txn["payment_method"] == "cash"

        [linked] = (await client.get(BASE)).json()
        assert linked["transaction_id"] == txn["id"]

        again = await client.post(f"{BASE}/{receipt['id']}/transaction", json={})
        assert again.status_code == 422

    @pytest.mark.asyncio
    async def test_explicit_fields_override_ocr(self, client):
        receipt = (
            await client.post(BASE, json={"image_url": "r/1.jpg", "ocr_text": STARBUCKS_RECEIPT})
        ).json()

        response = await client.post(
            f"{BASE}/{receipt['id']}/transaction",
            json={"amount": "9.10", "description": "Team breakfast", "category": "gifts", "date": "2024-03-16"},
        )

        txn = response.json()
        assert (txn["description"], txn["category"], txn["date"]) == ("Team breakfast", "gifts", "2024-03-16")
        assert Decimal(txn["amount"]) == Decimal("-9.10")

    @pytest.mark.asyncio
    async def test_receipt_without_amount(self, client):
        receipt = (await client.post(BASE, json={"image_url": "r/1.jpg", "ocr_text": "BLURRY"})).json()

        response = await client.post(f"{BASE}/{receipt['id']}/transaction", json={})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_deleting_transaction_unlinks_receipt(self, client):
        receipt = (
            await client.post(BASE, json={"image_url": "r/1.jpg", "ocr_text": STARBUCKS_RECEIPT})
        ).json()
        txn = (await client.post(f"{BASE}/{receipt['id']}/transaction", json={})).json()

        assert (await client.delete(f"/api/v1/transactions/{txn['id']}")).status_code == 204

        [unlinked] = (await client.get(BASE)).json()
        assert unlinked["transaction_id"] is None

    @pytest.mark.asyncio
    async def test_other_users_receipt(self, client, db_session, other_user):
        receipt = Receipt(userid=other_user.id, image_url="r/2.jpg")
        db_session.add(receipt)
        await db_session.flush()

        assert (await client.post(f"{BASE}/{receipt.id}/transaction", json={})).status_code == 403
        assert (await client.delete(f"{BASE}/{receipt.id}")).status_code == 403
        assert (await client.get(BASE)).json() == []

    @pytest.mark.asyncio
    async def test_delete_receipt(self, client):
        receipt = (await client.post(BASE, json={"image_url": "r/1.jpg"})).json()

        assert receipt["extracted"] is None
        assert (await client.delete(f"{BASE}/{receipt['id']}")).status_code == 204
        assert (await client.get(BASE)).json() == []

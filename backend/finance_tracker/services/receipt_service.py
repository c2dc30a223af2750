"""Receipt service: store receipts and read transaction fields from their OCR text."""

import re
from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from finance_tracker.core.security import AuthenticatedUser
from finance_tracker.models.receipt import Receipt
from finance_tracker.models.transaction import PAYMENT_CASH, Transaction
from finance_tracker.schemas.receipt import ReceiptCreate, ReceiptTransactionCreate
from finance_tracker.services.categorization_service import CategorizationService

logger = structlog.get_logger()

_DATE_RE = re.compile(r"\b\d{1,2}[-/]\d{1,2}[-/]\d{2,4}\b")
_AMOUNT_RE = re.compile(r"\$?\s*\d+\.\d{2}")
_DIGIT_RE = re.compile(r"\d")
_MERCHANT_PREFIX_RE = re.compile(r"MERCHANT:\s*", re.I)


def extract_receipt_fields(text: str | None) -> dict:
    """Read date, total and merchant from OCR text.

    Dates are month-first. The largest amount is taken as the total. The
    merchant is the first line tagged "MERCHANT:" or the first line without
    digits.
    """
    fields = {"date": None, "amount": None, "description": None}
    if not text:
        return fields

    date_match = _DATE_RE.search(text)
    if date_match:
        month, day, year = re.split(r"[-/]", date_match.group(0))
        if len(year) == 2:
            year = f"20{year}"
        try:
            fields["date"] = date(int(year), int(month), int(day))
        except ValueError:
            pass

    amounts = [Decimal(m.replace("$", "").strip()) for m in _AMOUNT_RE.findall(text)]
    if amounts:
        fields["amount"] = max(amounts)

    lines = [line.strip() for line in text.split("\n") if line.strip()]
    for line in lines:
        if "MERCHANT:" in line.upper() or not _DIGIT_RE.search(line):
            fields["description"] = _MERCHANT_PREFIX_RE.sub("", line).strip()
            break

    return fields


class ReceiptService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_receipts(self, user: AuthenticatedUser) -> list[dict]:
        result = await self.db.execute(
            select(Receipt).where(Receipt.userid == user.id).order_by(Receipt.created_at.desc())
        )
        return [self._to_dict(r) for r in result.scalars().all()]

    async def create_receipt(self, data: ReceiptCreate, user: AuthenticatedUser) -> dict:
        receipt = Receipt(userid=user.id, image_url=data.image_url, ocr_text=data.ocr_text)
        self.db.add(receipt)
        await self.db.flush()
        return self._to_dict(receipt)

    async def create_transaction(
        self, receipt_id: str, data: ReceiptTransactionCreate, user: AuthenticatedUser
    ) -> Transaction:
        """Create an expense from a receipt and link the two.

        Explicit values win over the fields read from the OCR text.
        """
        receipt = await self._get_user_receipt(receipt_id, user)
        if receipt.transaction_id:
            raise ValidationError("Receipt is already linked to a transaction")

        extracted = extract_receipt_fields(receipt.ocr_text)
        description = data.description or extracted["description"]
        amount = data.amount if data.amount is not None else extracted["amount"]
        if not description:
            raise ValidationError("Description is required")
        if not amount:
            raise ValidationError("Amount is required")

        category = data.category or await CategorizationService(self.db).suggest_category(
            description, user.id
        )

        txn = Transaction(
            userid=user.id,
            date=data.date or extracted["date"] or date.today(),
            description=description,
            amount=-abs(amount),
            category=category,
            payment_method=PAYMENT_CASH,
        )
        self.db.add(txn)
        await self.db.flush()
        receipt.transaction_id = txn.id
        await self.db.flush()

        logger.info("receipt_transaction_created", user_id=user.id, receipt_id=receipt_id)
        return txn

    async def delete_receipt(self, receipt_id: str, user: AuthenticatedUser) -> None:
        receipt = await self._get_user_receipt(receipt_id, user)
        await self.db.delete(receipt)
        await self.db.flush()

    @staticmethod
    def _to_dict(receipt: Receipt) -> dict:
        return {
            "id": receipt.id,
            "image_url": receipt.image_url,
            "ocr_text": receipt.ocr_text,
            "transaction_id": receipt.transaction_id,
            "extracted": extract_receipt_fields(receipt.ocr_text) if receipt.ocr_text else None,
            "created_at": receipt.created_at,
        }

    async def _get_user_receipt(self, receipt_id: str, user: AuthenticatedUser) -> Receipt:
        """Fetch a receipt and verify ownership."""
        receipt = await self.db.get(Receipt, receipt_id)
        if not receipt:
            raise NotFoundError("Receipt")
        if receipt.userid != user.id:
            raise ForbiddenError()
        return receipt

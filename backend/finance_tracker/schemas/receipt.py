"""Receipt schemas."""

import datetime as dt
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ReceiptCreate(BaseModel):
    image_url: str = Field(min_length=1)
    ocr_text: str | None = None


class ReceiptFields(BaseModel):
    """Fields read from the OCR text; any of them may be missing."""

    date: dt.date | None = None
    amount: Decimal | None = None
    description: str | None = None


class ReceiptResponse(BaseModel):
    id: str
    image_url: str
    ocr_text: str | None = None
    transaction_id: str | None = None
    extracted: ReceiptFields | None = None
    created_at: datetime


class ReceiptTransactionCreate(BaseModel):
    """Overrides for the transaction created from a receipt."""

    date: dt.date | None = None
    amount: Decimal | None = None
    description: str | None = None
    category: str | None = None

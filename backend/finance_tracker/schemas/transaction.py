"""Transaction schemas for request/response validation."""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class TransactionCreate(BaseModel):
    """Manual entry. The amount is a magnitude; it is stored as an expense (negative)."""

    date: date
    description: str = Field(min_length=1, max_length=500)
    amount: Decimal
    category: str = Field(min_length=1)
    payment_method: Literal["cash", "credit_card"] = "cash"
    credit_card_id: str | None = None
    is_recurring: bool = False

    @field_validator("description", "category")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("amount")
    @classmethod
    def non_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("amount must not be zero")
        return value

    @model_validator(mode="after")
    def card_required_for_card_payment(self):
        if self.payment_method == "credit_card" and not self.credit_card_id:
            raise ValueError("credit_card_id is required when payment_method is credit_card")
        if self.payment_method == "cash":
            self.credit_card_id = None
        return self


class TransactionBulkCreate(BaseModel):
    transactions: list[TransactionCreate] = Field(min_length=1)


class TransactionUpdate(BaseModel):
    date: dt.date | None = None
    description: str | None = Field(default=None, min_length=1, max_length=500)
    amount: Decimal | None = None
    category: str | None = Field(default=None, min_length=1)
    payment_method: Literal["cash", "credit_card", "unknown"] | None = None
    credit_card_id: str | None = None
    is_recurring: bool | None = None
    # "single": only this transaction; "all_similar": also every transaction
    # of the user whose description contains this one
    scope: Literal["single", "all_similar"] = "single"


class RecurringUpdate(BaseModel):
    is_recurring: bool


class BulkCategoryUpdate(BaseModel):
    transaction_ids: list[str] = Field(min_length=1)
    category: str = Field(min_length=1)


class TransactionResponse(BaseModel):
    id: str
    userid: str
    date: date
    description: str
    merchant: str | None = None
    amount: Decimal
    category: str
    learned_category: str | None = None
    is_recurring: bool
    payment_method: str
    credit_card_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionUpdateResult(BaseModel):
    transaction: TransactionResponse
    propagated_count: int = 0


class SimilarTransactionsResponse(BaseModel):
    transaction_id: str
    description: str
    similar_count: int


class FileImportResult(BaseModel):
    filename: str
    imported_count: int
    error: str | None = None


class ImportResult(BaseModel):
    imported_count: int
    files: list[FileImportResult]
    errors: list[str]


class SuggestCategoryRequest(BaseModel):
    description: str = Field(min_length=1)


class SuggestCategoryResponse(BaseModel):
    description: str
    category: str


class DeleteResult(BaseModel):
    deleted_count: int

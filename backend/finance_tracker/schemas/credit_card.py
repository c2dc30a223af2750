"""Credit card schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class CreditCardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    last_four: str | None = Field(default=None, pattern=r"^\d{4}$")


class CreditCardResponse(BaseModel):
    id: str
    name: str
    last_four: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

"""Category schemas."""

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    color: str = Field(default="#9CA3AF", max_length=20)
    icon: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    icon: str | None = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    color: str
    icon: str | None = None
    source: str  # builtin, system, custom

    model_config = {"from_attributes": True}


class SystemCategory(BaseModel):
    id: str | None = None  # assigned as system-<epoch ms> when missing
    name: str = Field(min_length=1, max_length=100)
    color: str = Field(default="#9CA3AF", max_length=20)
    icon: str | None = None


class SystemCategoriesUpdate(BaseModel):
    categories: list[SystemCategory]


class CategoryReassign(BaseModel):
    new_category: str = Field(min_length=1)


class CategoryReassignResult(BaseModel):
    old_category: str
    new_category: str
    transactions_updated: int
    patterns_updated: int

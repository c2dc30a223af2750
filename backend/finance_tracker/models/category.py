"""User-defined category and system setting models."""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from finance_tracker.models.base import Base, TimestampMixin


class UserCategory(Base, TimestampMixin):
    __tablename__ = "user_categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # custom-<epoch ms>
    userid: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(20), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)


class SystemSetting(Base, TimestampMixin):
    """Key/value settings managed by admins (e.g. ``system_categories``)."""

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

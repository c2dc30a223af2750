"""Transaction model."""

import datetime as dt
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from finance_tracker.models.base import Base, TimestampMixin, new_id

MERCHANT_SEPARATOR = " - "

PAYMENT_CASH = "cash"
PAYMENT_CREDIT_CARD = "credit_card"
PAYMENT_UNKNOWN = "unknown"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CREDIT_CARD, PAYMENT_UNKNOWN)


def merchant_from_description(description: str | None) -> str | None:
    """Merchant is the part of the description before the first " - "."""
    if description is None:
        return None
    head, sep, _ = description.partition(MERCHANT_SEPARATOR)
    return head if sep else description


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    userid: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    merchant: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    learned_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(20), default=PAYMENT_UNKNOWN, server_default=PAYMENT_UNKNOWN, nullable=False
    )
    credit_card_id: Mapped[str | None] = mapped_column(
        ForeignKey("credit_cards.id", ondelete="SET NULL"), nullable=True
    )

    credit_card = relationship("CreditCard", back_populates="transactions")

    __table_args__ = (
        Index("idx_transactions_user_date", "userid", "date"),
        Index("idx_transactions_user_description", "userid", "description"),
    )

    @validates("description")
    def _sync_merchant(self, key, value):
        # merchant is never written directly
        self.merchant = merchant_from_description(value)
        return value

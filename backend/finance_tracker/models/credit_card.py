"""CreditCard model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_tracker.models.base import Base, TimestampMixin, new_id


class CreditCard(Base, TimestampMixin):
    __tablename__ = "credit_cards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    userid: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_four: Mapped[str | None] = mapped_column(String(4), nullable=True)

    transactions = relationship("Transaction", back_populates="credit_card", passive_deletes=True)

"""LearnedPattern model: per-user description → category memory."""

from sqlalchemy import Float, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from finance_tracker.models.base import Base, TimestampMixin, new_id


class LearnedPattern(Base, TimestampMixin):
    __tablename__ = "learned_patterns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    userid: Mapped[str] = mapped_column(String(255), nullable=False)
    pattern: Mapped[str] = mapped_column(Text, nullable=False)  # exact description text
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.7)

    __table_args__ = (
        UniqueConstraint("userid", "pattern", name="uq_learned_patterns_user_pattern"),
    )

"""Create credit_cards, transactions and learned_patterns tables.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "credit_cards",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("userid", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("last_four", sa.String(4), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_credit_cards_userid", "credit_cards", ["userid"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("userid", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("merchant", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("learned_category", sa.String(100), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("payment_method", sa.String(20), server_default="unknown", nullable=False),
        sa.Column(
            "credit_card_id",
            sa.String(36),
            sa.ForeignKey("credit_cards.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("idx_transactions_user_date", "transactions", ["userid", sa.text("date DESC")])
    op.create_index("idx_transactions_user_description", "transactions", ["userid", "description"])

    op.create_table(
        "learned_patterns",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("userid", sa.String(255), nullable=False),
        sa.Column("pattern", sa.Text(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("confidence", sa.Float(), server_default="0.7", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("userid", "pattern", name="uq_learned_patterns_user_pattern"),
    )


def downgrade() -> None:
    op.drop_table("learned_patterns")
    op.drop_index("idx_transactions_user_description")
    op.drop_index("idx_transactions_user_date")
    op.drop_table("transactions")
    op.drop_index("ix_credit_cards_userid")
    op.drop_table("credit_cards")

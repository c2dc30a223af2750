"""SQLAlchemy models."""

from finance_tracker.models.base import Base
from finance_tracker.models.budget import Budget
from finance_tracker.models.category import SystemSetting, UserCategory
from finance_tracker.models.credit_card import CreditCard
from finance_tracker.models.learned_pattern import LearnedPattern
from finance_tracker.models.receipt import Receipt
from finance_tracker.models.transaction import Transaction

__all__ = [
    "Base",
    "Transaction",
    "LearnedPattern",
    "UserCategory",
    "SystemSetting",
    "CreditCard",
    "Budget",
    "Receipt",
]

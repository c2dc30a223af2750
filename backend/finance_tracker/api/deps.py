"""Shared API dependencies."""

from finance_tracker.core.database import get_db
from finance_tracker.core.security import AuthenticatedUser, get_current_user, require_admin

__all__ = ["get_db", "get_current_user", "require_admin", "AuthenticatedUser"]

"""Category management service.

The effective category list of a user is the built-in set, then the
admin-managed ``system_categories`` setting, then the user's own categories.
Only the user's own (``custom-``) categories can be edited or deleted.
"""

import time

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from finance_tracker.core.security import AuthenticatedUser
from finance_tracker.models.category import SystemSetting, UserCategory
from finance_tracker.schemas.category import CategoryCreate, CategoryUpdate, SystemCategory
from finance_tracker.services.category_catalog import (
    BUILTIN_CATEGORIES,
    BUILTIN_CATEGORY_IDS,
    CUSTOM_CATEGORY_PREFIX,
    SYSTEM_CATEGORIES_KEY,
    SYSTEM_CATEGORY_PREFIX,
    is_custom_category,
)
from finance_tracker.services.propagation_service import PropagationService

logger = structlog.get_logger()


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_categories(self, user: AuthenticatedUser) -> list[dict]:
        """List all categories: built-in + system-wide + user's custom ones."""
        categories = [{**c, "source": "builtin"} for c in BUILTIN_CATEGORIES]
        categories.extend({**c, "source": "system"} for c in await self.get_system_categories())

        result = await self.db.execute(
            select(UserCategory)
            .where(UserCategory.userid == user.id)
            .order_by(UserCategory.created_at)
        )
        categories.extend(self._to_dict(c) for c in result.scalars().all())
        return categories

    async def category_ids(self, user: AuthenticatedUser) -> set[str]:
        return {c["id"] for c in await self.list_categories(user)}

    async def create_category(self, data: CategoryCreate, user: AuthenticatedUser) -> dict:
        """Create a custom user category."""
        category_id = f"{CUSTOM_CATEGORY_PREFIX}{_epoch_ms()}"
        while await self.db.get(UserCategory, category_id):
            category_id = f"{CUSTOM_CATEGORY_PREFIX}{int(category_id.rsplit('-', 1)[1]) + 1}"

        category = UserCategory(
            id=category_id,
            userid=user.id,
            name=data.name,
            color=data.color,
            icon=data.icon,
        )
        self.db.add(category)
        await self.db.flush()
        return self._to_dict(category)

    async def update_category(
        self, category_id: str, data: CategoryUpdate, user: AuthenticatedUser
    ) -> dict:
        """Update a user category. Built-in and system categories cannot be modified."""
        category = await self._get_user_category(category_id, user)
        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            if value is None and key != "icon":
                continue
            setattr(category, key, value)
        await self.db.flush()
        return self._to_dict(category)

    async def delete_category(self, category_id: str, user: AuthenticatedUser) -> None:
        """Delete a user category. Built-in and system categories cannot be deleted."""
        category = await self._get_user_category(category_id, user)
        await self.db.delete(category)
        await self.db.flush()

    async def reassign_category(
        self, old_category: str, new_category: str, user: AuthenticatedUser
    ) -> dict:
        """Move the user's transactions and learned patterns to another category."""
        if new_category not in await self.category_ids(user):
            raise ValidationError(f"Unknown category: {new_category}")

        counts = await PropagationService(self.db).rename_category(
            old_category, new_category, user.id
        )
        return {"old_category": old_category, "new_category": new_category, **counts}

    # ── System categories (admin) ──────────────────────

    async def get_system_categories(self) -> list[dict]:
        setting = await self.db.get(SystemSetting, SYSTEM_CATEGORIES_KEY)
        if not setting or not isinstance(setting.value, list):
            return []
        return [c for c in setting.value if isinstance(c, dict) and c.get("id") and c.get("name")]

    async def replace_system_categories(
        self, categories: list[SystemCategory], admin: AuthenticatedUser
    ) -> list[dict]:
        """Replace the admin-managed category list."""
        stamp = _epoch_ms()
        values: list[dict] = []
        seen: set[str] = set()
        for offset, category in enumerate(categories):
            category_id = category.id or f"{SYSTEM_CATEGORY_PREFIX}{stamp + offset}"
            if category_id in BUILTIN_CATEGORY_IDS or is_custom_category(category_id):
                raise ValidationError(f"Reserved category id: {category_id}")
            if category_id in seen:
                raise ValidationError(f"Duplicate category id: {category_id}")
            seen.add(category_id)
            values.append(
                {"id": category_id, "name": category.name, "color": category.color, "icon": category.icon}
            )

        setting = await self.db.get(SystemSetting, SYSTEM_CATEGORIES_KEY)
        if setting:
            setting.value = values
        else:
            self.db.add(SystemSetting(key=SYSTEM_CATEGORIES_KEY, value=values))
        await self.db.flush()

        logger.info("system_categories_replaced", admin_id=admin.id, count=len(values))
        return [{**c, "source": "system"} for c in values]

    # ── Helpers ─────────────────────────────────────────

    @staticmethod
    def _to_dict(category: UserCategory) -> dict:
        return {
            "id": category.id,
            "name": category.name,
            "color": category.color,
            "icon": category.icon,
            "source": "custom",
        }

    async def _get_user_category(self, category_id: str, user: AuthenticatedUser) -> UserCategory:
        """Fetch a custom category and verify ownership."""
        if not is_custom_category(category_id):
            raise ForbiddenError("Only custom categories can be modified")
        category = await self.db.get(UserCategory, category_id)
        if not category:
            raise NotFoundError("Category")
        if category.userid != user.id:
            raise ForbiddenError()
        return category

"""
Menu Catalog

Categories and items under a restaurant. Every mutation verifies that the
caller owns the restaurant the target belongs to, and that an item's
category belongs to the same restaurant as the item.

Ownership is read and the write issued inside the same session
transaction; the read is not locked, so a concurrent ownership transfer
is not excluded. Availability toggling is read-then-write and two
concurrent toggles resolve as last write wins.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import ProcedureError
from app.core.security import Identity, require_identity, require_owner
from app.models import MenuCategory, MenuItem, Restaurant, utcnow
from app.schemas import (
    MenuCategoryCreate,
    MenuCategoryUpdate,
    MenuItemCreate,
    MenuItemUpdate,
)
from app.services.ownership import (
    conditional_delete,
    ensure_owner,
    owned_restaurant,
)
from app.services.restaurants import menu_loader

logger = logging.getLogger(__name__)


class MenuCatalog:
    """Menu procedures; all writes are owner-only."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_category(self, category_id: str) -> MenuCategory:
        result = await self.db.execute(
            select(MenuCategory)
            .where(MenuCategory.id == category_id)
            .options(selectinload(MenuCategory.restaurant))
        )
        category = result.scalar_one_or_none()
        if category is None:
            raise ProcedureError.not_found("Category not found")
        return category

    async def _load_item(self, item_id: str) -> MenuItem:
        result = await self.db.execute(
            select(MenuItem)
            .where(MenuItem.id == item_id)
            .options(selectinload(MenuItem.restaurant))
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise ProcedureError.not_found("Menu item not found")
        return item

    async def _check_category(self, category_id: str, restaurant_id: str) -> None:
        """BAD_REQUEST unless the category exists under the given restaurant."""
        owner = await self.db.scalar(
            select(MenuCategory.restaurant_id).where(MenuCategory.id == category_id)
        )
        if owner is None or owner != restaurant_id:
            raise ProcedureError.bad_request("Invalid category for this restaurant")

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def create_category(self, data: MenuCategoryCreate, caller: Optional[Identity]) -> MenuCategory:
        caller = require_owner(caller)
        await owned_restaurant(
            self.db, data.restaurant_id, caller,
            "You can only add categories to your own restaurants",
        )

        category = MenuCategory(**data.model_dump())
        self.db.add(category)
        await self.db.commit()

        logger.info(f"Category {category.id} created in restaurant {category.restaurant_id}")
        return category

    async def update_category(
        self,
        category_id: str,
        data: MenuCategoryUpdate,
        caller: Optional[Identity],
    ) -> MenuCategory:
        caller = require_owner(caller)
        category = await self._load_category(category_id)
        ensure_owner(category.restaurant, caller, "You can only update your own categories")

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(category, field, value)
        category.updated_at = utcnow()

        await self.db.commit()
        return category

    async def delete_category(self, category_id: str, caller: Optional[Identity]) -> None:
        """Deletes the category and every item in it."""
        caller = require_owner(caller)
        category = await self._load_category(category_id)
        ensure_owner(category.restaurant, caller, "You can only delete your own categories")

        await conditional_delete(self.db, MenuCategory, [MenuCategory.id == category.id])
        await self.db.commit()
        logger.info(f"Category {category_id} deleted by {caller.id}")

    # =========================================================================
    # ITEMS
    # =========================================================================

    async def create_item(self, data: MenuItemCreate, caller: Optional[Identity]) -> MenuItem:
        caller = require_owner(caller)
        await owned_restaurant(
            self.db, data.restaurant_id, caller,
            "You can only add items to your own restaurants",
        )
        await self._check_category(data.category_id, data.restaurant_id)

        item = MenuItem(**data.model_dump())
        self.db.add(item)
        await self.db.commit()

        logger.info(f"Menu item {item.id} ({item.name}) created at {item.price}")
        return item

    async def update_item(
        self,
        item_id: str,
        data: MenuItemUpdate,
        caller: Optional[Identity],
    ) -> MenuItem:
        caller = require_owner(caller)
        item = await self._load_item(item_id)
        ensure_owner(item.restaurant, caller, "You can only update your own menu items")

        changes = data.model_dump(exclude_unset=True)
        if "category_id" in changes and changes["category_id"] != item.category_id:
            await self._check_category(changes["category_id"], item.restaurant_id)

        for field, value in changes.items():
            setattr(item, field, value)
        item.updated_at = utcnow()

        await self.db.commit()
        return item

    async def delete_item(self, item_id: str, caller: Optional[Identity]) -> None:
        caller = require_owner(caller)
        item = await self._load_item(item_id)
        ensure_owner(item.restaurant, caller, "You can only delete your own menu items")

        await conditional_delete(self.db, MenuItem, [MenuItem.id == item.id])
        await self.db.commit()
        logger.info(f"Menu item {item_id} deleted by {caller.id}")

    async def toggle_item_availability(self, item_id: str, caller: Optional[Identity]) -> MenuItem:
        caller = require_owner(caller)
        item = await self._load_item(item_id)
        ensure_owner(item.restaurant, caller, "You can only update your own menu items")

        item.is_available = not item.is_available
        item.updated_at = utcnow()
        await self.db.commit()

        logger.info(f"Menu item {item.id} availability -> {item.is_available}")
        return item

    # =========================================================================
    # READ
    # =========================================================================

    async def get_by_restaurant(
        self,
        restaurant_id: str,
        caller: Optional[Identity],
        include_unavailable: bool = False,
    ) -> list[MenuCategory]:
        """Categories in display order with their items, available ones only by default."""
        require_identity(caller)

        result = await self.db.execute(
            select(Restaurant)
            .where(Restaurant.id == restaurant_id)
            .options(menu_loader(available_only=not include_unavailable))
            .execution_options(populate_existing=True)
        )
        restaurant = result.scalar_one_or_none()
        if restaurant is None:
            raise ProcedureError.not_found("Restaurant not found")

        return list(restaurant.categories)

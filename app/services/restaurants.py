"""
Restaurant Directory

Restaurant records, slug uniqueness and ownership rules. Public views are
projected through to_public_detail() so owner-only fields (contact details,
owner id) and unavailable items never leave the service for non-owners.
"""

import logging
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import ProcedureError
from app.core.security import Identity, require_identity, require_owner
from app.models import MenuCategory, MenuItem, Restaurant, utcnow
from app.schemas import (
    MenuCategoryPublic,
    MenuItemPublic,
    RestaurantCreate,
    RestaurantDetail,
    RestaurantPublicDetail,
    RestaurantUpdate,
)
from app.services.ownership import (
    conditional_delete,
    conditional_update,
    owned_restaurant,
)

logger = logging.getLogger(__name__)


def menu_loader(available_only: bool = False):
    """Eager-load categories and items, both sorted by display order."""
    items = MenuCategory.items
    if available_only:
        items = MenuCategory.items.and_(MenuItem.is_available.is_(True))
    return selectinload(Restaurant.categories).selectinload(items)


def to_public_detail(restaurant: Restaurant) -> RestaurantPublicDetail:
    """Redacted restaurant: public fields and available items only."""
    return RestaurantPublicDetail(
        id=restaurant.id,
        name=restaurant.name,
        description=restaurant.description,
        slug=restaurant.slug,
        location=restaurant.location,
        logo=restaurant.logo,
        cover_image=restaurant.cover_image,
        is_active=restaurant.is_active,
        categories=[
            MenuCategoryPublic(
                id=category.id,
                name=category.name,
                description=category.description,
                display_order=category.display_order,
                items=[
                    MenuItemPublic.model_validate(item)
                    for item in category.items
                    if item.is_available
                ],
            )
            for category in restaurant.categories
        ],
    )


class RestaurantDirectory:
    """
    Restaurant procedures.

    Each method applies its tier guard first, so a caller without the
    required role is rejected before the target is looked up.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_with_menu(self, restaurant_id: str, available_only: bool = False) -> Optional[Restaurant]:
        result = await self.db.execute(
            select(Restaurant)
            .where(Restaurant.id == restaurant_id)
            .options(menu_loader(available_only))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _slug_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        query = select(Restaurant.id).where(Restaurant.slug == slug)
        if exclude_id is not None:
            query = query.where(Restaurant.id != exclude_id)
        return (await self.db.scalar(query)) is not None

    # =========================================================================
    # PUBLIC
    # =========================================================================

    async def get_by_slug(self, slug: str) -> RestaurantPublicDetail:
        result = await self.db.execute(
            select(Restaurant)
            .where(Restaurant.slug == slug)
            .options(menu_loader(available_only=True))
            .execution_options(populate_existing=True)
        )
        restaurant = result.scalar_one_or_none()

        if restaurant is None:
            raise ProcedureError.not_found("Restaurant not found")

        return to_public_detail(restaurant)

    async def list_public(self) -> list[Restaurant]:
        """Active restaurants, newest first."""
        result = await self.db.execute(
            select(Restaurant)
            .where(Restaurant.is_active.is_(True))
            .order_by(Restaurant.created_at.desc(), Restaurant.id)
        )
        return list(result.scalars().all())

    # =========================================================================
    # PROTECTED
    # =========================================================================

    async def get_by_id(
        self,
        restaurant_id: str,
        caller: Optional[Identity],
    ) -> Union[RestaurantDetail, RestaurantPublicDetail]:
        """Full record for the owner, redacted projection for everyone else."""
        caller = require_identity(caller)

        restaurant = await self._load_with_menu(restaurant_id)
        if restaurant is None:
            raise ProcedureError.not_found("Restaurant not found")

        if restaurant.owner_id != caller.id:
            return to_public_detail(restaurant)

        return RestaurantDetail.model_validate(restaurant)

    # =========================================================================
    # OWNER ONLY
    # =========================================================================

    async def create(self, data: RestaurantCreate, caller: Optional[Identity]) -> Restaurant:
        caller = require_owner(caller)

        if await self._slug_taken(data.slug):
            raise ProcedureError.conflict("A restaurant with this slug already exists")

        restaurant = Restaurant(
            **data.model_dump(),
            owner_id=caller.id,
            is_active=True,
        )
        self.db.add(restaurant)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self._slug_taken(data.slug):
                raise ProcedureError.conflict("A restaurant with this slug already exists")
            raise

        logger.info(f"Restaurant {restaurant.slug} created by {caller.id}")
        return restaurant

    async def update(
        self,
        restaurant_id: str,
        data: RestaurantUpdate,
        caller: Optional[Identity],
    ) -> Restaurant:
        caller = require_owner(caller)
        message = "You can only update your own restaurants"
        restaurant = await owned_restaurant(self.db, restaurant_id, caller, message)

        changes = data.model_dump(exclude_unset=True)
        new_slug = changes.get("slug")
        if new_slug is not None and new_slug != restaurant.slug:
            if await self._slug_taken(new_slug, exclude_id=restaurant.id):
                raise ProcedureError.conflict("A restaurant with this slug already exists")

        changes["updated_at"] = utcnow()

        try:
            updated = await conditional_update(
                self.db,
                Restaurant,
                [Restaurant.id == restaurant.id, Restaurant.owner_id == caller.id],
                changes,
            )
            if not updated:
                await self.db.rollback()
                raise ProcedureError.forbidden(message)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ProcedureError.conflict("A restaurant with this slug already exists")

        await self.db.refresh(restaurant)
        logger.info(f"Restaurant {restaurant.id} updated: {sorted(changes)}")
        return restaurant

    async def delete(self, restaurant_id: str, caller: Optional[Identity]) -> None:
        """Hard delete; categories, items and orders go with it."""
        caller = require_owner(caller)
        message = "You can only delete your own restaurants"
        restaurant = await owned_restaurant(self.db, restaurant_id, caller, message)

        deleted = await conditional_delete(
            self.db,
            Restaurant,
            [Restaurant.id == restaurant.id, Restaurant.owner_id == caller.id],
        )
        if not deleted:
            await self.db.rollback()
            raise ProcedureError.forbidden(message)

        await self.db.commit()
        logger.info(f"Restaurant {restaurant_id} deleted by {caller.id}")

    async def list_mine(self, caller: Optional[Identity]) -> list[Restaurant]:
        """All restaurants owned by the caller with their full menus."""
        caller = require_owner(caller)

        result = await self.db.execute(
            select(Restaurant)
            .where(Restaurant.owner_id == caller.id)
            .options(menu_loader())
            .order_by(Restaurant.created_at.desc(), Restaurant.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

"""
Menu endpoints (/api/menu).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import Identity, get_identity
from app.database import get_db
from app.schemas import (
    DeleteResponse,
    ErrorResponse,
    MenuCategoryCreate,
    MenuCategoryDetail,
    MenuCategoryRead,
    MenuCategoryUpdate,
    MenuItemCreate,
    MenuItemRead,
    MenuItemUpdate,
)
from app.services.menu import MenuCatalog

router = APIRouter(
    prefix="/api/menu",
    tags=["Menu"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


def get_catalog(db: AsyncSession = Depends(get_db)) -> MenuCatalog:
    return MenuCatalog(db)


# =============================================================================
# CATEGORIES
# =============================================================================

@router.post("/categories", response_model=MenuCategoryRead, status_code=201, summary="Create Category")
async def create_category(
    data: MenuCategoryCreate,
    identity: Optional[Identity] = Depends(get_identity),
    catalog: MenuCatalog = Depends(get_catalog),
):
    return await catalog.create_category(data, identity)


@router.put("/categories/{category_id}", response_model=MenuCategoryRead, summary="Update Category")
async def update_category(
    category_id: str,
    data: MenuCategoryUpdate,
    identity: Optional[Identity] = Depends(get_identity),
    catalog: MenuCatalog = Depends(get_catalog),
):
    return await catalog.update_category(category_id, data, identity)


@router.delete("/categories/{category_id}", response_model=DeleteResponse, summary="Delete Category")
async def delete_category(
    category_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    catalog: MenuCatalog = Depends(get_catalog),
) -> DeleteResponse:
    await catalog.delete_category(category_id, identity)
    return DeleteResponse(message="Category deleted")


# =============================================================================
# ITEMS
# =============================================================================

@router.post("/items", response_model=MenuItemRead, status_code=201, summary="Create Menu Item")
async def create_item(
    data: MenuItemCreate,
    identity: Optional[Identity] = Depends(get_identity),
    catalog: MenuCatalog = Depends(get_catalog),
):
    return await catalog.create_item(data, identity)


@router.put("/items/{item_id}", response_model=MenuItemRead, summary="Update Menu Item")
async def update_item(
    item_id: str,
    data: MenuItemUpdate,
    identity: Optional[Identity] = Depends(get_identity),
    catalog: MenuCatalog = Depends(get_catalog),
):
    return await catalog.update_item(item_id, data, identity)


@router.delete("/items/{item_id}", response_model=DeleteResponse, summary="Delete Menu Item")
async def delete_item(
    item_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    catalog: MenuCatalog = Depends(get_catalog),
) -> DeleteResponse:
    await catalog.delete_item(item_id, identity)
    return DeleteResponse(message="Menu item deleted")


@router.post(
    "/items/{item_id}/toggle-availability",
    response_model=MenuItemRead,
    summary="Toggle Item Availability",
)
async def toggle_item_availability(
    item_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    catalog: MenuCatalog = Depends(get_catalog),
):
    return await catalog.toggle_item_availability(item_id, identity)


# =============================================================================
# READ
# =============================================================================

@router.get(
    "/restaurant/{restaurant_id}",
    response_model=list[MenuCategoryDetail],
    summary="Get Restaurant Menu",
)
async def get_by_restaurant(
    restaurant_id: str,
    include_unavailable: bool = Query(False),
    identity: Optional[Identity] = Depends(get_identity),
    catalog: MenuCatalog = Depends(get_catalog),
):
    return await catalog.get_by_restaurant(restaurant_id, identity, include_unavailable)

"""
Restaurant endpoints (/api/restaurant).
"""

from typing import Optional, Union

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import Identity, get_identity
from app.database import get_db
from app.schemas import (
    DeleteResponse,
    ErrorResponse,
    RestaurantCreate,
    RestaurantDetail,
    RestaurantPublicDetail,
    RestaurantRead,
    RestaurantSummary,
    RestaurantUpdate,
)
from app.services.restaurants import RestaurantDirectory

router = APIRouter(
    prefix="/api/restaurant",
    tags=["Restaurants"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


def get_directory(db: AsyncSession = Depends(get_db)) -> RestaurantDirectory:
    return RestaurantDirectory(db)


@router.get("/public", response_model=list[RestaurantSummary], summary="List Active Restaurants")
async def list_public(directory: RestaurantDirectory = Depends(get_directory)):
    return await directory.list_public()


@router.get("/mine", response_model=list[RestaurantDetail], summary="List My Restaurants")
async def list_mine(
    identity: Optional[Identity] = Depends(get_identity),
    directory: RestaurantDirectory = Depends(get_directory),
):
    return await directory.list_mine(identity)


@router.get("/by-slug/{slug}", response_model=RestaurantPublicDetail, summary="Get Restaurant By Slug")
async def get_by_slug(slug: str, directory: RestaurantDirectory = Depends(get_directory)):
    """Public storefront view; unavailable items are left out."""
    return await directory.get_by_slug(slug)


@router.get(
    "/{restaurant_id}",
    response_model=Union[RestaurantDetail, RestaurantPublicDetail],
    summary="Get Restaurant",
)
async def get_by_id(
    restaurant_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    directory: RestaurantDirectory = Depends(get_directory),
):
    """Owners get the full record; other callers get the public projection."""
    return await directory.get_by_id(restaurant_id, identity)


@router.post(
    "",
    response_model=RestaurantRead,
    status_code=201,
    responses={409: {"model": ErrorResponse}},
    summary="Create Restaurant",
)
async def create_restaurant(
    data: RestaurantCreate,
    identity: Optional[Identity] = Depends(get_identity),
    directory: RestaurantDirectory = Depends(get_directory),
):
    return await directory.create(data, identity)


@router.put(
    "/{restaurant_id}",
    response_model=RestaurantRead,
    responses={409: {"model": ErrorResponse}},
    summary="Update Restaurant",
)
async def update_restaurant(
    restaurant_id: str,
    data: RestaurantUpdate,
    identity: Optional[Identity] = Depends(get_identity),
    directory: RestaurantDirectory = Depends(get_directory),
):
    return await directory.update(restaurant_id, data, identity)


@router.delete("/{restaurant_id}", response_model=DeleteResponse, summary="Delete Restaurant")
async def delete_restaurant(
    restaurant_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    directory: RestaurantDirectory = Depends(get_directory),
) -> DeleteResponse:
    await directory.delete(restaurant_id, identity)
    return DeleteResponse(message="Restaurant deleted")

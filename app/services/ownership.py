"""
Ownership Checks

Every owner-scoped mutation first loads the owning restaurant and compares
owner_id with the caller. Writes that can carry the ownership predicate in
their WHERE clause go through conditional_update()/conditional_delete(),
so a concurrent ownership change turns into a zero-row write instead of a
silent overwrite.
"""

import logging
from typing import Any, Iterable

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ProcedureError
from app.core.security import Identity
from app.models import Restaurant

logger = logging.getLogger(__name__)


async def load_restaurant(db: AsyncSession, restaurant_id: str) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise ProcedureError.not_found("Restaurant not found")
    return restaurant


def ensure_owner(restaurant: Restaurant, caller: Identity, message: str) -> None:
    """FORBIDDEN unless the caller owns the restaurant."""
    if restaurant.owner_id != caller.id:
        logger.warning(
            f"User {caller.id} denied on restaurant {restaurant.id} "
            f"owned by {restaurant.owner_id}"
        )
        raise ProcedureError.forbidden(message)


async def owned_restaurant(
    db: AsyncSession,
    restaurant_id: str,
    caller: Identity,
    message: str,
) -> Restaurant:
    """Load a restaurant and verify the caller owns it."""
    restaurant = await load_restaurant(db, restaurant_id)
    ensure_owner(restaurant, caller, message)
    return restaurant


async def conditional_update(
    db: AsyncSession,
    model: Any,
    criteria: Iterable[Any],
    values: dict[str, Any],
) -> bool:
    """
    UPDATE model SET values WHERE criteria.

    Returns True when exactly one row matched. Matching objects already in
    the session are synchronized with the new values.
    """
    result = await db.execute(update(model).where(*criteria).values(**values))
    return result.rowcount == 1


async def conditional_delete(db: AsyncSession, model: Any, criteria: Iterable[Any]) -> bool:
    result = await db.execute(delete(model).where(*criteria))
    return result.rowcount == 1

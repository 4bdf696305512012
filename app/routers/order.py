"""
Order endpoints (/api/order).

Successful writes queue a ledger export after the commit. Queueing is
best effort and runs in the threadpool since the Celery client blocks.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.config import get_settings
from app.core.security import Identity, get_identity
from app.database import get_db
from app.models import OrderStatus
from app.schemas import (
    ErrorResponse,
    OrderCancel,
    OrderCreate,
    OrderDetail,
    OrderListResponse,
    OrderRead,
    OrderStatusUpdate,
)
from app.services.orders import OrderEngine, OrderPage
from app.tasks import queue_order_export

settings = get_settings()

router = APIRouter(
    prefix="/api/order",
    tags=["Orders"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


def get_engine(db: AsyncSession = Depends(get_db)) -> OrderEngine:
    return OrderEngine(db)


def _page_response(page: OrderPage) -> OrderListResponse:
    return OrderListResponse(
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        orders=[OrderRead.model_validate(order) for order in page.orders],
    )


@router.post(
    "",
    response_model=OrderRead,
    status_code=201,
    responses={500: {"model": ErrorResponse}},
    summary="Place Order",
)
async def place_order(
    data: OrderCreate,
    identity: Optional[Identity] = Depends(get_identity),
    engine: OrderEngine = Depends(get_engine),
):
    """
    Price the cart from current menu prices and create a PENDING order.

    Every line must reference an available item of the same restaurant.
    """
    order = await engine.place_order(data, identity)
    await run_in_threadpool(queue_order_export, order, "placed")
    return order


@router.get("/mine", response_model=OrderListResponse, summary="List My Orders")
async def get_my_orders(
    status: Optional[OrderStatus] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=settings.order_page_max),
    offset: int = Query(0, ge=0),
    identity: Optional[Identity] = Depends(get_identity),
    engine: OrderEngine = Depends(get_engine),
) -> OrderListResponse:
    page = await engine.get_my_orders(identity, status=status, limit=limit, offset=offset)
    return _page_response(page)


@router.get(
    "/restaurant/{restaurant_id}",
    response_model=OrderListResponse,
    summary="List Restaurant Orders",
)
async def get_orders_for_restaurant(
    restaurant_id: str,
    status: Optional[OrderStatus] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=settings.order_page_max),
    offset: int = Query(0, ge=0),
    identity: Optional[Identity] = Depends(get_identity),
    engine: OrderEngine = Depends(get_engine),
) -> OrderListResponse:
    page = await engine.get_orders_for_restaurant(
        restaurant_id, identity, status=status, limit=limit, offset=offset
    )
    return _page_response(page)


@router.get("/{order_id}", response_model=OrderDetail, summary="Get Order")
async def get_order(
    order_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    engine: OrderEngine = Depends(get_engine),
):
    return await engine.get_by_id(order_id, identity)


@router.post(
    "/{order_id}/status",
    response_model=OrderRead,
    responses={409: {"model": ErrorResponse}},
    summary="Update Order Status",
)
async def update_status(
    order_id: str,
    data: OrderStatusUpdate,
    identity: Optional[Identity] = Depends(get_identity),
    engine: OrderEngine = Depends(get_engine),
):
    order = await engine.update_status(order_id, data.status, identity)
    await run_in_threadpool(queue_order_export, order, "status_changed")
    return order


@router.post(
    "/{order_id}/cancel",
    response_model=OrderRead,
    responses={409: {"model": ErrorResponse}},
    summary="Cancel Order",
)
async def cancel_order(
    order_id: str,
    data: Optional[OrderCancel] = Body(None),
    identity: Optional[Identity] = Depends(get_identity),
    engine: OrderEngine = Depends(get_engine),
):
    order = await engine.cancel_order(order_id, identity, reason=data.reason if data else None)
    await run_in_threadpool(queue_order_export, order, "cancelled")
    return order

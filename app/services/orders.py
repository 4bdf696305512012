"""
Order Engine

Turns a cart into a priced, immutable order and moves orders through the
status workflow in ORDER_TRANSITIONS.

Pricing:
    Unit prices are read from the menu at placement time and copied into
    the order lines together with the item name. All arithmetic is done in
    Decimal and quantized to cents, so totals are exact.

Order numbers:
    ORD-<epoch millis>-<9 random base36 chars>. A candidate is checked
    against existing orders before use and regenerated on collision; the
    unique constraint on the column backs that check up.

Status writes:
    Transitions are issued as UPDATE ... WHERE status = <observed>, so two
    concurrent transitions from the same status cannot both succeed. The
    loser gets CONFLICT.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import Settings, get_settings
from app.core.errors import ProcedureError
from app.core.security import Identity, require_identity, require_owner
from app.models import MenuItem, Order, OrderItem, OrderStatus, Restaurant, utcnow
from app.schemas import OrderCreate, OrderItemCreate
from app.services.order_status import (
    CUSTOMER_CANCELLABLE,
    allowed_transitions,
    can_transition,
    is_terminal,
)
from app.services.ownership import conditional_update, owned_restaurant

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ORDER_NUMBER_ALPHABET = string.digits + string.ascii_uppercase
ORDER_NUMBER_SUFFIX_LENGTH = 9


def to_money(value: Any) -> Decimal:
    """Quantize to cents. Floats go through str() to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def generate_order_number(now: Optional[datetime] = None) -> str:
    millis = int((now or utcnow()).timestamp() * 1000)
    suffix = "".join(
        secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_SUFFIX_LENGTH)
    )
    return f"ORD-{millis}-{suffix}"


@dataclass
class OrderPage:
    total: int
    limit: int
    offset: int
    orders: list[Order]


class OrderEngine:
    """Order placement, lookup and status workflow."""

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    # =========================================================================
    # PLACEMENT
    # =========================================================================

    async def place_order(self, data: OrderCreate, caller: Optional[Identity]) -> Order:
        """
        Price the cart and persist the order with its lines.

        Nothing is written unless every cart line validates; the order row
        and all of its lines are committed together.
        """
        caller = require_identity(caller)

        if not data.items:
            raise ProcedureError.bad_request("Order must contain at least one item")

        restaurant = await self.db.get(Restaurant, data.restaurant_id)
        if restaurant is None or not restaurant.is_active:
            raise ProcedureError.not_found("Restaurant not found or not available")

        lines = await self._price_cart(restaurant.id, data.items)
        total = sum((line.total_price for line in lines), Decimal("0.00"))

        order = Order(
            order_number=await self._allocate_order_number(),
            total_amount=to_money(total),
            status=OrderStatus.PENDING,
            customer_name=data.customer_name or caller.name,
            customer_email=data.customer_email or caller.email,
            customer_phone=data.customer_phone,
            notes=data.notes,
            restaurant_id=restaurant.id,
            customer_id=caller.id,
            items=lines,
        )
        self.db.add(order)

        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception(f"Failed to persist order for restaurant {data.restaurant_id}")
            raise ProcedureError.internal("Failed to create order")

        logger.info(
            f"Order {order.order_number} placed by {caller.id}: "
            f"{len(lines)} lines, total {order.total_amount}"
        )
        return order

    async def _price_cart(
        self,
        restaurant_id: str,
        requested: Sequence[OrderItemCreate],
    ) -> list[OrderItem]:
        """Build order lines from one batched menu lookup; errors follow cart order."""
        wanted = {line.menu_item_id for line in requested}
        result = await self.db.execute(select(MenuItem).where(MenuItem.id.in_(wanted)))
        menu = {item.id: item for item in result.scalars()}

        lines = []
        for position, line in enumerate(requested):
            menu_item = menu.get(line.menu_item_id)
            if menu_item is None:
                raise ProcedureError.not_found(f"Menu item not found: {line.menu_item_id}")
            if not menu_item.is_available:
                raise ProcedureError.bad_request(f"Menu item is not available: {menu_item.name}")
            if menu_item.restaurant_id != restaurant_id:
                raise ProcedureError.bad_request(
                    f"Menu item does not belong to this restaurant: {menu_item.name}"
                )

            unit_price = to_money(menu_item.price)
            lines.append(
                OrderItem(
                    position=position,
                    menu_item_id=menu_item.id,
                    item_name=menu_item.name,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    total_price=to_money(unit_price * line.quantity),
                    special_instructions=line.special_instructions,
                )
            )

        return lines

    async def _allocate_order_number(self) -> str:
        attempts = self.settings.order_number_max_attempts
        for attempt in range(1, attempts + 1):
            candidate = generate_order_number()
            taken = await self.db.scalar(select(Order.id).where(Order.order_number == candidate))
            if taken is None:
                return candidate
            logger.warning(f"Order number collision on {candidate} (attempt {attempt}/{attempts})")

        logger.error(f"No free order number after {attempts} attempts")
        raise ProcedureError.internal("Failed to create order")

    # =========================================================================
    # LOOKUP
    # =========================================================================

    async def _load_order(self, order_id: str) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items), selectinload(Order.restaurant))
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise ProcedureError.not_found("Order not found")
        return order

    async def get_by_id(self, order_id: str, caller: Optional[Identity]) -> Order:
        """Visible to the ordering customer and to the restaurant's owner."""
        caller = require_identity(caller)
        order = await self._load_order(order_id)

        if order.customer_id != caller.id and order.restaurant.owner_id != caller.id:
            raise ProcedureError.forbidden("You can only view your own orders")

        return order

    async def _page(
        self,
        criteria: list[Any],
        limit: Optional[int],
        offset: int,
    ) -> OrderPage:
        limit = limit or self.settings.order_page_size
        total = await self.db.scalar(select(func.count()).select_from(Order).where(*criteria))

        result = await self.db.execute(
            select(Order)
            .where(*criteria)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return OrderPage(
            total=total or 0,
            limit=limit,
            offset=offset,
            orders=list(result.scalars().all()),
        )

    async def get_my_orders(
        self,
        caller: Optional[Identity],
        status: Optional[OrderStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> OrderPage:
        """Caller's orders, newest first."""
        caller = require_identity(caller)

        criteria = [Order.customer_id == caller.id]
        if status is not None:
            criteria.append(Order.status == status)

        return await self._page(criteria, limit, offset)

    async def get_orders_for_restaurant(
        self,
        restaurant_id: str,
        caller: Optional[Identity],
        status: Optional[OrderStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> OrderPage:
        caller = require_owner(caller)
        await owned_restaurant(
            self.db, restaurant_id, caller,
            "You can only view orders for your own restaurants",
        )

        criteria = [Order.restaurant_id == restaurant_id]
        if status is not None:
            criteria.append(Order.status == status)

        return await self._page(criteria, limit, offset)

    # =========================================================================
    # STATUS WORKFLOW
    # =========================================================================

    async def _compare_and_set(
        self,
        order: Order,
        expected: OrderStatus,
        values: dict[str, Any],
        *extra_criteria: Any,
    ) -> None:
        changed = await conditional_update(
            self.db,
            Order,
            [Order.id == order.id, Order.status == expected, *extra_criteria],
            values,
        )
        if not changed:
            await self.db.rollback()
            logger.warning(f"Order {order.id} changed concurrently, expected {expected.value}")
            raise ProcedureError.conflict("Order was modified concurrently, reload and retry")

        await self.db.commit()

    async def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        caller: Optional[Identity],
    ) -> Order:
        """Owner moves an order along one edge of the workflow."""
        caller = require_owner(caller)
        order = await self._load_order(order_id)

        if order.restaurant.owner_id != caller.id:
            raise ProcedureError.forbidden("You can only update orders for your own restaurants")

        current = order.status
        if not can_transition(current, new_status):
            if is_terminal(current):
                hint = f"{current.value} is final"
            else:
                hint = "allowed: " + ", ".join(sorted(s.value for s in allowed_transitions(current)))
            raise ProcedureError.bad_request(
                f"Invalid status transition from {current.value} to {new_status.value} ({hint})"
            )

        now = utcnow()
        values: dict[str, Any] = {"status": new_status, "updated_at": now}
        if new_status == OrderStatus.COMPLETED:
            values["actual_delivery_time"] = now

        await self._compare_and_set(order, current, values)

        logger.info(f"Order {order.order_number}: {current.value} -> {new_status.value}")
        return order

    async def cancel_order(
        self,
        order_id: str,
        caller: Optional[Identity],
        reason: Optional[str] = None,
    ) -> Order:
        """Customer cancels their own order while it is still pending."""
        caller = require_identity(caller)
        order = await self._load_order(order_id)

        if order.customer_id != caller.id:
            raise ProcedureError.forbidden("You can only cancel your own orders")

        current = order.status
        if current not in CUSTOMER_CANCELLABLE or not can_transition(current, OrderStatus.CANCELLED):
            raise ProcedureError.bad_request("Only pending orders can be cancelled")

        note = f"Cancelled: {reason}" if reason else "Cancelled by customer"
        notes = f"{order.notes}\n{note}" if order.notes else note

        await self._compare_and_set(
            order,
            current,
            {"status": OrderStatus.CANCELLED, "notes": notes, "updated_at": utcnow()},
            Order.customer_id == caller.id,
        )

        logger.info(f"Order {order.order_number} cancelled by customer {caller.id}")
        return order

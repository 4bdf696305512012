"""Unit tests for OrderEngine."""

import re
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.errors import ErrorCode, ProcedureError
from app.models import MenuItem, Order, OrderItem, OrderStatus, Restaurant
from app.schemas import OrderCreate, OrderItemCreate
from app.services.orders import OrderEngine, generate_order_number, to_money

ORDER_NUMBER_RE = re.compile(r"^ORD-\d+-[0-9A-Z]{9}$")


def cart(restaurant_id: str, *lines: tuple[str, int], **extra) -> OrderCreate:
    return OrderCreate(
        restaurant_id=restaurant_id,
        items=[OrderItemCreate(menu_item_id=item_id, quantity=qty) for item_id, qty in lines],
        **extra,
    )


async def _count(session_maker, model) -> int:
    async with session_maker() as session:
        return await session.scalar(select(func.count()).select_from(model))


@pytest.mark.unit
class TestOrderNumbers:
    """Test suite for order number generation and money helpers."""

    def test_format(self) -> None:
        number = generate_order_number(datetime(2024, 1, 15, tzinfo=timezone.utc))
        assert ORDER_NUMBER_RE.match(number)
        assert number.startswith("ORD-1705276800000-")

    def test_suffixes_differ(self) -> None:
        numbers = {generate_order_number() for _ in range(50)}
        assert len(numbers) == 50

    def test_to_money_quantizes(self) -> None:
        assert to_money("3.005") == Decimal("3.01")
        assert to_money(0.1) == Decimal("0.10")
        assert to_money(Decimal("9.99") * 3) == Decimal("29.97")


@pytest.mark.unit
class TestPlaceOrder:
    """Test suite for placing orders."""

    @pytest.fixture
    def engine(self, db) -> OrderEngine:
        return OrderEngine(db)

    @pytest.mark.asyncio
    async def test_scenario_burger_and_fries(self, engine, menu, customer) -> None:
        order = await engine.place_order(
            cart(menu.restaurant_id, (menu.burger_id, 2), (menu.fries_id, 1)), customer
        )

        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("23.48")
        assert ORDER_NUMBER_RE.match(order.order_number)
        assert [(line.item_name, line.quantity, line.unit_price, line.total_price) for line in order.items] == [
            ("Burger", 2, Decimal("9.99"), Decimal("19.98")),
            ("Fries", 1, Decimal("3.50"), Decimal("3.50")),
        ]

    @pytest.mark.asyncio
    async def test_contact_defaults_to_identity(self, engine, menu, customer) -> None:
        order = await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)

        assert order.customer_name == customer.name
        assert order.customer_email == customer.email
        assert order.customer_id == customer.id

    @pytest.mark.asyncio
    async def test_explicit_contact_wins(self, engine, menu, customer) -> None:
        order = await engine.place_order(
            cart(menu.restaurant_id, (menu.burger_id, 1), customer_name="Pat", customer_email="pat@example.com"),
            customer,
        )
        assert order.customer_name == "Pat"
        assert order.customer_email == "pat@example.com"

    @pytest.mark.asyncio
    async def test_cent_arithmetic_is_exact(self, engine, session_maker, menu, owner, customer) -> None:
        async with session_maker() as session:
            penny = MenuItem(
                name="Mint",
                price=Decimal("0.01"),
                category_id=menu.category_id,
                restaurant_id=menu.restaurant_id,
            )
            session.add(penny)
            await session.commit()

        order = await engine.place_order(cart(menu.restaurant_id, (penny.id, 1000)), customer)

        assert order.total_amount == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_total_matches_sum_of_lines(self, engine, menu, customer) -> None:
        order = await engine.place_order(
            cart(menu.restaurant_id, (menu.fries_id, 3), (menu.burger_id, 1), (menu.fries_id, 2)), customer
        )

        assert order.total_amount == sum(line.total_price for line in order.items)
        for line in order.items:
            assert line.total_price == line.unit_price * line.quantity

    @pytest.mark.asyncio
    async def test_later_price_change_does_not_touch_order(self, engine, session_maker, menu, customer) -> None:
        order = await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)

        async with session_maker() as session:
            burger = await session.get(MenuItem, menu.burger_id)
            burger.price = Decimal("99.00")
            await session.commit()

        async with session_maker() as session:
            stored = await session.get(Order, order.id)
            assert stored.total_amount == Decimal("9.99")

    @pytest.mark.asyncio
    async def test_unavailable_item_rejected(self, engine, session_maker, menu, customer) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.place_order(
                cart(menu.restaurant_id, (menu.burger_id, 1), (menu.soup_id, 1)), customer
            )

        assert exc_info.value.code == ErrorCode.BAD_REQUEST
        assert "Soup" in exc_info.value.message
        assert await _count(session_maker, Order) == 0
        assert await _count(session_maker, OrderItem) == 0

    @pytest.mark.asyncio
    async def test_missing_item_rejected(self, engine, menu, customer) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.place_order(cart(menu.restaurant_id, ("ghost", 1)), customer)
        assert exc_info.value.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_first_bad_line_is_reported(self, engine, menu, customer) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.place_order(
                cart(menu.restaurant_id, (menu.soup_id, 1), ("ghost", 1)), customer
            )
        assert exc_info.value.code == ErrorCode.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_item_from_other_restaurant_rejected(self, engine, menu, other_menu, customer) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.place_order(
                cart(menu.restaurant_id, (menu.burger_id, 1), (other_menu.burger_id, 1)), customer
            )
        assert exc_info.value.code == ErrorCode.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_inactive_restaurant_rejected(self, engine, session_maker, menu, customer) -> None:
        async with session_maker() as session:
            restaurant = await session.get(Restaurant, menu.restaurant_id)
            restaurant.is_active = False
            await session.commit()

        with pytest.raises(ProcedureError) as exc_info:
            await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)
        assert exc_info.value.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, engine, menu) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), None)
        assert exc_info.value.code == ErrorCode.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_empty_cart_rejected(self, engine, menu, customer) -> None:
        data = OrderCreate.model_construct(restaurant_id=menu.restaurant_id, items=[])
        with pytest.raises(ProcedureError) as exc_info:
            await engine.place_order(data, customer)
        assert exc_info.value.code == ErrorCode.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_order_number_collision_retries(self, engine, menu, customer) -> None:
        first = await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)

        with patch(
            "app.services.orders.generate_order_number",
            side_effect=[first.order_number, "ORD-1-FRESHNUMB"],
        ):
            second = await engine.place_order(cart(menu.restaurant_id, (menu.fries_id, 1)), customer)

        assert second.order_number == "ORD-1-FRESHNUMB"

    @pytest.mark.asyncio
    async def test_order_number_exhaustion_is_internal(self, engine, menu, customer) -> None:
        first = await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)

        with patch("app.services.orders.generate_order_number", return_value=first.order_number):
            with pytest.raises(ProcedureError) as exc_info:
                await engine.place_order(cart(menu.restaurant_id, (menu.fries_id, 1)), customer)

        assert exc_info.value.code == ErrorCode.INTERNAL
        assert exc_info.value.message == "Failed to create order"

    @pytest.mark.asyncio
    async def test_storage_failure_is_generic_internal(self, engine, db, session_maker, menu, customer) -> None:
        with patch.object(db, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            with pytest.raises(ProcedureError) as exc_info:
                await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)

        assert exc_info.value.code == ErrorCode.INTERNAL
        assert exc_info.value.message == "Failed to create order"
        assert await _count(session_maker, Order) == 0


@pytest.mark.unit
class TestOrderLookup:
    """Test suite for order reads."""

    @pytest.fixture
    def engine(self, db) -> OrderEngine:
        return OrderEngine(db)

    @pytest.mark.asyncio
    async def test_customer_and_owner_can_view(self, engine, menu, owner, customer) -> None:
        order = await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)

        assert (await engine.get_by_id(order.id, customer)).id == order.id
        assert (await engine.get_by_id(order.id, owner)).restaurant.id == menu.restaurant_id

    @pytest.mark.asyncio
    async def test_stranger_cannot_view(self, engine, menu, customer, other_customer) -> None:
        order = await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)

        with pytest.raises(ProcedureError) as exc_info:
            await engine.get_by_id(order.id, other_customer)
        assert exc_info.value.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_missing_order(self, engine, customer) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.get_by_id("missing", customer)
        assert exc_info.value.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_my_orders_newest_first_and_paged(self, engine, menu, customer, other_customer) -> None:
        placed = []
        for _ in range(3):
            placed.append(await engine.place_order(cart(menu.restaurant_id, (menu.fries_id, 1)), customer))
        await engine.place_order(cart(menu.restaurant_id, (menu.fries_id, 1)), other_customer)

        page = await engine.get_my_orders(customer, limit=2)

        assert page.total == 3
        assert page.limit == 2
        assert [o.id for o in page.orders] == [placed[2].id, placed[1].id]

    @pytest.mark.asyncio
    async def test_my_orders_status_filter(self, engine, menu, customer) -> None:
        first = await engine.place_order(cart(menu.restaurant_id, (menu.fries_id, 1)), customer)
        await engine.place_order(cart(menu.restaurant_id, (menu.fries_id, 1)), customer)
        await engine.cancel_order(first.id, customer)

        page = await engine.get_my_orders(customer, status=OrderStatus.CANCELLED)

        assert [o.id for o in page.orders] == [first.id]

    @pytest.mark.asyncio
    async def test_restaurant_orders_for_owner(self, engine, menu, other_menu, owner, customer) -> None:
        await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)
        await engine.place_order(cart(other_menu.restaurant_id, (other_menu.burger_id, 1)), customer)

        page = await engine.get_orders_for_restaurant(menu.restaurant_id, owner)

        assert page.total == 1
        assert page.orders[0].restaurant_id == menu.restaurant_id

    @pytest.mark.asyncio
    async def test_restaurant_orders_foreign_owner(self, engine, menu, other_owner) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.get_orders_for_restaurant(menu.restaurant_id, other_owner)
        assert exc_info.value.code == ErrorCode.FORBIDDEN


@pytest.mark.unit
class TestOrderWorkflow:
    """Test suite for status transitions and cancellation."""

    @pytest.fixture
    def engine(self, db) -> OrderEngine:
        return OrderEngine(db)

    @pytest.fixture
    async def order(self, engine, menu, customer) -> Order:
        return await engine.place_order(cart(menu.restaurant_id, (menu.burger_id, 1)), customer)

    @pytest.mark.asyncio
    async def test_full_happy_path(self, engine, order, owner) -> None:
        for status in (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED):
            order = await engine.update_status(order.id, status, owner)
            assert order.status == status

        assert order.actual_delivery_time is not None

    @pytest.mark.asyncio
    async def test_skipping_a_step_is_rejected(self, engine, order, owner) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.update_status(order.id, OrderStatus.COMPLETED, owner)

        assert exc_info.value.code == ErrorCode.BAD_REQUEST
        assert exc_info.value.message == (
            "Invalid status transition from PENDING to COMPLETED (allowed: CANCELLED, PREPARING)"
        )

    @pytest.mark.asyncio
    async def test_terminal_order_cannot_move(self, engine, order, owner) -> None:
        await engine.update_status(order.id, OrderStatus.CANCELLED, owner)

        with pytest.raises(ProcedureError) as exc_info:
            await engine.update_status(order.id, OrderStatus.PREPARING, owner)
        assert exc_info.value.code == ErrorCode.BAD_REQUEST
        assert exc_info.value.message.endswith("(CANCELLED is final)")

    @pytest.mark.asyncio
    async def test_foreign_owner_cannot_update(self, engine, order, other_owner) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.update_status(order.id, OrderStatus.PREPARING, other_owner)
        assert exc_info.value.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_customer_cannot_update_status(self, engine, order, customer) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.update_status(order.id, OrderStatus.PREPARING, customer)
        assert exc_info.value.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_concurrent_change_is_conflict(self, engine, order, owner, session_maker) -> None:
        stale = await engine._load_order(order.id)

        async with session_maker() as other:
            await OrderEngine(other).update_status(order.id, OrderStatus.PREPARING, owner)

        # This session still holds the PENDING snapshot
        assert stale.status == OrderStatus.PENDING
        with patch("app.services.orders.OrderEngine._load_order", return_value=stale):
            with pytest.raises(ProcedureError) as exc_info:
                await engine.update_status(order.id, OrderStatus.CANCELLED, owner)

        assert exc_info.value.code == ErrorCode.CONFLICT

    @pytest.mark.asyncio
    async def test_customer_cancels_pending(self, engine, order, customer) -> None:
        cancelled = await engine.cancel_order(order.id, customer, reason="Changed my mind")

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.notes == "Cancelled: Changed my mind"

    @pytest.mark.asyncio
    async def test_cancel_without_reason_appends_default_note(self, engine, menu, customer) -> None:
        order = await engine.place_order(
            cart(menu.restaurant_id, (menu.burger_id, 1), notes="No onions"), customer
        )

        cancelled = await engine.cancel_order(order.id, customer)

        assert cancelled.notes == "No onions\nCancelled by customer"

    @pytest.mark.asyncio
    async def test_cannot_cancel_once_preparing(self, engine, order, owner, customer) -> None:
        await engine.update_status(order.id, OrderStatus.PREPARING, owner)

        with pytest.raises(ProcedureError) as exc_info:
            await engine.cancel_order(order.id, customer)
        assert exc_info.value.code == ErrorCode.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_cannot_cancel_someone_elses_order(self, engine, order, other_customer) -> None:
        with pytest.raises(ProcedureError) as exc_info:
            await engine.cancel_order(order.id, other_customer)
        assert exc_info.value.code == ErrorCode.FORBIDDEN

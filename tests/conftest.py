"""Shared pytest fixtures and configuration for all tests."""

import os

# Settings are cached on first use; pin test-safe values before app imports
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LEDGER_EXPORT_ENABLED"] = "false"

import secrets
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.security import Identity
from app.database import build_engine, build_session_maker, get_db, init_db
from app.models import (
    MenuCategory,
    MenuItem,
    Restaurant,
    Session,
    User,
    UserRole,
    utcnow,
)
from app.services.assistant import get_text_generator
from app.services.assistant.mock import MockTextGenerator


@dataclass
class SeededMenu:
    restaurant_id: str
    category_id: str
    burger_id: str
    fries_id: str
    soup_id: str


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite file database per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def db(session_maker):
    """Session handed to the service under test."""
    async with session_maker() as session:
        yield session


# =============================================================================
# IDENTITIES
# =============================================================================

async def _add_user(session_maker, name: str, email: str, role: UserRole) -> Identity:
    async with session_maker() as session:
        user = User(name=name, email=email, role=role)
        session.add(user)
        await session.commit()
        return Identity.from_user(user)


@pytest.fixture
async def owner(session_maker) -> Identity:
    return await _add_user(session_maker, "Olive Owner", "olive@example.com", UserRole.OWNER)


@pytest.fixture
async def other_owner(session_maker) -> Identity:
    return await _add_user(session_maker, "Omar Owner", "omar@example.com", UserRole.OWNER)


@pytest.fixture
async def customer(session_maker) -> Identity:
    return await _add_user(session_maker, "Casey Customer", "casey@example.com", UserRole.CUSTOMER)


@pytest.fixture
async def other_customer(session_maker) -> Identity:
    return await _add_user(session_maker, "Cam Customer", "cam@example.com", UserRole.CUSTOMER)


@pytest.fixture
def login(session_maker):
    """Create an unexpired session for an identity and return auth headers."""

    async def _login(identity: Identity, expires_in: timedelta = timedelta(hours=1)) -> dict:
        token = secrets.token_urlsafe(24)
        async with session_maker() as session:
            session.add(Session(token=token, user_id=identity.id, expires_at=utcnow() + expires_in))
            await session.commit()
        return {"Authorization": f"Bearer {token}"}

    return _login


# =============================================================================
# MENU DATA
# =============================================================================

async def _seed_restaurant(session_maker, owner: Identity, slug: str, name: str) -> SeededMenu:
    async with session_maker() as session:
        restaurant = Restaurant(
            name=name,
            slug=slug,
            description="Neighbourhood kitchen",
            location="1 Main St",
            phone="555-0100",
            email=f"{slug}@example.com",
            owner_id=owner.id,
        )
        session.add(restaurant)
        await session.flush()

        category = MenuCategory(name="Mains", display_order=Decimal("1"), restaurant_id=restaurant.id)
        session.add(category)
        await session.flush()

        burger = MenuItem(
            name="Burger",
            description="Beef patty with cheese",
            ingredients="beef, cheese, bun",
            price=Decimal("9.99"),
            display_order=Decimal("1"),
            category_id=category.id,
            restaurant_id=restaurant.id,
        )
        fries = MenuItem(
            name="Fries",
            price=Decimal("3.50"),
            ingredients="potato, salt",
            display_order=Decimal("2"),
            category_id=category.id,
            restaurant_id=restaurant.id,
        )
        soup = MenuItem(
            name="Soup",
            price=Decimal("4.25"),
            is_available=False,
            display_order=Decimal("3"),
            category_id=category.id,
            restaurant_id=restaurant.id,
        )
        session.add_all([burger, fries, soup])
        await session.commit()

        return SeededMenu(
            restaurant_id=restaurant.id,
            category_id=category.id,
            burger_id=burger.id,
            fries_id=fries.id,
            soup_id=soup.id,
        )


@pytest.fixture
async def menu(session_maker, owner) -> SeededMenu:
    """Active restaurant 'cafe1' owned by `owner`: Burger, Fries, Soup (unavailable)."""
    return await _seed_restaurant(session_maker, owner, "cafe1", "Cafe One")


@pytest.fixture
async def other_menu(session_maker, other_owner) -> SeededMenu:
    """Second restaurant 'diner2' owned by `other_owner`."""
    return await _seed_restaurant(session_maker, other_owner, "diner2", "Diner Two")


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture
def text_generator() -> MockTextGenerator:
    return MockTextGenerator()


@pytest.fixture
async def client(session_maker, text_generator):
    """HTTP client against the app, wired to the per-test database."""
    from app.main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_text_generator] = lambda: text_generator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

"""
SQLAlchemy Database Models

Tables for the ordering platform:
- Identities and their login sessions (owned by the auth provider)
- Restaurants with menu categories and menu items
- Orders with immutable line items
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.database import Base


def generate_id() -> str:
    """Opaque primary key for every table."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    """Role attribute on an identity."""
    OWNER = "OWNER"
    CUSTOMER = "CUSTOMER"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Money columns: 10 digits, 2 after the point
Money = Numeric(10, 2, asdecimal=True)


class User(Base):
    """
    Identity record managed by the authentication provider.

    The platform only references users: as restaurant owners and as
    order customers.
    """
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20), nullable=True)
    role = Column(
        Enum(UserRole, native_enum=False, length=20),
        default=UserRole.CUSTOMER,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.id} - {self.email} - {self.role.value}>"


class Session(Base):
    """Login session issued by the authentication provider."""
    __tablename__ = "sessions"

    id = Column(String(32), primary_key=True, default=generate_id)
    token = Column(String(255), nullable=False, unique=True, index=True)
    user_id = Column(
        String(32),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User")


class Restaurant(Base):
    """
    A restaurant owned by one OWNER identity.

    Disabled through is_active rather than deleted; a hard delete cascades
    to categories, items and orders at the database level.
    """
    __tablename__ = "restaurants"

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    location = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    logo = Column(String(500), nullable=True)
    cover_image = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    owner_id = Column(
        String(32),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User")
    categories = relationship(
        "MenuCategory",
        back_populates="restaurant",
        order_by=lambda: [MenuCategory.display_order, MenuCategory.id],
        passive_deletes=True,
    )
    orders = relationship("Order", back_populates="restaurant", passive_deletes=True)

    def __repr__(self):
        return f"<Restaurant {self.slug} - owner={self.owner_id}>"


class MenuCategory(Base):
    """Menu section such as "Mains" or "Drinks"."""
    __tablename__ = "menu_categories"

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Numeric(10, 2), default=0, nullable=False)
    restaurant_id = Column(
        String(32),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    restaurant = relationship("Restaurant", back_populates="categories")
    items = relationship(
        "MenuItem",
        back_populates="menu_category",
        order_by=lambda: [MenuItem.display_order, MenuItem.id],
        passive_deletes=True,
    )


class MenuItem(Base):
    """
    Orderable dish.

    restaurant_id is denormalized from the category so a cart can be
    checked against the target restaurant with a single lookup.
    """
    __tablename__ = "menu_items"

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Money, nullable=False)
    image = Column(String(500), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    display_order = Column(Numeric(10, 2), default=0, nullable=False)
    category = Column(Text, nullable=True)  # dietary tags, allergens
    ingredients = Column(Text, nullable=True)
    preparation_time = Column(String(50), nullable=True)  # e.g. "15-20 min"
    category_id = Column(
        String(32),
        ForeignKey("menu_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    restaurant_id = Column(
        String(32),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    menu_category = relationship("MenuCategory", back_populates="items")
    restaurant = relationship("Restaurant")

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price} - available={self.is_available}>"


class Order(Base):
    """
    Customer order placed against one restaurant.

    total_amount is fixed at creation and always equals the sum of the
    line totals; only status, notes and delivery times change afterwards.
    """
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=generate_id)
    order_number = Column(String(50), nullable=False, unique=True, index=True)
    total_amount = Column(Money, nullable=False)
    status = Column(
        Enum(OrderStatus, native_enum=False, length=20),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Customer contact
    customer_name = Column(String(100), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)

    # Delivery
    estimated_delivery_time = Column(DateTime(timezone=True), nullable=True)
    actual_delivery_time = Column(DateTime(timezone=True), nullable=True)

    restaurant_id = Column(
        String(32),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id = Column(
        String(32),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    restaurant = relationship("Restaurant", back_populates="orders")
    customer = relationship("User")
    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Order {self.order_number} - {self.total_amount} - {self.status.value}>"


class OrderItem(Base):
    """
    Immutable order line.

    unit_price and item_name are snapshots taken when the order was placed,
    so later menu edits (or deleting the menu item) never change history.
    """
    __tablename__ = "order_items"

    id = Column(String(32), primary_key=True, default=generate_id)
    position = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)
    item_name = Column(String(255), nullable=False)
    special_instructions = Column(Text, nullable=True)
    order_id = Column(
        String(32),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(
        String(32),
        ForeignKey("menu_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    order = relationship("Order", back_populates="items")

"""
Pydantic Schemas for Request/Response Validation

Request schemas reject structurally invalid input before any storage access
(non-empty strings, numeric minimums, status membership, email/url formats).
Response schemas define the projections handed back to callers, including
the public-safe restaurant views that never expose owner-only fields.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models import OrderStatus


SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


def _validate_url(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not URL_PATTERN.match(v):
        raise ValueError("Invalid URL format")
    return v


# =============================================================================
# RESTAURANT SCHEMAS
# =============================================================================

class RestaurantCreate(BaseModel):
    """Request schema for creating a restaurant."""
    name: str = Field(..., min_length=1, max_length=255, examples=["Cafe One"])
    description: Optional[str] = None
    slug: str = Field(..., min_length=1, max_length=255, pattern=SLUG_PATTERN, examples=["cafe1"])
    location: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    logo: Optional[str] = Field(None, max_length=500)
    cover_image: Optional[str] = Field(None, max_length=500)

    @field_validator("logo", "cover_image")
    @classmethod
    def validate_urls(cls, v: Optional[str]) -> Optional[str]:
        return _validate_url(v)


class RestaurantUpdate(BaseModel):
    """Partial update; only the fields sent are written."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    slug: Optional[str] = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    location: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    logo: Optional[str] = Field(None, max_length=500)
    cover_image: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None

    @field_validator("logo", "cover_image")
    @classmethod
    def validate_urls(cls, v: Optional[str]) -> Optional[str]:
        return _validate_url(v)

    @field_validator("name", "slug", "is_active")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class MenuItemPublic(BaseModel):
    """Menu item as shown to customers."""
    id: str
    name: str
    description: Optional[str]
    price: Decimal
    image: Optional[str]
    display_order: Decimal
    category: Optional[str]
    ingredients: Optional[str]
    preparation_time: Optional[str]

    class Config:
        from_attributes = True


class MenuItemRead(MenuItemPublic):
    """Full menu item record."""
    is_available: bool
    category_id: str
    restaurant_id: str
    created_at: datetime
    updated_at: datetime


class MenuCategoryBase(BaseModel):
    id: str
    name: str
    description: Optional[str]
    display_order: Decimal

    class Config:
        from_attributes = True


class MenuCategoryPublic(MenuCategoryBase):
    items: List[MenuItemPublic] = []


class MenuCategoryRead(MenuCategoryBase):
    """Category record without nested items."""
    restaurant_id: str
    created_at: datetime
    updated_at: datetime


class MenuCategoryDetail(MenuCategoryRead):
    items: List[MenuItemRead] = []


class RestaurantSummary(BaseModel):
    """Public-safe listing projection (no contact or owner fields)."""
    id: str
    name: str
    description: Optional[str]
    slug: str
    location: Optional[str]
    logo: Optional[str]
    cover_image: Optional[str]

    class Config:
        from_attributes = True


class RestaurantPublicDetail(RestaurantSummary):
    """Redacted restaurant with available items only."""
    is_active: bool
    categories: List[MenuCategoryPublic] = []


class RestaurantRead(RestaurantSummary):
    """Full restaurant record, visible to its owner."""
    phone: Optional[str]
    email: Optional[str]
    is_active: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime


class RestaurantDetail(RestaurantRead):
    categories: List[MenuCategoryDetail] = []


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class MenuCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Mains"])
    description: Optional[str] = None
    display_order: Decimal = Field(default=Decimal("0"))
    restaurant_id: str = Field(..., min_length=1)


class MenuCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: Optional[Decimal] = None

    @field_validator("name", "display_order")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Burger"])
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, examples=["9.99"])
    image: Optional[str] = Field(None, max_length=500)
    is_available: bool = True
    display_order: Decimal = Field(default=Decimal("0"))
    category: Optional[str] = None
    ingredients: Optional[str] = None
    preparation_time: Optional[str] = Field(None, max_length=50)
    category_id: str = Field(..., min_length=1)
    restaurant_id: str = Field(..., min_length=1)

    @field_validator("image")
    @classmethod
    def validate_image(cls, v: Optional[str]) -> Optional[str]:
        return _validate_url(v)


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    image: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None
    display_order: Optional[Decimal] = None
    category: Optional[str] = None
    ingredients: Optional[str] = None
    preparation_time: Optional[str] = Field(None, max_length=50)
    category_id: Optional[str] = Field(None, min_length=1)

    @field_validator("image")
    @classmethod
    def validate_image(cls, v: Optional[str]) -> Optional[str]:
        return _validate_url(v)

    @field_validator("name", "price", "is_available", "display_order", "category_id")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single cart line."""
    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, examples=[2])
    special_instructions: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Request schema for placing an order."""
    restaurant_id: str = Field(..., min_length=1)
    items: List[OrderItemCreate] = Field(..., min_length=1)
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderItemRead(BaseModel):
    id: str
    menu_item_id: Optional[str]
    item_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    special_instructions: Optional[str]

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    """Response schema for a single order."""
    id: str
    order_number: str
    total_amount: Decimal
    status: OrderStatus
    customer_name: Optional[str]
    customer_email: Optional[str]
    customer_phone: Optional[str]
    notes: Optional[str]
    estimated_delivery_time: Optional[datetime]
    actual_delivery_time: Optional[datetime]
    restaurant_id: str
    customer_id: str
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemRead] = []

    class Config:
        from_attributes = True


class RestaurantBrief(BaseModel):
    id: str
    name: str
    location: Optional[str]

    class Config:
        from_attributes = True


class OrderDetail(OrderRead):
    restaurant: RestaurantBrief


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    limit: int
    offset: int
    orders: List[OrderRead]


# =============================================================================
# ASSISTANT SCHEMAS
# =============================================================================

class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    restaurant_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=2000)
    conversation_history: List[ConversationTurn] = Field(default_factory=list)


class ChatResponse(BaseModel):
    response: str
    restaurant_name: str
    is_fallback: bool = False


class PriceRangeFilter(BaseModel):
    min: Optional[Decimal] = Field(None, ge=0)
    max: Optional[Decimal] = Field(None, ge=0)


class RecommendationPreferences(BaseModel):
    dietary_restrictions: Optional[List[str]] = None
    price_range: Optional[PriceRangeFilter] = None
    category: Optional[str] = None


class RecommendationRequest(BaseModel):
    restaurant_id: str = Field(..., min_length=1)
    preferences: Optional[RecommendationPreferences] = None


class RecommendationResponse(BaseModel):
    recommendations: str
    available_item_count: int
    is_fallback: bool = False


class PriceRange(BaseModel):
    min: Decimal
    max: Decimal


class CategorySummary(BaseModel):
    name: str
    description: Optional[str]
    item_count: int
    price_range: Optional[PriceRange]


class MenuSummaryResponse(BaseModel):
    restaurant_name: str
    restaurant_description: Optional[str]
    categories: List[CategorySummary]
    total_items: int


# =============================================================================
# COMMON SCHEMAS
# =============================================================================

class DeleteResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    text_generation: str
    timestamp: datetime

"""
Advisory Assistant

Builds restaurant/menu context prompts for the text generator and relays
the answer. Generator failures never reach the caller: each feature has a
deterministic fallback, flagged with is_fallback=True.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ProcedureError
from app.core.security import Identity, require_identity
from app.models import MenuItem, Restaurant
from app.schemas import (
    CategorySummary,
    ChatResponse,
    ConversationTurn,
    MenuSummaryResponse,
    PriceRange,
    RecommendationPreferences,
    RecommendationResponse,
)
from app.services.assistant import get_text_generator
from app.services.assistant.base import BaseTextGenerator, TextGenerationError
from app.services.restaurants import menu_loader

logger = logging.getLogger(__name__)

FALLBACK_ITEM_COUNT = 5

CHAT_PROMPT = """You are a friendly and helpful virtual waiter for {name}.

Restaurant Information:
- Name: {name}
- Description: {description}
- Location: {location}

Available Menu:
{menu}

Your role is to:
1. Help customers with menu questions and recommendations
2. Provide information about ingredients, preparation times, and pricing
3. Answer questions about dietary restrictions and allergens based on the ingredients listed
4. Explain menu items in detail when asked

Important Guidelines:
- You CANNOT take orders or process payments. Direct customers to use the ordering system for placing orders.
- You can only discuss items that are currently available on the menu.
- If allergen information is not specified, tell customers to ask the restaurant staff.
- Do not make up prices, ingredients, or preparation methods that aren't listed.

Current conversation context:
{history}

Customer's message: {message}"""

RECOMMENDATION_PROMPT = """Based on the following available menu items from {name}, please provide 3-5 personalized recommendations. Consider the customer preferences if provided.

Available Menu:
{menu}

Customer Preferences:
{preferences}

Please provide recommendations in a friendly, helpful manner, explaining why each item would be a good choice."""

CHAT_FALLBACK = (
    "I'm sorry, I'm having trouble connecting right now. I'm here to help you "
    "with questions about {name}'s menu. Feel free to ask me about any menu items, "
    "ingredients, or I can help you make recommendations! For placing orders, "
    "please use the ordering system."
)


@dataclass
class _MenuEntry:
    item: MenuItem
    category_name: str


def _format_item(item: MenuItem) -> str:
    line = f"• {item.name}: ${item.price}"
    if item.description:
        line += f" - {item.description}"
    if item.ingredients:
        line += f" (Ingredients: {item.ingredients})"
    if item.preparation_time:
        line += f" ({item.preparation_time})"
    return line


def format_menu(restaurant: Restaurant) -> str:
    """One block per category, one bullet per available item."""
    blocks = []
    for category in restaurant.categories:
        items = "\n".join(_format_item(item) for item in category.items)
        blocks.append(f"{category.name}:\n{items}")
    return "\n\n".join(blocks)


def format_history(history: Sequence[ConversationTurn]) -> str:
    return "\n".join(f"{turn.role}: {turn.content}" for turn in history)


def filter_items(
    entries: list[_MenuEntry],
    preferences: Optional[RecommendationPreferences],
) -> list[_MenuEntry]:
    """
    Price bounds are inclusive. Category matches on a case-insensitive
    substring of the category name. A dietary restriction excludes any item
    whose name, description or ingredients mention it.
    """
    if preferences is None:
        return entries

    if preferences.price_range is not None:
        low, high = preferences.price_range.min, preferences.price_range.max
        entries = [
            e for e in entries
            if (low is None or e.item.price >= low) and (high is None or e.item.price <= high)
        ]

    if preferences.category:
        wanted = preferences.category.lower()
        entries = [e for e in entries if wanted in e.category_name.lower()]

    if preferences.dietary_restrictions:
        restrictions = [r.lower() for r in preferences.dietary_restrictions if r]

        def _allowed(entry: _MenuEntry) -> bool:
            text = " ".join(
                filter(None, [entry.item.name, entry.item.description, entry.item.ingredients])
            ).lower()
            return not any(r in text for r in restrictions)

        entries = [e for e in entries if _allowed(e)]

    return entries


class AdvisoryAssistant:
    """Chat, menu summary and recommendations for one restaurant at a time."""

    def __init__(self, db: AsyncSession, generator: Optional[BaseTextGenerator] = None):
        self.db = db
        self.generator = generator or get_text_generator()

    async def _load_open_restaurant(self, restaurant_id: str) -> Restaurant:
        """Restaurant with available items only; same rules as ordering."""
        result = await self.db.execute(
            select(Restaurant)
            .where(Restaurant.id == restaurant_id)
            .options(menu_loader(available_only=True))
            .execution_options(populate_existing=True)
        )
        restaurant = result.scalar_one_or_none()

        if restaurant is None:
            raise ProcedureError.not_found("Restaurant not found")
        if not restaurant.is_active:
            raise ProcedureError.bad_request("This restaurant is currently not available")

        return restaurant

    async def chat(
        self,
        restaurant_id: str,
        message: str,
        caller: Optional[Identity],
        history: Sequence[ConversationTurn] = (),
    ) -> ChatResponse:
        require_identity(caller)
        restaurant = await self._load_open_restaurant(restaurant_id)

        prompt = CHAT_PROMPT.format(
            name=restaurant.name,
            description=restaurant.description or "A wonderful dining establishment",
            location=restaurant.location or "Visit us for a great meal!",
            menu=format_menu(restaurant),
            history=format_history(history),
            message=message,
        )

        try:
            result = await self.generator.generate(prompt)
        except TextGenerationError as e:
            logger.warning(f"Chat fallback for restaurant {restaurant.id}: {e}")
            return ChatResponse(
                response=CHAT_FALLBACK.format(name=restaurant.name),
                restaurant_name=restaurant.name,
                is_fallback=True,
            )

        return ChatResponse(response=result.text, restaurant_name=restaurant.name)

    async def get_menu_summary(self, restaurant_id: str, caller: Optional[Identity]) -> MenuSummaryResponse:
        """Item counts and price ranges over available items."""
        require_identity(caller)
        restaurant = await self._load_open_restaurant(restaurant_id)

        categories = []
        for category in restaurant.categories:
            prices = [Decimal(item.price) for item in category.items]
            categories.append(
                CategorySummary(
                    name=category.name,
                    description=category.description,
                    item_count=len(prices),
                    price_range=PriceRange(min=min(prices), max=max(prices)) if prices else None,
                )
            )

        return MenuSummaryResponse(
            restaurant_name=restaurant.name,
            restaurant_description=restaurant.description,
            categories=categories,
            total_items=sum(c.item_count for c in categories),
        )

    async def get_recommendations(
        self,
        restaurant_id: str,
        caller: Optional[Identity],
        preferences: Optional[RecommendationPreferences] = None,
    ) -> RecommendationResponse:
        require_identity(caller)
        restaurant = await self._load_open_restaurant(restaurant_id)

        entries = [
            _MenuEntry(item=item, category_name=category.name)
            for category in restaurant.categories
            for item in category.items
        ]
        entries = filter_items(entries, preferences)

        menu_text = "\n".join(
            f"• {e.item.name} ({e.category_name}): ${e.item.price}"
            + (f" - {e.item.description}" if e.item.description else "")
            for e in entries
        )
        prefs_text = (
            json.dumps(preferences.model_dump(mode="json", exclude_none=True), indent=2)
            if preferences is not None
            else "No specific preferences provided"
        )
        prompt = RECOMMENDATION_PROMPT.format(
            name=restaurant.name,
            menu=menu_text,
            preferences=prefs_text,
        )

        try:
            result = await self.generator.generate(prompt)
        except TextGenerationError as e:
            logger.warning(f"Recommendation fallback for restaurant {restaurant.id}: {e}")
            return RecommendationResponse(
                recommendations=self._fallback_recommendations(restaurant, entries),
                available_item_count=len(entries),
                is_fallback=True,
            )

        return RecommendationResponse(
            recommendations=result.text,
            available_item_count=len(entries),
        )

    @staticmethod
    def _fallback_recommendations(restaurant: Restaurant, entries: list[_MenuEntry]) -> str:
        """Highest-priced matches first, ties by name."""
        top = sorted(entries, key=lambda e: (-Decimal(e.item.price), e.item.name))[:FALLBACK_ITEM_COUNT]
        if not top:
            return f"No menu items at {restaurant.name} match your preferences right now."

        lines = [
            f"• {e.item.name}: ${e.item.price} - "
            f"{e.item.description or f'A delicious choice from our {e.category_name} menu'}"
            for e in top
        ]
        return f"Here are some popular items from {restaurant.name}:\n\n" + "\n\n".join(lines)

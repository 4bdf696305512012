"""
API routers, one per procedure namespace:
restaurant, menu, order and ai.
"""

from app.routers import ai, menu, order, restaurant

__all__ = ["ai", "menu", "order", "restaurant"]

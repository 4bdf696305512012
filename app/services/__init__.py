"""
                        Services Module

Business logic for the ordering platform. Each service takes the request's
AsyncSession and an explicit caller identity.

Services:
    - restaurants: Restaurant directory and public projections
    - menu: Menu catalog (categories, items, availability)
    - orders: Order engine (pricing, numbering, status workflow)
    - assistant: Text generator (Mock/Gemini) and advisory assistant
    - ledger: Excel ledger of order events with file locking
"""

from app.services.menu import MenuCatalog
from app.services.orders import OrderEngine
from app.services.restaurants import RestaurantDirectory

__all__ = ["MenuCatalog", "OrderEngine", "RestaurantDirectory"]

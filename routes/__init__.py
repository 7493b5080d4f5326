"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.auth import router as auth_router
from routes.needs import router as needs_router
from routes.basket import router as basket_router
from routes.funding import router as funding_router
from routes.events import router as events_router

__all__ = [
    "auth_router",
    "needs_router",
    "basket_router",
    "funding_router",
    "events_router",
]

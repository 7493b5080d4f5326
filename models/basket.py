"""
Basket schemas.

One basket line per (user, need); the line quantity is what the helper
intends to fund at checkout.
"""

from pydantic import Field
from typing import Optional
from datetime import datetime

from models.base import BaseSchema, Envelope


class BasketAddRequest(BaseSchema):
    """Add a need to a basket (combines with an existing line)."""

    user_id: int = Field(..., ge=1, description="Helper adding the item")
    need_id: int = Field(..., ge=1, description="Need to fund")
    quantity: int = Field(..., ge=1, description="Units to add")


class BasketUpdateRequest(BaseSchema):
    """Set a basket line to an absolute quantity."""

    quantity: int = Field(..., ge=1, description="New quantity for the line")


class BasketItemResponse(BaseSchema):
    """Basket line joined with the need it references."""

    basket_id: int
    user_id: int
    need_id: int
    basket_quantity: int
    added_at: Optional[datetime] = None

    title: Optional[str] = None
    description: Optional[str] = None
    cost: float = 0.0
    total_quantity: int = 0
    quantity_fulfilled: int = 0
    priority: Optional[str] = None
    category: Optional[str] = None
    manager_username: Optional[str] = None
    available_quantity: int = 0
    item_total: float = 0.0


class BasketResponse(Envelope):
    """Whole basket for one user."""

    count: int
    basket: list[BasketItemResponse]
    total_cost: float


class BasketItemEnvelope(Envelope):
    basket_item: BasketItemResponse


class BasketClearResponse(Envelope):
    items_removed: int

"""
Basket API routes.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.base import MessageResponse
from models.basket import (
    BasketAddRequest,
    BasketUpdateRequest,
    BasketResponse,
    BasketItemEnvelope,
    BasketClearResponse,
)
from services.basket_service import get_basket_service
from routes.common import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/{user_id}", response_model=BasketResponse)
async def get_basket(user_id: int):
    """Get a user's basket, newest line first, with the total cost."""
    try:
        service = get_basket_service()
        items, total = service.get_basket(user_id)
        return BasketResponse(count=len(items), basket=items, total_cost=total)

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=BasketItemEnvelope, status_code=201)
async def add_to_basket(data: BasketAddRequest):
    """
    Add a need to a basket.

    Adding a need that is already in the basket combines the quantities
    and answers 200 instead of 201.

    Raises:
        400: Fully funded / quantity exceeds what is available
        404: User or need not found
    """
    try:
        service = get_basket_service()
        item, created = service.add_item(data.user_id, data.need_id, data.quantity)

        body = BasketItemEnvelope(
            message="Item added to basket" if created else "Basket quantity updated",
            basket_item=item
        )
        return JSONResponse(
            status_code=201 if created else 200,
            content=body.model_dump(mode="json")
        )

    except Exception as e:
        return handle_error(e)


@router.put("/{item_id}", response_model=BasketItemEnvelope)
async def update_basket_item(item_id: int, data: BasketUpdateRequest):
    """
    Set a basket line to a new quantity.

    Raises:
        400: Quantity exceeds what is available
        404: Basket item not found
    """
    try:
        service = get_basket_service()
        item = service.update_item(item_id, data.quantity)
        return BasketItemEnvelope(message="Basket item updated", basket_item=item)

    except Exception as e:
        return handle_error(e)


@router.delete("/clear/{user_id}", response_model=BasketClearResponse)
async def clear_basket(user_id: int):
    """Remove every line in a user's basket."""
    try:
        service = get_basket_service()
        removed = service.clear(user_id)
        return BasketClearResponse(message="Basket cleared", items_removed=removed)

    except Exception as e:
        return handle_error(e)


@router.delete("/{item_id}", response_model=MessageResponse)
async def remove_basket_item(item_id: int):
    """
    Remove one basket line.

    Raises:
        404: Basket item not found
    """
    try:
        service = get_basket_service()
        service.remove_item(item_id)
        return MessageResponse(message="Item removed from basket")

    except Exception as e:
        return handle_error(e)

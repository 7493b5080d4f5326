"""
Funding API routes: checkout and funding history.
"""

from fastapi import APIRouter
import structlog

from models.funding import (
    CheckoutRequest,
    CheckoutResponse,
    UserFundingResponse,
    AllFundingResponse,
    NeedFundingResponse,
)
from services.funding_service import get_funding_service
from routes.common import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
async def checkout(data: CheckoutRequest):
    """
    Fund everything in the user's basket.

    All lines commit or none do; the basket is emptied on success.

    Raises:
        400: Empty basket / fully funded need / quantity exceeds what is available
        404: A basketed need no longer exists
        409: A need changed while the checkout was committing
    """
    try:
        service = get_funding_service()
        result = service.checkout(data.user_id)
        return CheckoutResponse(
            message="Checkout completed successfully",
            funding_records=result.records,
            items_processed=result.items_processed,
            total_amount=result.total_amount
        )

    except Exception as e:
        return handle_error(e)


@router.get("/user/{user_id}", response_model=UserFundingResponse)
async def get_user_funding(user_id: int):
    """Funding history for one helper."""
    try:
        service = get_funding_service()
        records, total = service.get_for_user(user_id)
        return UserFundingResponse(
            user_id=user_id,
            count=len(records),
            funding_history=records,
            total_funded=total
        )

    except Exception as e:
        return handle_error(e)


@router.get("/all", response_model=AllFundingResponse)
async def get_all_funding():
    """Every funding record with the grand total."""
    try:
        service = get_funding_service()
        records, total = service.get_all()
        return AllFundingResponse(
            count=len(records),
            funding_records=records,
            grand_total=total
        )

    except Exception as e:
        return handle_error(e)


@router.get("/need/{need_id}", response_model=NeedFundingResponse)
async def get_need_funding(need_id: int):
    """
    Funding toward one need.

    Raises:
        404: Need not found
    """
    try:
        service = get_funding_service()
        need, records, total, quantity = service.get_for_need(need_id)
        return NeedFundingResponse(
            need_id=need_id,
            need_title=need.get("title") or "",
            count=len(records),
            funding_records=records,
            total_funded=total,
            total_quantity=quantity
        )

    except Exception as e:
        return handle_error(e)

"""
Funding schemas.

A funding record is written once at checkout and never modified.
"""

from pydantic import Field
from typing import Optional
from datetime import datetime

from models.base import BaseSchema, Envelope


class CheckoutRequest(BaseSchema):
    """Convert a user's basket into funding records."""

    user_id: int = Field(..., ge=1, description="Helper checking out")


class FundingRecordResponse(BaseSchema):
    """Funding record with a summary of the funded need."""

    funding_id: int
    user_id: Optional[int] = None
    need_id: Optional[int] = None
    quantity: int
    amount: float
    funded_at: Optional[datetime] = None

    title: Optional[str] = None
    description: Optional[str] = None
    cost: Optional[float] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    helper_username: Optional[str] = None
    manager_username: Optional[str] = None


class CheckoutResponse(Envelope):
    funding_records: list[FundingRecordResponse]
    items_processed: int
    total_amount: float


class UserFundingResponse(Envelope):
    user_id: int
    count: int
    funding_history: list[FundingRecordResponse]
    total_funded: float


class AllFundingResponse(Envelope):
    count: int
    funding_records: list[FundingRecordResponse]
    grand_total: float


class NeedFundingResponse(Envelope):
    need_id: int
    need_title: str
    count: int
    funding_records: list[FundingRecordResponse]
    total_funded: float
    total_quantity: int

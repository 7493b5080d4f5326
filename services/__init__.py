"""
Business logic services.

Each service handles one domain area.
"""

from services.user_service import UserService, get_user_service
from services.need_service import NeedService, get_need_service
from services.basket_service import BasketService, get_basket_service
from services.funding_service import FundingService, get_funding_service, CheckoutResult
from services.event_service import EventService, get_event_service
from services.reminder_service import ReminderService, get_reminder_service

__all__ = [
    "UserService",
    "get_user_service",
    "NeedService",
    "get_need_service",
    "BasketService",
    "get_basket_service",
    "FundingService",
    "get_funding_service",
    "CheckoutResult",
    "EventService",
    "get_event_service",
    "ReminderService",
    "get_reminder_service",
]

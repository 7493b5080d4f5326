"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
    Envelope,
    MessageResponse,
)
from models.user import (
    Role,
    LoginRequest,
    UserResponse,
    LoginResponse,
    UserEnvelope,
)
from models.need import (
    Priority,
    OrgType,
    BundleTag,
    NeedSort,
    NeedCreate,
    NeedUpdate,
    NeedResponse,
    NeedListResponse,
    NeedEnvelope,
    NeedReminder,
    ReminderListResponse,
)
from models.basket import (
    BasketAddRequest,
    BasketUpdateRequest,
    BasketItemResponse,
    BasketResponse,
    BasketItemEnvelope,
    BasketClearResponse,
)
from models.funding import (
    CheckoutRequest,
    FundingRecordResponse,
    CheckoutResponse,
    UserFundingResponse,
    AllFundingResponse,
    NeedFundingResponse,
)
from models.event import (
    EventType,
    VolunteerStatus,
    EventCreate,
    EventUpdate,
    SignupRequest,
    EventResponse,
    EventListResponse,
    EventEnvelope,
    SignupResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    "Envelope",
    "MessageResponse",

    # Users
    "Role",
    "LoginRequest",
    "UserResponse",
    "LoginResponse",
    "UserEnvelope",

    # Needs
    "Priority",
    "OrgType",
    "BundleTag",
    "NeedSort",
    "NeedCreate",
    "NeedUpdate",
    "NeedResponse",
    "NeedListResponse",
    "NeedEnvelope",
    "NeedReminder",
    "ReminderListResponse",

    # Basket
    "BasketAddRequest",
    "BasketUpdateRequest",
    "BasketItemResponse",
    "BasketResponse",
    "BasketItemEnvelope",
    "BasketClearResponse",

    # Funding
    "CheckoutRequest",
    "FundingRecordResponse",
    "CheckoutResponse",
    "UserFundingResponse",
    "AllFundingResponse",
    "NeedFundingResponse",

    # Events
    "EventType",
    "VolunteerStatus",
    "EventCreate",
    "EventUpdate",
    "SignupRequest",
    "EventResponse",
    "EventListResponse",
    "EventEnvelope",
    "SignupResponse",
]

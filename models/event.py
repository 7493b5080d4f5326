"""
Volunteer event schemas.

Events are scheduled against a need. volunteer_slots == 0 means the event
takes any number of volunteers.
"""

from pydantic import Field, model_validator
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema, Envelope


class EventType(str, Enum):
    """Kinds of volunteer events."""
    DELIVERY = "delivery"
    CLEANUP = "cleanup"
    KIT_BUILD = "kit_build"
    DISTRIBUTION = "distribution"


class VolunteerStatus(str, Enum):
    """Signup status for one volunteer on one event."""
    CONFIRMED = "confirmed"
    WAITLIST = "waitlist"
    CANCELLED = "cancelled"


class EventCreate(BaseSchema):
    """
    Create a new event.

    Required: need_id, event_type, event_start
    """

    need_id: int = Field(..., ge=1)
    event_type: EventType
    event_start: datetime
    event_end: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    volunteer_slots: int = Field(0, ge=0, description="0 = unlimited")
    notes: Optional[str] = None

    @model_validator(mode="after")
    def end_after_start(self):
        if self.event_end is not None and self.event_end < self.event_start:
            raise ValueError("event_end cannot be earlier than event_start")
        return self


class EventUpdate(BaseSchema):
    """
    Update an event.

    Only fields present in the request are updated; event_end may be sent as
    null to clear it.
    """

    need_id: Optional[int] = Field(None, ge=1)
    event_type: Optional[EventType] = None
    event_start: Optional[datetime] = None
    event_end: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    volunteer_slots: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class SignupRequest(BaseSchema):
    user_id: int = Field(..., ge=1)


class EventResponse(BaseSchema):
    """Event with volunteer counts and a summary of its need."""

    id: int
    need_id: int
    event_type: str
    event_start: datetime
    event_end: Optional[datetime] = None
    location: Optional[str] = None
    volunteer_slots: int = 0
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    need_title: Optional[str] = None
    priority: Optional[str] = None
    bundle_tag: Optional[str] = None
    category: Optional[str] = None
    service_required: Optional[bool] = None
    manager_id: Optional[int] = None

    confirmed_count: int = 0
    waitlist_count: int = 0
    remaining_slots: Optional[int] = None
    user_status: Optional[VolunteerStatus] = None
    is_confirmed: bool = False
    is_waitlisted: bool = False


class EventListResponse(Envelope):
    count: int
    events: list[EventResponse]


class EventEnvelope(Envelope):
    event: EventResponse


class SignupResponse(Envelope):
    event_id: int
    user_id: int
    status: VolunteerStatus

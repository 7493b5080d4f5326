"""
Volunteer event API routes.

Event management is manager-only (X-User-Id); signup and cancel are open
to any user.
"""

from fastapi import APIRouter, Query, Depends
from typing import Optional
import structlog

from config import settings
from models.base import MessageResponse
from models.event import (
    EventType,
    EventCreate,
    EventUpdate,
    SignupRequest,
    EventListResponse,
    EventEnvelope,
    SignupResponse,
    VolunteerStatus,
)
from services.event_service import get_event_service
from routes.common import handle_error, acting_user_id

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# READ
# ===================

@router.get("/upcoming", response_model=EventListResponse)
async def list_upcoming_events(
    event_type: Optional[EventType] = Query(None, alias="type", description="Event type"),
    bundle: Optional[str] = Query(None, description="Bundle tag of the event's need"),
    include_past: bool = Query(False, alias="includePast", description="Include started events"),
    limit: Optional[int] = Query(None, ge=1, le=settings.max_list_limit, description="Max results"),
    manager_id: Optional[int] = Query(None, alias="managerId", ge=1, description="Owning manager"),
    user_id: Optional[int] = Query(None, alias="userId", ge=1, description="Fill in this user's signup status"),
):
    """Events ordered by start time."""
    try:
        service = get_event_service()
        events = service.get_upcoming(
            event_type=event_type,
            bundle=bundle,
            include_past=include_past,
            limit=limit,
            manager_id=manager_id,
            user_id=user_id,
        )
        return EventListResponse(count=len(events), events=events)

    except Exception as e:
        return handle_error(e)


@router.get("/need/{need_id}", response_model=EventListResponse)
async def list_need_events(
    need_id: int,
    user_id: Optional[int] = Query(None, alias="userId", ge=1),
):
    """All events scheduled for one need."""
    try:
        service = get_event_service()
        events = service.get_for_need(need_id, user_id)
        return EventListResponse(count=len(events), events=events)

    except Exception as e:
        return handle_error(e)


@router.get("/{event_id}", response_model=EventEnvelope)
async def get_event(
    event_id: int,
    user_id: Optional[int] = Query(None, alias="userId", ge=1),
):
    """
    Get a single event.

    Raises:
        404: Event not found
    """
    try:
        service = get_event_service()
        return EventEnvelope(event=service.get_by_id(event_id, user_id))

    except Exception as e:
        return handle_error(e)


# ===================
# MANAGE
# ===================

@router.post("", response_model=EventEnvelope, status_code=201)
async def create_event(
    data: EventCreate,
    user_id: int = Depends(acting_user_id),
):
    """
    Schedule an event for a need.

    Raises:
        400: Validation error
        403: Acting user is not a manager
        404: Need not found
    """
    try:
        service = get_event_service()
        event = service.create(data, user_id)
        return EventEnvelope(message="Event created successfully", event=event)

    except Exception as e:
        return handle_error(e)


@router.put("/{event_id}", response_model=EventEnvelope)
async def update_event(
    event_id: int,
    data: EventUpdate,
    user_id: int = Depends(acting_user_id),
):
    """
    Update an event. Only provided fields are updated.

    Raises:
        400: Validation error / nothing to update
        403: Acting user is not a manager
        404: Event or need not found
    """
    try:
        service = get_event_service()
        event = service.update(event_id, data, user_id)
        return EventEnvelope(message="Event updated successfully", event=event)

    except Exception as e:
        return handle_error(e)


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: int,
    user_id: int = Depends(acting_user_id),
):
    """
    Delete an event and its signups.

    Raises:
        403: Acting user is not a manager
        404: Event not found
    """
    try:
        service = get_event_service()
        service.delete(event_id, user_id)
        return MessageResponse(message="Event deleted successfully")

    except Exception as e:
        return handle_error(e)


# ===================
# SIGNUPS
# ===================

@router.post("/{event_id}/signup", response_model=SignupResponse)
async def signup_for_event(event_id: int, data: SignupRequest):
    """
    Sign up for an event.

    Full events put the user on the waitlist.

    Raises:
        404: Event or user not found
    """
    try:
        service = get_event_service()
        status = service.signup(event_id, data.user_id)
        message = (
            "Added to the waitlist"
            if status == VolunteerStatus.WAITLIST
            else "Signed up successfully"
        )
        return SignupResponse(
            message=message,
            event_id=event_id,
            user_id=data.user_id,
            status=status
        )

    except Exception as e:
        return handle_error(e)


@router.post("/{event_id}/cancel", response_model=SignupResponse)
async def cancel_signup(event_id: int, data: SignupRequest):
    """
    Cancel a signup.

    Raises:
        404: No signup for this user on this event
    """
    try:
        service = get_event_service()
        status = service.cancel(event_id, data.user_id)
        return SignupResponse(
            message="Signup cancelled",
            event_id=event_id,
            user_id=data.user_id,
            status=status
        )

    except Exception as e:
        return handle_error(e)

"""
Needs API routes.

Listing supports filtering, urgency sorting and the time-sensitive view.
Mutations other than create identify the acting manager via X-User-Id.
"""

from fastapi import APIRouter, Query, Depends
from typing import Optional
from datetime import datetime, timezone
import structlog

from config import settings
from models.base import MessageResponse
from models.need import (
    NeedCreate,
    NeedUpdate,
    NeedListResponse,
    NeedEnvelope,
    NeedSort,
    Priority,
    ReminderListResponse,
)
from services.need_service import get_need_service
from services.reminder_service import get_reminder_service
from routes.common import handle_error, acting_user_id

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# ROUTES
# ===================

@router.get("", response_model=NeedListResponse)
async def list_needs(
    priority: Optional[Priority] = Query(None, description="Filter by priority"),
    category: Optional[str] = Query(None, description="Category contains"),
    search: Optional[str] = Query(None, description="Title or description contains"),
    bundle: Optional[str] = Query(None, description="Bundle tag"),
    perishable: Optional[bool] = Query(None, description="Perishable only / non-perishable only"),
    service: Optional[bool] = Query(None, description="Service required only / not"),
    due_within: Optional[int] = Query(None, alias="dueWithin", ge=0, description="Due within N days"),
    manager_id: Optional[int] = Query(None, alias="managerId", ge=1, description="Owning manager"),
    time_sensitive_only: bool = Query(False, alias="timeSensitiveOnly", description="Only time-sensitive needs"),
    sort: NeedSort = Query(NeedSort.URGENCY, description="Sort strategy"),
    limit: Optional[int] = Query(None, ge=1, le=settings.max_list_limit, description="Max results"),
):
    """
    List needs with optional filters.

    Each need carries remaining_quantity, days_until_due and urgency_score.
    """
    try:
        service_ = get_need_service()

        needs = service_.get_all(
            priority=priority,
            category=category,
            search=search,
            bundle=bundle,
            perishable=perishable,
            service=service,
            due_within=due_within,
            manager_id=manager_id,
            time_sensitive_only=time_sensitive_only,
            sort=sort,
            limit=limit,
        )

        return NeedListResponse(count=len(needs), needs=needs)

    except Exception as e:
        return handle_error(e)


@router.get("/time-sensitive", response_model=NeedListResponse)
async def list_time_sensitive_needs(
    limit: Optional[int] = Query(None, ge=1, le=settings.max_list_limit, description="Max results"),
):
    """Time-sensitive needs, most urgent first."""
    try:
        service = get_need_service()
        needs = service.get_all(
            time_sensitive_only=True,
            sort=NeedSort.URGENCY,
            limit=limit,
        )
        return NeedListResponse(count=len(needs), needs=needs)

    except Exception as e:
        return handle_error(e)


@router.get("/reminders", response_model=ReminderListResponse)
async def list_reminders():
    """Needs close to their deadline, dated first."""
    try:
        service = get_reminder_service()
        reminders = service.get_upcoming()
        return ReminderListResponse(
            count=len(reminders),
            reminders=reminders,
            generated_at=datetime.now(timezone.utc)
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{need_id}", response_model=NeedEnvelope)
async def get_need(need_id: int):
    """
    Get a single need by ID.

    Raises:
        404: Need not found
    """
    try:
        service = get_need_service()
        return NeedEnvelope(need=service.get_by_id(need_id))

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=NeedEnvelope, status_code=201)
async def create_need(data: NeedCreate):
    """
    Create a new need.

    Raises:
        400: Validation error
        403: manager_id is not a manager
        404: manager_id not found
    """
    try:
        service = get_need_service()
        need = service.create(data)
        return NeedEnvelope(message="Need created successfully", need=need)

    except Exception as e:
        return handle_error(e)


@router.put("/{need_id}", response_model=NeedEnvelope)
async def update_need(
    need_id: int,
    data: NeedUpdate,
    user_id: int = Depends(acting_user_id),
):
    """
    Update an existing need.

    Only provided fields are updated.

    Raises:
        400: Validation error / nothing to update
        403: Acting user is not a manager
        404: Need not found
    """
    try:
        service = get_need_service()
        need = service.update(need_id, data, user_id)
        return NeedEnvelope(message="Need updated successfully", need=need)

    except Exception as e:
        return handle_error(e)


@router.delete("/{need_id}", response_model=MessageResponse)
async def delete_need(
    need_id: int,
    user_id: int = Depends(acting_user_id),
):
    """
    Delete a need together with its basket lines, funding records and events.

    Raises:
        403: Acting user is not a manager
        404: Need not found
    """
    try:
        service = get_need_service()
        service.delete(need_id, user_id)
        return MessageResponse(message="Need deleted successfully")

    except Exception as e:
        return handle_error(e)

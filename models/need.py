"""
Need schemas for validation and serialization.

A need is a requested resource (quantity × unit cost) owned by a manager.
Remaining quantity, days until due and urgency score are derived on read
and never stored.
"""

from pydantic import Field, field_validator, model_validator
from typing import Optional
from enum import Enum
from datetime import date, datetime

from models.base import BaseSchema, TimestampMixin, Envelope


class Priority(str, Enum):
    """Need priority levels."""
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"


class OrgType(str, Enum):
    """Kind of organisation posting the need."""
    FOOD_BANK = "food_bank"
    ANIMAL_SHELTER = "animal_shelter"
    HOSPITAL = "hospital"
    SCHOOL = "school"
    HOMELESS_SHELTER = "homeless_shelter"
    DISASTER_RELIEF = "disaster_relief"
    OTHER = "other"


class BundleTag(str, Enum):
    """Grouping label for related needs."""
    BASIC_FOOD = "basic_food"
    WINTER_CLOTHING = "winter_clothing"
    HYGIENE_KIT = "hygiene_kit"
    CLEANING_SUPPLIES = "cleaning_supplies"
    BEAUTIFICATION = "beautification"
    OTHER = "other"


class NeedSort(str, Enum):
    """Sort strategies for the needs list."""
    URGENCY = "urgency"
    DEADLINE = "deadline"
    REQUESTS = "requests"
    PRIORITY = "priority"
    NEWEST = "newest"


class NeedCreate(BaseSchema):
    """
    Create a new need.

    Required: title, cost, quantity, manager_id
    """

    title: str = Field(..., min_length=1, max_length=200, description="Short title")
    description: Optional[str] = Field(None, description="Longer description")
    cost: float = Field(..., ge=0, description="Unit cost")
    quantity: int = Field(..., ge=1, description="Total units needed")
    priority: Priority = Field(Priority.NORMAL, description="Priority level")
    category: Optional[str] = Field(None, max_length=100, description="Free-form category")
    org_type: OrgType = Field(OrgType.OTHER, description="Organisation type")
    needed_by: Optional[date] = Field(None, description="Deadline")
    is_perishable: bool = Field(False, description="Goods spoil")
    bundle_tag: BundleTag = Field(BundleTag.OTHER, description="Bundle grouping")
    service_required: bool = Field(False, description="Volunteers needed on site")
    request_count: int = Field(0, ge=0, description="How often this has been requested")
    manager_id: int = Field(..., ge=1, description="Owning manager")


class NeedUpdate(BaseSchema):
    """
    Update existing need.

    All fields optional - only fields present in the request are updated.
    Sending needed_by as null clears the deadline.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=1)
    quantity_fulfilled: Optional[int] = Field(None, ge=0)
    priority: Optional[Priority] = None
    category: Optional[str] = Field(None, max_length=100)
    org_type: Optional[OrgType] = None
    needed_by: Optional[date] = None
    is_perishable: Optional[bool] = None
    bundle_tag: Optional[BundleTag] = None
    service_required: Optional[bool] = None
    request_count: Optional[int] = Field(None, ge=0)

    @field_validator("title")
    @classmethod
    def title_not_null(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v:
            raise ValueError("Title cannot be empty")
        return v

    @model_validator(mode="after")
    def fulfilled_within_quantity(self):
        """Reject payloads that contradict themselves."""
        if (
            self.quantity is not None
            and self.quantity_fulfilled is not None
            and self.quantity_fulfilled > self.quantity
        ):
            raise ValueError("Quantity fulfilled cannot exceed total quantity")
        return self


class NeedResponse(BaseSchema, TimestampMixin):
    """
    Need with derived fields.

    priority is kept as a plain string so rows written with a value outside
    the enum still load (they score with the fallback weight).
    """

    id: int
    title: str
    description: Optional[str] = None
    cost: float
    quantity: int
    quantity_fulfilled: int = 0
    priority: str = Priority.NORMAL.value
    category: Optional[str] = None
    org_type: Optional[str] = OrgType.OTHER.value
    needed_by: Optional[date] = None
    is_perishable: bool = False
    bundle_tag: Optional[str] = BundleTag.OTHER.value
    service_required: bool = False
    request_count: int = 0
    manager_id: Optional[int] = None

    # Derived
    manager_username: Optional[str] = None
    remaining_quantity: int = 0
    days_until_due: Optional[int] = None
    urgency_score: int = 0

    @model_validator(mode="before")
    @classmethod
    def derive_remaining(cls, data):
        """Remaining = quantity - fulfilled, floored at 0."""
        if isinstance(data, dict) and "quantity" in data:
            quantity = int(data.get("quantity") or 0)
            fulfilled = int(data.get("quantity_fulfilled") or 0)
            data = {**data, "remaining_quantity": max(0, quantity - fulfilled)}
        return data


class NeedListResponse(Envelope):
    """Needs list."""

    count: int
    needs: list[NeedResponse]


class NeedEnvelope(Envelope):
    """Single need."""

    need: NeedResponse


class NeedReminder(BaseSchema):
    """A need that is close to its deadline."""

    need_id: int
    title: str
    priority: str
    category: Optional[str] = None
    manager_username: Optional[str] = None
    needed_by: Optional[date] = None
    days_until_due: Optional[int] = None
    remaining_quantity: int
    quantity: int
    flags: list[str] = Field(default_factory=list)


class ReminderListResponse(Envelope):
    count: int
    reminders: list[NeedReminder]
    generated_at: datetime

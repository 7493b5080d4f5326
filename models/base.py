"""
Base schemas and mixins for all models.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class TimestampMixin(BaseModel):
    """Add timestamps to response models."""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Envelope(BaseSchema):
    """
    Uniform success wrapper.

    Every endpoint answers with {"success": true, "message"?: ..., <data>};
    subclasses add the data fields.
    """
    success: bool = True
    message: Optional[str] = None


class MessageResponse(Envelope):
    """Envelope with no data beyond the message."""
    pass

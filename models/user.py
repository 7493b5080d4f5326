"""
User schemas.

There is no real authentication: a username is looked up and registered on
first use, and the role is decided from the username alone.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema, Envelope


class Role(str, Enum):
    """User roles."""
    MANAGER = "manager"
    HELPER = "helper"


class LoginRequest(BaseSchema):
    """Login or register by username."""

    username: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Username (created on first login)",
        examples=["admin", "helper1"]
    )


class UserResponse(BaseSchema):
    """User as stored."""

    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Unique username")
    role: Role = Field(..., description="manager or helper")
    created_at: Optional[datetime] = None

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER


class LoginResponse(Envelope):
    """Login result."""

    user: UserResponse


class UserEnvelope(Envelope):
    user: UserResponse

"""
Auth API routes.

Login registers unknown usernames on the fly.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.user import LoginRequest, LoginResponse, UserEnvelope
from services.user_service import get_user_service
from routes.common import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest):
    """
    Log in, registering the username on first use.

    Returns 200 for an existing user, 201 for a new one.
    """
    try:
        service = get_user_service()
        user, created = service.login(data.username)

        body = LoginResponse(
            message="User registered successfully" if created else "Login successful",
            user=user
        )
        return JSONResponse(
            status_code=201 if created else 200,
            content=body.model_dump(mode="json")
        )

    except Exception as e:
        return handle_error(e)


@router.get("/users/{user_id}", response_model=UserEnvelope)
async def get_user(user_id: int):
    """
    Get a user by ID.

    Raises:
        404: User not found
    """
    try:
        service = get_user_service()
        return UserEnvelope(user=service.get_by_id(user_id))

    except Exception as e:
        return handle_error(e)

"""
Helpers shared by all route modules.
"""

from fastapi import Header
from fastapi.responses import JSONResponse
import structlog

from exceptions import AppError

logger = structlog.get_logger(__name__)


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        log = logger.error if e.status_code >= 500 else logger.info
        log("request_failed", code=e.code, status_code=e.status_code, message=e.message)
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "An unexpected error occurred",
            "error": {
                "code": "INTERNAL_ERROR",
                "details": {"error": str(e)}
            }
        }
    )


# ===================
# DEPENDENCIES
# ===================

def acting_user_id(
    x_user_id: int = Header(..., alias="X-User-Id", ge=1, description="ID of the user performing the action")
) -> int:
    """Acting user for manager-only mutations (trust-based, no authentication)."""
    return x_user_id

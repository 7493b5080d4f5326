"""
Custom exception classes for the application.

Every error renders to the same envelope the success responses use:
    {"success": false, "message": ..., "error": {"code", "details", "timestamp"}}
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "NEED_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "success": False,
            "message": self.message,
            "error": {
                "code": self.code,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: Any,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (400)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            details=details
        )


class ForbiddenError(AppError):
    """Caller lacks the role for this action (403)."""

    def __init__(
        self,
        message: str,
        code: str = "FORBIDDEN",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=403,
            details=details
        )


class ConflictError(AppError):
    """Conflict with the current state of a resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# USER ERRORS
# ===================

class UserNotFoundError(NotFoundError):
    """User not found."""

    def __init__(self, user_id: Any):
        super().__init__(
            resource="User",
            identifier=user_id,
            code="USER_NOT_FOUND"
        )


class ManagerRoleRequiredError(ForbiddenError):
    """Acting user is not a manager."""

    def __init__(self, user_id: Any, action: str):
        super().__init__(
            code="MANAGER_ROLE_REQUIRED",
            message=f"User must have manager role to {action}",
            details={"user_id": user_id, "action": action}
        )


# ===================
# NEED ERRORS
# ===================

class NeedNotFoundError(NotFoundError):
    """Need not found."""

    def __init__(self, need_id: Any):
        super().__init__(
            resource="Need",
            identifier=need_id,
            code="NEED_NOT_FOUND"
        )


class InvalidBundleTagError(ValidationError):
    """Unknown bundle tag in a filter."""

    def __init__(self, bundle: str, valid: list[str]):
        super().__init__(
            code="NEED_INVALID_BUNDLE",
            message=f"Bundle must be one of: {', '.join(valid)}",
            details={"provided": bundle, "valid": valid}
        )


# ===================
# BASKET ERRORS
# ===================

class BasketItemNotFoundError(NotFoundError):
    """Basket line not found."""

    def __init__(self, item_id: Any):
        super().__init__(
            resource="Basket item",
            identifier=item_id,
            code="BASKET_ITEM_NOT_FOUND"
        )


class NeedFullyFundedError(ValidationError):
    """Need has nothing left to fund."""

    def __init__(self, need_id: int, title: Optional[str] = None):
        label = f'"{title}"' if title else f"Need {need_id}"
        super().__init__(
            code="NEED_FULLY_FUNDED",
            message=f"{label} has been fully funded and is no longer available",
            details={"need_id": need_id, "title": title, "available": 0}
        )


class InsufficientQuantityError(ValidationError):
    """Requested quantity exceeds what is still available."""

    def __init__(
        self,
        need_id: int,
        requested: int,
        available: int,
        title: Optional[str] = None,
        in_basket: Optional[int] = None
    ):
        label = f' for "{title}"' if title else ""
        message = f"Not enough quantity available{label}. Available: {available}, Requested: {requested}"
        if in_basket:
            message += f" (already {in_basket} in basket)"
        super().__init__(
            code="INSUFFICIENT_QUANTITY",
            message=message,
            details={
                "need_id": need_id,
                "title": title,
                "requested": requested,
                "available": available,
                "in_basket": in_basket
            }
        )


class EmptyBasketError(ValidationError):
    """Checkout attempted with nothing in the basket."""

    def __init__(self, user_id: int):
        super().__init__(
            code="BASKET_EMPTY",
            message="Basket is empty. Add items to your basket before checking out.",
            details={"user_id": user_id}
        )


class CheckoutConflictError(ConflictError):
    """A need changed between validation and commit."""

    def __init__(self, need_id: int, expected_fulfilled: int):
        super().__init__(
            code="CHECKOUT_CONFLICT",
            message="A need in your basket was funded by someone else during checkout. Please review your basket and try again.",
            details={"need_id": need_id, "expected_fulfilled": expected_fulfilled}
        )


# ===================
# EVENT ERRORS
# ===================

class EventNotFoundError(NotFoundError):
    """Event not found."""

    def __init__(self, event_id: Any):
        super().__init__(
            resource="Event",
            identifier=event_id,
            code="EVENT_NOT_FOUND"
        )


class SignupNotFoundError(NotFoundError):
    """No volunteer signup for this (event, user)."""

    def __init__(self, event_id: Any, user_id: Any):
        super().__init__(
            resource="Signup",
            identifier=f"{event_id}:{user_id}",
            code="SIGNUP_NOT_FOUND"
        )
        self.message = "Signup not found for this user"
        self.details = {"event_id": event_id, "user_id": user_id}


# ===================
# INTEGRATION ERRORS
# ===================

class TelegramError(ExternalServiceError):
    """Telegram API error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="telegram",
            message=message,
            details=details
        )

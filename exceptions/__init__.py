"""
Custom exceptions module.

Services raise these; routes turn them into the error envelope.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ForbiddenError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Users
    UserNotFoundError,
    ManagerRoleRequiredError,

    # Needs
    NeedNotFoundError,
    InvalidBundleTagError,

    # Basket / checkout
    BasketItemNotFoundError,
    NeedFullyFundedError,
    InsufficientQuantityError,
    EmptyBasketError,
    CheckoutConflictError,

    # Events
    EventNotFoundError,
    SignupNotFoundError,

    # Integrations
    TelegramError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ForbiddenError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Users
    "UserNotFoundError",
    "ManagerRoleRequiredError",

    # Needs
    "NeedNotFoundError",
    "InvalidBundleTagError",

    # Basket / checkout
    "BasketItemNotFoundError",
    "NeedFullyFundedError",
    "InsufficientQuantityError",
    "EmptyBasketError",
    "CheckoutConflictError",

    # Events
    "EventNotFoundError",
    "SignupNotFoundError",

    # Integrations
    "TelegramError",
]

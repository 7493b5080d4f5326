"""
User service: username login with auto-registration and role checks.

Role is decided once, at registration, by comparing the username to the
configured manager username. There are no passwords.
"""

from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.user import Role, UserResponse
from exceptions import (
    UserNotFoundError,
    ManagerRoleRequiredError,
    ValidationError,
    DatabaseError
)

logger = structlog.get_logger(__name__)

LIKE_SPECIAL = ("\\", "%", "_")


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so a pattern matches the value literally."""
    for char in LIKE_SPECIAL:
        value = value.replace(char, "\\" + char)
    return value


def role_for_username(username: str) -> Role:
    """Manager for the configured username (case-insensitive), helper otherwise."""
    if username.strip().lower() == settings.manager_username.strip().lower():
        return Role.MANAGER
    return Role.HELPER


class UserService:
    """Lookup, registration and role checks for users."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "users"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_by_id(self, user_id: int) -> UserResponse:
        """
        Get a user by ID.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        logger.debug("getting_user", user_id=user_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_user_failed", user_id=user_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise UserNotFoundError(user_id)

        return UserResponse(**result.data[0])

    def get_by_username(self, username: str) -> Optional[UserResponse]:
        """Get a user by username, ignoring case, or None."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .ilike("username", escape_like(username))
                .order("id")
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_user_by_username_failed", username=username, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None
        return UserResponse(**result.data[0])

    def get_usernames(self, user_ids: set[int]) -> dict[int, str]:
        """Map user id -> username for the given ids (missing ids are skipped)."""
        ids = [uid for uid in user_ids if uid is not None]
        if not ids:
            return {}

        try:
            result = (
                self.db.table(self.table)
                .select("id, username")
                .in_("id", ids)
                .execute()
            )
        except Exception as e:
            logger.error("get_usernames_failed", count=len(ids), error=str(e))
            raise DatabaseError("select", str(e))

        return {row["id"]: row["username"] for row in result.data}

    # ===================
    # LOGIN
    # ===================

    def login(self, username: str) -> tuple[UserResponse, bool]:
        """
        Log a user in, registering them on first use.

        Args:
            username: Username as typed

        Returns:
            Tuple of (user, created)

        Raises:
            ValidationError: If username is blank
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username is required", details={"field": "username"})

        existing = self.get_by_username(username)
        if existing:
            logger.info("user_logged_in", user_id=existing.id, role=existing.role.value)
            return existing, False

        role = role_for_username(username)

        try:
            result = (
                self.db.table(self.table)
                .insert({"username": username, "role": role.value})
                .execute()
            )
        except Exception as e:
            logger.error("register_user_failed", username=username, error=str(e))
            raise DatabaseError("insert", str(e))

        user = UserResponse(**result.data[0])
        logger.info("user_registered", user_id=user.id, role=user.role.value)
        return user, True

    # ===================
    # ROLE CHECKS
    # ===================

    def require_manager(self, user_id: int, action: str) -> UserResponse:
        """
        Ensure the acting user exists and is a manager.

        Raises:
            UserNotFoundError: If the user doesn't exist
            ManagerRoleRequiredError: If the user is not a manager
        """
        user = self.get_by_id(user_id)
        if not user.is_manager:
            logger.warning("manager_role_required", user_id=user_id, action=action)
            raise ManagerRoleRequiredError(user_id, action)
        return user


# Singleton instance for convenience
_user_service: Optional[UserService] = None


def get_user_service() -> UserService:
    """Get or create UserService instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service

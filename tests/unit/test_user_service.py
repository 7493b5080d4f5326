"""
Unit tests for UserService.

Run: pytest tests/unit/test_user_service.py -v
"""

import pytest

from models.user import Role
from services.user_service import UserService, role_for_username
from exceptions import UserNotFoundError, ManagerRoleRequiredError, ValidationError


class TestRoleForUsername:
    """Tests for role_for_username()"""

    def test_admin_is_manager(self):
        assert role_for_username("admin") == Role.MANAGER

    def test_admin_case_insensitive(self):
        assert role_for_username("  Admin ") == Role.MANAGER

    def test_anyone_else_is_helper(self):
        assert role_for_username("helper1") == Role.HELPER


class TestUserServiceLogin:
    """Tests for UserService.login()"""

    def test_unknown_username_registers_helper(self, mock_db):
        service = UserService()

        user, created = service.login("newbie")

        assert created is True
        assert user.username == "newbie"
        assert user.role == Role.HELPER
        assert len(mock_db.rows("users")) == 1

    def test_admin_registers_as_manager(self, mock_db):
        service = UserService()

        user, created = service.login("admin")

        assert created is True
        assert user.role == Role.MANAGER

    def test_existing_user_returned_unchanged(self, mock_db, helper):
        service = UserService()

        user, created = service.login("helper1")

        assert created is False
        assert user.id == helper["id"]
        assert len(mock_db.rows("users")) == 1

    def test_username_is_trimmed(self, mock_db, helper):
        service = UserService()

        user, created = service.login("  helper1  ")

        assert created is False
        assert user.id == helper["id"]

    def test_case_variant_finds_existing_user(self, mock_db, manager):
        service = UserService()

        user, created = service.login("ADMIN")

        assert created is False
        assert user.id == manager["id"]
        assert user.username == "admin"
        assert user.role == Role.MANAGER
        assert len(mock_db.rows("users")) == 1

    def test_wildcards_match_literally(self, mock_db, helper):
        service = UserService()

        user, created = service.login("helper_")

        assert created is True
        assert user.id != helper["id"]
        assert len(mock_db.rows("users")) == 2

    def test_blank_username_rejected(self, mock_db):
        service = UserService()

        with pytest.raises(ValidationError):
            service.login("   ")

        assert mock_db.rows("users") == []


class TestUserServiceLookups:
    """Tests for get_by_id() / get_usernames() / require_manager()"""

    def test_get_by_id(self, mock_db, helper):
        service = UserService()

        user = service.get_by_id(helper["id"])

        assert user.username == "helper1"

    def test_get_by_id_missing(self, mock_db):
        service = UserService()

        with pytest.raises(UserNotFoundError):
            service.get_by_id(999)

    def test_get_usernames_skips_none(self, mock_db, manager, helper):
        service = UserService()

        result = service.get_usernames({manager["id"], helper["id"], None})

        assert result == {manager["id"]: "admin", helper["id"]: "helper1"}

    def test_get_usernames_empty(self, mock_db):
        assert UserService().get_usernames(set()) == {}

    def test_require_manager_passes_for_manager(self, mock_db, manager):
        service = UserService()

        user = service.require_manager(manager["id"], "create needs")

        assert user.is_manager

    def test_require_manager_rejects_helper(self, mock_db, helper):
        service = UserService()

        with pytest.raises(ManagerRoleRequiredError) as exc:
            service.require_manager(helper["id"], "create needs")

        assert exc.value.status_code == 403

    def test_require_manager_missing_user(self, mock_db):
        service = UserService()

        with pytest.raises(UserNotFoundError):
            service.require_manager(42, "create needs")

"""Tests for auth permissions."""

import pytest

from mirabellier.auth.models import User
from mirabellier.auth.permissions import (
    PERMISSION_ROLES,
    ROLE_HIERARCHY,
    Permission,
    UserRole,
    authorize,
    get_role_level,
    has_permission,
    is_allowed,
)
from mirabellier.core.errors import ForbiddenError, UnauthenticatedError


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.USER.value == "user"
        assert UserRole.CURATOR.value == "curator"
        assert UserRole.ADMIN.value == "admin"

    def test_role_hierarchy(self) -> None:
        assert ROLE_HIERARCHY[UserRole.USER] == 0
        assert ROLE_HIERARCHY[UserRole.CURATOR] == 1
        assert ROLE_HIERARCHY[UserRole.ADMIN] == 2

    def test_every_permission_has_a_role(self) -> None:
        for permission in Permission:
            assert permission in PERMISSION_ROLES


class TestGetRoleLevel:
    """Tests for get_role_level function."""

    @pytest.mark.parametrize(
        "role,expected_level",
        [
            (UserRole.USER, 0),
            ("curator", 1),
            (UserRole.ADMIN, 2),
            ("superuser", 0),
        ],
    )
    def test_levels(self, role, expected_level: int) -> None:
        assert get_role_level(role) == expected_level


class TestHasPermission:
    @pytest.mark.parametrize(
        "user_role,required,expected",
        [
            (UserRole.ADMIN, UserRole.CURATOR, True),
            (UserRole.CURATOR, UserRole.CURATOR, True),
            (UserRole.USER, UserRole.CURATOR, False),
            ("curator", "admin", False),
        ],
    )
    def test_hierarchy(self, user_role, required, expected: bool) -> None:
        assert has_permission(user_role, required) is expected

    def test_is_allowed(self) -> None:
        assert is_allowed(UserRole.CURATOR, Permission.MANAGE_CURATED_LIST)
        assert is_allowed(UserRole.ADMIN, Permission.MANAGE_CURATED_LIST)
        assert not is_allowed(UserRole.USER, Permission.MANAGE_CURATED_LIST)


class TestAuthorize:
    """Tests for the single authorization policy."""

    def test_anonymous_is_unauthenticated(self) -> None:
        with pytest.raises(UnauthenticatedError):
            authorize(None, Permission.MANAGE_CURATED_LIST)

    def test_plain_user_is_forbidden(self) -> None:
        with pytest.raises(ForbiddenError):
            authorize(User(username="bob"), Permission.MANAGE_CURATED_LIST)

    def test_curator_allowed(self) -> None:
        user = User(username="mira", role="curator")
        assert authorize(user, Permission.MANAGE_CURATED_LIST) is user

    def test_admin_allowed_everything(self) -> None:
        admin = User(username="root", role="admin")
        for permission in Permission:
            assert authorize(admin, permission) is admin

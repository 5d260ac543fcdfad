"""Role-based access control for Mirabellier.

Hierarchical roles:
- ADMIN (level 2): Everything a curator can do
- CURATOR (level 1): Maintains the curated anime list
- USER (level 0): Registered user

Every privileged operation names a ``Permission``; ``authorize`` is the single
policy check that maps it to the minimum role.
"""

from enum import Enum
from typing import TYPE_CHECKING

from mirabellier.core.errors import ForbiddenError, UnauthenticatedError


if TYPE_CHECKING:
    from mirabellier.auth.models import User


class UserRole(str, Enum):
    """User roles with hierarchical levels.

    Higher level = more permissions.
    """

    USER = "user"  # Level 0: Basic registered user
    CURATOR = "curator"  # Level 1: Curated list maintainer
    ADMIN = "admin"  # Level 2: Site owner


class Permission(str, Enum):
    """Operations guarded by a role check."""

    MANAGE_CURATED_LIST = "manage_curated_list"


# Role hierarchy mapping (role -> permission level)
ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.CURATOR: 1,
    UserRole.ADMIN: 2,
}

# Permission -> minimum role
PERMISSION_ROLES: dict[Permission, UserRole] = {
    Permission.MANAGE_CURATED_LIST: UserRole.CURATOR,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role.

    Args:
        role: UserRole enum or string representation

    Returns:
        Permission level (0-2), defaults to 0 for unknown roles
    """
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.CURATOR)
        True
        >>> has_permission(UserRole.USER, UserRole.CURATOR)
        False
        >>> has_permission("curator", "user")
        True
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_allowed(role: UserRole | str, permission: Permission) -> bool:
    """Check whether a role grants a permission."""
    return has_permission(role, PERMISSION_ROLES[permission])


def authorize(user: "User | None", permission: Permission) -> "User":
    """Single authorization policy for privileged operations.

    Args:
        user: Resolved caller, or None when anonymous
        permission: Operation being attempted

    Returns:
        The caller, when allowed

    Raises:
        UnauthenticatedError: Anonymous caller
        ForbiddenError: Caller's role is below the permission's minimum
    """
    if user is None:
        raise UnauthenticatedError
    if not is_allowed(user.role, permission):
        raise ForbiddenError
    return user

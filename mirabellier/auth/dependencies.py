"""FastAPI dependencies for authentication.

Provides dependency injection for:
- The auth service created at startup
- Bearer token extraction and session resolution
- Permission checks through the single authorization policy
"""

from typing import Annotated

from fastapi import Depends, Request
from starlette.concurrency import run_in_threadpool

from mirabellier.auth.models import User
from mirabellier.auth.permissions import Permission, authorize
from mirabellier.auth.service import AuthService
from mirabellier.core.context import set_user_id
from mirabellier.core.errors import UnauthenticatedError


def get_auth_service(request: Request) -> AuthService:
    """Get the AuthService created during application startup."""
    return request.app.state.auth_service


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    A missing or malformed header is not an error: the caller is anonymous.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


BearerToken = Annotated[str | None, Depends(get_token_from_header)]


async def get_current_user_optional(
    token: BearerToken,
    auth_service: AuthServiceDep,
) -> User | None:
    """Get current user if authenticated, None otherwise.

    Use this for endpoints that work for both authenticated and anonymous users.
    """
    user = await run_in_threadpool(auth_service.resolve_token, token)
    if user is not None:
        # Set user_id in context for logging
        set_user_id(user.id)
    return user


async def get_current_user(
    user: Annotated[User | None, Depends(get_current_user_optional)],
) -> User:
    """Get current authenticated user.

    Raises:
        UnauthenticatedError: If the token is missing or unknown
    """
    if user is None:
        raise UnauthenticatedError
    return user


def require_permission(permission: Permission):
    """Create dependency requiring a permission.

    Example:
        @router.post("/anime")
        async def replace(
            user: Annotated[User, Depends(require_permission(Permission.MANAGE_CURATED_LIST))]
        ):
            ...
    """

    async def permission_checker(
        user: Annotated[User | None, Depends(get_current_user_optional)],
    ) -> User:
        return authorize(user, permission)

    return permission_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

# Basic authenticated user
CurrentUser = Annotated[User, Depends(get_current_user)]

# Optional user (for endpoints that work both ways)
OptionalUser = Annotated[User | None, Depends(get_current_user_optional)]

# Curated list maintainers
CuratorUser = Annotated[
    User, Depends(require_permission(Permission.MANAGE_CURATED_LIST))
]

"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from JWT
- Capability checks against the role table
- AuthService access and error mapping
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from src.auth.permissions import Capability, has_capability
from src.auth.schemas import UserResponse
from src.auth.security import decode_access_token
from src.auth.service import AuthError, AuthService
from src.core.context import set_user_id


# ==============================================================================
# Service Getter
# ==============================================================================

_auth_service_getter: Callable[[], AuthService] | None = None


def set_auth_service_getter(getter: Callable[[], AuthService]) -> None:
    """Set the auth service getter function.

    Called from main.py during app initialization.
    """
    global _auth_service_getter  # noqa: PLW0603
    _auth_service_getter = getter


def get_auth_service() -> AuthService:
    """Dependency to get AuthService instance."""
    if _auth_service_getter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth service not available",
        )
    return _auth_service_getter()


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException."""
    status_map = {
        "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
        "user_inactive": status.HTTP_401_UNAUTHORIZED,
        "user_exists": status.HTTP_409_CONFLICT,
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "invalid_operation": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


# ==============================================================================
# Current User
# ==============================================================================


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _user_from_payload(payload: dict) -> UserResponse:
    user_id = payload["sub"]
    set_user_id(user_id)
    return UserResponse(
        id=user_id,
        email=payload["email"],
        name=payload.get("name"),
        role=payload["role"],
        is_active=True,
    )


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse:
    """Get current authenticated user from JWT token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    return _user_from_payload(payload)


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse | None:
    """Get current user if authenticated, None otherwise.

    Public endpoints use this to personalise responses; a bad token is
    treated like no token.
    """
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except JWTError:
        return None
    return _user_from_payload(payload)


def require_capability(capability: Capability):
    """Create dependency requiring a capability from the role table.

    Example:
        @router.put("/{id}/approve")
        async def approve(
            user: Annotated[
                UserResponse,
                Depends(require_capability(Capability.MODERATE_ENROLLMENTS)),
            ],
        ):
            ...
    """

    async def capability_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not has_capability(user.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )
        return user

    return capability_checker


def require_any_capability(*capabilities: Capability):
    """Like ``require_capability`` but any one of ``capabilities`` suffices."""

    async def capability_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not any(has_capability(user.role, c) for c in capabilities):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )
        return user

    return capability_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
OptionalUser = Annotated[UserResponse | None, Depends(get_current_user_optional)]

UserManager = Annotated[
    UserResponse, Depends(require_capability(Capability.MANAGE_USERS))
]
StatsViewer = Annotated[UserResponse, Depends(require_capability(Capability.VIEW_STATS))]

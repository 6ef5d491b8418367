"""FastAPI dependencies for live sessions."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from src.auth.dependencies import require_any_capability, require_capability
from src.auth.permissions import Capability
from src.auth.schemas import UserResponse
from src.live_sessions.service import LiveSessionError, LiveSessionService


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_live_session_service_getter: Callable[[], LiveSessionService] | None = None


def set_live_session_service_getter(getter: Callable[[], LiveSessionService]) -> None:
    """Set the live session service getter function."""
    global _live_session_service_getter  # noqa: PLW0603
    _live_session_service_getter = getter


def get_live_session_service() -> LiveSessionService:
    """Get LiveSessionService instance from app state."""
    if _live_session_service_getter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Live session service not available",
        )
    return _live_session_service_getter()


LiveSessionServiceDep = Annotated[LiveSessionService, Depends(get_live_session_service)]

SessionManager = Annotated[
    UserResponse, Depends(require_capability(Capability.MANAGE_LIVE_SESSIONS))
]
SessionHost = Annotated[
    UserResponse,
    Depends(
        require_any_capability(
            Capability.RUN_OWN_LIVE_SESSIONS, Capability.MANAGE_LIVE_SESSIONS
        )
    ),
]


def handle_live_session_error(error: LiveSessionError) -> HTTPException:
    """Convert LiveSessionError to HTTPException."""
    status_map = {
        "session_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_instructor": status.HTTP_400_BAD_REQUEST,
        "invalid_schedule": status.HTTP_400_BAD_REQUEST,
        "invalid_state": status.HTTP_400_BAD_REQUEST,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "join_refused": status.HTTP_403_FORBIDDEN,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )

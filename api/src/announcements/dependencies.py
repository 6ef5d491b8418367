"""FastAPI dependencies for announcements."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from src.announcements.service import AnnouncementError, AnnouncementService
from src.auth.dependencies import require_capability
from src.auth.permissions import Capability
from src.auth.schemas import UserResponse


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_announcement_service_getter: Callable[[], AnnouncementService] | None = None


def set_announcement_service_getter(getter: Callable[[], AnnouncementService]) -> None:
    """Set the announcement service getter function."""
    global _announcement_service_getter  # noqa: PLW0603
    _announcement_service_getter = getter


def get_announcement_service() -> AnnouncementService:
    """Get AnnouncementService instance from app state."""
    if _announcement_service_getter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Announcement service not available",
        )
    return _announcement_service_getter()


AnnouncementServiceDep = Annotated[
    AnnouncementService, Depends(get_announcement_service)
]

AnnouncementManager = Annotated[
    UserResponse, Depends(require_capability(Capability.MANAGE_ANNOUNCEMENTS))
]
Commenter = Annotated[
    UserResponse, Depends(require_capability(Capability.COMMENT_ANNOUNCEMENTS))
]


def handle_announcement_error(error: AnnouncementError) -> HTTPException:
    """Convert AnnouncementError to HTTPException."""
    status_map = {
        "announcement_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "invalid_state": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )

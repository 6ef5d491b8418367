"""FastAPI dependencies for the course catalog.

Provides dependency injection for:
- CourseService access and error mapping
- Content access checks
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from src.auth.dependencies import require_any_capability
from src.auth.permissions import Capability, is_admin
from src.auth.schemas import UserResponse
from src.courses.models import Course
from src.courses.service import CourseError, CourseService


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_course_service_getter: Callable[[], CourseService] | None = None


def set_course_service_getter(getter: Callable[[], CourseService]) -> None:
    """Set the course service getter function."""
    global _course_service_getter  # noqa: PLW0603
    _course_service_getter = getter


def get_course_service() -> CourseService:
    """Get CourseService instance from app state."""
    if _course_service_getter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return _course_service_getter()


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]

CourseAuthor = Annotated[
    UserResponse,
    Depends(
        require_any_capability(Capability.AUTHOR_OWN_COURSES, Capability.MANAGE_COURSES)
    ),
]


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert CourseError to HTTPException."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_instructor": status.HTTP_400_BAD_REQUEST,
        "permission_denied": status.HTTP_403_FORBIDDEN,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


# ==============================================================================
# Access Helpers
# ==============================================================================


def can_view_full_content(
    course: Course,
    user: UserResponse | None,
    enrollment_status: str | None,
) -> bool:
    """Lesson content is visible to admins, the course instructor and
    learners whose enrollment is approved or completed."""
    if user is None:
        return False
    if is_admin(user.role) or course.is_taught_by(user.id):
        return True
    return enrollment_status in ("approved", "completed")

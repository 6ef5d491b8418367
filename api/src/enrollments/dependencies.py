"""FastAPI dependencies for enrollments.

Provides dependency injection for:
- EnrollmentService access
- Error mapping
- Role shortcuts for enrollment routes
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from src.auth.dependencies import require_capability
from src.auth.permissions import Capability
from src.auth.schemas import UserResponse
from src.enrollments.service import EnrollmentError, EnrollmentService


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_enrollment_service_getter: Callable[[], EnrollmentService] | None = None


def set_enrollment_service_getter(getter: Callable[[], EnrollmentService]) -> None:
    """Set the enrollment service getter function."""
    global _enrollment_service_getter  # noqa: PLW0603
    _enrollment_service_getter = getter


def get_enrollment_service() -> EnrollmentService:
    """Get EnrollmentService instance from app state."""
    if _enrollment_service_getter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Enrollment service not available",
        )
    return _enrollment_service_getter()


EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]

Learner = Annotated[UserResponse, Depends(require_capability(Capability.ENROLL))]
EnrollmentModerator = Annotated[
    UserResponse, Depends(require_capability(Capability.MODERATE_ENROLLMENTS))
]


def handle_enrollment_error(error: EnrollmentError) -> HTTPException:
    """Convert EnrollmentError to HTTPException."""
    status_map = {
        "enrollment_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
        "submission_not_found": status.HTTP_404_NOT_FOUND,
        "already_enrolled": status.HTTP_409_CONFLICT,
        "concurrent_modification": status.HTTP_409_CONFLICT,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "invalid_state": status.HTTP_400_BAD_REQUEST,
        "invalid_grade": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )

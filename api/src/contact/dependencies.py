"""FastAPI dependencies for contact messages."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from src.auth.dependencies import require_capability
from src.auth.permissions import Capability
from src.auth.schemas import UserResponse
from src.contact.service import ContactError, ContactService


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_contact_service_getter: Callable[[], ContactService] | None = None


def set_contact_service_getter(getter: Callable[[], ContactService]) -> None:
    """Set the contact service getter function."""
    global _contact_service_getter  # noqa: PLW0603
    _contact_service_getter = getter


def get_contact_service() -> ContactService:
    """Get ContactService instance from app state."""
    if _contact_service_getter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Contact service not available",
        )
    return _contact_service_getter()


ContactServiceDep = Annotated[ContactService, Depends(get_contact_service)]

ContactManager = Annotated[
    UserResponse, Depends(require_capability(Capability.MANAGE_CONTACTS))
]


def handle_contact_error(error: ContactError) -> HTTPException:
    """Convert ContactError to HTTPException."""
    status_map = {
        "contact_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_assignee": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )

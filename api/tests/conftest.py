"""Shared test fixtures.

Routers get their services through module-level getters; tests swap in
mocks with the ``set_*_service_getter`` hooks and the getters installed
by ``src.main`` are restored after every test.
"""

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.auth.permissions import UserRole
from src.auth.schemas import UserResponse
from src.auth.security import create_access_token


@pytest.fixture
def client() -> TestClient:
    """Test client without lifespan (no database connection)."""
    from src.main import app

    return TestClient(app)


@pytest.fixture(autouse=True)
def _restore_service_getters() -> Iterator[None]:
    yield
    from src import main
    from src.announcements.dependencies import set_announcement_service_getter
    from src.auth.dependencies import set_auth_service_getter
    from src.contact.dependencies import set_contact_service_getter
    from src.courses.dependencies import set_course_service_getter
    from src.enrollments.dependencies import set_enrollment_service_getter
    from src.live_sessions.dependencies import set_live_session_service_getter
    from src.notifications.dependencies import set_notification_service_getter

    set_auth_service_getter(main.get_auth_service)
    set_course_service_getter(main.get_course_service)
    set_enrollment_service_getter(main.get_enrollment_service)
    set_notification_service_getter(main.get_notification_service)
    set_live_session_service_getter(main.get_live_session_service)
    set_announcement_service_getter(main.get_announcement_service)
    set_contact_service_getter(main.get_contact_service)


@pytest.fixture
def mock_user_factory() -> Callable[..., UserResponse]:
    """Factory for users as the auth dependency sees them."""

    def _create(role: UserRole = UserRole.STUDENT, **kwargs) -> UserResponse:
        user_id = kwargs.pop("id", uuid4())
        return UserResponse(
            id=user_id,
            email=kwargs.pop("email", f"{role.value}-{user_id.hex[:8]}@example.com"),
            name=kwargs.pop("name", f"Test {role.value.title()}"),
            role=role.value,
            is_active=True,
            created_at=datetime.now(UTC),
            **kwargs,
        )

    return _create


@pytest.fixture
def student(mock_user_factory) -> UserResponse:
    return mock_user_factory(UserRole.STUDENT)


@pytest.fixture
def instructor(mock_user_factory) -> UserResponse:
    return mock_user_factory(UserRole.INSTRUCTOR)


@pytest.fixture
def admin(mock_user_factory) -> UserResponse:
    return mock_user_factory(UserRole.ADMIN)


@pytest.fixture
def auth_headers() -> Callable[[UserResponse], dict[str, str]]:
    """Bearer header for a user."""

    def _headers(user: UserResponse) -> dict[str, str]:
        token = create_access_token(
            {
                "sub": str(user.id),
                "email": user.email,
                "name": user.name,
                "role": user.role,
            }
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers

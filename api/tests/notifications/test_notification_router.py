"""HTTP tests for notification routes with a mocked NotificationService."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.notifications.dependencies import set_notification_service_getter
from src.notifications.models import NotificationType, create_notification
from src.notifications.schemas import NotificationListResponse
from src.notifications.service import NotificationNotFoundError


@pytest.fixture
def notification_service():
    service = MagicMock()
    service.get_unread_count = AsyncMock(return_value=0)
    return service


@pytest.fixture
def api(client: TestClient, notification_service) -> TestClient:
    set_notification_service_getter(lambda: notification_service)
    return client


def test_requires_token(api: TestClient) -> None:
    assert api.get("/api/notifications").status_code == 401


def test_list_own_notifications(
    api, notification_service, student, auth_headers
) -> None:
    notification_service.get_notifications = AsyncMock(
        return_value=NotificationListResponse(
            items=[], unread_count=0, has_more=False, next_cursor=None
        )
    )

    response = api.get(
        "/api/notifications?limit=5&unread_only=true", headers=auth_headers(student)
    )

    assert response.status_code == 200
    kwargs = notification_service.get_notifications.call_args.kwargs
    assert kwargs["user_id"] == student.id
    assert kwargs["limit"] == 5
    assert kwargs["unread_only"] is True


def test_invalid_cursor(api, notification_service, student, auth_headers) -> None:
    notification_service.get_notifications = AsyncMock(side_effect=ValueError("bad"))

    response = api.get(
        "/api/notifications?cursor=garbage", headers=auth_headers(student)
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid cursor"


def test_unread_count(api, notification_service, student, auth_headers) -> None:
    notification_service.get_unread_count.return_value = 4

    response = api.get("/api/notifications/unread-count", headers=auth_headers(student))

    assert response.json() == {"count": 4}


def test_mark_read(api, notification_service, student, auth_headers) -> None:
    notification = create_notification(
        student.id, NotificationType.SUCCESS, "Quiz passed", "Score 100%"
    )
    notification.is_read = True
    notification_service.mark_as_read = AsyncMock(return_value=notification)

    response = api.put(
        f"/api/notifications/{notification.notification_id}/read",
        headers=auth_headers(student),
    )

    assert response.status_code == 200
    assert response.json()["is_read"] is True


def test_mark_read_unknown(api, notification_service, student, auth_headers) -> None:
    notification_service.mark_as_read = AsyncMock(
        side_effect=NotificationNotFoundError()
    )

    response = api.put(
        f"/api/notifications/{uuid4()}/read", headers=auth_headers(student)
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Notification not found"


def test_clear_all_is_not_a_notification_id(
    api, notification_service, student, auth_headers
) -> None:
    notification_service.clear_all = AsyncMock(return_value=3)

    response = api.delete(
        "/api/notifications/clear-all", headers=auth_headers(student)
    )

    assert response.status_code == 200
    assert response.json()["deleted_count"] == 3
    notification_service.clear_all.assert_awaited_once_with(student.id)

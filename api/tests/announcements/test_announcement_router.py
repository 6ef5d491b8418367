"""HTTP tests for announcement routes with a mocked AnnouncementService."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.announcements.dependencies import set_announcement_service_getter
from src.announcements.models import Announcement
from src.core.pagination import PageParams, paginate


@pytest.fixture
def announcement_service():
    return MagicMock()


@pytest.fixture
def api(client: TestClient, announcement_service) -> TestClient:
    set_announcement_service_getter(lambda: announcement_service)
    return client


def _published(title: str) -> Announcement:
    announcement = Announcement(
        title=title, content="Details for the whole cohort.", author_id=uuid4()
    )
    announcement.publish()
    return announcement


def test_list_passes_requested_page_to_service(
    api, announcement_service, student, auth_headers
) -> None:
    announcements = [_published(f"Notice {i}") for i in range(3)]
    announcement_service.list_visible = AsyncMock(
        return_value=paginate(announcements, PageParams(page=2, limit=2))
    )

    response = api.get(
        "/api/announcements?page=2&limit=2", headers=auth_headers(student)
    )

    assert response.status_code == 200
    data = response.json()
    assert [item["title"] for item in data["items"]] == ["Notice 2"]
    assert data["total"] == 3
    assert data["current_page"] == 2
    assert data["has_prev_page"] is True
    _filters, user, page = announcement_service.list_visible.call_args.args
    assert user.id == student.id
    assert page == PageParams(page=2, limit=2)


def test_anonymous_list(api, announcement_service) -> None:
    announcement_service.list_visible = AsyncMock(
        return_value=paginate([], PageParams())
    )

    response = api.get("/api/announcements")

    assert response.status_code == 200
    assert response.json()["items"] == []
    assert announcement_service.list_visible.call_args.args[1] is None

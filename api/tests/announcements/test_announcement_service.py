"""Tests for AnnouncementService visibility and authoring."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from src.announcements.models import Announcement, TargetAudience
from src.announcements.schemas import AnnouncementListFilters, CreateAnnouncementRequest
from src.announcements.service import (
    AnnouncementAccessError,
    AnnouncementNotFoundError,
    AnnouncementService,
    InvalidAnnouncementStateError,
    TargetCourseNotFoundError,
)
from src.core.documents import utc_now
from src.core.pagination import PageParams
from src.courses.models import Course
from src.enrollments.models import Enrollment


@pytest.fixture
def mock_session():
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def course_service():
    service = MagicMock()
    service.get_course = AsyncMock(return_value=Course(title="Python Basics"))
    return service


@pytest.fixture
def enrollment_service():
    service = MagicMock()
    service.get_for_user_course = AsyncMock(return_value=None)
    service.enrolled_user_ids = AsyncMock(return_value=[])
    return service


@pytest.fixture
def notification_service():
    service = MagicMock()
    service.notify_many = AsyncMock(return_value=0)
    return service


@pytest.fixture
def service(mock_session, course_service, enrollment_service, notification_service):
    return AnnouncementService(
        session=mock_session,
        keyspace="test_keyspace",
        course_service=course_service,
        enrollment_service=enrollment_service,
        notification_service=notification_service,
    )


def _published(**kwargs) -> Announcement:
    announcement = Announcement(
        title=kwargs.pop("title", "Welcome"),
        content=kwargs.pop("content", "Welcome to the new term."),
        author_id=uuid4(),
        **kwargs,
    )
    announcement.publish()
    return announcement


class TestRead:
    @pytest.mark.asyncio
    async def test_reader_is_recorded_as_viewer(self, service, mock_session, student):
        announcement = _published()
        service.require_announcement = AsyncMock(return_value=announcement)

        await service.read(announcement.id, student)
        await service.read(announcement.id, student)

        assert announcement.view_count == 1
        mock_session.aexecute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_anonymous_reader_is_not_recorded(self, service, mock_session):
        announcement = _published()
        service.require_announcement = AsyncMock(return_value=announcement)

        await service.read(announcement.id, None)

        assert announcement.view_count == 0
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_draft_is_hidden(self, service, student):
        draft = Announcement(title="Draft", content="Not ready yet.", author_id=uuid4())
        service.require_announcement = AsyncMock(return_value=draft)

        with pytest.raises(AnnouncementNotFoundError):
            await service.read(draft.id, student)

    @pytest.mark.asyncio
    async def test_admin_reads_drafts(self, service, admin):
        draft = Announcement(title="Draft", content="Not ready yet.", author_id=uuid4())
        service.require_announcement = AsyncMock(return_value=draft)

        assert await service.read(draft.id, admin) is draft

    @pytest.mark.asyncio
    async def test_expired(self, service, student):
        announcement = _published(expires_at=utc_now() - timedelta(hours=1))
        service.require_announcement = AsyncMock(return_value=announcement)

        with pytest.raises(AnnouncementNotFoundError, match="expired"):
            await service.read(announcement.id, student)

    @pytest.mark.asyncio
    async def test_outside_audience(self, service, student):
        announcement = _published(target_audience=TargetAudience.INSTRUCTORS.value)
        service.require_announcement = AsyncMock(return_value=announcement)

        with pytest.raises(AnnouncementAccessError):
            await service.read(announcement.id, student)

    @pytest.mark.asyncio
    async def test_course_announcement_for_enrolled_student(
        self, service, enrollment_service, student
    ):
        course_id = uuid4()
        announcement = _published(
            target_audience=TargetAudience.COURSE_SPECIFIC.value,
            target_course_id=course_id,
        )
        service.require_announcement = AsyncMock(return_value=announcement)
        enrollment = Enrollment(user_id=student.id, course_id=course_id)
        enrollment.approve()
        enrollment_service.get_for_user_course.return_value = enrollment

        assert await service.read(announcement.id, student) is announcement


class TestListVisible:
    @pytest.mark.asyncio
    async def test_sticky_first_then_newest(self, service, student):
        now = utc_now()
        older = _published(title="Older", created_at=now - timedelta(days=2))
        newer = _published(title="Newer", created_at=now - timedelta(days=1))
        sticky = _published(
            title="Sticky", is_sticky=True, created_at=now - timedelta(days=9)
        )
        hidden = _published(
            title="Admins", target_audience=TargetAudience.ADMINS.value
        )
        service._load_all = AsyncMock(return_value=[older, newer, sticky, hidden])

        result = await service.list_visible(
            AnnouncementListFilters(), student, PageParams()
        )

        assert [a.title for a in result.items] == ["Sticky", "Newer", "Older"]
        assert result.total == 3
        assert all(a.view_count == 1 for a in result.items)
        assert hidden.view_count == 0

    @pytest.mark.asyncio
    async def test_only_returned_page_is_marked_viewed(
        self, service, mock_session, student
    ):
        now = utc_now()
        announcements = [
            _published(title=f"Notice {i}", created_at=now - timedelta(hours=i))
            for i in range(15)
        ]
        service._load_all = AsyncMock(return_value=announcements)

        result = await service.list_visible(
            AnnouncementListFilters(), student, PageParams(page=1, limit=10)
        )

        assert len(result.items) == 10
        assert result.total == 15
        assert result.has_next_page is True
        assert sum(a.view_count for a in announcements) == 10
        assert all(a.view_count == 0 for a in announcements[10:])
        assert mock_session.aexecute.await_count == 10

    @pytest.mark.asyncio
    async def test_anonymous_listing_records_no_views(self, service, mock_session):
        service._load_all = AsyncMock(return_value=[_published()])

        result = await service.list_visible(
            AnnouncementListFilters(), None, PageParams()
        )

        assert result.items[0].view_count == 0
        mock_session.aexecute.assert_not_awaited()


class TestAuthoring:
    def _request(self, **kwargs) -> CreateAnnouncementRequest:
        return CreateAnnouncementRequest(
            title=kwargs.pop("title", "Exam schedule"),
            content=kwargs.pop("content", "Exams start on the first Monday."),
            type=kwargs.pop("type", "course"),
            target_audience=kwargs.pop("target_audience", "all"),
            **kwargs,
        )

    @pytest.mark.asyncio
    async def test_unscheduled_is_published_now(self, service, admin):
        announcement = await service.create_announcement(self._request(), admin)
        assert announcement.is_published is True
        assert announcement.author_id == admin.id

    @pytest.mark.asyncio
    async def test_scheduled_stays_draft(self, service, admin):
        announcement = await service.create_announcement(
            self._request(scheduled_for=utc_now() + timedelta(days=1)), admin
        )
        assert announcement.is_published is False

    @pytest.mark.asyncio
    async def test_course_announcement_notifies_learners(
        self, service, enrollment_service, notification_service, admin
    ):
        learners = [uuid4(), uuid4()]
        enrollment_service.enrolled_user_ids.return_value = learners
        course_id = uuid4()

        announcement = await service.create_announcement(
            self._request(target_audience="course-specific", target_course_id=course_id),
            admin,
        )

        assert announcement.target_course_id == course_id
        enrollment_service.enrolled_user_ids.assert_awaited_once_with(course_id)
        assert notification_service.notify_many.call_args.args[0] == learners

    @pytest.mark.asyncio
    async def test_unknown_target_course(self, service, course_service, admin):
        course_service.get_course.return_value = None
        with pytest.raises(TargetCourseNotFoundError):
            await service.create_announcement(
                self._request(
                    target_audience="course-specific", target_course_id=uuid4()
                ),
                admin,
            )

    @pytest.mark.asyncio
    async def test_publish_twice(self, service, admin):
        service.require_announcement = AsyncMock(return_value=_published())
        with pytest.raises(InvalidAnnouncementStateError, match="already published"):
            await service.publish(uuid4())

    @pytest.mark.asyncio
    async def test_unpublish_drops_schedule(self, service):
        announcement = _published(scheduled_for=utc_now() - timedelta(hours=1))
        service.require_announcement = AsyncMock(return_value=announcement)

        await service.unpublish(announcement.id)

        assert announcement.is_published is False
        assert announcement.scheduled_for is None


class TestComments:
    @pytest.mark.asyncio
    async def test_comment_on_visible_announcement(self, service, mock_session, student):
        announcement = _published()
        service.require_announcement = AsyncMock(return_value=announcement)

        comments = await service.add_comment(announcement.id, student, "Noted")

        assert [c.content for c in comments] == ["Noted"]
        mock_session.aexecute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_comments_disabled(self, service, student):
        service.require_announcement = AsyncMock(
            return_value=_published(allow_comments=False)
        )
        with pytest.raises(InvalidAnnouncementStateError):
            await service.add_comment(uuid4(), student, "Hello")

    @pytest.mark.asyncio
    async def test_admin_comments_outside_audience(self, service, admin):
        announcement = _published(target_audience=TargetAudience.STUDENTS.value)
        service.require_announcement = AsyncMock(return_value=announcement)

        comments = await service.add_comment(announcement.id, admin, "Reminder sent")

        assert len(comments) == 1

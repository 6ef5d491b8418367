"""Tests for the Announcement entity."""

from datetime import timedelta
from uuid import uuid4

import pytest

from src.announcements.models import Announcement, TargetAudience
from src.auth.permissions import UserRole
from src.core.documents import utc_now


def _announcement(**kwargs) -> Announcement:
    return Announcement(
        title=kwargs.pop("title", "Maintenance window"),
        content=kwargs.pop("content", "The platform is down on Sunday morning."),
        author_id=kwargs.pop("author_id", uuid4()),
        **kwargs,
    )


class TestAudience:
    def test_everyone_including_anonymous(self) -> None:
        announcement = _announcement(target_audience=TargetAudience.ALL.value)
        assert announcement.reaches(None) is True
        assert announcement.reaches(UserRole.STUDENT) is True

    @pytest.mark.parametrize(
        "audience,role",
        [
            (TargetAudience.STUDENTS, UserRole.STUDENT),
            (TargetAudience.INSTRUCTORS, UserRole.INSTRUCTOR),
            (TargetAudience.ADMINS, UserRole.ADMIN),
        ],
    )
    def test_role_audience(self, audience: TargetAudience, role: UserRole) -> None:
        announcement = _announcement(target_audience=audience.value)
        assert announcement.reaches(role) is True
        assert announcement.reaches(role.value) is True
        assert announcement.reaches(None) is False

    def test_students_only_excludes_instructors(self) -> None:
        announcement = _announcement(target_audience=TargetAudience.STUDENTS.value)
        assert announcement.reaches(UserRole.INSTRUCTOR) is False

    def test_course_specific_requires_enrollment(self) -> None:
        announcement = _announcement(
            target_audience=TargetAudience.COURSE_SPECIFIC.value,
            target_course_id=uuid4(),
        )
        assert announcement.reaches(UserRole.STUDENT, enrolled=True) is True
        assert announcement.reaches(UserRole.STUDENT, enrolled=False) is False
        assert announcement.reaches(None, enrolled=True) is False


class TestPublication:
    def test_due_draft_is_published(self) -> None:
        now = utc_now()
        announcement = _announcement(scheduled_for=now - timedelta(minutes=5))

        assert announcement.publish_if_due(now) is True
        assert announcement.is_published is True
        assert announcement.published_at == now

    def test_future_draft_stays_unpublished(self) -> None:
        announcement = _announcement(scheduled_for=utc_now() + timedelta(hours=1))
        assert announcement.publish_if_due() is False
        assert announcement.is_published is False

    def test_unscheduled_draft_is_left_alone(self) -> None:
        assert _announcement().publish_if_due() is False

    def test_already_published_is_not_republished(self) -> None:
        published_at = utc_now() - timedelta(days=1)
        announcement = _announcement(
            is_published=True,
            published_at=published_at,
            scheduled_for=published_at,
        )
        assert announcement.publish_if_due() is False
        assert announcement.published_at == published_at

    def test_expired_announcement_is_not_live(self) -> None:
        announcement = _announcement(expires_at=utc_now() - timedelta(seconds=1))
        announcement.publish()
        assert announcement.is_expired() is True
        assert announcement.is_live is False

    def test_unpublish_clears_timestamp(self) -> None:
        announcement = _announcement()
        announcement.publish()
        announcement.unpublish()
        assert announcement.is_published is False
        assert announcement.published_at is None


class TestEngagement:
    def test_view_is_recorded_once(self) -> None:
        announcement = _announcement()
        user_id = uuid4()
        assert announcement.mark_viewed(user_id) is True
        assert announcement.mark_viewed(user_id) is False
        assert announcement.view_count == 1

    def test_comment(self) -> None:
        announcement = _announcement()
        comment = announcement.add_comment(uuid4(), "Thanks for the heads-up")
        assert announcement.comments == [comment]

    def test_comments_disabled(self) -> None:
        announcement = _announcement(allow_comments=False)
        with pytest.raises(ValueError, match="Comments are not allowed"):
            announcement.add_comment(uuid4(), "Hello")

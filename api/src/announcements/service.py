# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Announcement service layer.

Business logic for:
- Authoring, publishing and soft-deleting announcements (admin)
- Audience-aware listing and reading, with view tracking
- Comments
- Statistics

Scheduled drafts are published lazily: the first read after
``scheduled_for`` publishes and saves them.
"""

from collections import Counter
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.announcements.models import Announcement, AnnouncementComment
from src.announcements.schemas import (
    AdminAnnouncementListFilters,
    AnnouncementListFilters,
    AnnouncementResponse,
    AnnouncementStatsResponse,
    CreateAnnouncementRequest,
    UpdateAnnouncementRequest,
)
from src.auth.permissions import is_admin
from src.auth.schemas import UserResponse
from src.core.documents import ensure_utc_aware, utc_now
from src.core.pagination import Page, PageParams, paginate
from src.notifications.models import NotificationType, ReferenceType


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.courses.service import CourseService
    from src.enrollments.service import EnrollmentService
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)

STATS_LIST_LIMIT = 5

UPDATABLE_FIELDS = (
    "title",
    "content",
    "type",
    "priority",
    "target_audience",
    "target_course_id",
    "scheduled_for",
    "expires_at",
    "tags",
    "is_sticky",
    "allow_comments",
    "is_active",
)
# Fields an explicit null may clear
NULLABLE_FIELDS = ("target_course_id", "scheduled_for", "expires_at")


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AnnouncementError(Exception):
    """Base announcement error."""

    def __init__(self, message: str, code: str = "announcement_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AnnouncementNotFoundError(AnnouncementError):
    def __init__(self, message: str = "Announcement not found"):
        super().__init__(message, "announcement_not_found")


class TargetCourseNotFoundError(AnnouncementError):
    def __init__(self, message: str = "Target course not found"):
        super().__init__(message, "course_not_found")


class AnnouncementAccessError(AnnouncementError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "permission_denied")


class InvalidAnnouncementStateError(AnnouncementError):
    def __init__(self, message: str):
        super().__init__(message, "invalid_state")


# ==============================================================================
# Service
# ==============================================================================


class AnnouncementService:
    """Service for announcements."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        enrollment_service: "EnrollmentService",
        notification_service: "NotificationService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.enrollment_service = enrollment_service
        self.notification_service = notification_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._save_announcement = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.announcements
            (id, title, content, type, priority, author_id, target_audience,
             target_course_id, is_published, published_at, scheduled_for,
             expires_at, tags, is_sticky, allow_comments, comments, viewed_by,
             is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_views = self.session.prepare(f"""
            UPDATE {self.keyspace}.announcements
            SET viewed_by = ?
            WHERE id = ?
        """)
        self._update_comments = self.session.prepare(f"""
            UPDATE {self.keyspace}.announcements
            SET comments = ?, updated_at = ?
            WHERE id = ?
        """)
        self._get_announcement = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.announcements WHERE id = ?"
        )
        self._list_all = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.announcements"
        )

    async def _save(self, announcement: Announcement) -> None:
        announcement.updated_at = utc_now()
        await self.session.aexecute(
            self._save_announcement,
            [
                announcement.id,
                announcement.title,
                announcement.content,
                announcement.type.value,
                announcement.priority.value,
                announcement.author_id,
                announcement.target_audience.value,
                announcement.target_course_id,
                announcement.is_published,
                announcement.published_at,
                announcement.scheduled_for,
                announcement.expires_at,
                announcement.tags,
                announcement.is_sticky,
                announcement.allow_comments,
                announcement.comments_json,
                announcement.viewed_by_json,
                announcement.is_active,
                announcement.created_at,
                announcement.updated_at,
            ],
        )

    async def _publish_due(self, announcement: Announcement) -> None:
        if announcement.publish_if_due():
            await self._save(announcement)
            logger.info(
                "announcement_auto_published",
                announcement_id=str(announcement.id),
            )
            await self._notify_course(announcement)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_announcement(self, announcement_id: UUID) -> Announcement | None:
        result = await self.session.aexecute(self._get_announcement, [announcement_id])
        row = result.one()
        if not row:
            return None
        announcement = Announcement.from_row(row)
        await self._publish_due(announcement)
        return announcement

    async def require_announcement(self, announcement_id: UUID) -> Announcement:
        announcement = await self.get_announcement(announcement_id)
        if announcement is None:
            raise AnnouncementNotFoundError
        return announcement

    async def _load_all(self) -> list[Announcement]:
        rows = await self.session.aexecute(self._list_all)
        announcements = [Announcement.from_row(row) for row in rows]
        for announcement in announcements:
            await self._publish_due(announcement)
        return announcements

    async def is_visible_to(
        self, announcement: Announcement, user: UserResponse | None
    ) -> bool:
        """Live announcement whose audience includes the caller."""
        if not announcement.is_live:
            return False
        if user is None:
            return announcement.reaches(None)
        enrolled = False
        if announcement.is_course_specific and announcement.target_course_id:
            enrollment = await self.enrollment_service.get_for_user_course(
                user.id, announcement.target_course_id
            )
            enrolled = enrollment is not None and enrollment.has_access
        return announcement.reaches(user.role, enrolled)

    async def list_visible(
        self,
        filters: AnnouncementListFilters,
        user: UserResponse | None,
        page: PageParams,
    ) -> "Page[Announcement]":
        """One page of the announcements the caller may read, sticky first then newest.

        Authenticated callers are recorded as viewers of the returned page only.
        """
        announcements = [a for a in await self._load_all() if a.is_live]
        if filters.type:
            announcements = [a for a in announcements if a.type == filters.type]
        if filters.priority:
            announcements = [a for a in announcements if a.priority == filters.priority]
        if filters.course_id:
            announcements = [
                a for a in announcements if a.target_course_id == filters.course_id
            ]
        if filters.sticky:
            announcements = [a for a in announcements if a.is_sticky]

        visible = [a for a in announcements if await self.is_visible_to(a, user)]
        visible.sort(key=lambda a: a.created_at, reverse=True)
        visible.sort(key=lambda a: a.is_sticky, reverse=True)

        result = paginate(visible, page)
        if user is not None:
            for announcement in result.items:
                await self._mark_viewed(announcement, user.id)
        return result

    async def list_all(self, filters: AdminAnnouncementListFilters) -> list[Announcement]:
        announcements = await self._load_all()
        if filters.type:
            announcements = [a for a in announcements if a.type == filters.type]
        if filters.priority:
            announcements = [a for a in announcements if a.priority == filters.priority]
        if filters.target_audience:
            announcements = [
                a for a in announcements if a.target_audience == filters.target_audience
            ]
        if filters.is_published is not None:
            announcements = [
                a for a in announcements if a.is_published == filters.is_published
            ]
        if filters.search:
            needle = filters.search.lower()
            announcements = [
                a
                for a in announcements
                if needle in a.title.lower() or needle in a.content.lower()
            ]

        sort_keys = {
            "created_at": lambda a: a.created_at,
            "published_at": lambda a: a.published_at or a.created_at,
            "title": lambda a: a.title.lower(),
            "view_count": lambda a: a.view_count,
        }
        announcements.sort(
            key=sort_keys[filters.sort_by],
            reverse=filters.sort_order == "desc",
        )
        return announcements

    async def read(
        self, announcement_id: UUID, user: UserResponse | None
    ) -> Announcement:
        """Open an announcement, recording the viewer.

        Admins read anything; others only live announcements aimed at them.

        Raises:
            AnnouncementNotFoundError: Missing, unpublished, inactive or expired
            AnnouncementAccessError: Outside the target audience
        """
        announcement = await self.require_announcement(announcement_id)
        admin = user is not None and is_admin(user.role)
        if not admin:
            if not announcement.is_published or not announcement.is_active:
                raise AnnouncementNotFoundError
            if announcement.is_expired():
                raise AnnouncementNotFoundError("Announcement has expired")
            if not await self.is_visible_to(announcement, user):
                raise AnnouncementAccessError

        if user is not None:
            await self._mark_viewed(announcement, user.id)
        return announcement

    async def _mark_viewed(self, announcement: Announcement, user_id: UUID) -> None:
        if announcement.mark_viewed(user_id):
            await self.session.aexecute(
                self._update_views, [announcement.viewed_by_json, announcement.id]
            )

    # ==========================================================================
    # Authoring
    # ==========================================================================

    async def _check_target_course(self, course_id: UUID | None) -> None:
        if course_id is None:
            msg = "Target course is required for course-specific announcements"
            raise InvalidAnnouncementStateError(msg)
        if await self.course_service.get_course(course_id) is None:
            raise TargetCourseNotFoundError

    async def create_announcement(
        self, data: CreateAnnouncementRequest, author: UserResponse
    ) -> Announcement:
        """Create an announcement; it is published now unless scheduled."""
        announcement = Announcement(
            title=data.title,
            content=data.content,
            author_id=author.id,
            type=data.type.value,
            priority=data.priority.value,
            target_audience=data.target_audience.value,
            scheduled_for=data.scheduled_for,
            expires_at=data.expires_at,
            tags=data.tags,
            is_sticky=data.is_sticky,
            allow_comments=data.allow_comments,
        )
        if announcement.is_course_specific:
            await self._check_target_course(data.target_course_id)
            announcement.target_course_id = data.target_course_id

        if announcement.scheduled_for is None:
            announcement.publish()
        else:
            announcement.publish_if_due()
        await self._save(announcement)

        logger.info(
            "announcement_created",
            announcement_id=str(announcement.id),
            author_id=str(author.id),
            published=announcement.is_published,
        )
        if announcement.is_published:
            await self._notify_course(announcement)
        return announcement

    async def update_announcement(
        self, announcement_id: UUID, data: UpdateAnnouncementRequest
    ) -> Announcement:
        announcement = await self.require_announcement(announcement_id)
        fields = data.model_dump(exclude_unset=True)

        for field in UPDATABLE_FIELDS:
            if field not in fields:
                continue
            value = fields[field]
            if value is None and field not in NULLABLE_FIELDS:
                continue
            if field in ("scheduled_for", "expires_at"):
                value = ensure_utc_aware(value)
            setattr(announcement, field, value)

        if announcement.is_course_specific:
            await self._check_target_course(announcement.target_course_id)
        else:
            announcement.target_course_id = None
        was_published = announcement.is_published
        announcement.publish_if_due()
        await self._save(announcement)

        logger.info(
            "announcement_updated",
            announcement_id=str(announcement.id),
            fields=sorted(f for f in fields if f in UPDATABLE_FIELDS),
        )
        if announcement.is_published and not was_published:
            await self._notify_course(announcement)
        return announcement

    async def publish(self, announcement_id: UUID) -> Announcement:
        announcement = await self.require_announcement(announcement_id)
        if announcement.is_published:
            raise InvalidAnnouncementStateError("Announcement is already published")
        announcement.publish()
        await self._save(announcement)
        logger.info("announcement_published", announcement_id=str(announcement.id))
        await self._notify_course(announcement)
        return announcement

    async def unpublish(self, announcement_id: UUID) -> Announcement:
        announcement = await self.require_announcement(announcement_id)
        if not announcement.is_published:
            raise InvalidAnnouncementStateError("Announcement is not published")
        announcement.unpublish()
        # A passed schedule would publish it again on the next read
        announcement.scheduled_for = None
        await self._save(announcement)
        logger.info("announcement_unpublished", announcement_id=str(announcement.id))
        return announcement

    async def delete_announcement(self, announcement_id: UUID) -> None:
        """Soft delete."""
        announcement = await self.require_announcement(announcement_id)
        announcement.is_active = False
        await self._save(announcement)
        logger.info("announcement_deleted", announcement_id=str(announcement.id))

    async def add_comment(
        self, announcement_id: UUID, user: UserResponse, content: str
    ) -> list[AnnouncementComment]:
        """Comment on a visible announcement that accepts comments."""
        announcement = await self.require_announcement(announcement_id)
        if not announcement.allow_comments:
            raise InvalidAnnouncementStateError(
                "Comments are not allowed on this announcement"
            )
        if not is_admin(user.role) and not await self.is_visible_to(announcement, user):
            raise AnnouncementAccessError

        announcement.add_comment(user.id, content)
        now = utc_now()
        await self.session.aexecute(
            self._update_comments, [announcement.comments_json, now, announcement.id]
        )
        announcement.updated_at = now
        logger.info(
            "announcement_commented",
            announcement_id=str(announcement.id),
            user_id=str(user.id),
        )
        return announcement.comments

    async def _notify_course(self, announcement: Announcement) -> None:
        """Tell learners of the target course about a course announcement."""
        if (
            self.notification_service is None
            or not announcement.is_course_specific
            or announcement.target_course_id is None
        ):
            return
        user_ids = await self.enrollment_service.enrolled_user_ids(
            announcement.target_course_id
        )
        await self.notification_service.notify_many(
            user_ids,
            announcement.title,
            announcement.content,
            notification_type=NotificationType.INFO,
            reference_type=ReferenceType.ANNOUNCEMENT,
            reference_id=announcement.id,
        )

    # ==========================================================================
    # Statistics
    # ==========================================================================

    async def get_stats(self) -> AnnouncementStatsResponse:
        announcements = await self._load_all()
        published = [a for a in announcements if a.is_published]
        recent = sorted(announcements, key=lambda a: a.created_at, reverse=True)
        top_viewed = sorted(published, key=lambda a: a.view_count, reverse=True)

        return AnnouncementStatsResponse(
            total_announcements=len(announcements),
            published_announcements=len(published),
            draft_announcements=len(announcements) - len(published),
            sticky_announcements=sum(1 for a in announcements if a.is_sticky),
            by_type=dict(Counter(a.type.value for a in announcements)),
            by_priority=dict(Counter(a.priority.value for a in announcements)),
            recent_announcements=[
                AnnouncementResponse.from_announcement(a)
                for a in recent[:STATS_LIST_LIMIT]
            ],
            top_viewed_announcements=[
                AnnouncementResponse.from_announcement(a)
                for a in top_viewed[:STATS_LIST_LIMIT]
            ],
        )

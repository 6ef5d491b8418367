"""Database models for announcements.

Cassandra table definitions for:
- Announcements: admin-authored posts targeted at an audience, with
  comments and viewers embedded
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.auth.permissions import UserRole, parse_role
from src.core.documents import dump_documents, ensure_utc_aware, load_documents, utc_now


class AnnouncementType(str, Enum):
    GENERAL = "general"
    COURSE = "course"
    SYSTEM = "system"
    URGENT = "urgent"


class AnnouncementPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TargetAudience(str, Enum):
    ALL = "all"
    STUDENTS = "students"
    INSTRUCTORS = "instructors"
    ADMINS = "admins"
    COURSE_SPECIFIC = "course-specific"


# Audience reached by each role, course-specific aside
AUDIENCE_ROLES = {
    TargetAudience.STUDENTS: UserRole.STUDENT,
    TargetAudience.INSTRUCTORS: UserRole.INSTRUCTOR,
    TargetAudience.ADMINS: UserRole.ADMIN,
}


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ANNOUNCEMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.announcements (
    id UUID PRIMARY KEY,
    title TEXT,
    content TEXT,
    type TEXT,
    priority TEXT,
    author_id UUID,
    target_audience TEXT,
    target_course_id UUID,
    is_published BOOLEAN,
    published_at TIMESTAMP,
    scheduled_for TIMESTAMP,
    expires_at TIMESTAMP,
    tags LIST<TEXT>,
    is_sticky BOOLEAN,
    allow_comments BOOLEAN,
    comments TEXT,
    viewed_by TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

ANNOUNCEMENTS_TABLES_CQL = [ANNOUNCEMENTS_TABLE_CQL]


# ==============================================================================
# Embedded Documents
# ==============================================================================


class AnnouncementComment(BaseModel):
    user_id: UUID
    content: str = Field(..., max_length=500)
    created_at: datetime = Field(default_factory=utc_now)


class AnnouncementView(BaseModel):
    user_id: UUID
    viewed_at: datetime = Field(default_factory=utc_now)


# ==============================================================================
# Entity Classes
# ==============================================================================


class Announcement:
    """Announcement.

    Attributes:
        target_course_id: Set only for course-specific announcements
        scheduled_for: Publication time of a scheduled draft
        viewed_by: One entry per user who opened the announcement
    """

    def __init__(
        self,
        title: str,
        content: str,
        author_id: UUID,
        id: UUID | None = None,
        type: str = AnnouncementType.GENERAL.value,
        priority: str = AnnouncementPriority.MEDIUM.value,
        target_audience: str = TargetAudience.ALL.value,
        target_course_id: UUID | None = None,
        is_published: bool = False,
        published_at: datetime | None = None,
        scheduled_for: datetime | None = None,
        expires_at: datetime | None = None,
        tags: list[str] | None = None,
        is_sticky: bool = False,
        allow_comments: bool = True,
        comments: list[AnnouncementComment] | None = None,
        viewed_by: list[AnnouncementView] | None = None,
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.content = content
        self.author_id = author_id
        self.type = AnnouncementType(type)
        self.priority = AnnouncementPriority(priority)
        self.target_audience = TargetAudience(target_audience)
        self.target_course_id = target_course_id
        self.is_published = is_published
        self.published_at = ensure_utc_aware(published_at)
        self.scheduled_for = ensure_utc_aware(scheduled_for)
        self.expires_at = ensure_utc_aware(expires_at)
        self.tags = list(tags or [])
        self.is_sticky = is_sticky
        self.allow_comments = allow_comments
        self.comments = list(comments or [])
        self.viewed_by = list(viewed_by or [])
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Announcement":
        """Create Announcement instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            content=row.content,
            author_id=row.author_id,
            type=row.type,
            priority=row.priority,
            target_audience=row.target_audience,
            target_course_id=row.target_course_id,
            is_published=row.is_published,
            published_at=row.published_at,
            scheduled_for=row.scheduled_for,
            expires_at=row.expires_at,
            tags=row.tags,
            is_sticky=row.is_sticky,
            allow_comments=row.allow_comments,
            comments=load_documents(AnnouncementComment, row.comments),
            viewed_by=load_documents(AnnouncementView, row.viewed_by),
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def comments_json(self) -> str:
        return dump_documents(AnnouncementComment, self.comments)

    @property
    def viewed_by_json(self) -> str:
        return dump_documents(AnnouncementView, self.viewed_by)

    @property
    def view_count(self) -> int:
        return len(self.viewed_by)

    @property
    def is_course_specific(self) -> bool:
        return self.target_audience == TargetAudience.COURSE_SPECIFIC

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at is not None and self.expires_at < (now or utc_now())

    @property
    def is_live(self) -> bool:
        """Published, active and not expired."""
        return self.is_published and self.is_active and not self.is_expired()

    def publish_if_due(self, now: datetime | None = None) -> bool:
        """Publish a scheduled draft whose time has come.

        Returns:
            True if the announcement was published by this call
        """
        now = now or utc_now()
        if self.is_published or self.scheduled_for is None or self.scheduled_for > now:
            return False
        self.publish(now)
        return True

    def publish(self, now: datetime | None = None) -> None:
        self.is_published = True
        self.published_at = now or utc_now()

    def unpublish(self) -> None:
        self.is_published = False
        self.published_at = None

    def reaches(self, role: UserRole | str | None, enrolled: bool = False) -> bool:
        """Whether the audience includes a caller.

        ``role`` is None for anonymous callers, who only see ``all``.
        ``enrolled`` tells whether the caller may learn from the target course.
        """
        if self.target_audience == TargetAudience.ALL:
            return True
        if role is None:
            return False
        if self.is_course_specific:
            return self.target_course_id is not None and enrolled
        return AUDIENCE_ROLES[self.target_audience] == parse_role(role)

    def add_comment(self, user_id: UUID, content: str) -> AnnouncementComment:
        """Append a comment.

        Raises:
            ValueError: If comments are disabled
        """
        if not self.allow_comments:
            msg = "Comments are not allowed on this announcement"
            raise ValueError(msg)
        comment = AnnouncementComment(user_id=user_id, content=content)
        self.comments.append(comment)
        return comment

    def mark_viewed(self, user_id: UUID) -> bool:
        """Record a viewer once.

        Returns:
            True if this is the user's first view
        """
        if any(view.user_id == user_id for view in self.viewed_by):
            return False
        self.viewed_by.append(AnnouncementView(user_id=user_id))
        return True

    def __repr__(self) -> str:
        return f"<Announcement {self.title} ({self.id})>"

"""Pydantic schemas for announcements."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from src.announcements.models import (
    Announcement,
    AnnouncementComment,
    AnnouncementPriority,
    AnnouncementType,
    TargetAudience,
)


# ==============================================================================
# Requests
# ==============================================================================


class CreateAnnouncementRequest(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    content: str = Field(..., min_length=10, max_length=2000)
    type: AnnouncementType
    priority: AnnouncementPriority = AnnouncementPriority.MEDIUM
    target_audience: TargetAudience
    target_course_id: UUID | None = None
    scheduled_for: datetime | None = None
    expires_at: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    is_sticky: bool = False
    allow_comments: bool = True

    @model_validator(mode="after")
    def check_target_course(self) -> "CreateAnnouncementRequest":
        if self.target_audience == TargetAudience.COURSE_SPECIFIC and (
            self.target_course_id is None
        ):
            msg = "Target course is required for course-specific announcements"
            raise ValueError(msg)
        return self


class UpdateAnnouncementRequest(BaseModel):
    """Partial update. Explicit nulls clear ``scheduled_for`` / ``expires_at``."""

    title: str | None = Field(None, min_length=5, max_length=100)
    content: str | None = Field(None, min_length=10, max_length=2000)
    type: AnnouncementType | None = None
    priority: AnnouncementPriority | None = None
    target_audience: TargetAudience | None = None
    target_course_id: UUID | None = None
    scheduled_for: datetime | None = None
    expires_at: datetime | None = None
    tags: list[str] | None = None
    is_sticky: bool | None = None
    allow_comments: bool | None = None
    is_active: bool | None = None


class CommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)


class AnnouncementListFilters(BaseModel):
    type: AnnouncementType | None = None
    priority: AnnouncementPriority | None = None
    course_id: UUID | None = None
    sticky: bool = False


class AdminAnnouncementListFilters(BaseModel):
    type: AnnouncementType | None = None
    priority: AnnouncementPriority | None = None
    target_audience: TargetAudience | None = None
    is_published: bool | None = None
    search: str | None = Field(None, max_length=100)
    sort_by: Literal["created_at", "published_at", "title", "view_count"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


# ==============================================================================
# Responses
# ==============================================================================


class AnnouncementResponse(BaseModel):
    id: UUID
    title: str
    content: str
    type: AnnouncementType
    priority: AnnouncementPriority
    author_id: UUID
    target_audience: TargetAudience
    target_course_id: UUID | None = None
    is_published: bool
    published_at: datetime | None = None
    scheduled_for: datetime | None = None
    expires_at: datetime | None = None
    tags: list[str]
    is_sticky: bool
    allow_comments: bool
    comments: list[AnnouncementComment]
    view_count: int
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_announcement(cls, announcement: Announcement) -> "AnnouncementResponse":
        return cls(
            id=announcement.id,
            title=announcement.title,
            content=announcement.content,
            type=announcement.type,
            priority=announcement.priority,
            author_id=announcement.author_id,
            target_audience=announcement.target_audience,
            target_course_id=announcement.target_course_id,
            is_published=announcement.is_published,
            published_at=announcement.published_at,
            scheduled_for=announcement.scheduled_for,
            expires_at=announcement.expires_at,
            tags=announcement.tags,
            is_sticky=announcement.is_sticky,
            allow_comments=announcement.allow_comments,
            comments=announcement.comments,
            view_count=announcement.view_count,
            is_active=announcement.is_active,
            created_at=announcement.created_at,
            updated_at=announcement.updated_at,
        )


class CommentsResponse(BaseModel):
    message: str
    comments: list[AnnouncementComment]


class AnnouncementStatsResponse(BaseModel):
    total_announcements: int
    published_announcements: int
    draft_announcements: int
    sticky_announcements: int
    by_type: dict[str, int]
    by_priority: dict[str, int]
    recent_announcements: list[AnnouncementResponse]
    top_viewed_announcements: list[AnnouncementResponse]

"""Pydantic schemas for live sessions."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.live_sessions.models import (
    LiveSession,
    Participant,
    SessionFeatures,
    SessionStatus,
)


# ==============================================================================
# Requests
# ==============================================================================


class CreateLiveSessionRequest(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    course_id: UUID
    instructor_id: UUID
    scheduled_at: datetime
    duration: int = Field(..., ge=15, le=180, description="Minutes")
    max_participants: int = Field(100, ge=1, le=500)
    features: SessionFeatures = Field(default_factory=SessionFeatures)


class UpdateLiveSessionRequest(BaseModel):
    """Partial update; ``instructor_id`` and ``is_active`` are admin-only."""

    title: str | None = Field(None, min_length=5, max_length=100)
    description: str | None = Field(None, min_length=10, max_length=500)
    scheduled_at: datetime | None = None
    duration: int | None = Field(None, ge=15, le=180)
    max_participants: int | None = Field(None, ge=1, le=500)
    features: SessionFeatures | None = None
    session_notes: str | None = Field(None, max_length=2000)
    instructor_id: UUID | None = None
    is_active: bool | None = None


class LiveSessionListFilters(BaseModel):
    status: SessionStatus | None = None
    course_id: UUID | None = None
    instructor_id: UUID | None = None
    upcoming: bool = False


# ==============================================================================
# Responses
# ==============================================================================


class LiveSessionResponse(BaseModel):
    id: UUID
    title: str
    description: str
    course_id: UUID
    instructor_id: UUID
    scheduled_at: datetime
    duration: int
    max_participants: int
    room_id: str
    status: SessionStatus
    participants: list[Participant]
    participant_count: int
    features: SessionFeatures
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    actual_duration: int = 0
    attendance_count: int = 0
    session_notes: str = ""
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_session(cls, session: LiveSession) -> "LiveSessionResponse":
        return cls(
            id=session.id,
            title=session.title,
            description=session.description,
            course_id=session.course_id,
            instructor_id=session.instructor_id,
            scheduled_at=session.scheduled_at,
            duration=session.duration,
            max_participants=session.max_participants,
            room_id=session.room_id,
            status=session.status,
            participants=session.participants,
            participant_count=session.present_count,
            features=session.features,
            actual_start_time=session.actual_start_time,
            actual_end_time=session.actual_end_time,
            actual_duration=session.actual_duration,
            attendance_count=session.attendance_count,
            session_notes=session.session_notes,
            is_active=session.is_active,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class MyLiveSessionResponse(LiveSessionResponse):
    user_participation: Participant | None = None


class LiveSessionDetailResponse(MyLiveSessionResponse):
    can_join: bool
    join_reason: str | None = None


class JoinSessionResponse(BaseModel):
    message: str
    room_id: str
    participant: Participant
    features: SessionFeatures


class InstructorSessionCount(BaseModel):
    instructor_id: UUID
    name: str
    session_count: int


class LiveSessionStatsResponse(BaseModel):
    total_sessions: int
    scheduled_sessions: int
    live_sessions: int
    ended_sessions: int
    by_status: dict[str, int]
    upcoming_sessions: list[LiveSessionResponse]
    top_instructors: list[InstructorSessionCount]

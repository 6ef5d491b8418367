"""Database models for live sessions.

Cassandra table definitions for:
- Live sessions: scheduled classes of a course, with participants embedded
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.core.documents import (
    dump_document,
    dump_documents,
    ensure_utc_aware,
    load_document,
    load_documents,
    utc_now,
)


class SessionStatus(str, Enum):
    """Live session status."""

    SCHEDULED = "scheduled"
    LIVE = "live"
    ENDED = "ended"
    CANCELLED = "cancelled"


class ParticipantRole(str, Enum):
    PARTICIPANT = "participant"
    MODERATOR = "moderator"


# Statuses in which a session can still be joined
JOINABLE_STATUSES = frozenset({SessionStatus.SCHEDULED, SessionStatus.LIVE})


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

LIVE_SESSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.live_sessions (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    course_id UUID,
    instructor_id UUID,
    scheduled_at TIMESTAMP,
    duration INT,
    max_participants INT,
    room_id TEXT,
    status TEXT,
    participants TEXT,
    features TEXT,
    actual_start_time TIMESTAMP,
    actual_end_time TIMESTAMP,
    actual_duration INT,
    attendance_count INT,
    session_notes TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

LIVE_SESSIONS_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS live_sessions_course_idx
ON {keyspace}.live_sessions (course_id)
"""

LIVE_SESSIONS_INSTRUCTOR_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS live_sessions_instructor_idx
ON {keyspace}.live_sessions (instructor_id)
"""

LIVE_SESSIONS_TABLES_CQL = [
    LIVE_SESSIONS_TABLE_CQL,
    LIVE_SESSIONS_COURSE_INDEX_CQL,
    LIVE_SESSIONS_INSTRUCTOR_INDEX_CQL,
]


# ==============================================================================
# Embedded Documents
# ==============================================================================


class Participant(BaseModel):
    user_id: UUID
    joined_at: datetime = Field(default_factory=utc_now)
    left_at: datetime | None = None
    is_present: bool = True
    role: ParticipantRole = ParticipantRole.PARTICIPANT


class SessionFeatures(BaseModel):
    chat: bool = True
    screen_share: bool = True
    recording: bool = False
    whiteboard: bool = False


# ==============================================================================
# Entity Classes
# ==============================================================================


class LiveSession:
    """Scheduled live class.

    ``room_id`` is fixed at creation as ``session_{id}_{epoch_ms}``.
    """

    def __init__(
        self,
        title: str,
        description: str,
        course_id: UUID,
        instructor_id: UUID,
        scheduled_at: datetime,
        duration: int,
        id: UUID | None = None,
        max_participants: int = 100,
        room_id: str | None = None,
        status: str = SessionStatus.SCHEDULED.value,
        participants: list[Participant] | None = None,
        features: SessionFeatures | None = None,
        actual_start_time: datetime | None = None,
        actual_end_time: datetime | None = None,
        actual_duration: int = 0,
        attendance_count: int = 0,
        session_notes: str = "",
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.description = description
        self.course_id = course_id
        self.instructor_id = instructor_id
        self.scheduled_at = ensure_utc_aware(scheduled_at)
        self.duration = duration
        self.max_participants = max_participants
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.room_id = room_id or (
            f"session_{self.id}_{int(self.created_at.timestamp() * 1000)}"
        )
        self.status = SessionStatus(status)
        self.participants = list(participants or [])
        self.features = features or SessionFeatures()
        self.actual_start_time = ensure_utc_aware(actual_start_time)
        self.actual_end_time = ensure_utc_aware(actual_end_time)
        self.actual_duration = actual_duration or 0
        self.attendance_count = attendance_count or 0
        self.session_notes = session_notes or ""
        self.is_active = is_active
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "LiveSession":
        """Create LiveSession instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            course_id=row.course_id,
            instructor_id=row.instructor_id,
            scheduled_at=row.scheduled_at,
            duration=row.duration,
            max_participants=row.max_participants,
            room_id=row.room_id,
            status=row.status,
            participants=load_documents(Participant, row.participants),
            features=load_document(SessionFeatures, row.features),
            actual_start_time=row.actual_start_time,
            actual_end_time=row.actual_end_time,
            actual_duration=row.actual_duration,
            attendance_count=row.attendance_count,
            session_notes=row.session_notes,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def participants_json(self) -> str:
        return dump_documents(Participant, self.participants)

    @property
    def features_json(self) -> str | None:
        return dump_document(self.features)

    @property
    def present_count(self) -> int:
        return sum(1 for p in self.participants if p.is_present)

    @property
    def is_full(self) -> bool:
        return self.present_count >= self.max_participants

    def is_hosted_by(self, user_id: UUID) -> bool:
        return self.instructor_id == user_id

    def participation(self, user_id: UUID) -> Participant | None:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def join_refusal(self, has_enrollment: bool) -> str | None:
        """Why a user cannot join, or None when they can."""
        if self.status not in JOINABLE_STATUSES or not self.is_active:
            return "Session is not available"
        if not has_enrollment:
            return "User is not enrolled in this course"
        if self.is_full:
            return "Session is full"
        return None

    def start(self) -> None:
        self.status = SessionStatus.LIVE
        self.actual_start_time = utc_now()

    def end(self) -> None:
        """End the session; attendance counts everyone who ever joined."""
        self.status = SessionStatus.ENDED
        self.actual_end_time = utc_now()
        if self.actual_start_time:
            elapsed = self.actual_end_time - self.actual_start_time
            self.actual_duration = math.floor(elapsed.total_seconds() / 60 + 0.5)
        self.attendance_count = len(self.participants)

    def cancel(self) -> None:
        self.status = SessionStatus.CANCELLED

    def add_participant(
        self,
        user_id: UUID,
        role: ParticipantRole = ParticipantRole.PARTICIPANT,
    ) -> Participant:
        """Add a participant or mark a returning one present again."""
        existing = self.participation(user_id)
        if existing is not None:
            existing.is_present = True
            existing.left_at = None
            return existing
        participant = Participant(user_id=user_id, role=role)
        self.participants.append(participant)
        return participant

    def remove_participant(self, user_id: UUID) -> bool:
        """Mark a participant as gone.

        Returns:
            True if the user had joined
        """
        participant = self.participation(user_id)
        if participant is None:
            return False
        participant.is_present = False
        participant.left_at = utc_now()
        return True

    def __repr__(self) -> str:
        return f"<LiveSession {self.title} ({self.id}) {self.status.value}>"

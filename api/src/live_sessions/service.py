# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Live session service layer.

Business logic for:
- Scheduling, updating and soft-deleting sessions (admin)
- Running sessions: start, end, cancel (session instructor or admin)
- Joining and leaving (approved enrollees)
- Listings and statistics
"""

from collections import Counter
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.auth.permissions import UserRole, is_admin
from src.auth.schemas import UserResponse
from src.core.documents import ensure_utc_aware, utc_now
from src.live_sessions.models import (
    JOINABLE_STATUSES,
    LiveSession,
    Participant,
    SessionStatus,
)
from src.live_sessions.schemas import (
    CreateLiveSessionRequest,
    InstructorSessionCount,
    LiveSessionListFilters,
    LiveSessionResponse,
    LiveSessionStatsResponse,
    UpdateLiveSessionRequest,
)
from src.notifications.models import NotificationType, ReferenceType


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.auth.service import AuthService
    from src.courses.service import CourseService
    from src.enrollments.service import EnrollmentService
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)

UPCOMING_LIMIT = 5
TOP_INSTRUCTORS_LIMIT = 5

UPDATABLE_FIELDS = (
    "title",
    "description",
    "scheduled_at",
    "duration",
    "max_participants",
    "features",
    "session_notes",
)
ADMIN_FIELDS = ("instructor_id", "is_active")


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class LiveSessionError(Exception):
    """Base live session error."""

    def __init__(self, message: str, code: str = "live_session_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class LiveSessionNotFoundError(LiveSessionError):
    def __init__(self, message: str = "Live session not found"):
        super().__init__(message, "session_not_found")


class SessionCourseNotFoundError(LiveSessionError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class InvalidSessionInstructorError(LiveSessionError):
    def __init__(self, message: str = "Invalid instructor"):
        super().__init__(message, "invalid_instructor")


class InvalidScheduleError(LiveSessionError):
    def __init__(self, message: str = "Scheduled time must be in the future"):
        super().__init__(message, "invalid_schedule")


class InvalidSessionStateError(LiveSessionError):
    def __init__(self, message: str):
        super().__init__(message, "invalid_state")


class LiveSessionAccessError(LiveSessionError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "permission_denied")


class JoinRefusedError(LiveSessionError):
    def __init__(self, message: str):
        super().__init__(message, "join_refused")


# ==============================================================================
# Service
# ==============================================================================


class LiveSessionService:
    """Service for live sessions."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        enrollment_service: "EnrollmentService",
        notification_service: "NotificationService | None" = None,
        auth_service: "AuthService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.enrollment_service = enrollment_service
        self.notification_service = notification_service
        self.auth_service = auth_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._save_session = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.live_sessions
            (id, title, description, course_id, instructor_id, scheduled_at,
             duration, max_participants, room_id, status, participants, features,
             actual_start_time, actual_end_time, actual_duration,
             attendance_count, session_notes, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_session = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.live_sessions WHERE id = ?"
        )
        self._list_by_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.live_sessions WHERE course_id = ?"
        )
        self._list_by_instructor = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.live_sessions WHERE instructor_id = ?"
        )
        self._list_all = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.live_sessions"
        )

    async def _save(self, live_session: LiveSession) -> None:
        live_session.updated_at = utc_now()
        await self.session.aexecute(
            self._save_session,
            [
                live_session.id,
                live_session.title,
                live_session.description,
                live_session.course_id,
                live_session.instructor_id,
                live_session.scheduled_at,
                live_session.duration,
                live_session.max_participants,
                live_session.room_id,
                live_session.status.value,
                live_session.participants_json,
                live_session.features_json,
                live_session.actual_start_time,
                live_session.actual_end_time,
                live_session.actual_duration,
                live_session.attendance_count,
                live_session.session_notes,
                live_session.is_active,
                live_session.created_at,
                live_session.updated_at,
            ],
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_session(self, session_id: UUID) -> LiveSession | None:
        result = await self.session.aexecute(self._get_session, [session_id])
        row = result.one()
        return LiveSession.from_row(row) if row else None

    async def require_session(self, session_id: UUID) -> LiveSession:
        live_session = await self.get_session(session_id)
        if live_session is None:
            raise LiveSessionNotFoundError
        return live_session

    async def _load_all(self) -> list[LiveSession]:
        rows = await self.session.aexecute(self._list_all)
        return [LiveSession.from_row(row) for row in rows]

    async def list_sessions(
        self, filters: LiveSessionListFilters, actor: UserResponse
    ) -> list[LiveSession]:
        """Staff listing, newest first. Instructors only see their own."""
        instructor_id = filters.instructor_id
        if not is_admin(actor.role):
            instructor_id = actor.id

        if instructor_id:
            rows = await self.session.aexecute(self._list_by_instructor, [instructor_id])
        elif filters.course_id:
            rows = await self.session.aexecute(self._list_by_course, [filters.course_id])
        else:
            rows = await self.session.aexecute(self._list_all)

        sessions = [LiveSession.from_row(row) for row in rows]
        if instructor_id:
            sessions = [s for s in sessions if s.instructor_id == instructor_id]
        if filters.course_id:
            sessions = [s for s in sessions if s.course_id == filters.course_id]
        if filters.upcoming:
            sessions = _upcoming(sessions)
        elif filters.status:
            sessions = [s for s in sessions if s.status == filters.status]

        sessions.sort(key=lambda s: s.scheduled_at, reverse=True)
        return sessions

    async def list_for_user(
        self, user: UserResponse, upcoming: bool = False
    ) -> list[LiveSession]:
        """Active sessions of the courses the user may attend.

        Upcoming sessions are soonest first, otherwise newest first.
        """
        course_ids = {
            e.course_id
            for e in await self.enrollment_service.list_for_user(user.id)
            if e.has_access
        }
        sessions: list[LiveSession] = []
        for course_id in course_ids:
            rows = await self.session.aexecute(self._list_by_course, [course_id])
            sessions.extend(LiveSession.from_row(row) for row in rows)

        sessions = [s for s in sessions if s.is_active]
        if upcoming:
            sessions = _upcoming(sessions)
        sessions.sort(key=lambda s: s.scheduled_at, reverse=not upcoming)
        return sessions

    async def has_course_access(self, live_session: LiveSession, user_id: UUID) -> bool:
        enrollment = await self.enrollment_service.get_for_user_course(
            user_id, live_session.course_id
        )
        return enrollment is not None and enrollment.has_access

    async def get_for_viewer(
        self, session_id: UUID, user: UserResponse
    ) -> tuple[LiveSession, bool]:
        """Session as seen by ``user``.

        Returns:
            (session, whether the user holds an enrollment allowing to join)

        Raises:
            LiveSessionAccessError: Unless admin, session instructor or enrollee
        """
        live_session = await self.require_session(session_id)
        enrolled = await self.has_course_access(live_session, user.id)
        if not (
            enrolled or is_admin(user.role) or live_session.is_hosted_by(user.id)
        ):
            raise LiveSessionAccessError
        return live_session, enrolled

    # ==========================================================================
    # Management
    # ==========================================================================

    def ensure_can_run(self, live_session: LiveSession, actor: UserResponse) -> None:
        if is_admin(actor.role) or live_session.is_hosted_by(actor.id):
            return
        raise LiveSessionAccessError

    async def _check_instructor(self, instructor_id: UUID) -> None:
        if self.auth_service is None:
            return
        instructor = await self.auth_service.get_user_by_id(instructor_id)
        if instructor is None or instructor.role != UserRole.INSTRUCTOR.value:
            raise InvalidSessionInstructorError

    async def create_session(
        self, data: CreateLiveSessionRequest, admin: UserResponse
    ) -> LiveSession:
        """Schedule a session.

        Raises:
            SessionCourseNotFoundError: If the course does not exist
            InvalidSessionInstructorError: If the user is not an instructor
            InvalidScheduleError: If ``scheduled_at`` is not in the future
        """
        course = await self.course_service.get_course(data.course_id)
        if course is None:
            raise SessionCourseNotFoundError
        await self._check_instructor(data.instructor_id)
        scheduled_at = ensure_utc_aware(data.scheduled_at)
        if scheduled_at <= utc_now():
            raise InvalidScheduleError

        live_session = LiveSession(
            title=data.title,
            description=data.description,
            course_id=data.course_id,
            instructor_id=data.instructor_id,
            scheduled_at=scheduled_at,
            duration=data.duration,
            max_participants=data.max_participants,
            features=data.features,
        )
        await self._save(live_session)

        logger.info(
            "live_session_created",
            session_id=str(live_session.id),
            course_id=str(course.id),
            admin_id=str(admin.id),
        )
        if self.notification_service is not None:
            await self.notification_service.notify_many(
                await self.enrollment_service.enrolled_user_ids(course.id),
                "New live session scheduled",
                f"{live_session.title} ({course.title}) is scheduled for "
                f"{scheduled_at:%Y-%m-%d %H:%M} UTC",
                reference_type=ReferenceType.LIVE_SESSION,
                reference_id=live_session.id,
            )
        return live_session

    async def update_session(
        self,
        session_id: UUID,
        data: UpdateLiveSessionRequest,
        actor: UserResponse,
    ) -> LiveSession:
        live_session = await self.require_session(session_id)
        self.ensure_can_run(live_session, actor)
        if live_session.status in (SessionStatus.LIVE, SessionStatus.ENDED):
            raise InvalidSessionStateError("Cannot update a live or ended session")

        fields = data.model_dump(exclude_unset=True)
        allowed = UPDATABLE_FIELDS + (ADMIN_FIELDS if is_admin(actor.role) else ())
        if "instructor_id" in fields and "instructor_id" in allowed:
            await self._check_instructor(fields["instructor_id"])
        if fields.get("scheduled_at") is not None:
            fields["scheduled_at"] = ensure_utc_aware(fields["scheduled_at"])
            if fields["scheduled_at"] <= utc_now():
                raise InvalidScheduleError

        for field in allowed:
            if field in fields and fields[field] is not None:
                value = data.features if field == "features" else fields[field]
                setattr(live_session, field, value)
        await self._save(live_session)

        logger.info(
            "live_session_updated",
            session_id=str(live_session.id),
            fields=sorted(f for f in fields if f in allowed),
        )
        return live_session

    async def start_session(self, session_id: UUID, actor: UserResponse) -> LiveSession:
        live_session = await self.require_session(session_id)
        self.ensure_can_run(live_session, actor)
        if live_session.status != SessionStatus.SCHEDULED:
            raise InvalidSessionStateError("Session is not scheduled")

        live_session.start()
        await self._save(live_session)
        logger.info("live_session_started", session_id=str(live_session.id))

        if self.notification_service is not None:
            await self.notification_service.notify_many(
                await self.enrollment_service.enrolled_user_ids(live_session.course_id),
                "Live session started",
                f"{live_session.title} is live now",
                notification_type=NotificationType.INFO,
                reference_type=ReferenceType.LIVE_SESSION,
                reference_id=live_session.id,
            )
        return live_session

    async def end_session(self, session_id: UUID, actor: UserResponse) -> LiveSession:
        live_session = await self.require_session(session_id)
        self.ensure_can_run(live_session, actor)
        if live_session.status != SessionStatus.LIVE:
            raise InvalidSessionStateError("Session is not live")

        live_session.end()
        await self._save(live_session)
        logger.info(
            "live_session_ended",
            session_id=str(live_session.id),
            actual_duration=live_session.actual_duration,
            attendance_count=live_session.attendance_count,
        )
        return live_session

    async def cancel_session(self, session_id: UUID, actor: UserResponse) -> LiveSession:
        live_session = await self.require_session(session_id)
        self.ensure_can_run(live_session, actor)
        if live_session.status != SessionStatus.SCHEDULED:
            raise InvalidSessionStateError("Only scheduled sessions can be cancelled")

        live_session.cancel()
        await self._save(live_session)
        logger.info("live_session_cancelled", session_id=str(live_session.id))

        if self.notification_service is not None:
            await self.notification_service.notify_many(
                await self.enrollment_service.enrolled_user_ids(live_session.course_id),
                "Live session cancelled",
                f"{live_session.title} has been cancelled",
                notification_type=NotificationType.WARNING,
                reference_type=ReferenceType.LIVE_SESSION,
                reference_id=live_session.id,
            )
        return live_session

    async def delete_session(self, session_id: UUID, admin: UserResponse) -> None:
        """Soft delete: deactivate and cancel."""
        live_session = await self.require_session(session_id)
        if live_session.status == SessionStatus.LIVE:
            raise InvalidSessionStateError("Cannot delete a live session")

        live_session.is_active = False
        live_session.cancel()
        await self._save(live_session)
        logger.info(
            "live_session_deleted",
            session_id=str(live_session.id),
            admin_id=str(admin.id),
        )

    # ==========================================================================
    # Attendance
    # ==========================================================================

    async def join_session(
        self, session_id: UUID, user: UserResponse
    ) -> tuple[LiveSession, Participant]:
        """Add the user to the session.

        Raises:
            JoinRefusedError: With the reason the user cannot join
        """
        live_session = await self.require_session(session_id)
        refusal = live_session.join_refusal(
            await self.has_course_access(live_session, user.id)
        )
        if refusal is not None:
            raise JoinRefusedError(refusal)

        participant = live_session.add_participant(user.id)
        await self._save(live_session)
        logger.info(
            "live_session_joined",
            session_id=str(live_session.id),
            user_id=str(user.id),
            present=live_session.present_count,
        )
        return live_session, participant

    async def leave_session(self, session_id: UUID, user: UserResponse) -> LiveSession:
        live_session = await self.require_session(session_id)
        if live_session.remove_participant(user.id):
            await self._save(live_session)
            logger.info(
                "live_session_left",
                session_id=str(live_session.id),
                user_id=str(user.id),
            )
        return live_session

    # ==========================================================================
    # Statistics
    # ==========================================================================

    async def get_stats(self) -> LiveSessionStatsResponse:
        sessions = await self._load_all()
        counts = Counter(s.status.value for s in sessions)

        upcoming = [
            s
            for s in _upcoming(sessions)
            if s.status == SessionStatus.SCHEDULED
        ]
        upcoming.sort(key=lambda s: s.scheduled_at)

        per_instructor = Counter(s.instructor_id for s in sessions)
        top_instructors = []
        for instructor_id, count in per_instructor.most_common(TOP_INSTRUCTORS_LIMIT):
            name = ""
            if self.auth_service is not None:
                instructor = await self.auth_service.get_user_by_id(instructor_id)
                name = instructor.name if instructor and instructor.name else ""
            top_instructors.append(
                InstructorSessionCount(
                    instructor_id=instructor_id, name=name, session_count=count
                )
            )

        return LiveSessionStatsResponse(
            total_sessions=len(sessions),
            scheduled_sessions=counts[SessionStatus.SCHEDULED.value],
            live_sessions=counts[SessionStatus.LIVE.value],
            ended_sessions=counts[SessionStatus.ENDED.value],
            by_status={status.value: counts[status.value] for status in SessionStatus},
            upcoming_sessions=[
                LiveSessionResponse.from_session(s) for s in upcoming[:UPCOMING_LIMIT]
            ],
            top_instructors=top_instructors,
        )


def _upcoming(sessions: list[LiveSession]) -> list[LiveSession]:
    """Sessions not yet past their start that can still be attended."""
    now = utc_now()
    return [
        s for s in sessions if s.scheduled_at >= now and s.status in JOINABLE_STATUSES
    ]

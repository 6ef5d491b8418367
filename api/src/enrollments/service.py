# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Enrollment service layer.

Business logic for:
- Enrollment requests and admin moderation (approve / reject)
- Lesson completion, quiz attempts and assignment submissions
- Grading and certificates
- Enrollment queries and statistics

Every write to an existing enrollment is a compare-and-set on its
``version``; a lost race raises ``ConcurrentModificationError`` and
nothing is written.
"""

from collections import Counter
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.auth.permissions import Capability, UserRole, has_capability, is_admin
from src.auth.schemas import UserResponse
from src.config.settings import get_settings
from src.core.documents import utc_now
from src.courses.models import Course, Lesson, LessonType
from src.enrollments.models import (
    AssignmentSubmission,
    Enrollment,
    EnrollmentStatus,
    QuizResult,
)
from src.enrollments.schemas import (
    CompleteLessonRequest,
    CourseEnrollmentCount,
    EnrollmentListFilters,
    EnrollmentResponse,
    EnrollmentStatsResponse,
    GradeAssignmentRequest,
    SubmitAssignmentRequest,
    SubmitQuizRequest,
)
from src.notifications.models import NotificationType, ReferenceType


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.auth.service import AuthService
    from src.courses.service import CourseService
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)

RECENT_ENROLLMENTS_LIMIT = 10
TOP_COURSES_LIMIT = 5


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EnrollmentError(Exception):
    """Base enrollment error."""

    def __init__(self, message: str, code: str = "enrollment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class EnrollmentNotFoundError(EnrollmentError):
    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class CourseUnavailableError(EnrollmentError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class AlreadyEnrolledError(EnrollmentError):
    def __init__(self, message: str = "You are already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class EnrollmentAccessError(EnrollmentError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "permission_denied")


class InvalidEnrollmentStateError(EnrollmentError):
    def __init__(self, message: str):
        super().__init__(message, "invalid_state")


class LessonNotFoundError(EnrollmentError):
    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class SubmissionNotFoundError(EnrollmentError):
    def __init__(self, message: str = "Submission not found"):
        super().__init__(message, "submission_not_found")


class InvalidGradeError(EnrollmentError):
    def __init__(self, message: str):
        super().__init__(message, "invalid_grade")


class ConcurrentModificationError(EnrollmentError):
    def __init__(
        self,
        message: str = "Enrollment was modified by another request, please retry",
    ):
        super().__init__(message, "concurrent_modification")


# ==============================================================================
# Service
# ==============================================================================


class EnrollmentService:
    """Service for enrollments and learner progress."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        notification_service: "NotificationService | None" = None,
        auth_service: "AuthService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.notification_service = notification_service
        self.auth_service = auth_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._claim_pair = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user_course
            (user_id, course_id, enrollment_id)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)
        self._release_pair = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_user_course
            WHERE user_id = ? AND course_id = ?
            IF enrollment_id = ?
        """)
        self._get_pair = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollments_by_user_course
            WHERE user_id = ? AND course_id = ?
        """)
        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (id, user_id, course_id, status, progress, completed_lessons,
             quiz_results, assignment_submissions, enrolled_at, approved_at,
             completed_at, certificate_generated, certificate_url,
             total_time_spent, last_accessed_at, notes, version, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_enrollment = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET status = ?, progress = ?, completed_lessons = ?, quiz_results = ?,
                assignment_submissions = ?, approved_at = ?, completed_at = ?,
                certificate_generated = ?, certificate_url = ?,
                total_time_spent = ?, last_accessed_at = ?, notes = ?,
                version = ?, updated_at = ?
            WHERE id = ?
            IF version = ?
        """)
        self._get_enrollment = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE id = ?"
        )
        self._list_by_user = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE user_id = ?"
        )
        self._list_by_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE course_id = ?"
        )
        self._list_by_status = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE status = ?"
        )
        self._list_all = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments"
        )

    # ==========================================================================
    # Persistence
    # ==========================================================================

    async def _insert(self, enrollment: Enrollment) -> None:
        await self.session.aexecute(
            self._insert_enrollment,
            [
                enrollment.id,
                enrollment.user_id,
                enrollment.course_id,
                enrollment.status.value,
                enrollment.progress,
                enrollment.completed_lessons_json,
                enrollment.quiz_results_json,
                enrollment.assignment_submissions_json,
                enrollment.enrolled_at,
                enrollment.approved_at,
                enrollment.completed_at,
                enrollment.certificate_generated,
                enrollment.certificate_url,
                enrollment.total_time_spent,
                enrollment.last_accessed_at,
                enrollment.notes,
                enrollment.version,
                enrollment.updated_at,
            ],
        )

    async def _save(self, enrollment: Enrollment) -> None:
        """Write the enrollment if nobody else saved it since it was read.

        Raises:
            ConcurrentModificationError: If the stored version moved on
        """
        expected = enrollment.version
        now = utc_now()
        result = await self.session.aexecute(
            self._update_enrollment,
            [
                enrollment.status.value,
                enrollment.progress,
                enrollment.completed_lessons_json,
                enrollment.quiz_results_json,
                enrollment.assignment_submissions_json,
                enrollment.approved_at,
                enrollment.completed_at,
                enrollment.certificate_generated,
                enrollment.certificate_url,
                enrollment.total_time_spent,
                enrollment.last_accessed_at,
                enrollment.notes,
                expected + 1,
                now,
                enrollment.id,
                expected,
            ],
        )
        if not result.was_applied:
            logger.warning(
                "enrollment_version_conflict",
                enrollment_id=str(enrollment.id),
                expected_version=expected,
            )
            raise ConcurrentModificationError
        enrollment.version = expected + 1
        enrollment.updated_at = now

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        result = await self.session.aexecute(self._get_enrollment, [enrollment_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def require_enrollment(self, enrollment_id: UUID) -> Enrollment:
        enrollment = await self.get_enrollment(enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError
        return enrollment

    async def get_for_user_course(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        result = await self.session.aexecute(self._get_pair, [user_id, course_id])
        row = result.one()
        if not row:
            return None
        return await self.get_enrollment(row.enrollment_id)

    async def list_for_user(
        self,
        user_id: UUID,
        status: EnrollmentStatus | None = None,
    ) -> list[Enrollment]:
        """A user's enrollments, newest first."""
        rows = await self.session.aexecute(self._list_by_user, [user_id])
        enrollments = [Enrollment.from_row(row) for row in rows]
        if status is not None:
            enrollments = [e for e in enrollments if e.status == status]
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments

    async def list_for_course(self, course_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        enrollments = [Enrollment.from_row(row) for row in rows]
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments

    async def list_pending(self) -> list[Enrollment]:
        """Pending requests, oldest first."""
        rows = await self.session.aexecute(
            self._list_by_status, [EnrollmentStatus.PENDING.value]
        )
        enrollments = [Enrollment.from_row(row) for row in rows]
        enrollments.sort(key=lambda e: e.enrolled_at)
        return enrollments

    async def list_enrollments(self, filters: EnrollmentListFilters) -> list[Enrollment]:
        """Admin listing with filters and sorting applied in memory."""
        if filters.course_id:
            rows = await self.session.aexecute(self._list_by_course, [filters.course_id])
        elif filters.user_id:
            rows = await self.session.aexecute(self._list_by_user, [filters.user_id])
        else:
            rows = await self.session.aexecute(self._list_all)

        enrollments = [Enrollment.from_row(row) for row in rows]
        if filters.status:
            enrollments = [e for e in enrollments if e.status == filters.status]
        if filters.course_id:
            enrollments = [e for e in enrollments if e.course_id == filters.course_id]
        if filters.user_id:
            enrollments = [e for e in enrollments if e.user_id == filters.user_id]

        sort_keys = {
            "enrolled_at": lambda e: e.enrolled_at,
            "progress": lambda e: e.progress,
            "status": lambda e: e.status.value,
        }
        enrollments.sort(
            key=sort_keys[filters.sort_by],
            reverse=filters.sort_order == "desc",
        )
        return enrollments

    async def count_by_status_for_user(self, user_id: UUID) -> dict[str, int]:
        counts = Counter(e.status.value for e in await self.list_for_user(user_id))
        return {status.value: counts.get(status.value, 0) for status in EnrollmentStatus}

    async def has_enrollments(self, course_id: UUID) -> bool:
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return rows.one() is not None

    async def enrolled_user_ids(self, course_id: UUID) -> list[UUID]:
        """Users with an approved or completed enrollment in the course."""
        return [e.user_id for e in await self.list_for_course(course_id) if e.has_access]

    async def get_enrollment_status(
        self, user_id: UUID, course_id: UUID
    ) -> EnrollmentStatus | None:
        enrollment = await self.get_for_user_course(user_id, course_id)
        return enrollment.status if enrollment else None

    # ==========================================================================
    # Access Checks
    # ==========================================================================

    @staticmethod
    def ensure_owner(enrollment: Enrollment, user: UserResponse) -> None:
        if enrollment.user_id != user.id:
            raise EnrollmentAccessError

    @staticmethod
    def ensure_approved(enrollment: Enrollment, action: str) -> None:
        if enrollment.status != EnrollmentStatus.APPROVED:
            raise InvalidEnrollmentStateError(
                f"Enrollment must be approved to {action}"
            )

    def ensure_can_view(
        self, enrollment: Enrollment, course: Course | None, user: UserResponse
    ) -> None:
        """Owner, the course instructor or an admin."""
        if enrollment.user_id == user.id or is_admin(user.role):
            return
        if course is not None and course.is_taught_by(user.id):
            return
        raise EnrollmentAccessError

    def ensure_can_grade(self, course: Course, user: UserResponse) -> None:
        if is_admin(user.role):
            return
        if has_capability(user.role, Capability.GRADE_ASSIGNMENTS) and (
            course.is_taught_by(user.id)
        ):
            return
        raise EnrollmentAccessError

    async def _course_lesson(
        self,
        enrollment: Enrollment,
        module_id: UUID,
        lesson_id: UUID,
        lesson_type: LessonType | None = None,
    ) -> tuple[Course, Lesson]:
        course = await self.course_service.get_course(enrollment.course_id)
        if course is None:
            raise CourseUnavailableError
        found = course.find_lesson(module_id, lesson_id)
        if found is None:
            raise LessonNotFoundError
        _, lesson = found
        if lesson_type is not None and lesson.type != lesson_type:
            raise LessonNotFoundError(f"{lesson_type.value.capitalize()} not found")
        return course, lesson

    # ==========================================================================
    # Enrollment Requests and Moderation
    # ==========================================================================

    async def enroll(
        self, user: UserResponse, course_id: UUID, notes: str = ""
    ) -> Enrollment:
        """Request enrollment in an active course.

        Raises:
            CourseUnavailableError: If the course is missing or inactive
            AlreadyEnrolledError: If the user already has an enrollment
        """
        course = await self.course_service.get_course(course_id)
        if course is None or not course.is_active:
            raise CourseUnavailableError

        enrollment = Enrollment(user_id=user.id, course_id=course_id, notes=notes)
        claimed = await self.session.aexecute(
            self._claim_pair, [user.id, course_id, enrollment.id]
        )
        if not claimed.was_applied:
            raise AlreadyEnrolledError
        try:
            await self._insert(enrollment)
        except Exception as e:
            # A claim must not outlive a failed insert
            logger.error(
                "enrollment_insert_failed",
                enrollment_id=str(enrollment.id),
                user_id=str(user.id),
                course_id=str(course_id),
                error=str(e),
            )
            await self.session.aexecute(
                self._release_pair, [user.id, course_id, enrollment.id]
            )
            raise

        logger.info(
            "enrollment_requested",
            enrollment_id=str(enrollment.id),
            user_id=str(user.id),
            course_id=str(course_id),
        )
        await self._notify_admins(
            "New enrollment request",
            f"{user.name or user.email} requested enrollment in {course.title}",
            enrollment.id,
        )
        return enrollment

    async def approve(self, enrollment_id: UUID, admin: UserResponse) -> Enrollment:
        enrollment = await self.require_enrollment(enrollment_id)
        if not enrollment.can_transition_to(EnrollmentStatus.APPROVED):
            raise InvalidEnrollmentStateError("Only pending enrollments can be approved")

        enrollment.approve()
        await self._save(enrollment)
        try:
            await self.course_service.increment_enrollment_count(enrollment.course_id)
        except Exception as e:
            logger.warning(
                "enrollment_count_increment_failed",
                enrollment_id=str(enrollment.id),
                course_id=str(enrollment.course_id),
                error=str(e),
            )

        logger.info(
            "enrollment_approved",
            enrollment_id=str(enrollment.id),
            admin_id=str(admin.id),
        )
        course = await self.course_service.get_course(enrollment.course_id)
        await self._notify_user(
            enrollment,
            "Enrollment approved",
            f"Your enrollment in {course.title if course else 'the course'} was approved",
            NotificationType.SUCCESS,
        )
        return enrollment

    async def reject(
        self,
        enrollment_id: UUID,
        admin: UserResponse,
        reason: str | None = None,
    ) -> Enrollment:
        enrollment = await self.require_enrollment(enrollment_id)
        if not enrollment.can_transition_to(EnrollmentStatus.REJECTED):
            raise InvalidEnrollmentStateError("Only pending enrollments can be rejected")

        enrollment.reject(reason)
        await self._save(enrollment)

        logger.info(
            "enrollment_rejected",
            enrollment_id=str(enrollment.id),
            admin_id=str(admin.id),
        )
        course = await self.course_service.get_course(enrollment.course_id)
        message = (
            f"Your enrollment in {course.title if course else 'the course'} "
            "was rejected"
        )
        if reason:
            message = f"{message}: {reason}"
        await self._notify_user(
            enrollment,
            "Enrollment rejected",
            message,
            NotificationType.WARNING,
        )
        return enrollment

    # ==========================================================================
    # Learning
    # ==========================================================================

    async def complete_lesson(
        self,
        enrollment_id: UUID,
        user: UserResponse,
        data: CompleteLessonRequest,
    ) -> Enrollment:
        enrollment = await self.require_enrollment(enrollment_id)
        self.ensure_owner(enrollment, user)
        self.ensure_approved(enrollment, "complete lessons")
        previous_status = enrollment.status
        course, _ = await self._course_lesson(enrollment, data.module_id, data.lesson_id)

        added = enrollment.complete_lesson(
            data.module_id,
            data.lesson_id,
            total_lessons=course.total_lessons,
            time_spent=data.time_spent,
        )
        await self._save(enrollment)

        logger.info(
            "lesson_completed",
            enrollment_id=str(enrollment.id),
            lesson_id=str(data.lesson_id),
            new=added,
            progress=enrollment.progress,
        )
        await self._after_progress(enrollment, course, previous_status)
        return enrollment

    async def submit_quiz(
        self,
        enrollment_id: UUID,
        user: UserResponse,
        data: SubmitQuizRequest,
    ) -> tuple[Enrollment, QuizResult, int]:
        """Score a quiz attempt; a pass also completes the lesson.

        Returns:
            (enrollment, attempt result, passing score)
        """
        enrollment = await self.require_enrollment(enrollment_id)
        self.ensure_owner(enrollment, user)
        self.ensure_approved(enrollment, "submit quizzes")
        previous_status = enrollment.status
        course, lesson = await self._course_lesson(
            enrollment, data.module_id, data.lesson_id, LessonType.QUIZ
        )

        quiz = lesson.quiz
        passing_score = (
            quiz.passing_score
            if quiz.passing_score is not None
            else get_settings().default_passing_score
        )
        result = enrollment.record_quiz_attempt(
            data.module_id,
            data.lesson_id,
            correct_answers=[q.correct_answer for q in quiz.questions],
            answers=data.answers,
            passing_score=passing_score,
            time_spent=data.time_spent,
        )
        if result.passed:
            enrollment.complete_lesson(
                data.module_id,
                data.lesson_id,
                total_lessons=course.total_lessons,
                time_spent=data.time_spent,
            )
        await self._save(enrollment)

        logger.info(
            "quiz_submitted",
            enrollment_id=str(enrollment.id),
            lesson_id=str(data.lesson_id),
            attempt=result.attempt,
            score=result.score,
            passed=result.passed,
        )
        await self._after_progress(enrollment, course, previous_status)
        return enrollment, result, passing_score

    async def submit_assignment(
        self,
        enrollment_id: UUID,
        user: UserResponse,
        data: SubmitAssignmentRequest,
    ) -> tuple[Enrollment, int, AssignmentSubmission]:
        """Record an assignment submission.

        Returns:
            (enrollment, submission index, submission)
        """
        enrollment = await self.require_enrollment(enrollment_id)
        self.ensure_owner(enrollment, user)
        self.ensure_approved(enrollment, "submit assignments")
        course, _ = await self._course_lesson(
            enrollment, data.module_id, data.lesson_id, LessonType.ASSIGNMENT
        )

        submission = enrollment.submit_assignment(
            data.module_id,
            data.lesson_id,
            files=data.files,
            submission_text=data.submission_text,
        )
        await self._save(enrollment)
        index = len(enrollment.assignment_submissions) - 1

        logger.info(
            "assignment_submitted",
            enrollment_id=str(enrollment.id),
            lesson_id=str(data.lesson_id),
            files=len(data.files),
        )
        if course.instructor_id and self.notification_service:
            await self.notification_service.notify(
                course.instructor_id,
                "New assignment submission",
                f"{user.name or user.email} submitted an assignment in {course.title}",
                reference_type=ReferenceType.ENROLLMENT,
                reference_id=enrollment.id,
            )
        return enrollment, index, submission

    async def grade_assignment(
        self,
        enrollment_id: UUID,
        index: int,
        data: GradeAssignmentRequest,
        grader: UserResponse,
    ) -> Enrollment:
        """Grade a submission (course instructor or admin).

        Raises:
            SubmissionNotFoundError: If ``index`` is out of range
            InvalidGradeError: If the score exceeds the assignment's max score
        """
        enrollment = await self.require_enrollment(enrollment_id)
        if not 0 <= index < len(enrollment.assignment_submissions):
            raise SubmissionNotFoundError
        submission = enrollment.assignment_submissions[index]

        course, lesson = await self._course_lesson(
            enrollment, submission.module_id, submission.lesson_id
        )
        self.ensure_can_grade(course, grader)

        max_score = lesson.assignment.max_score if lesson.assignment else 100
        if data.score > max_score:
            raise InvalidGradeError(f"Score must be between 0 and {max_score}")

        enrollment.grade_assignment(index, data.score, data.feedback, grader.id)
        await self._save(enrollment)

        logger.info(
            "assignment_graded",
            enrollment_id=str(enrollment.id),
            index=index,
            score=data.score,
            grader_id=str(grader.id),
        )
        await self._notify_user(
            enrollment,
            "Assignment graded",
            f"Your assignment in {course.title} was graded: {data.score}/{max_score}",
            NotificationType.SUCCESS,
        )
        return enrollment

    async def generate_certificate(
        self, enrollment_id: UUID, user: UserResponse
    ) -> Enrollment:
        """Issue the certificate of a completed enrollment.

        Calling it again returns the already issued certificate.
        """
        enrollment = await self.require_enrollment(enrollment_id)
        if enrollment.user_id != user.id and not is_admin(user.role):
            raise EnrollmentAccessError
        if enrollment.status != EnrollmentStatus.COMPLETED:
            raise InvalidEnrollmentStateError(
                "Course must be completed to generate a certificate"
            )

        if enrollment.generate_certificate(get_settings().certificate_url_prefix):
            await self._save(enrollment)
            logger.info(
                "certificate_generated",
                enrollment_id=str(enrollment.id),
                url=enrollment.certificate_url,
            )
        return enrollment

    async def _after_progress(
        self,
        enrollment: Enrollment,
        course: Course,
        previous_status: EnrollmentStatus,
    ) -> None:
        """Announce a course completion reached by the last save."""
        if previous_status == enrollment.status:
            return
        logger.info(
            "enrollment_completed",
            enrollment_id=str(enrollment.id),
            course_id=str(course.id),
        )
        await self._notify_user(
            enrollment,
            "Course completed",
            f"Congratulations, you completed {course.title}",
            NotificationType.SUCCESS,
        )

    # ==========================================================================
    # Notifications
    # ==========================================================================

    async def _notify_user(
        self,
        enrollment: Enrollment,
        title: str,
        message: str,
        notification_type: NotificationType,
    ) -> None:
        if self.notification_service is None:
            return
        await self.notification_service.notify(
            enrollment.user_id,
            title,
            message,
            notification_type=notification_type,
            reference_type=ReferenceType.ENROLLMENT,
            reference_id=enrollment.id,
        )

    async def _notify_admins(self, title: str, message: str, enrollment_id: UUID) -> None:
        if self.notification_service is None or self.auth_service is None:
            return
        admins = await self.auth_service.list_users_by_role(UserRole.ADMIN)
        await self.notification_service.notify_many(
            [admin.id for admin in admins],
            title,
            message,
            reference_type=ReferenceType.ENROLLMENT,
            reference_id=enrollment_id,
        )

    # ==========================================================================
    # Statistics
    # ==========================================================================

    async def get_stats(self) -> EnrollmentStatsResponse:
        rows = await self.session.aexecute(self._list_all)
        enrollments = [Enrollment.from_row(row) for row in rows]
        counts = Counter(e.status for e in enrollments)

        recent = sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)
        per_course = Counter(e.course_id for e in enrollments if e.has_access)
        top_courses = []
        for course_id, count in per_course.most_common(TOP_COURSES_LIMIT):
            course = await self.course_service.get_course(course_id)
            top_courses.append(
                CourseEnrollmentCount(
                    course_id=course_id,
                    title=course.title if course else "",
                    enrollment_count=count,
                )
            )

        return EnrollmentStatsResponse(
            total_enrollments=len(enrollments),
            pending_enrollments=counts[EnrollmentStatus.PENDING],
            approved_enrollments=counts[EnrollmentStatus.APPROVED],
            completed_enrollments=counts[EnrollmentStatus.COMPLETED],
            rejected_enrollments=counts[EnrollmentStatus.REJECTED],
            recent_enrollments=[
                EnrollmentResponse.from_enrollment(e)
                for e in recent[:RECENT_ENROLLMENTS_LIMIT]
            ],
            top_courses=top_courses,
        )

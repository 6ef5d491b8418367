"""Tests for EnrollmentService with a mocked Cassandra session."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from src.courses.models import (
    Course,
    CourseModule,
    Lesson,
    LessonType,
    Quiz,
    QuizQuestion,
)
from src.enrollments.models import Enrollment, EnrollmentStatus
from src.enrollments.schemas import CompleteLessonRequest, SubmitQuizRequest
from src.enrollments.service import (
    AlreadyEnrolledError,
    ConcurrentModificationError,
    CourseUnavailableError,
    EnrollmentAccessError,
    EnrollmentNotFoundError,
    EnrollmentService,
    InvalidEnrollmentStateError,
    LessonNotFoundError,
)


def enrollment_row(enrollment: Enrollment) -> SimpleNamespace:
    """Cassandra row for an enrollment."""
    return SimpleNamespace(
        id=enrollment.id,
        user_id=enrollment.user_id,
        course_id=enrollment.course_id,
        status=enrollment.status.value,
        progress=enrollment.progress,
        completed_lessons=enrollment.completed_lessons_json,
        quiz_results=enrollment.quiz_results_json,
        assignment_submissions=enrollment.assignment_submissions_json,
        enrolled_at=enrollment.enrolled_at,
        approved_at=enrollment.approved_at,
        completed_at=enrollment.completed_at,
        certificate_generated=enrollment.certificate_generated,
        certificate_url=enrollment.certificate_url,
        total_time_spent=enrollment.total_time_spent,
        last_accessed_at=enrollment.last_accessed_at,
        notes=enrollment.notes,
        version=enrollment.version,
        updated_at=enrollment.updated_at,
    )


def found(row) -> Mock:
    result = Mock()
    result.one.return_value = row
    return result


def applied(value: bool = True) -> Mock:
    return Mock(was_applied=value)


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def quiz_lesson() -> Lesson:
    return Lesson(
        title="Checkpoint",
        type=LessonType.QUIZ,
        quiz=Quiz(
            questions=[
                QuizQuestion(question=f"Q{i}", options=["a", "b", "c"], correct_answer=1)
                for i in range(4)
            ]
        ),
    )


@pytest.fixture
def course(instructor, quiz_lesson) -> Course:
    """Active course with one module of four text lessons and a quiz."""
    lessons = [Lesson(title=f"Lesson {i}", type=LessonType.TEXT) for i in range(4)]
    return Course(
        title="Intro to Python",
        description="A gentle introduction to programming with Python.",
        instructor_id=instructor.id,
        modules=[CourseModule(title="Basics", lessons=[*lessons, quiz_lesson])],
    )


@pytest.fixture
def course_service(course):
    service = MagicMock()
    service.get_course = AsyncMock(return_value=course)
    service.increment_enrollment_count = AsyncMock()
    return service


@pytest.fixture
def notification_service():
    service = MagicMock()
    service.notify = AsyncMock()
    service.notify_many = AsyncMock(return_value=0)
    return service


@pytest.fixture
def enrollment_service(mock_session, course_service, notification_service):
    return EnrollmentService(
        session=mock_session,
        keyspace="test_keyspace",
        course_service=course_service,
        notification_service=notification_service,
    )


@pytest.fixture
def approved_enrollment(student, course) -> Enrollment:
    enrollment = Enrollment(user_id=student.id, course_id=course.id, version=4)
    enrollment.approve()
    return enrollment


class TestEnroll:
    """Tests for enrollment requests."""

    @pytest.mark.asyncio
    async def test_enroll_creates_pending_enrollment(
        self, enrollment_service, mock_session, student, course
    ):
        mock_session.aexecute.side_effect = [applied(True), Mock()]

        enrollment = await enrollment_service.enroll(student, course.id, "Evenings")

        assert enrollment.status == EnrollmentStatus.PENDING
        assert enrollment.user_id == student.id
        assert enrollment.notes == "Evenings"
        assert mock_session.aexecute.call_count == 2
        claim_params = mock_session.aexecute.call_args_list[0].args[1]
        assert claim_params == [student.id, course.id, enrollment.id]

    @pytest.mark.asyncio
    async def test_duplicate_enrollment_is_refused(
        self, enrollment_service, mock_session, student, course
    ):
        mock_session.aexecute.return_value = applied(False)

        with pytest.raises(AlreadyEnrolledError):
            await enrollment_service.enroll(student, course.id)

        # Only the uniqueness claim ran; no enrollment row was written
        assert mock_session.aexecute.call_count == 1

    @pytest.mark.asyncio
    async def test_failed_insert_releases_claim(
        self, enrollment_service, mock_session, student, course
    ):
        mock_session.aexecute.side_effect = [
            applied(True),
            RuntimeError("write timeout"),
            applied(True),
        ]

        with pytest.raises(RuntimeError, match="write timeout"):
            await enrollment_service.enroll(student, course.id)

        assert mock_session.aexecute.call_count == 3
        claim_params = mock_session.aexecute.call_args_list[0].args[1]
        release_params = mock_session.aexecute.call_args_list[2].args[1]
        # The claim is removed only if it still names this request's enrollment
        assert release_params == claim_params

        # A retry can claim the pair again
        mock_session.aexecute.side_effect = [applied(True), Mock()]
        enrollment = await enrollment_service.enroll(student, course.id)
        assert enrollment.status == EnrollmentStatus.PENDING

    @pytest.mark.asyncio
    async def test_inactive_course(
        self, enrollment_service, course_service, mock_session, student, course
    ):
        course.is_active = False

        with pytest.raises(CourseUnavailableError):
            await enrollment_service.enroll(student, course.id)
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_course(
        self, enrollment_service, course_service, student
    ):
        course_service.get_course.return_value = None

        with pytest.raises(CourseUnavailableError):
            await enrollment_service.enroll(student, uuid4())


class TestModeration:
    @pytest.mark.asyncio
    async def test_approve_pending(
        self,
        enrollment_service,
        mock_session,
        course_service,
        notification_service,
        student,
        admin,
        course,
    ):
        pending = Enrollment(user_id=student.id, course_id=course.id)
        mock_session.aexecute.side_effect = [found(enrollment_row(pending)), applied()]

        enrollment = await enrollment_service.approve(pending.id, admin)

        assert enrollment.status == EnrollmentStatus.APPROVED
        assert enrollment.version == 1
        course_service.increment_enrollment_count.assert_awaited_once_with(course.id)
        notification_service.notify.assert_awaited_once()
        assert notification_service.notify.call_args.args[0] == student.id

    @pytest.mark.asyncio
    async def test_approve_survives_counter_failure(
        self,
        enrollment_service,
        mock_session,
        course_service,
        notification_service,
        student,
        admin,
        course,
    ):
        pending = Enrollment(user_id=student.id, course_id=course.id)
        mock_session.aexecute.side_effect = [found(enrollment_row(pending)), applied()]
        course_service.increment_enrollment_count.side_effect = RuntimeError("timeout")

        enrollment = await enrollment_service.approve(pending.id, admin)

        assert enrollment.status == EnrollmentStatus.APPROVED
        course_service.increment_enrollment_count.assert_awaited_once_with(course.id)
        notification_service.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_approve_twice_is_refused(
        self, enrollment_service, mock_session, approved_enrollment, admin
    ):
        mock_session.aexecute.return_value = found(enrollment_row(approved_enrollment))

        with pytest.raises(InvalidEnrollmentStateError):
            await enrollment_service.approve(approved_enrollment.id, admin)

    @pytest.mark.asyncio
    async def test_missing_enrollment(self, enrollment_service, mock_session, admin):
        mock_session.aexecute.return_value = found(None)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.reject(uuid4(), admin, "No seats")


class TestCompleteLesson:
    """Tests for lesson completion through the service."""

    @pytest.mark.asyncio
    async def test_complete_lesson_saves_with_version_check(
        self, enrollment_service, mock_session, approved_enrollment, student, course
    ):
        module = course.modules[0]
        mock_session.aexecute.side_effect = [
            found(enrollment_row(approved_enrollment)),
            applied(),
        ]

        enrollment = await enrollment_service.complete_lesson(
            approved_enrollment.id,
            student,
            CompleteLessonRequest(module_id=module.id, lesson_id=module.lessons[0].id),
        )

        assert enrollment.progress == 20
        assert enrollment.version == 5
        params = mock_session.aexecute.call_args_list[1].args[1]
        assert params[-1] == 4  # IF version = expected
        assert params[-4] == 5  # new version

    @pytest.mark.asyncio
    async def test_lost_race_raises_conflict(
        self, enrollment_service, mock_session, approved_enrollment, student, course
    ):
        module = course.modules[0]
        mock_session.aexecute.side_effect = [
            found(enrollment_row(approved_enrollment)),
            applied(False),
        ]

        with pytest.raises(ConcurrentModificationError):
            await enrollment_service.complete_lesson(
                approved_enrollment.id,
                student,
                CompleteLessonRequest(
                    module_id=module.id, lesson_id=module.lessons[0].id
                ),
            )

    @pytest.mark.asyncio
    async def test_other_users_enrollment(
        self, enrollment_service, mock_session, approved_enrollment, mock_user_factory
    ):
        mock_session.aexecute.return_value = found(enrollment_row(approved_enrollment))
        intruder = mock_user_factory()

        with pytest.raises(EnrollmentAccessError):
            await enrollment_service.complete_lesson(
                approved_enrollment.id,
                intruder,
                CompleteLessonRequest(module_id=uuid4(), lesson_id=uuid4()),
            )

    @pytest.mark.asyncio
    async def test_pending_enrollment(
        self, enrollment_service, mock_session, student, course
    ):
        pending = Enrollment(user_id=student.id, course_id=course.id)
        mock_session.aexecute.return_value = found(enrollment_row(pending))

        with pytest.raises(InvalidEnrollmentStateError, match="must be approved"):
            await enrollment_service.complete_lesson(
                pending.id,
                student,
                CompleteLessonRequest(module_id=uuid4(), lesson_id=uuid4()),
            )

    @pytest.mark.asyncio
    async def test_unknown_lesson(
        self, enrollment_service, mock_session, approved_enrollment, student, course
    ):
        mock_session.aexecute.return_value = found(enrollment_row(approved_enrollment))

        with pytest.raises(LessonNotFoundError):
            await enrollment_service.complete_lesson(
                approved_enrollment.id,
                student,
                CompleteLessonRequest(module_id=course.modules[0].id, lesson_id=uuid4()),
            )

    @pytest.mark.asyncio
    async def test_last_lesson_notifies_completion(
        self,
        enrollment_service,
        mock_session,
        notification_service,
        approved_enrollment,
        student,
        course,
    ):
        module = course.modules[0]
        for lesson in module.lessons[:-1]:
            approved_enrollment.complete_lesson(module.id, lesson.id, total_lessons=5)
        mock_session.aexecute.side_effect = [
            found(enrollment_row(approved_enrollment)),
            applied(),
        ]

        enrollment = await enrollment_service.complete_lesson(
            approved_enrollment.id,
            student,
            CompleteLessonRequest(module_id=module.id, lesson_id=module.lessons[-1].id),
        )

        assert enrollment.status == EnrollmentStatus.COMPLETED
        assert enrollment.progress == 100
        notification_service.notify.assert_awaited_once()
        assert notification_service.notify.call_args.args[1] == "Course completed"


class TestSubmitQuiz:
    @pytest.mark.asyncio
    async def test_passing_attempt_completes_lesson(
        self,
        enrollment_service,
        mock_session,
        approved_enrollment,
        student,
        course,
        quiz_lesson,
    ):
        module = course.modules[0]
        mock_session.aexecute.side_effect = [
            found(enrollment_row(approved_enrollment)),
            applied(),
        ]

        enrollment, result, passing_score = await enrollment_service.submit_quiz(
            approved_enrollment.id,
            student,
            SubmitQuizRequest(
                module_id=module.id,
                lesson_id=quiz_lesson.id,
                answers=[1, 1, 1, 0],
                time_spent=4,
            ),
        )

        assert passing_score == 70  # platform default
        assert result.score == 75
        assert result.passed is True
        assert enrollment.has_completed(module.id, quiz_lesson.id)
        assert enrollment.progress == 20

    @pytest.mark.asyncio
    async def test_failing_attempt_is_kept_without_completion(
        self,
        enrollment_service,
        mock_session,
        approved_enrollment,
        student,
        course,
        quiz_lesson,
    ):
        module = course.modules[0]
        mock_session.aexecute.side_effect = [
            found(enrollment_row(approved_enrollment)),
            applied(),
        ]

        enrollment, result, _ = await enrollment_service.submit_quiz(
            approved_enrollment.id,
            student,
            SubmitQuizRequest(
                module_id=module.id,
                lesson_id=quiz_lesson.id,
                answers=[1, 0, 0, 0],
                time_spent=4,
            ),
        )

        assert result.passed is False
        assert len(enrollment.quiz_results) == 1
        assert enrollment.completed_lessons == []
        assert enrollment.progress == 0

    @pytest.mark.asyncio
    async def test_quiz_passing_score_overrides_default(
        self,
        enrollment_service,
        mock_session,
        approved_enrollment,
        student,
        course,
        quiz_lesson,
    ):
        quiz_lesson.quiz.passing_score = 80
        module = course.modules[0]
        mock_session.aexecute.side_effect = [
            found(enrollment_row(approved_enrollment)),
            applied(),
        ]

        _, result, passing_score = await enrollment_service.submit_quiz(
            approved_enrollment.id,
            student,
            SubmitQuizRequest(
                module_id=module.id,
                lesson_id=quiz_lesson.id,
                answers=[1, 1, 1, 0],
                time_spent=4,
            ),
        )

        assert passing_score == 80
        assert result.passed is False

    @pytest.mark.asyncio
    async def test_text_lesson_is_not_a_quiz(
        self, enrollment_service, mock_session, approved_enrollment, student, course
    ):
        module = course.modules[0]
        mock_session.aexecute.return_value = found(enrollment_row(approved_enrollment))

        with pytest.raises(LessonNotFoundError, match="Quiz not found"):
            await enrollment_service.submit_quiz(
                approved_enrollment.id,
                student,
                SubmitQuizRequest(
                    module_id=module.id,
                    lesson_id=module.lessons[0].id,
                    answers=[1],
                    time_spent=1,
                ),
            )


class TestCertificate:
    @pytest.mark.asyncio
    async def test_requires_completion(
        self, enrollment_service, mock_session, approved_enrollment, student
    ):
        mock_session.aexecute.return_value = found(enrollment_row(approved_enrollment))

        with pytest.raises(InvalidEnrollmentStateError):
            await enrollment_service.generate_certificate(
                approved_enrollment.id, student
            )

    @pytest.mark.asyncio
    async def test_second_call_returns_issued_certificate(
        self, enrollment_service, mock_session, approved_enrollment, student
    ):
        approved_enrollment.status = EnrollmentStatus.COMPLETED
        approved_enrollment.generate_certificate()
        mock_session.aexecute.return_value = found(enrollment_row(approved_enrollment))

        enrollment = await enrollment_service.generate_certificate(
            approved_enrollment.id, student
        )

        assert enrollment.certificate_url == approved_enrollment.certificate_url
        # Read only, nothing saved
        assert mock_session.aexecute.call_count == 1

"""Database models for course enrollments.

Cassandra table definitions for:
- Enrollments: one row per (user, course) with embedded learning records
- Enrollment lookup: (user_id, course_id) -> enrollment id, claimed with
  ``IF NOT EXISTS`` so a user cannot enroll twice

Every enrollment row carries a ``version`` that saves compare-and-set with a
lightweight transaction.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.core.documents import (
    dump_documents,
    ensure_utc_aware,
    load_documents,
    utc_now,
)


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle status."""

    PENDING = "pending"  # Waiting for admin review
    APPROVED = "approved"  # Learning
    REJECTED = "rejected"
    COMPLETED = "completed"  # Every lesson done


ALLOWED_TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.PENDING: frozenset(
        {EnrollmentStatus.APPROVED, EnrollmentStatus.REJECTED}
    ),
    EnrollmentStatus.APPROVED: frozenset({EnrollmentStatus.COMPLETED}),
    EnrollmentStatus.REJECTED: frozenset(),
    EnrollmentStatus.COMPLETED: frozenset(),
}

# Statuses that grant access to course content
ACCESS_STATUSES = frozenset({EnrollmentStatus.APPROVED, EnrollmentStatus.COMPLETED})


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    GRADED = "graded"
    RETURNED = "returned"


def round_half_up(value: float | Decimal) -> int:
    """Round .5 away from zero for non-negative values (12.5 -> 13)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage of ``part`` in ``whole``, capped at 100."""
    if whole <= 0:
        return 0
    return min(100, round_half_up(Decimal(part) * 100 / Decimal(whole)))


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    id UUID PRIMARY KEY,
    user_id UUID,
    course_id UUID,
    status TEXT,
    progress INT,
    completed_lessons TEXT,
    quiz_results TEXT,
    assignment_submissions TEXT,
    enrolled_at TIMESTAMP,
    approved_at TIMESTAMP,
    completed_at TIMESTAMP,
    certificate_generated BOOLEAN,
    certificate_url TEXT,
    total_time_spent INT,
    last_accessed_at TIMESTAMP,
    notes TEXT,
    version INT,
    updated_at TIMESTAMP
)
"""

# Uniqueness of (user, course); claimed with INSERT ... IF NOT EXISTS
ENROLLMENTS_BY_USER_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user_course (
    user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    PRIMARY KEY (user_id, course_id)
)
"""

ENROLLMENTS_USER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_user_idx ON {keyspace}.enrollments (user_id)
"""

ENROLLMENTS_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_course_idx ON {keyspace}.enrollments (course_id)
"""

ENROLLMENTS_STATUS_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_status_idx ON {keyspace}.enrollments (status)
"""

ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_COURSE_TABLE_CQL,
    ENROLLMENTS_USER_INDEX_CQL,
    ENROLLMENTS_COURSE_INDEX_CQL,
    ENROLLMENTS_STATUS_INDEX_CQL,
]


# ==============================================================================
# Embedded Records
# ==============================================================================


class CompletedLesson(BaseModel):
    module_id: UUID
    lesson_id: UUID
    completed_at: datetime = Field(default_factory=utc_now)
    time_spent: int = Field(0, ge=0, description="Minutes")


class QuizAnswer(BaseModel):
    question_index: int
    selected_answer: int
    is_correct: bool


class QuizResult(BaseModel):
    module_id: UUID
    lesson_id: UUID
    attempt: int = 1
    score: int
    total_questions: int
    correct_answers: int
    time_spent: int
    answers: list[QuizAnswer] = Field(default_factory=list)
    passed: bool
    attempted_at: datetime = Field(default_factory=utc_now)


class SubmittedFile(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    original_name: str = Field(..., min_length=1, max_length=255)
    path: str = Field(..., min_length=1, max_length=500)
    size: int = Field(..., ge=0, description="Bytes")
    uploaded_at: datetime = Field(default_factory=utc_now)


class AssignmentGrade(BaseModel):
    score: int = Field(..., ge=0)
    feedback: str = ""
    graded_at: datetime = Field(default_factory=utc_now)
    graded_by: UUID


class AssignmentSubmission(BaseModel):
    module_id: UUID
    lesson_id: UUID
    files: list[SubmittedFile] = Field(default_factory=list)
    submission_text: str = ""
    submitted_at: datetime = Field(default_factory=utc_now)
    grade: AssignmentGrade | None = None
    status: SubmissionStatus = SubmissionStatus.SUBMITTED


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """A user's enrollment in a course.

    Progress is derived from ``completed_lessons`` and is never set directly.

    Attributes:
        id: Unique identifier
        user_id, course_id: The enrolled pair (unique)
        status: Lifecycle status (see ``ALLOWED_TRANSITIONS``)
        progress: Percentage of course lessons completed
        completed_lessons: One record per distinct (module, lesson)
        quiz_results: Every quiz attempt, oldest first
        assignment_submissions: Submissions, oldest first
        total_time_spent: Minutes, summed over completed lessons
        version: Optimistic concurrency token
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        id: UUID | None = None,
        status: str = EnrollmentStatus.PENDING.value,
        progress: int = 0,
        completed_lessons: list[CompletedLesson] | None = None,
        quiz_results: list[QuizResult] | None = None,
        assignment_submissions: list[AssignmentSubmission] | None = None,
        enrolled_at: datetime | None = None,
        approved_at: datetime | None = None,
        completed_at: datetime | None = None,
        certificate_generated: bool = False,
        certificate_url: str | None = None,
        total_time_spent: int = 0,
        last_accessed_at: datetime | None = None,
        notes: str = "",
        version: int = 0,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.course_id = course_id
        self.status = EnrollmentStatus(status)
        self.progress = progress or 0
        self.completed_lessons = list(completed_lessons or [])
        self.quiz_results = list(quiz_results or [])
        self.assignment_submissions = list(assignment_submissions or [])
        self.enrolled_at = ensure_utc_aware(enrolled_at) or utc_now()
        self.approved_at = ensure_utc_aware(approved_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.certificate_generated = bool(certificate_generated)
        self.certificate_url = certificate_url
        self.total_time_spent = total_time_spent or 0
        self.last_accessed_at = ensure_utc_aware(last_accessed_at) or self.enrolled_at
        self.notes = notes or ""
        self.version = version or 0
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            id=row.id,
            user_id=row.user_id,
            course_id=row.course_id,
            status=row.status,
            progress=row.progress,
            completed_lessons=load_documents(CompletedLesson, row.completed_lessons),
            quiz_results=load_documents(QuizResult, row.quiz_results),
            assignment_submissions=load_documents(
                AssignmentSubmission, row.assignment_submissions
            ),
            enrolled_at=row.enrolled_at,
            approved_at=row.approved_at,
            completed_at=row.completed_at,
            certificate_generated=row.certificate_generated,
            certificate_url=row.certificate_url,
            total_time_spent=row.total_time_spent,
            last_accessed_at=row.last_accessed_at,
            notes=row.notes,
            version=row.version,
            updated_at=row.updated_at,
        )

    @property
    def completed_lessons_json(self) -> str:
        return dump_documents(CompletedLesson, self.completed_lessons)

    @property
    def quiz_results_json(self) -> str:
        return dump_documents(QuizResult, self.quiz_results)

    @property
    def assignment_submissions_json(self) -> str:
        return dump_documents(AssignmentSubmission, self.assignment_submissions)

    @property
    def has_access(self) -> bool:
        return self.status in ACCESS_STATUSES

    # ==========================================================================
    # State Machine
    # ==========================================================================

    def can_transition_to(self, target: EnrollmentStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def _transition(self, target: EnrollmentStatus) -> None:
        if not self.can_transition_to(target):
            msg = f"Cannot move enrollment from {self.status.value} to {target.value}"
            raise ValueError(msg)
        self.status = target

    def approve(self) -> None:
        self._transition(EnrollmentStatus.APPROVED)
        self.approved_at = utc_now()

    def reject(self, reason: str | None = None) -> None:
        self._transition(EnrollmentStatus.REJECTED)
        if reason:
            self.notes = reason

    # ==========================================================================
    # Learning Records
    # ==========================================================================

    def has_completed(self, module_id: UUID, lesson_id: UUID) -> bool:
        return any(
            c.module_id == module_id and c.lesson_id == lesson_id
            for c in self.completed_lessons
        )

    def recompute_progress(self, total_lessons: int) -> None:
        """Derive progress from completed lessons.

        An approved enrollment reaching 100 becomes completed.
        """
        self.progress = percentage(len(self.completed_lessons), total_lessons)
        if self.progress == 100 and self.status == EnrollmentStatus.APPROVED:
            self.status = EnrollmentStatus.COMPLETED
            self.completed_at = utc_now()

    def complete_lesson(
        self,
        module_id: UUID,
        lesson_id: UUID,
        total_lessons: int,
        time_spent: int = 0,
    ) -> bool:
        """Record a lesson completion.

        A repeated (module, lesson) pair changes neither the list nor the
        time spent. Progress is recomputed either way.

        Returns:
            True if the lesson was newly completed
        """
        added = not self.has_completed(module_id, lesson_id)
        if added:
            self.completed_lessons.append(
                CompletedLesson(
                    module_id=module_id,
                    lesson_id=lesson_id,
                    time_spent=time_spent,
                )
            )
            self.total_time_spent += time_spent
            self.last_accessed_at = utc_now()
        self.recompute_progress(total_lessons)
        return added

    def quiz_attempts(self, module_id: UUID, lesson_id: UUID) -> list[QuizResult]:
        return [
            r
            for r in self.quiz_results
            if r.module_id == module_id and r.lesson_id == lesson_id
        ]

    def best_quiz_result(self, module_id: UUID, lesson_id: UUID) -> QuizResult | None:
        """Highest scoring attempt; the earliest wins a tie."""
        attempts = self.quiz_attempts(module_id, lesson_id)
        if not attempts:
            return None
        return max(attempts, key=lambda r: (r.score, -r.attempt))

    def record_quiz_attempt(
        self,
        module_id: UUID,
        lesson_id: UUID,
        correct_answers: list[int],
        answers: list[int],
        passing_score: int,
        time_spent: int,
    ) -> QuizResult:
        """Score ``answers`` against ``correct_answers`` and keep the attempt.

        Answers are matched to questions by position; extra answers never
        count as correct.
        """
        scored = [
            QuizAnswer(
                question_index=index,
                selected_answer=answer,
                is_correct=index < len(correct_answers)
                and correct_answers[index] == answer,
            )
            for index, answer in enumerate(answers)
        ]
        correct = sum(1 for a in scored if a.is_correct)
        score = percentage(correct, len(correct_answers))
        result = QuizResult(
            module_id=module_id,
            lesson_id=lesson_id,
            attempt=len(self.quiz_attempts(module_id, lesson_id)) + 1,
            score=score,
            total_questions=len(correct_answers),
            correct_answers=correct,
            time_spent=time_spent,
            answers=scored,
            passed=score >= passing_score,
        )
        self.quiz_results.append(result)
        self.last_accessed_at = utc_now()
        return result

    def submit_assignment(
        self,
        module_id: UUID,
        lesson_id: UUID,
        files: list[SubmittedFile],
        submission_text: str = "",
    ) -> AssignmentSubmission:
        submission = AssignmentSubmission(
            module_id=module_id,
            lesson_id=lesson_id,
            files=files,
            submission_text=submission_text,
        )
        self.assignment_submissions.append(submission)
        self.last_accessed_at = utc_now()
        return submission

    def grade_assignment(
        self,
        index: int,
        score: int,
        feedback: str,
        graded_by: UUID,
    ) -> AssignmentSubmission:
        """Grade the submission at ``index``.

        Raises:
            IndexError: If there is no such submission
        """
        submission = self.assignment_submissions[index]
        submission.grade = AssignmentGrade(
            score=score,
            feedback=feedback,
            graded_by=graded_by,
        )
        submission.status = SubmissionStatus.GRADED
        return submission

    def generate_certificate(self, url_prefix: str = "/certificates") -> bool:
        """Issue the certificate once the course is completed.

        Returns:
            True if a certificate was issued by this call
        """
        if self.status != EnrollmentStatus.COMPLETED or self.certificate_generated:
            return False
        stamp = int(utc_now().timestamp() * 1000)
        self.certificate_generated = True
        self.certificate_url = (
            f"{url_prefix.rstrip('/')}/{self.user_id}_{self.course_id}_{stamp}.pdf"
        )
        return True

    def __repr__(self) -> str:
        return (
            f"<Enrollment {self.id} user={self.user_id} course={self.course_id} "
            f"status={self.status.value} progress={self.progress}>"
        )

"""Pydantic schemas for enrollments.

Request and response models for:
- Enrollment requests and admin moderation
- Lesson completion, quizzes and assignments
- Certificates and statistics
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from src.enrollments.models import (
    AssignmentSubmission,
    CompletedLesson,
    Enrollment,
    EnrollmentStatus,
    QuizResult,
    SubmittedFile,
)


# ==============================================================================
# Requests
# ==============================================================================


class EnrollRequest(BaseModel):
    course_id: UUID
    notes: str = Field("", max_length=500)


class RejectRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class CompleteLessonRequest(BaseModel):
    module_id: UUID
    lesson_id: UUID
    time_spent: int = Field(0, ge=0, description="Minutes")


class SubmitQuizRequest(BaseModel):
    module_id: UUID
    lesson_id: UUID
    answers: list[int] = Field(..., description="Selected option per question")
    time_spent: int = Field(..., ge=1, description="Minutes")


class SubmitAssignmentRequest(BaseModel):
    module_id: UUID
    lesson_id: UUID
    files: list[SubmittedFile] = Field(default_factory=list)
    submission_text: str = Field("", max_length=10000)

    @model_validator(mode="after")
    def check_not_empty(self) -> "SubmitAssignmentRequest":
        if not self.files and not self.submission_text.strip():
            msg = "Provide at least one file or a submission text"
            raise ValueError(msg)
        return self


class GradeAssignmentRequest(BaseModel):
    score: int = Field(..., ge=0)
    feedback: str = Field("", max_length=2000)


class EnrollmentListFilters(BaseModel):
    status: EnrollmentStatus | None = None
    course_id: UUID | None = None
    user_id: UUID | None = None
    sort_by: Literal["enrolled_at", "progress", "status"] = "enrolled_at"
    sort_order: Literal["asc", "desc"] = "desc"


# ==============================================================================
# Responses
# ==============================================================================


class EnrollmentResponse(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    progress: int
    completed_lessons: list[CompletedLesson]
    quiz_results: list[QuizResult]
    assignment_submissions: list[AssignmentSubmission]
    enrolled_at: datetime
    approved_at: datetime | None = None
    completed_at: datetime | None = None
    certificate_generated: bool
    certificate_url: str | None = None
    total_time_spent: int
    time_spent_hours: float
    last_accessed_at: datetime | None = None
    notes: str = ""
    version: int

    @classmethod
    def from_enrollment(cls, enrollment: Enrollment) -> "EnrollmentResponse":
        return cls(
            id=enrollment.id,
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            status=enrollment.status,
            progress=enrollment.progress,
            completed_lessons=enrollment.completed_lessons,
            quiz_results=enrollment.quiz_results,
            assignment_submissions=enrollment.assignment_submissions,
            enrolled_at=enrollment.enrolled_at,
            approved_at=enrollment.approved_at,
            completed_at=enrollment.completed_at,
            certificate_generated=enrollment.certificate_generated,
            certificate_url=enrollment.certificate_url,
            total_time_spent=enrollment.total_time_spent,
            time_spent_hours=round(enrollment.total_time_spent / 60, 1),
            last_accessed_at=enrollment.last_accessed_at,
            notes=enrollment.notes,
            version=enrollment.version,
        )


class LessonCompletionResponse(BaseModel):
    message: str
    progress: int
    completed_lessons: int
    status: EnrollmentStatus


class QuizSubmissionResponse(BaseModel):
    message: str
    result: QuizResult
    passing_score: int
    best_score: int
    progress: int


class AssignmentSubmissionResponse(BaseModel):
    message: str
    index: int
    submission: AssignmentSubmission


class CertificateResponse(BaseModel):
    message: str
    certificate_url: str


class CourseEnrollmentCount(BaseModel):
    course_id: UUID
    title: str
    enrollment_count: int


class EnrollmentStatsResponse(BaseModel):
    total_enrollments: int
    pending_enrollments: int
    approved_enrollments: int
    completed_enrollments: int
    rejected_enrollments: int
    recent_enrollments: list[EnrollmentResponse]
    top_courses: list[CourseEnrollmentCount]

"""Enrollment API endpoints.

Provides routes for:
- Enrollment requests and admin moderation
- Learner progress: lessons, quizzes, assignments, certificates
- Instructor views and grading
- Statistics
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.auth.dependencies import CurrentUser, StatsViewer, require_capability
from src.auth.permissions import Capability, is_admin
from src.auth.schemas import UserResponse
from src.core.pagination import Page, PageDep, paginate
from src.courses.dependencies import CourseServiceDep
from src.enrollments.dependencies import (
    EnrollmentModerator,
    EnrollmentServiceDep,
    Learner,
    handle_enrollment_error,
)
from src.enrollments.models import EnrollmentStatus
from src.enrollments.schemas import (
    AssignmentSubmissionResponse,
    CertificateResponse,
    CompleteLessonRequest,
    EnrollmentListFilters,
    EnrollmentResponse,
    EnrollmentStatsResponse,
    EnrollRequest,
    GradeAssignmentRequest,
    LessonCompletionResponse,
    QuizSubmissionResponse,
    RejectRequest,
    SubmitAssignmentRequest,
    SubmitQuizRequest,
)
from src.enrollments.service import EnrollmentError


router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])

CourseStaff = Annotated[
    UserResponse,
    Depends(require_capability(Capability.VIEW_COURSE_ENROLLMENTS)),
]


# ==============================================================================
# Requests and Moderation
# ==============================================================================


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request enrollment in a course",
    responses={409: {"description": "Already enrolled"}},
)
async def enroll(
    data: EnrollRequest,
    user: Learner,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    try:
        enrollment = await enrollment_service.enroll(user, data.course_id, data.notes)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


@router.get("", response_model=Page[EnrollmentResponse], summary="List enrollments")
async def list_enrollments(
    _admin: EnrollmentModerator,
    enrollment_service: EnrollmentServiceDep,
    page: PageDep,
    filters: Annotated[EnrollmentListFilters, Query()],
) -> Page[EnrollmentResponse]:
    enrollments = await enrollment_service.list_enrollments(filters)
    return paginate([EnrollmentResponse.from_enrollment(e) for e in enrollments], page)


@router.get(
    "/pending",
    response_model=Page[EnrollmentResponse],
    summary="Pending enrollment requests",
)
async def list_pending(
    _admin: EnrollmentModerator,
    enrollment_service: EnrollmentServiceDep,
    page: PageDep,
) -> Page[EnrollmentResponse]:
    enrollments = await enrollment_service.list_pending()
    return paginate([EnrollmentResponse.from_enrollment(e) for e in enrollments], page)


@router.get(
    "/my",
    response_model=Page[EnrollmentResponse],
    summary="Current user's enrollments",
)
async def my_enrollments(
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
    page: PageDep,
    status_filter: Annotated[EnrollmentStatus | None, Query(alias="status")] = None,
) -> Page[EnrollmentResponse]:
    enrollments = await enrollment_service.list_for_user(user.id, status_filter)
    return paginate([EnrollmentResponse.from_enrollment(e) for e in enrollments], page)


@router.get(
    "/stats/overview",
    response_model=EnrollmentStatsResponse,
    summary="Enrollment statistics",
)
async def enrollment_stats(
    _admin: StatsViewer,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentStatsResponse:
    return await enrollment_service.get_stats()


@router.get(
    "/course/{course_id}",
    response_model=Page[EnrollmentResponse],
    summary="Enrollments of a course",
)
async def course_enrollments(
    course_id: UUID,
    user: CourseStaff,
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
    page: PageDep,
    status_filter: Annotated[EnrollmentStatus | None, Query(alias="status")] = None,
) -> Page[EnrollmentResponse]:
    """Course instructor or admin."""
    course = await course_service.get_course(course_id)
    if course is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Course not found"
        )
    if not (is_admin(user.role) or course.is_taught_by(user.id)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    enrollments = await enrollment_service.list_for_course(course_id)
    if status_filter is not None:
        enrollments = [e for e in enrollments if e.status == status_filter]
    return paginate([EnrollmentResponse.from_enrollment(e) for e in enrollments], page)


@router.get(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment",
)
async def get_enrollment(
    enrollment_id: UUID,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
    course_service: CourseServiceDep,
) -> EnrollmentResponse:
    """Owner, course instructor or admin."""
    try:
        enrollment = await enrollment_service.require_enrollment(enrollment_id)
        course = await course_service.get_course(enrollment.course_id)
        enrollment_service.ensure_can_view(enrollment, course, user)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


@router.put(
    "/{enrollment_id}/approve",
    response_model=EnrollmentResponse,
    summary="Approve a pending enrollment",
)
async def approve_enrollment(
    enrollment_id: UUID,
    admin: EnrollmentModerator,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    try:
        enrollment = await enrollment_service.approve(enrollment_id, admin)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


@router.put(
    "/{enrollment_id}/reject",
    response_model=EnrollmentResponse,
    summary="Reject a pending enrollment",
)
async def reject_enrollment(
    enrollment_id: UUID,
    admin: EnrollmentModerator,
    enrollment_service: EnrollmentServiceDep,
    data: RejectRequest | None = None,
) -> EnrollmentResponse:
    reason = data.reason if data else None
    try:
        enrollment = await enrollment_service.reject(enrollment_id, admin, reason)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


# ==============================================================================
# Learning
# ==============================================================================


@router.post(
    "/{enrollment_id}/complete-lesson",
    response_model=LessonCompletionResponse,
    summary="Mark a lesson as completed",
)
async def complete_lesson(
    enrollment_id: UUID,
    data: CompleteLessonRequest,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> LessonCompletionResponse:
    try:
        enrollment = await enrollment_service.complete_lesson(enrollment_id, user, data)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return LessonCompletionResponse(
        message="Lesson marked as completed",
        progress=enrollment.progress,
        completed_lessons=len(enrollment.completed_lessons),
        status=enrollment.status,
    )


@router.post(
    "/{enrollment_id}/submit-quiz",
    response_model=QuizSubmissionResponse,
    summary="Submit quiz answers",
)
async def submit_quiz(
    enrollment_id: UUID,
    data: SubmitQuizRequest,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> QuizSubmissionResponse:
    try:
        enrollment, result, passing_score = await enrollment_service.submit_quiz(
            enrollment_id, user, data
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e

    best = enrollment.best_quiz_result(data.module_id, data.lesson_id)
    return QuizSubmissionResponse(
        message="Quiz passed successfully!"
        if result.passed
        else "Quiz completed. You can retake it to improve your score.",
        result=result,
        passing_score=passing_score,
        best_score=best.score if best else result.score,
        progress=enrollment.progress,
    )


@router.post(
    "/{enrollment_id}/submit-assignment",
    response_model=AssignmentSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an assignment",
)
async def submit_assignment(
    enrollment_id: UUID,
    data: SubmitAssignmentRequest,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> AssignmentSubmissionResponse:
    try:
        _, index, submission = await enrollment_service.submit_assignment(
            enrollment_id, user, data
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return AssignmentSubmissionResponse(
        message="Assignment submitted",
        index=index,
        submission=submission,
    )


@router.put(
    "/{enrollment_id}/assignments/{index}/grade",
    response_model=EnrollmentResponse,
    summary="Grade an assignment submission",
)
async def grade_assignment(
    enrollment_id: UUID,
    index: int,
    data: GradeAssignmentRequest,
    user: Annotated[
        UserResponse, Depends(require_capability(Capability.GRADE_ASSIGNMENTS))
    ],
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    try:
        enrollment = await enrollment_service.grade_assignment(
            enrollment_id, index, data, user
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


@router.post(
    "/{enrollment_id}/certificate",
    response_model=CertificateResponse,
    summary="Generate the course certificate",
)
async def generate_certificate(
    enrollment_id: UUID,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> CertificateResponse:
    try:
        enrollment = await enrollment_service.generate_certificate(enrollment_id, user)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return CertificateResponse(
        message="Certificate generated",
        certificate_url=enrollment.certificate_url,
    )

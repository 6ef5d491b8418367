"""Course catalog API endpoints.

Provides routes for:
- Public catalog: list, categories, featured, detail
- Authoring: create, update, content tree, delete
- Reviews
- Statistics
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.auth.dependencies import (
    OptionalUser,
    StatsViewer,
    require_capability,
)
from src.auth.permissions import Capability, is_admin
from src.auth.schemas import UserResponse
from src.core.pagination import Page, PageParams, page_params_factory, paginate
from src.courses.dependencies import (
    CourseAuthor,
    CourseServiceDep,
    can_view_full_content,
    handle_course_error,
)
from src.courses.schemas import (
    CategoriesResponse,
    CourseDetailResponse,
    CourseListFilters,
    CourseStatsResponse,
    CourseSummaryResponse,
    CreateCourseRequest,
    DeleteCourseResponse,
    FeaturedCoursesResponse,
    ReviewRequest,
    ReviewResponse,
    UpdateContentRequest,
    UpdateCourseRequest,
    UserEnrollmentSummary,
)
from src.courses.service import CourseError
from src.enrollments.dependencies import EnrollmentServiceDep
from src.enrollments.models import Enrollment


router = APIRouter(prefix="/api/courses", tags=["courses"])

CATALOG_PAGE_SIZE = 12

CatalogPage = Annotated[PageParams, Depends(page_params_factory(CATALOG_PAGE_SIZE))]
CourseManager = Annotated[
    UserResponse, Depends(require_capability(Capability.MANAGE_COURSES))
]
Reviewer = Annotated[
    UserResponse, Depends(require_capability(Capability.REVIEW_COURSES))
]


def _summary(enrollment: Enrollment | None) -> UserEnrollmentSummary | None:
    if enrollment is None:
        return None
    return UserEnrollmentSummary(
        id=enrollment.id,
        status=enrollment.status.value,
        progress=enrollment.progress,
        enrolled_at=enrollment.enrolled_at,
    )


# ==============================================================================
# Catalog
# ==============================================================================


@router.get("", response_model=Page[CourseSummaryResponse], summary="List courses")
async def list_courses(
    user: OptionalUser,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    page: CatalogPage,
    filters: Annotated[CourseListFilters, Query()],
) -> Page[CourseSummaryResponse]:
    """Active courses. Signed-in callers also get their enrollment per course."""
    courses = await course_service.list_courses(filters)
    enrollments: dict[UUID, Enrollment] = {}
    if user is not None:
        enrollments = {
            e.course_id: e for e in await enrollment_service.list_for_user(user.id)
        }
    return paginate(
        [
            CourseSummaryResponse.from_course(c, _summary(enrollments.get(c.id)))
            for c in courses
        ],
        page,
    )


@router.get(
    "/categories", response_model=CategoriesResponse, summary="Course categories"
)
async def list_categories(course_service: CourseServiceDep) -> CategoriesResponse:
    return CategoriesResponse(categories=await course_service.list_categories())


@router.get(
    "/featured", response_model=FeaturedCoursesResponse, summary="Featured courses"
)
async def list_featured(course_service: CourseServiceDep) -> FeaturedCoursesResponse:
    courses = await course_service.list_featured()
    return FeaturedCoursesResponse(
        courses=[CourseSummaryResponse.from_course(c) for c in courses]
    )


@router.get(
    "/stats/overview", response_model=CourseStatsResponse, summary="Course statistics"
)
async def course_stats(
    _admin: StatsViewer,
    course_service: CourseServiceDep,
) -> CourseStatsResponse:
    return await course_service.get_stats()


@router.get("/{course_id}", response_model=CourseDetailResponse, summary="Get course")
async def get_course(
    course_id: UUID,
    user: OptionalUser,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
) -> CourseDetailResponse:
    """Course page. Lesson content is only included for those allowed to learn
    from or edit the course."""
    course = await course_service.get_course(course_id)
    if course is None or (
        not course.is_active and (user is None or not is_admin(user.role))
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )

    enrollment = None
    if user is not None:
        enrollment = await enrollment_service.get_for_user_course(user.id, course_id)
    full_access = can_view_full_content(
        course, user, enrollment.status.value if enrollment else None
    )
    return CourseDetailResponse.from_course_detail(
        course, full_access, _summary(enrollment)
    )


# ==============================================================================
# Authoring
# ==============================================================================


@router.post(
    "",
    response_model=CourseDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    _admin: CourseManager,
    course_service: CourseServiceDep,
) -> CourseDetailResponse:
    try:
        course = await course_service.create_course(data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseDetailResponse.from_course_detail(course, has_full_access=True)


@router.put("/{course_id}", response_model=CourseDetailResponse, summary="Update course")
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    user: CourseAuthor,
    course_service: CourseServiceDep,
) -> CourseDetailResponse:
    try:
        course = await course_service.update_course(course_id, data, actor=user)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseDetailResponse.from_course_detail(course, has_full_access=True)


@router.put(
    "/{course_id}/content",
    response_model=CourseDetailResponse,
    summary="Replace course modules and lessons",
)
async def update_content(
    course_id: UUID,
    data: UpdateContentRequest,
    user: CourseAuthor,
    course_service: CourseServiceDep,
) -> CourseDetailResponse:
    try:
        course = await course_service.update_content(course_id, data.modules, actor=user)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseDetailResponse.from_course_detail(course, has_full_access=True)


@router.delete(
    "/{course_id}", response_model=DeleteCourseResponse, summary="Delete course"
)
async def delete_course(
    course_id: UUID,
    _admin: CourseManager,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
) -> DeleteCourseResponse:
    """Courses with enrollments are deactivated instead of deleted."""
    try:
        deactivated = await course_service.delete_course(
            course_id,
            has_enrollments=await enrollment_service.has_enrollments(course_id),
        )
    except CourseError as e:
        raise handle_course_error(e) from e
    message = (
        "Course deactivated successfully (has existing enrollments)"
        if deactivated
        else "Course deleted successfully"
    )
    return DeleteCourseResponse(message=message, deactivated=deactivated)


# ==============================================================================
# Reviews
# ==============================================================================


@router.post(
    "/{course_id}/reviews", response_model=ReviewResponse, summary="Review a course"
)
async def add_review(
    course_id: UUID,
    data: ReviewRequest,
    user: Reviewer,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
) -> ReviewResponse:
    """Approved or completed enrollees only; posting again updates the review."""
    try:
        await course_service.require_course(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    enrollment = await enrollment_service.get_for_user_course(user.id, course_id)
    if enrollment is None or not enrollment.has_access:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be enrolled in this course to leave a review",
        )

    try:
        course, updated = await course_service.add_review(
            course_id, user.id, data.rating, data.comment
        )
    except CourseError as e:
        raise handle_course_error(e) from e
    return ReviewResponse(
        message="Review updated successfully" if updated else "Review added successfully",
        reviews=course.reviews,
        rating_average=course.rating_average,
        rating_count=course.rating_count,
    )

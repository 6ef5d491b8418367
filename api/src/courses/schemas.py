"""Pydantic schemas for the course catalog.

Request and response models for:
- Courses: CRUD, content authoring, catalog filters
- Reviews
- Statistics
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from src.courses.models import (
    Course,
    CourseCategory,
    CourseLevel,
    CourseModule,
    LessonType,
    Review,
)


# ==============================================================================
# Course Requests
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request (admin)."""

    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=20, max_length=2000)
    short_description: str = Field(..., min_length=10, max_length=200)
    instructor_id: UUID
    category: CourseCategory
    level: CourseLevel = CourseLevel.BEGINNER
    price: Decimal = Field(..., ge=0)
    original_price: Decimal | None = Field(None, ge=0)
    thumbnail_url: str | None = Field(None, max_length=500)
    tags: list[str] = Field(default_factory=list)
    language: str = Field("English", max_length=50)
    requirements: list[str] = Field(default_factory=list)
    what_you_will_learn: list[str] = Field(default_factory=list)
    target_audience: list[str] = Field(default_factory=list)


class UpdateCourseRequest(BaseModel):
    """Course update. ``instructor_id``, ``is_active`` and ``is_featured``
    are applied for admins only."""

    title: str | None = Field(None, min_length=5, max_length=100)
    description: str | None = Field(None, min_length=20, max_length=2000)
    short_description: str | None = Field(None, min_length=10, max_length=200)
    category: CourseCategory | None = None
    level: CourseLevel | None = None
    price: Decimal | None = Field(None, ge=0)
    original_price: Decimal | None = Field(None, ge=0)
    thumbnail_url: str | None = Field(None, max_length=500)
    tags: list[str] | None = None
    language: str | None = Field(None, max_length=50)
    requirements: list[str] | None = None
    what_you_will_learn: list[str] | None = None
    target_audience: list[str] | None = None
    instructor_id: UUID | None = None
    is_active: bool | None = None
    is_featured: bool | None = None


class UpdateContentRequest(BaseModel):
    """Replace the module/lesson tree of a course."""

    modules: list[CourseModule]


class ReviewRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=500)


class CourseListFilters(BaseModel):
    """Catalog query filters."""

    category: CourseCategory | None = None
    level: CourseLevel | None = None
    search: str | None = Field(None, max_length=100)
    min_price: Decimal | None = Field(None, ge=0)
    max_price: Decimal | None = Field(None, ge=0)
    rating: float | None = Field(None, ge=0, le=5, description="Minimum rating")
    featured: bool | None = None
    sort_by: Literal["created_at", "price", "rating", "popularity", "title"] = (
        "created_at"
    )
    sort_order: Literal["asc", "desc"] = "desc"


# ==============================================================================
# Course Responses
# ==============================================================================


class UserEnrollmentSummary(BaseModel):
    """The caller's enrollment in a course, if any."""

    id: UUID
    status: str
    progress: int
    enrolled_at: datetime


class LessonOutline(BaseModel):
    """Lesson without its content, quiz or assignment."""

    id: UUID
    title: str
    description: str | None = None
    type: LessonType
    duration: int
    order: int
    is_required: bool


class ModuleOutline(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    order: int
    lessons: list[LessonOutline]

    @classmethod
    def from_module(cls, module: CourseModule) -> "ModuleOutline":
        return cls(
            id=module.id,
            title=module.title,
            description=module.description,
            order=module.order,
            lessons=[
                LessonOutline.model_validate(lesson, from_attributes=True)
                for lesson in module.lessons
            ],
        )


class CourseSummaryResponse(BaseModel):
    """Catalog list item (no content tree)."""

    id: UUID
    title: str
    short_description: str
    instructor_id: UUID | None = None
    category: str
    level: str
    price: Decimal
    original_price: Decimal | None = None
    thumbnail_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    language: str
    duration: int
    total_lessons: int
    rating_average: float
    rating_count: int
    enrollment_count: int
    is_active: bool
    is_featured: bool
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    user_enrollment: UserEnrollmentSummary | None = None

    @classmethod
    def from_course(
        cls,
        course: Course,
        user_enrollment: UserEnrollmentSummary | None = None,
    ) -> "CourseSummaryResponse":
        return cls(
            id=course.id,
            title=course.title,
            short_description=course.short_description,
            instructor_id=course.instructor_id,
            category=course.category,
            level=course.level,
            price=course.price,
            original_price=course.original_price,
            thumbnail_url=course.thumbnail_url,
            tags=course.tags,
            language=course.language,
            duration=course.duration,
            total_lessons=course.total_lessons,
            rating_average=course.rating_average,
            rating_count=course.rating_count,
            enrollment_count=course.enrollment_count,
            is_active=course.is_active,
            is_featured=course.is_featured,
            published_at=course.published_at,
            created_at=course.created_at,
            updated_at=course.updated_at,
            user_enrollment=user_enrollment,
        )


class CourseDetailResponse(CourseSummaryResponse):
    """Full course page.

    ``modules`` holds the full tree when ``has_full_access`` is true and
    outlines otherwise.
    """

    description: str
    requirements: list[str] = Field(default_factory=list)
    what_you_will_learn: list[str] = Field(default_factory=list)
    target_audience: list[str] = Field(default_factory=list)
    has_full_access: bool = False
    modules: list[CourseModule] | list[ModuleOutline] = Field(default_factory=list)
    reviews: list[Review] = Field(default_factory=list)

    @classmethod
    def from_course_detail(
        cls,
        course: Course,
        has_full_access: bool,
        user_enrollment: UserEnrollmentSummary | None = None,
    ) -> "CourseDetailResponse":
        summary = CourseSummaryResponse.from_course(course, user_enrollment)
        modules: list[CourseModule] | list[ModuleOutline] = (
            course.modules
            if has_full_access
            else [ModuleOutline.from_module(m) for m in course.modules]
        )
        return cls(
            **summary.model_dump(exclude={"user_enrollment"}),
            user_enrollment=user_enrollment,
            description=course.description,
            requirements=course.requirements,
            what_you_will_learn=course.what_you_will_learn,
            target_audience=course.target_audience,
            has_full_access=has_full_access,
            modules=modules,
            reviews=course.reviews,
        )


class CategoryCount(BaseModel):
    name: str
    count: int


class CategoriesResponse(BaseModel):
    categories: list[CategoryCount]


class FeaturedCoursesResponse(BaseModel):
    courses: list[CourseSummaryResponse]


class ReviewResponse(BaseModel):
    message: str
    reviews: list[Review]
    rating_average: float
    rating_count: int


class DeleteCourseResponse(BaseModel):
    message: str
    deactivated: bool


class CourseStatsResponse(BaseModel):
    total_courses: int
    active_courses: int
    featured_courses: int
    by_category: dict[str, int]
    top_rated: list[CourseSummaryResponse]
    most_popular: list[CourseSummaryResponse]

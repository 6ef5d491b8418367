"""Course catalog service layer.

Business logic for:
- Course CRUD and content authoring
- Catalog filtering, sorting and featured/category views
- Reviews and rating aggregation
- Enrollment counters
"""

from collections import Counter
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.auth.permissions import Capability, has_capability, is_admin
from src.auth.schemas import UserResponse
from src.courses.models import Course, CourseModule
from src.courses.schemas import (
    CategoryCount,
    CourseListFilters,
    CourseStatsResponse,
    CourseSummaryResponse,
    CreateCourseRequest,
    UpdateCourseRequest,
)
from src.core.documents import utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.auth.service import AuthService


logger = structlog.get_logger(__name__)

FEATURED_LIMIT = 6
STATS_TOP_LIMIT = 5

# Fields any editor may change; the rest are admin-only
EDITABLE_FIELDS = (
    "title",
    "description",
    "short_description",
    "category",
    "level",
    "price",
    "original_price",
    "thumbnail_url",
    "tags",
    "language",
    "requirements",
    "what_you_will_learn",
    "target_audience",
)
ADMIN_FIELDS = ("instructor_id", "is_active", "is_featured")


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class InvalidInstructorError(CourseError):
    def __init__(self, message: str = "Invalid instructor"):
        super().__init__(message, "invalid_instructor")


class CoursePermissionError(CourseError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "permission_denied")


# ==============================================================================
# Service
# ==============================================================================


class CourseService:
    """Service for the course catalog."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        auth_service: "AuthService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.auth_service = auth_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._list_courses = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses"
        )
        # INSERT doubles as full-row update
        self._save_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, description, short_description, instructor_id, category,
             level, price, original_price, thumbnail_url, tags, language,
             requirements, what_you_will_learn, target_audience, modules, reviews,
             rating_average, rating_count, is_active, is_featured, published_at,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?,
                    ?, ?)
        """)
        self._delete_course = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._get_enrollment_count = self.session.prepare(
            f"SELECT enrollment_count FROM {self.keyspace}.course_enrollment_counts "
            "WHERE course_id = ?"
        )
        self._list_enrollment_counts = self.session.prepare(
            f"SELECT course_id, enrollment_count FROM "
            f"{self.keyspace}.course_enrollment_counts"
        )
        self._increment_enrollment_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_enrollment_counts
            SET enrollment_count = enrollment_count + 1
            WHERE course_id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get a course with its enrollment count."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        if not row:
            return None
        count_row = (
            await self.session.aexecute(self._get_enrollment_count, [course_id])
        ).one()
        return Course.from_row(row, count_row.enrollment_count if count_row else 0)

    async def require_course(self, course_id: UUID) -> Course:
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def _load_all(self) -> list[Course]:
        rows = await self.session.aexecute(self._list_courses)
        counts_result = await self.session.aexecute(self._list_enrollment_counts)
        counts = {r.course_id: r.enrollment_count for r in counts_result}
        return [Course.from_row(row, counts.get(row.id, 0)) for row in rows]

    async def list_courses(
        self,
        filters: CourseListFilters,
        include_inactive: bool = False,
    ) -> list[Course]:
        """List catalog courses with filters and sorting applied in memory."""
        courses = await self._load_all()
        if not include_inactive:
            courses = [c for c in courses if c.is_active]
        courses = [c for c in courses if _matches(c, filters)]

        sort_keys = {
            "price": lambda c: c.price,
            "rating": lambda c: c.rating_average,
            "popularity": lambda c: c.enrollment_count,
            "title": lambda c: c.title.lower(),
            "created_at": lambda c: c.created_at,
        }
        courses.sort(key=sort_keys[filters.sort_by], reverse=filters.sort_order == "desc")
        return courses

    async def list_by_instructor(self, instructor_id: UUID) -> list[Course]:
        return [c for c in await self._load_all() if c.instructor_id == instructor_id]

    async def list_categories(self) -> list[CategoryCount]:
        """Active categories with their course counts."""
        counts = Counter(c.category for c in await self._load_all() if c.is_active)
        return [CategoryCount(name=name, count=n) for name, n in sorted(counts.items())]

    async def list_featured(self, limit: int = FEATURED_LIMIT) -> list[Course]:
        courses = [c for c in await self._load_all() if c.is_active and c.is_featured]
        courses.sort(key=lambda c: c.created_at, reverse=True)
        return courses[:limit]

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def _save(self, course: Course) -> None:
        await self.session.aexecute(
            self._save_course,
            [
                course.id,
                course.title,
                course.description,
                course.short_description,
                course.instructor_id,
                course.category,
                course.level,
                course.price,
                course.original_price,
                course.thumbnail_url,
                course.tags,
                course.language,
                course.requirements,
                course.what_you_will_learn,
                course.target_audience,
                course.modules_json,
                course.reviews_json,
                course.rating_average,
                course.rating_count,
                course.is_active,
                course.is_featured,
                course.published_at,
                course.created_at,
                course.updated_at,
            ],
        )

    async def _check_instructor(self, instructor_id: UUID) -> None:
        if self.auth_service is None:
            return
        instructor = await self.auth_service.get_user_by_id(instructor_id)
        if instructor is None or instructor.role != "instructor":
            raise InvalidInstructorError

    def ensure_can_edit(self, course: Course, actor: UserResponse) -> None:
        """Admins edit any course; instructors only the ones they teach.

        Raises:
            CoursePermissionError: Otherwise
        """
        if is_admin(actor.role):
            return
        if has_capability(actor.role, Capability.AUTHOR_OWN_COURSES) and (
            course.is_taught_by(actor.id)
        ):
            return
        raise CoursePermissionError

    async def create_course(self, data: CreateCourseRequest) -> Course:
        """Create a course for an existing instructor.

        Raises:
            InvalidInstructorError: If instructor_id is not an instructor
        """
        await self._check_instructor(data.instructor_id)
        course = Course(
            title=data.title,
            description=data.description,
            short_description=data.short_description,
            instructor_id=data.instructor_id,
            category=data.category.value,
            level=data.level.value,
            price=data.price,
            original_price=data.original_price,
            thumbnail_url=data.thumbnail_url,
            tags=data.tags,
            language=data.language,
            requirements=data.requirements,
            what_you_will_learn=data.what_you_will_learn,
            target_audience=data.target_audience,
        )
        await self._save(course)
        logger.info(
            "course_created",
            course_id=str(course.id),
            instructor_id=str(course.instructor_id),
        )
        return course

    async def update_course(
        self,
        course_id: UUID,
        data: UpdateCourseRequest,
        actor: UserResponse,
    ) -> Course:
        course = await self.require_course(course_id)
        self.ensure_can_edit(course, actor)

        fields = EDITABLE_FIELDS + (ADMIN_FIELDS if is_admin(actor.role) else ())
        changes = data.model_dump(include=set(fields), exclude_none=True)
        if "instructor_id" in changes:
            await self._check_instructor(changes["instructor_id"])
        for field, value in changes.items():
            setattr(course, field, value.value if hasattr(value, "value") else value)
        course.updated_at = utc_now()

        await self._save(course)
        logger.info(
            "course_updated",
            course_id=str(course.id),
            fields=sorted(changes),
        )
        return course

    async def update_content(
        self,
        course_id: UUID,
        modules: list[CourseModule],
        actor: UserResponse,
    ) -> Course:
        """Replace the module/lesson tree, keeping the given order."""
        course = await self.require_course(course_id)
        self.ensure_can_edit(course, actor)
        course.modules = sorted(modules, key=lambda m: m.order)
        for module in course.modules:
            module.lessons.sort(key=lambda lesson: lesson.order)
        course.updated_at = utc_now()
        await self._save(course)
        logger.info(
            "course_content_updated",
            course_id=str(course.id),
            modules=len(course.modules),
            lessons=course.total_lessons,
        )
        return course

    async def delete_course(self, course_id: UUID, has_enrollments: bool) -> bool:
        """Delete a course.

        Courses with enrollments are only deactivated.

        Returns:
            True if the course was deactivated instead of deleted
        """
        course = await self.require_course(course_id)
        if has_enrollments:
            course.is_active = False
            course.updated_at = utc_now()
            await self._save(course)
            logger.info("course_deactivated", course_id=str(course_id))
            return True
        await self.session.aexecute(self._delete_course, [course_id])
        logger.info("course_deleted", course_id=str(course_id))
        return False

    async def add_review(
        self, course_id: UUID, user_id: UUID, rating: int, comment: str
    ) -> tuple[Course, bool]:
        """Add or update the user's review.

        Returns:
            (course, updated) where updated is True for a replaced review
        """
        course = await self.require_course(course_id)
        updated = course.upsert_review(user_id, rating, comment)
        course.updated_at = utc_now()
        await self._save(course)
        logger.info(
            "course_reviewed",
            course_id=str(course_id),
            rating=rating,
            updated=updated,
        )
        return course, updated

    async def increment_enrollment_count(self, course_id: UUID) -> None:
        await self.session.aexecute(self._increment_enrollment_count, [course_id])

    # ==========================================================================
    # Statistics
    # ==========================================================================

    async def get_stats(self) -> CourseStatsResponse:
        courses = await self._load_all()
        active = [c for c in courses if c.is_active]
        top_rated = sorted(active, key=lambda c: c.rating_average, reverse=True)
        popular = sorted(active, key=lambda c: c.enrollment_count, reverse=True)
        return CourseStatsResponse(
            total_courses=len(courses),
            active_courses=len(active),
            featured_courses=sum(1 for c in courses if c.is_featured),
            by_category=dict(Counter(c.category for c in active)),
            top_rated=[
                CourseSummaryResponse.from_course(c) for c in top_rated[:STATS_TOP_LIMIT]
            ],
            most_popular=[
                CourseSummaryResponse.from_course(c) for c in popular[:STATS_TOP_LIMIT]
            ],
        )


def _matches(course: Course, filters: CourseListFilters) -> bool:
    if filters.category and course.category != filters.category.value:
        return False
    if filters.level and course.level != filters.level.value:
        return False
    if filters.featured and not course.is_featured:
        return False
    if filters.min_price is not None and course.price < filters.min_price:
        return False
    if filters.max_price is not None and course.price > filters.max_price:
        return False
    if filters.rating is not None and course.rating_average < filters.rating:
        return False
    if filters.search:
        term = filters.search.lower()
        haystack = [course.title, course.description, *course.tags]
        if not any(term in text.lower() for text in haystack):
            return False
    return True

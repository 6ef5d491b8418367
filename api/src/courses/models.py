"""Database models for the course catalog.

Cassandra table definitions for:
- Courses: catalog entry with the module/lesson tree embedded as JSON
- Course enrollment counts: counter table bumped on enrollment approval

A course's content is read and written as a whole (authoring replaces the
tree, learners read it), so modules, lessons, quizzes and assignments live in
one TEXT column validated by the pydantic models below.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from src.core.documents import (
    dump_documents,
    ensure_utc_aware,
    load_documents,
    utc_now,
)


class CourseCategory(str, Enum):
    """Catalog categories."""

    PROGRAMMING = "Programming"
    DESIGN = "Design"
    BUSINESS = "Business"
    MARKETING = "Marketing"
    DATA_SCIENCE = "Data Science"
    MOBILE_DEVELOPMENT = "Mobile Development"
    WEB_DEVELOPMENT = "Web Development"
    OTHER = "Other"


class CourseLevel(str, Enum):
    """Course difficulty."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class LessonType(str, Enum):
    """Lesson content type."""

    VIDEO = "video"
    PDF = "pdf"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    TEXT = "text"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    short_description TEXT,
    instructor_id UUID,
    category TEXT,
    level TEXT,
    price DECIMAL,
    original_price DECIMAL,
    thumbnail_url TEXT,
    tags LIST<TEXT>,
    language TEXT,
    requirements LIST<TEXT>,
    what_you_will_learn LIST<TEXT>,
    target_audience LIST<TEXT>,
    modules TEXT,
    reviews TEXT,
    rating_average DOUBLE,
    rating_count INT,
    is_active BOOLEAN,
    is_featured BOOLEAN,
    published_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_INSTRUCTOR_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS courses_instructor_idx ON {keyspace}.courses (instructor_id)
"""

COURSE_ENROLLMENT_COUNTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_enrollment_counts (
    course_id UUID PRIMARY KEY,
    enrollment_count COUNTER
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSE_INSTRUCTOR_INDEX_CQL,
    COURSE_ENROLLMENT_COUNTS_TABLE_CQL,
]


# ==============================================================================
# Embedded Content
# ==============================================================================


class QuizQuestion(BaseModel):
    question: str = Field(..., min_length=1, max_length=1000)
    options: list[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0, description="Index into options")
    points: int = Field(1, ge=0)

    @model_validator(mode="after")
    def check_answer_in_range(self) -> Self:
        if self.correct_answer >= len(self.options):
            msg = "correct_answer must index one of the options"
            raise ValueError(msg)
        return self


class Quiz(BaseModel):
    questions: list[QuizQuestion] = Field(..., min_length=1)
    passing_score: int | None = Field(
        None, ge=0, le=100, description="Percent to pass; platform default if unset"
    )
    time_limit: int = Field(30, ge=1, description="Minutes")


class AssignmentSpec(BaseModel):
    instructions: str = Field(..., min_length=1, max_length=5000)
    max_file_size: int = Field(10 * 1024 * 1024, ge=1, description="Bytes")
    allowed_file_types: list[str] = Field(default_factory=list)
    due_date: datetime | None = None
    max_score: int = Field(100, ge=1)


class Lesson(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    type: LessonType
    content: str | None = None
    duration: int = Field(0, ge=0, description="Minutes")
    order: int = 0
    is_required: bool = True
    quiz: Quiz | None = None
    assignment: AssignmentSpec | None = None

    @model_validator(mode="after")
    def check_type_payload(self) -> Self:
        if self.type == LessonType.QUIZ and self.quiz is None:
            msg = "quiz lessons require a quiz"
            raise ValueError(msg)
        if self.type == LessonType.ASSIGNMENT and self.assignment is None:
            msg = "assignment lessons require an assignment"
            raise ValueError(msg)
        return self


class CourseModule(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    order: int = 0
    lessons: list[Lesson] = Field(default_factory=list)


class Review(BaseModel):
    user_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=500)
    created_at: datetime = Field(default_factory=utc_now)


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Catalog course with its embedded content tree.

    Attributes:
        id: Unique identifier
        title, description, short_description: Catalog copy
        instructor_id: Owning instructor
        category, level: Catalog facets
        price, original_price: Pricing (original defaults to price)
        modules: Ordered module/lesson tree
        reviews: One review per user
        rating_average, rating_count: Derived from reviews
        is_active: False once soft-deleted
        is_featured: Shown on the featured shelf
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        description: str = "",
        short_description: str = "",
        instructor_id: UUID | None = None,
        category: str = CourseCategory.OTHER.value,
        level: str = CourseLevel.BEGINNER.value,
        price: Any = 0,
        original_price: Any = None,
        thumbnail_url: str | None = None,
        tags: list[str] | None = None,
        language: str = "English",
        requirements: list[str] | None = None,
        what_you_will_learn: list[str] | None = None,
        target_audience: list[str] | None = None,
        modules: list[CourseModule] | None = None,
        reviews: list[Review] | None = None,
        rating_average: float = 0.0,
        rating_count: int = 0,
        is_active: bool = True,
        is_featured: bool = False,
        published_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        enrollment_count: int = 0,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.description = description
        self.short_description = short_description
        self.instructor_id = instructor_id
        self.category = category
        self.level = level
        self.price = price
        self.original_price = original_price if original_price is not None else price
        self.thumbnail_url = thumbnail_url
        self.tags = list(tags or [])
        self.language = language
        self.requirements = list(requirements or [])
        self.what_you_will_learn = list(what_you_will_learn or [])
        self.target_audience = list(target_audience or [])
        self.modules = list(modules or [])
        self.reviews = list(reviews or [])
        self.rating_average = rating_average or 0.0
        self.rating_count = rating_count or 0
        self.is_active = is_active
        self.is_featured = is_featured
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.published_at = ensure_utc_aware(published_at) or self.created_at
        self.updated_at = ensure_utc_aware(updated_at)
        self.enrollment_count = enrollment_count

    @classmethod
    def from_row(cls, row: Any, enrollment_count: int = 0) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            short_description=row.short_description,
            instructor_id=row.instructor_id,
            category=row.category,
            level=row.level,
            price=row.price,
            original_price=row.original_price,
            thumbnail_url=row.thumbnail_url,
            tags=row.tags,
            language=row.language,
            requirements=row.requirements,
            what_you_will_learn=row.what_you_will_learn,
            target_audience=row.target_audience,
            modules=load_documents(CourseModule, row.modules),
            reviews=load_documents(Review, row.reviews),
            rating_average=row.rating_average,
            rating_count=row.rating_count,
            is_active=row.is_active,
            is_featured=row.is_featured,
            published_at=row.published_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
            enrollment_count=enrollment_count,
        )

    @property
    def modules_json(self) -> str:
        return dump_documents(CourseModule, self.modules)

    @property
    def reviews_json(self) -> str:
        return dump_documents(Review, self.reviews)

    @property
    def total_lessons(self) -> int:
        """Number of lessons across all modules."""
        return sum(len(module.lessons) for module in self.modules)

    @property
    def duration(self) -> int:
        """Total lesson duration in minutes."""
        return sum(lesson.duration for module in self.modules for lesson in module.lessons)

    def find_lesson(
        self, module_id: UUID, lesson_id: UUID
    ) -> tuple[CourseModule, Lesson] | None:
        for module in self.modules:
            if module.id != module_id:
                continue
            for lesson in module.lessons:
                if lesson.id == lesson_id:
                    return module, lesson
        return None

    def is_taught_by(self, user_id: UUID) -> bool:
        return self.instructor_id == user_id

    def upsert_review(self, user_id: UUID, rating: int, comment: str = "") -> bool:
        """Add or replace the user's review and refresh the rating.

        Returns:
            True if an existing review was updated
        """
        review = Review(user_id=user_id, rating=rating, comment=comment)
        for index, existing in enumerate(self.reviews):
            if existing.user_id == user_id:
                self.reviews[index] = review
                self.update_rating()
                return True
        self.reviews.append(review)
        self.update_rating()
        return False

    def update_rating(self) -> None:
        """Recompute the average (one decimal) and count from reviews."""
        self.rating_count = len(self.reviews)
        if not self.reviews:
            self.rating_average = 0.0
            return
        average = sum(r.rating for r in self.reviews) / self.rating_count
        self.rating_average = round(average, 1)

    def __repr__(self) -> str:
        return f"<Course {self.title} ({self.id})>"

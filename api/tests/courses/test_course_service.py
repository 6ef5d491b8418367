"""Tests for CourseService catalog queries and permissions."""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from src.auth.permissions import UserRole
from src.courses.models import Course, CourseCategory
from src.courses.schemas import CourseListFilters
from src.courses.service import CourseNotFoundError, CoursePermissionError, CourseService


@pytest.fixture
def mock_session():
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def service(mock_session):
    return CourseService(session=mock_session, keyspace="test_keyspace")


@pytest.fixture
def catalog(service):
    courses = [
        Course(
            title="Python Basics",
            category=CourseCategory.PROGRAMMING.value,
            price=Decimal("20"),
            rating_average=4.5,
            tags=["python"],
            enrollment_count=12,
        ),
        Course(
            title="Brand Design",
            category=CourseCategory.DESIGN.value,
            price=Decimal("50"),
            rating_average=3.9,
            is_featured=True,
            enrollment_count=30,
        ),
        Course(
            title="Advanced Python",
            category=CourseCategory.PROGRAMMING.value,
            price=Decimal("80"),
            rating_average=4.8,
            enrollment_count=5,
        ),
        Course(title="Retired", is_active=False),
    ]
    service._load_all = AsyncMock(return_value=courses)
    return courses


class TestListCourses:
    @pytest.mark.asyncio
    async def test_inactive_courses_are_hidden(self, service, catalog):
        courses = await service.list_courses(CourseListFilters())
        assert "Retired" not in [c.title for c in courses]

        everything = await service.list_courses(
            CourseListFilters(), include_inactive=True
        )
        assert len(everything) == 4

    @pytest.mark.asyncio
    async def test_search_matches_title_and_tags(self, service, catalog):
        courses = await service.list_courses(CourseListFilters(search="PYTHON"))
        assert {c.title for c in courses} == {"Python Basics", "Advanced Python"}

    @pytest.mark.asyncio
    async def test_price_range(self, service, catalog):
        courses = await service.list_courses(
            CourseListFilters(min_price=Decimal("30"), max_price=Decimal("60"))
        )
        assert [c.title for c in courses] == ["Brand Design"]

    @pytest.mark.asyncio
    async def test_minimum_rating_and_category(self, service, catalog):
        courses = await service.list_courses(
            CourseListFilters(category=CourseCategory.PROGRAMMING, rating=4.6)
        )
        assert [c.title for c in courses] == ["Advanced Python"]

    @pytest.mark.asyncio
    async def test_sort_by_popularity(self, service, catalog):
        courses = await service.list_courses(CourseListFilters(sort_by="popularity"))
        assert [c.enrollment_count for c in courses] == [30, 12, 5]

    @pytest.mark.asyncio
    async def test_sort_by_price_ascending(self, service, catalog):
        courses = await service.list_courses(
            CourseListFilters(sort_by="price", sort_order="asc")
        )
        assert [c.price for c in courses] == [Decimal("20"), Decimal("50"), Decimal("80")]

    @pytest.mark.asyncio
    async def test_categories_count_active_courses(self, service, catalog):
        categories = await service.list_categories()
        assert {c.name: c.count for c in categories} == {"Design": 1, "Programming": 2}


class TestPermissions:
    def test_admin_edits_any_course(self, service, admin):
        service.ensure_can_edit(Course(title="x", instructor_id=uuid4()), admin)

    def test_instructor_edits_own_course(self, service, instructor):
        service.ensure_can_edit(Course(title="x", instructor_id=instructor.id), instructor)

    def test_instructor_cannot_edit_other_course(self, service, instructor):
        with pytest.raises(CoursePermissionError):
            service.ensure_can_edit(Course(title="x", instructor_id=uuid4()), instructor)

    def test_student_cannot_edit(self, service, mock_user_factory):
        student = mock_user_factory(UserRole.STUDENT)
        with pytest.raises(CoursePermissionError):
            service.ensure_can_edit(Course(title="x", instructor_id=student.id), student)


class TestWrites:
    @pytest.mark.asyncio
    async def test_get_missing_course(self, service, mock_session):
        result = Mock()
        result.one.return_value = None
        mock_session.aexecute.return_value = result

        with pytest.raises(CourseNotFoundError):
            await service.require_course(uuid4())

    @pytest.mark.asyncio
    async def test_delete_with_enrollments_deactivates(self, service, mock_session):
        course = Course(title="Python Basics")
        service.require_course = AsyncMock(return_value=course)

        deactivated = await service.delete_course(course.id, has_enrollments=True)

        assert deactivated is True
        assert course.is_active is False
        mock_session.aexecute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_without_enrollments(self, service, mock_session):
        course = Course(title="Python Basics")
        service.require_course = AsyncMock(return_value=course)

        assert await service.delete_course(course.id, has_enrollments=False) is False
        assert mock_session.aexecute.call_args.args[1] == [course.id]

    @pytest.mark.asyncio
    async def test_review_is_saved(self, service, mock_session):
        course = Course(title="Python Basics")
        service.require_course = AsyncMock(return_value=course)
        user_id = uuid4()

        reviewed, updated = await service.add_review(course.id, user_id, 5, "Great")

        assert updated is False
        assert reviewed.rating_average == 5.0
        mock_session.aexecute.assert_awaited_once()

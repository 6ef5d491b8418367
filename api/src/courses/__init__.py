"""Course catalog module.

Provides:
- Courses with an embedded module/lesson tree
- Catalog filters, categories and featured shelf
- Reviews and rating aggregation

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.courses.models import COURSES_TABLES_CQL, Course, CourseModule, Lesson
from src.courses.service import CourseService


__all__ = [
    "COURSES_TABLES_CQL",
    "Course",
    "CourseModule",
    "CourseService",
    "Lesson",
]

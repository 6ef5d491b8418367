"""Enrollments module.

Provides:
- Enrollment lifecycle (pending, approved, rejected, completed)
- Lesson completion, quiz attempts, assignment submissions and grading
- Certificates

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.enrollments.models import (
    ENROLLMENTS_TABLES_CQL,
    Enrollment,
    EnrollmentStatus,
)
from src.enrollments.service import EnrollmentService


__all__ = [
    "ENROLLMENTS_TABLES_CQL",
    "Enrollment",
    "EnrollmentService",
    "EnrollmentStatus",
]

"""Role-based access control for LearnHub.

Roles do not form a hierarchy. Each role maps to an explicit set of
capabilities and routes ask for a capability, never for a role:

- STUDENT: browse, enroll, track own progress, review, join sessions
- INSTRUCTOR: author own courses, grade their students, run own sessions
- ADMIN: every capability

Ownership (own course, own enrollment) is checked by the services on top of
the capability check.
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles."""

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class Capability(str, Enum):
    """Actions a route may require."""

    # Any authenticated user
    VIEW_OWN_PROFILE = "view_own_profile"
    READ_NOTIFICATIONS = "read_notifications"
    COMMENT_ANNOUNCEMENTS = "comment_announcements"

    # Learning
    ENROLL = "enroll"
    TRACK_OWN_PROGRESS = "track_own_progress"
    REVIEW_COURSES = "review_courses"
    JOIN_LIVE_SESSIONS = "join_live_sessions"

    # Teaching
    AUTHOR_OWN_COURSES = "author_own_courses"
    GRADE_ASSIGNMENTS = "grade_assignments"
    VIEW_COURSE_ENROLLMENTS = "view_course_enrollments"
    RUN_OWN_LIVE_SESSIONS = "run_own_live_sessions"

    # Administration
    MANAGE_USERS = "manage_users"
    MANAGE_COURSES = "manage_courses"
    MODERATE_ENROLLMENTS = "moderate_enrollments"
    MANAGE_LIVE_SESSIONS = "manage_live_sessions"
    MANAGE_ANNOUNCEMENTS = "manage_announcements"
    MANAGE_CONTACTS = "manage_contacts"
    VIEW_STATS = "view_stats"


_BASE_CAPABILITIES = frozenset(
    {
        Capability.VIEW_OWN_PROFILE,
        Capability.READ_NOTIFICATIONS,
        Capability.COMMENT_ANNOUNCEMENTS,
    }
)

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.STUDENT: _BASE_CAPABILITIES
    | {
        Capability.ENROLL,
        Capability.TRACK_OWN_PROGRESS,
        Capability.REVIEW_COURSES,
        Capability.JOIN_LIVE_SESSIONS,
    },
    UserRole.INSTRUCTOR: _BASE_CAPABILITIES
    | {
        Capability.AUTHOR_OWN_COURSES,
        Capability.GRADE_ASSIGNMENTS,
        Capability.VIEW_COURSE_ENROLLMENTS,
        Capability.RUN_OWN_LIVE_SESSIONS,
    },
    UserRole.ADMIN: frozenset(Capability),
}


def parse_role(role: UserRole | str) -> UserRole | None:
    """Return the ``UserRole`` for ``role`` or None when unknown."""
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def capabilities_for(role: UserRole | str) -> frozenset[Capability]:
    """Capabilities granted to ``role``; unknown roles get none.

    Examples:
        >>> Capability.ENROLL in capabilities_for("student")
        True
        >>> Capability.MANAGE_USERS in capabilities_for("instructor")
        False
    """
    parsed = parse_role(role)
    if parsed is None:
        return frozenset()
    return ROLE_CAPABILITIES[parsed]


def has_capability(role: UserRole | str, capability: Capability) -> bool:
    """Check whether ``role`` grants ``capability``."""
    return capability in capabilities_for(role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    return parse_role(role) == UserRole.ADMIN


def is_instructor(role: UserRole | str) -> bool:
    """Check if role is INSTRUCTOR."""
    return parse_role(role) == UserRole.INSTRUCTOR


def is_student(role: UserRole | str) -> bool:
    """Check if role is STUDENT."""
    return parse_role(role) == UserRole.STUDENT

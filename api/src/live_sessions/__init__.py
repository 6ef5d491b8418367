"""Live sessions module.

Provides:
- Scheduling and running live classes of a course
- Attendance tracking

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.live_sessions.models import LIVE_SESSIONS_TABLES_CQL, LiveSession
from src.live_sessions.service import LiveSessionService


__all__ = [
    "LIVE_SESSIONS_TABLES_CQL",
    "LiveSession",
    "LiveSessionService",
]

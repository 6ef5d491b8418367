"""Announcements module.

Provides:
- Audience-targeted announcements with scheduling and expiry
- Comments and view tracking

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.announcements.models import ANNOUNCEMENTS_TABLES_CQL, Announcement
from src.announcements.service import AnnouncementService


__all__ = [
    "ANNOUNCEMENTS_TABLES_CQL",
    "Announcement",
    "AnnouncementService",
]

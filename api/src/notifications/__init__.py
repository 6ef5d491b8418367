"""Notifications module.

Provides:
- Append-only per-user notification log
- Unread count tracking
- Mark as read and clearing

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    Notification,
    NotificationType,
    ReferenceType,
)
from src.notifications.service import NotificationService


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "Notification",
    "NotificationService",
    "NotificationType",
    "ReferenceType",
]

"""Database models for the notification log.

Cassandra table definitions for:
- Notifications: append-only log partitioned by user, newest first
- Unread counts: counter table for quick badge queries

Notification types:
- INFO: Neutral updates (new enrollment request, announcement)
- SUCCESS: Something went the user's way (enrollment approved, graded)
- WARNING: Needs attention (enrollment rejected)
- ERROR: A failure the user should know about
- SYSTEM: Platform-wide messages
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.core.documents import ensure_utc_aware, utc_now


# ==============================================================================
# Constants
# ==============================================================================

NOTIFICATION_MESSAGE_MAX_LENGTH = 500


class NotificationType(str, Enum):
    """Types of notifications."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    SYSTEM = "system"


class ReferenceType(str, Enum):
    """Kinds of records a notification can point at."""

    ENROLLMENT = "enrollment"
    COURSE = "course"
    ANNOUNCEMENT = "announcement"
    LIVE_SESSION = "live_session"
    CONTACT = "contact"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partitioned by user_id; rows are only ever appended, flagged read or deleted
NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    created_at TIMESTAMP,
    notification_id UUID,
    type TEXT,
    title TEXT,
    message TEXT,
    reference_type TEXT,
    reference_id UUID,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

UNREAD_COUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_unread_counts (
    user_id UUID PRIMARY KEY,
    count COUNTER
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    UNREAD_COUNT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification entity."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    reference_type: ReferenceType | None
    reference_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            reference_type=ReferenceType(row.reference_type)
            if row.reference_type
            else None,
            reference_id=row.reference_id,
            is_read=row.is_read or False,
            read_at=ensure_utc_aware(row.read_at),
            created_at=ensure_utc_aware(row.created_at),
        )


def create_notification(
    user_id: UUID,
    notification_type: NotificationType,
    title: str,
    message: str,
    reference_type: ReferenceType | None = None,
    reference_id: UUID | None = None,
) -> Notification:
    """Create a new unread notification."""
    return Notification(
        notification_id=uuid4(),
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message[:NOTIFICATION_MESSAGE_MAX_LENGTH],
        reference_type=reference_type,
        reference_id=reference_id,
        is_read=False,
        read_at=None,
        created_at=utc_now(),
    )

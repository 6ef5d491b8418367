"""Pydantic schemas for notifications.

Request and response models for notification operations.
"""

import base64
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.notifications.models import Notification, NotificationType, ReferenceType


# ==============================================================================
# Response Schemas
# ==============================================================================


class NotificationReference(BaseModel):
    type: ReferenceType
    id: UUID


class NotificationResponse(BaseModel):
    """Single notification response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Notification ID")
    type: NotificationType = Field(description="Notification type")
    title: str = Field(description="Notification title")
    message: str = Field(description="Notification message")
    reference: NotificationReference | None = Field(
        None, description="Related record"
    )
    is_read: bool = Field(description="Whether notification was read")
    read_at: datetime | None = Field(None, description="When notification was read")
    created_at: datetime = Field(description="When notification was created")

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        """Create response from notification entity."""
        reference = None
        if notification.reference_type and notification.reference_id:
            reference = NotificationReference(
                type=notification.reference_type,
                id=notification.reference_id,
            )

        return cls(
            id=notification.notification_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            reference=reference,
            is_read=notification.is_read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    """Cursor-paginated notification list."""

    items: list[NotificationResponse] = Field(description="List of notifications")
    unread_count: int = Field(description="Unread notification count")
    has_more: bool = Field(description="Whether more notifications exist")
    next_cursor: str | None = Field(None, description="Cursor for next page")


class UnreadCountResponse(BaseModel):
    count: int = Field(description="Number of unread notifications")


class MarkReadResponse(BaseModel):
    """Response after marking notifications as read."""

    marked_count: int = Field(description="Number of notifications marked as read")
    unread_count: int = Field(description="Remaining unread count")


class ClearResponse(BaseModel):
    """Response after deleting notifications."""

    deleted_count: int
    unread_count: int


# ==============================================================================
# Cursor Encoding/Decoding
# ==============================================================================


def encode_cursor(created_at: datetime, notification_id: UUID) -> str:
    """Encode pagination cursor."""
    cursor_str = f"{created_at.isoformat()}|{notification_id}"
    return base64.urlsafe_b64encode(cursor_str.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Decode pagination cursor.

    Raises:
        ValueError: If the cursor is malformed
    """
    try:
        cursor_str = base64.urlsafe_b64decode(cursor.encode()).decode()
        parts = cursor_str.split("|")
        created_at = datetime.fromisoformat(parts[0])
        notification_id = UUID(parts[1])
    except (ValueError, IndexError) as e:
        msg = f"Invalid cursor format: {e}"
        raise ValueError(msg) from e
    return created_at, notification_id

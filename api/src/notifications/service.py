# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Notification service layer.

Business logic for:
- Appending notifications to a user's log
- Listing a user's notifications with cursor pagination
- Marking notifications as read
- Deleting and clearing notifications
- Tracking unread counts (counter table, cached in Redis)
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.config.settings import get_settings
from src.core.documents import utc_now
from src.core.redis import unread_count_key
from src.notifications.models import (
    Notification,
    NotificationType,
    ReferenceType,
    create_notification,
)
from src.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
    decode_cursor,
    encode_cursor,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)

# Upper bound when scanning a user's partition for a single notification
SCAN_LIMIT = 1000


class NotificationError(Exception):
    """Base notification error."""

    def __init__(self, message: str, code: str = "notification_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotificationNotFoundError(NotificationError):
    def __init__(self, message: str = "Notification not found"):
        super().__init__(message, "notification_not_found")


class NotificationService:
    """Service for the per-user notification log."""

    def __init__(self, session: "Session", keyspace: str, redis: "Redis | None" = None):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, created_at, notification_id, type, title, message,
             reference_type, reference_id, is_read, read_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_notifications = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ?
            LIMIT ?
        """)

        self._get_notifications_cursor = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ? AND created_at < ?
            LIMIT ?
        """)

        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true, read_at = ?
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._delete_notification = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.notifications
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._delete_all = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.notifications WHERE user_id = ?
        """)

        self._incr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count + 1
            WHERE user_id = ?
        """)

        self._decr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count - ?
            WHERE user_id = ?
        """)

        self._get_unread_count = self.session.prepare(f"""
            SELECT count FROM {self.keyspace}.notification_unread_counts
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Notification Creation
    # ==========================================================================

    async def create_notification(self, notification: Notification) -> Notification:
        """Append a notification to the user's log."""
        await self.session.aexecute(
            self._insert_notification,
            [
                notification.user_id,
                notification.created_at,
                notification.notification_id,
                notification.type.value,
                notification.title,
                notification.message,
                notification.reference_type.value
                if notification.reference_type
                else None,
                notification.reference_id,
                notification.is_read,
                notification.read_at,
            ],
        )
        await self.session.aexecute(self._incr_unread, [notification.user_id])
        await self._invalidate_cache(notification.user_id)
        return notification

    async def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.INFO,
        reference_type: ReferenceType | None = None,
        reference_id: UUID | None = None,
    ) -> Notification:
        """Create a notification for one user."""
        notification = create_notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        await self.create_notification(notification)
        logger.debug(
            "notification_created",
            user_id=str(user_id),
            type=notification_type.value,
        )
        return notification

    async def notify_many(
        self,
        user_ids: Iterable[UUID],
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.INFO,
        reference_type: ReferenceType | None = None,
        reference_id: UUID | None = None,
    ) -> int:
        """Send the same notification to each user once.

        Returns:
            Number of notifications created
        """
        count = 0
        for user_id in dict.fromkeys(user_ids):
            await self.notify(
                user_id,
                title,
                message,
                notification_type=notification_type,
                reference_type=reference_type,
                reference_id=reference_id,
            )
            count += 1
        return count

    # ==========================================================================
    # Notification Reading
    # ==========================================================================

    async def _all_rows(self, user_id: UUID) -> list:
        return list(
            await self.session.aexecute(self._get_notifications, [user_id, SCAN_LIMIT])
        )

    async def get_notifications(
        self,
        user_id: UUID,
        limit: int = 20,
        cursor: str | None = None,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        """Get notifications for a user, newest first.

        Raises:
            ValueError: If the cursor is malformed
        """
        # Unread filtering happens client side so fetch the whole window
        fetch = SCAN_LIMIT if unread_only else limit + 1
        if cursor:
            created_at, _ = decode_cursor(cursor)
            rows = await self.session.aexecute(
                self._get_notifications_cursor,
                [user_id, created_at, fetch],
            )
        else:
            rows = await self.session.aexecute(self._get_notifications, [user_id, fetch])

        notifications = [
            Notification.from_row(row)
            for row in rows
            if not (unread_only and row.is_read)
        ]

        has_more = len(notifications) > limit
        if has_more:
            notifications = notifications[:limit]

        next_cursor = None
        if has_more and notifications:
            last = notifications[-1]
            next_cursor = encode_cursor(last.created_at, last.notification_id)

        return NotificationListResponse(
            items=[NotificationResponse.from_notification(n) for n in notifications],
            unread_count=await self.get_unread_count(user_id),
            has_more=has_more,
            next_cursor=next_cursor,
        )

    async def get_unread_count(self, user_id: UUID) -> int:
        """Get unread notification count for user."""
        key = unread_count_key(user_id)
        if self.redis:
            cached = await self.redis.get(key)
            if cached is not None:
                return int(cached)

        result = await self.session.aexecute(self._get_unread_count, [user_id])
        row = result.one()
        count = max(row.count, 0) if row and row.count else 0

        if self.redis:
            await self.redis.setex(
                key,
                get_settings().unread_count_cache_ttl,
                str(count),
            )

        return count

    # ==========================================================================
    # Mark as Read
    # ==========================================================================

    async def mark_as_read(self, user_id: UUID, notification_id: UUID) -> Notification:
        """Mark one notification as read.

        Raises:
            NotificationNotFoundError: If the user has no such notification
        """
        for row in await self._all_rows(user_id):
            if row.notification_id != notification_id:
                continue
            notification = Notification.from_row(row)
            if not notification.is_read:
                notification.is_read = True
                notification.read_at = utc_now()
                await self.session.aexecute(
                    self._mark_read,
                    [notification.read_at, user_id, row.created_at, notification_id],
                )
                await self.session.aexecute(self._decr_unread, [1, user_id])
                await self._invalidate_cache(user_id)
            return notification
        raise NotificationNotFoundError

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark all notifications as read for user.

        Returns count of notifications marked as read.
        """
        now = utc_now()
        marked = 0
        for row in await self._all_rows(user_id):
            if not row.is_read:
                await self.session.aexecute(
                    self._mark_read,
                    [now, user_id, row.created_at, row.notification_id],
                )
                marked += 1

        if marked > 0:
            await self.session.aexecute(self._decr_unread, [marked, user_id])
            await self._invalidate_cache(user_id)

        logger.info("notifications_marked_read", user_id=str(user_id), count=marked)
        return marked

    # ==========================================================================
    # Deletion
    # ==========================================================================

    async def delete_notification(self, user_id: UUID, notification_id: UUID) -> None:
        """Delete one notification.

        Raises:
            NotificationNotFoundError: If the user has no such notification
        """
        for row in await self._all_rows(user_id):
            if row.notification_id != notification_id:
                continue
            await self.session.aexecute(
                self._delete_notification,
                [user_id, row.created_at, notification_id],
            )
            if not row.is_read:
                await self.session.aexecute(self._decr_unread, [1, user_id])
                await self._invalidate_cache(user_id)
            return
        raise NotificationNotFoundError

    async def clear_all(self, user_id: UUID) -> int:
        """Delete every notification of the user.

        Returns count of notifications deleted.
        """
        rows = await self._all_rows(user_id)
        unread = sum(1 for row in rows if not row.is_read)
        await self.session.aexecute(self._delete_all, [user_id])
        if unread:
            await self.session.aexecute(self._decr_unread, [unread, user_id])
        await self._invalidate_cache(user_id)
        logger.info("notifications_cleared", user_id=str(user_id), count=len(rows))
        return len(rows)

    async def clear_read(self, user_id: UUID) -> int:
        """Delete the user's read notifications.

        Returns count of notifications deleted.
        """
        deleted = 0
        for row in await self._all_rows(user_id):
            if row.is_read:
                await self.session.aexecute(
                    self._delete_notification,
                    [user_id, row.created_at, row.notification_id],
                )
                deleted += 1
        logger.info("notifications_read_cleared", user_id=str(user_id), count=deleted)
        return deleted

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def _invalidate_cache(self, user_id: UUID) -> None:
        """Invalidate the cached unread count for user."""
        if not self.redis:
            return
        await self.redis.delete(unread_count_key(user_id))

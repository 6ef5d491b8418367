"""Notification API routes.

Endpoints for:
- GET /api/notifications - List own notifications
- GET /api/notifications/unread-count - Get unread count
- PUT /api/notifications/{id}/read - Mark one as read
- PUT /api/notifications/mark-all-read - Mark all as read
- DELETE /api/notifications/{id} - Delete one
- DELETE /api/notifications/clear-all - Delete all
- DELETE /api/notifications/clear-read - Delete read ones
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from src.auth.dependencies import CurrentUser
from src.auth.schemas import MessageResponse
from src.notifications.dependencies import (
    NotificationServiceDep,
    handle_notification_error,
)
from src.notifications.schemas import (
    ClearResponse,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from src.notifications.service import NotificationError


router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
)


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List user notifications",
    description="Get the authenticated user's notifications, newest first.",
)
async def list_notifications(
    current_user: CurrentUser,
    service: NotificationServiceDep,
    limit: int = Query(default=20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(default=None, description="Pagination cursor"),
    unread_only: bool = Query(default=False, description="Only show unread"),
) -> NotificationListResponse:
    try:
        return await service.get_notifications(
            user_id=current_user.id,
            limit=limit,
            cursor=cursor,
            unread_only=unread_only,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid cursor",
        ) from e


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Get unread notification count",
)
async def get_unread_count(
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> UnreadCountResponse:
    count = await service.get_unread_count(user_id=current_user.id)
    return UnreadCountResponse(count=count)


@router.put(
    "/mark-all-read",
    response_model=MarkReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    marked_count = await service.mark_all_as_read(user_id=current_user.id)
    unread_count = await service.get_unread_count(user_id=current_user.id)

    return MarkReadResponse(
        marked_count=marked_count,
        unread_count=unread_count,
    )


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
async def mark_read(
    notification_id: UUID,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> NotificationResponse:
    try:
        notification = await service.mark_as_read(current_user.id, notification_id)
    except NotificationError as e:
        raise handle_notification_error(e) from e
    return NotificationResponse.from_notification(notification)


@router.delete(
    "/clear-all",
    response_model=ClearResponse,
    summary="Delete all notifications",
)
async def clear_all(
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> ClearResponse:
    deleted = await service.clear_all(current_user.id)
    return ClearResponse(
        deleted_count=deleted,
        unread_count=await service.get_unread_count(current_user.id),
    )


@router.delete(
    "/clear-read",
    response_model=ClearResponse,
    summary="Delete read notifications",
)
async def clear_read(
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> ClearResponse:
    deleted = await service.clear_read(current_user.id)
    return ClearResponse(
        deleted_count=deleted,
        unread_count=await service.get_unread_count(current_user.id),
    )


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: UUID,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> MessageResponse:
    try:
        await service.delete_notification(current_user.id, notification_id)
    except NotificationError as e:
        raise handle_notification_error(e) from e
    return MessageResponse(message="Notification deleted")

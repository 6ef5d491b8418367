"""Announcement API endpoints.

Provides routes for:
- Audience-filtered reading (anonymous callers see only public posts)
- Admin authoring, publishing and listing
- Comments
- Statistics
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.announcements.dependencies import (
    AnnouncementManager,
    AnnouncementServiceDep,
    Commenter,
    handle_announcement_error,
)
from src.announcements.schemas import (
    AdminAnnouncementListFilters,
    AnnouncementListFilters,
    AnnouncementResponse,
    AnnouncementStatsResponse,
    CommentRequest,
    CommentsResponse,
    CreateAnnouncementRequest,
    UpdateAnnouncementRequest,
)
from src.announcements.service import AnnouncementError
from src.auth.dependencies import OptionalUser, StatsViewer
from src.auth.schemas import MessageResponse
from src.core.pagination import Page, PageDep, paginate


router = APIRouter(prefix="/api/announcements", tags=["announcements"])


@router.get(
    "", response_model=Page[AnnouncementResponse], summary="List announcements"
)
async def list_announcements(
    user: OptionalUser,
    service: AnnouncementServiceDep,
    page: PageDep,
    filters: Annotated[AnnouncementListFilters, Query()],
) -> Page[AnnouncementResponse]:
    result = await service.list_visible(filters, user, page)
    return Page[AnnouncementResponse](
        **result.model_dump(exclude={"items"}),
        items=[AnnouncementResponse.from_announcement(a) for a in result.items],
    )


@router.get(
    "/admin",
    response_model=Page[AnnouncementResponse],
    summary="List all announcements",
)
async def list_all_announcements(
    _admin: AnnouncementManager,
    service: AnnouncementServiceDep,
    page: PageDep,
    filters: Annotated[AdminAnnouncementListFilters, Query()],
) -> Page[AnnouncementResponse]:
    announcements = await service.list_all(filters)
    return paginate(
        [AnnouncementResponse.from_announcement(a) for a in announcements], page
    )


@router.get(
    "/stats/overview",
    response_model=AnnouncementStatsResponse,
    summary="Announcement statistics",
)
async def announcement_stats(
    _admin: StatsViewer,
    service: AnnouncementServiceDep,
) -> AnnouncementStatsResponse:
    return await service.get_stats()


@router.get(
    "/{announcement_id}",
    response_model=AnnouncementResponse,
    summary="Get announcement",
)
async def get_announcement(
    announcement_id: UUID,
    user: OptionalUser,
    service: AnnouncementServiceDep,
) -> AnnouncementResponse:
    try:
        announcement = await service.read(announcement_id, user)
    except AnnouncementError as e:
        raise handle_announcement_error(e) from e
    return AnnouncementResponse.from_announcement(announcement)


@router.post(
    "",
    response_model=AnnouncementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create announcement",
)
async def create_announcement(
    data: CreateAnnouncementRequest,
    admin: AnnouncementManager,
    service: AnnouncementServiceDep,
) -> AnnouncementResponse:
    try:
        announcement = await service.create_announcement(data, admin)
    except AnnouncementError as e:
        raise handle_announcement_error(e) from e
    return AnnouncementResponse.from_announcement(announcement)


@router.put(
    "/{announcement_id}",
    response_model=AnnouncementResponse,
    summary="Update announcement",
)
async def update_announcement(
    announcement_id: UUID,
    data: UpdateAnnouncementRequest,
    _admin: AnnouncementManager,
    service: AnnouncementServiceDep,
) -> AnnouncementResponse:
    try:
        announcement = await service.update_announcement(announcement_id, data)
    except AnnouncementError as e:
        raise handle_announcement_error(e) from e
    return AnnouncementResponse.from_announcement(announcement)


@router.put(
    "/{announcement_id}/publish",
    response_model=AnnouncementResponse,
    summary="Publish announcement",
)
async def publish_announcement(
    announcement_id: UUID,
    _admin: AnnouncementManager,
    service: AnnouncementServiceDep,
) -> AnnouncementResponse:
    try:
        announcement = await service.publish(announcement_id)
    except AnnouncementError as e:
        raise handle_announcement_error(e) from e
    return AnnouncementResponse.from_announcement(announcement)


@router.put(
    "/{announcement_id}/unpublish",
    response_model=AnnouncementResponse,
    summary="Unpublish announcement",
)
async def unpublish_announcement(
    announcement_id: UUID,
    _admin: AnnouncementManager,
    service: AnnouncementServiceDep,
) -> AnnouncementResponse:
    try:
        announcement = await service.unpublish(announcement_id)
    except AnnouncementError as e:
        raise handle_announcement_error(e) from e
    return AnnouncementResponse.from_announcement(announcement)


@router.post(
    "/{announcement_id}/comments",
    response_model=CommentsResponse,
    summary="Comment on an announcement",
)
async def add_comment(
    announcement_id: UUID,
    data: CommentRequest,
    user: Commenter,
    service: AnnouncementServiceDep,
) -> CommentsResponse:
    try:
        comments = await service.add_comment(announcement_id, user, data.content)
    except AnnouncementError as e:
        raise handle_announcement_error(e) from e
    return CommentsResponse(message="Comment added successfully", comments=comments)


@router.delete(
    "/{announcement_id}",
    response_model=MessageResponse,
    summary="Delete announcement",
)
async def delete_announcement(
    announcement_id: UUID,
    _admin: AnnouncementManager,
    service: AnnouncementServiceDep,
) -> MessageResponse:
    try:
        await service.delete_announcement(announcement_id)
    except AnnouncementError as e:
        raise handle_announcement_error(e) from e
    return MessageResponse(message="Announcement deleted successfully")

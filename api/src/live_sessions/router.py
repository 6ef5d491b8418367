"""Live session API endpoints.

Provides routes for:
- Staff listing, scheduling and management
- Learner listing, joining and leaving
- Statistics
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.auth.dependencies import CurrentUser, StatsViewer
from src.auth.schemas import MessageResponse
from src.core.pagination import Page, PageDep, paginate
from src.live_sessions.dependencies import (
    LiveSessionServiceDep,
    SessionHost,
    SessionManager,
    handle_live_session_error,
)
from src.live_sessions.schemas import (
    CreateLiveSessionRequest,
    JoinSessionResponse,
    LiveSessionDetailResponse,
    LiveSessionListFilters,
    LiveSessionResponse,
    LiveSessionStatsResponse,
    MyLiveSessionResponse,
    UpdateLiveSessionRequest,
)
from src.live_sessions.service import LiveSessionError


router = APIRouter(prefix="/api/live-sessions", tags=["live-sessions"])


@router.get("", response_model=Page[LiveSessionResponse], summary="List live sessions")
async def list_sessions(
    user: SessionHost,
    service: LiveSessionServiceDep,
    page: PageDep,
    filters: Annotated[LiveSessionListFilters, Query()],
) -> Page[LiveSessionResponse]:
    """Admins see every session, instructors their own."""
    sessions = await service.list_sessions(filters, user)
    return paginate([LiveSessionResponse.from_session(s) for s in sessions], page)


@router.get(
    "/my",
    response_model=Page[MyLiveSessionResponse],
    summary="Sessions of the current user's courses",
)
async def my_sessions(
    user: CurrentUser,
    service: LiveSessionServiceDep,
    page: PageDep,
    upcoming: bool = False,
) -> Page[MyLiveSessionResponse]:
    sessions = await service.list_for_user(user, upcoming=upcoming)
    items = [
        MyLiveSessionResponse(
            **LiveSessionResponse.from_session(s).model_dump(),
            user_participation=s.participation(user.id),
        )
        for s in sessions
    ]
    return paginate(items, page)


@router.get(
    "/stats/overview",
    response_model=LiveSessionStatsResponse,
    summary="Live session statistics",
)
async def session_stats(
    _admin: StatsViewer,
    service: LiveSessionServiceDep,
) -> LiveSessionStatsResponse:
    return await service.get_stats()


@router.get(
    "/{session_id}",
    response_model=LiveSessionDetailResponse,
    summary="Get live session",
)
async def get_session(
    session_id: UUID,
    user: CurrentUser,
    service: LiveSessionServiceDep,
) -> LiveSessionDetailResponse:
    """Admin, session instructor or enrolled learner."""
    try:
        live_session, enrolled = await service.get_for_viewer(session_id, user)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e

    refusal = live_session.join_refusal(enrolled)
    return LiveSessionDetailResponse(
        **LiveSessionResponse.from_session(live_session).model_dump(),
        user_participation=live_session.participation(user.id),
        can_join=refusal is None,
        join_reason=refusal,
    )


@router.post(
    "",
    response_model=LiveSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a live session",
)
async def create_session(
    data: CreateLiveSessionRequest,
    admin: SessionManager,
    service: LiveSessionServiceDep,
) -> LiveSessionResponse:
    try:
        live_session = await service.create_session(data, admin)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e
    return LiveSessionResponse.from_session(live_session)


@router.put(
    "/{session_id}",
    response_model=LiveSessionResponse,
    summary="Update a live session",
)
async def update_session(
    session_id: UUID,
    data: UpdateLiveSessionRequest,
    user: SessionHost,
    service: LiveSessionServiceDep,
) -> LiveSessionResponse:
    try:
        live_session = await service.update_session(session_id, data, user)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e
    return LiveSessionResponse.from_session(live_session)


@router.post(
    "/{session_id}/start",
    response_model=LiveSessionResponse,
    summary="Start a live session",
)
async def start_session(
    session_id: UUID,
    user: SessionHost,
    service: LiveSessionServiceDep,
) -> LiveSessionResponse:
    try:
        live_session = await service.start_session(session_id, user)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e
    return LiveSessionResponse.from_session(live_session)


@router.post(
    "/{session_id}/end",
    response_model=LiveSessionResponse,
    summary="End a live session",
)
async def end_session(
    session_id: UUID,
    user: SessionHost,
    service: LiveSessionServiceDep,
) -> LiveSessionResponse:
    try:
        live_session = await service.end_session(session_id, user)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e
    return LiveSessionResponse.from_session(live_session)


@router.post(
    "/{session_id}/cancel",
    response_model=LiveSessionResponse,
    summary="Cancel a scheduled live session",
)
async def cancel_session(
    session_id: UUID,
    user: SessionHost,
    service: LiveSessionServiceDep,
) -> LiveSessionResponse:
    try:
        live_session = await service.cancel_session(session_id, user)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e
    return LiveSessionResponse.from_session(live_session)


@router.post(
    "/{session_id}/join",
    response_model=JoinSessionResponse,
    summary="Join a live session",
    responses={403: {"description": "Not enrolled, session full or unavailable"}},
)
async def join_session(
    session_id: UUID,
    user: CurrentUser,
    service: LiveSessionServiceDep,
) -> JoinSessionResponse:
    try:
        live_session, participant = await service.join_session(session_id, user)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e
    return JoinSessionResponse(
        message="Successfully joined session",
        room_id=live_session.room_id,
        participant=participant,
        features=live_session.features,
    )


@router.post(
    "/{session_id}/leave",
    response_model=MessageResponse,
    summary="Leave a live session",
)
async def leave_session(
    session_id: UUID,
    user: CurrentUser,
    service: LiveSessionServiceDep,
) -> MessageResponse:
    try:
        await service.leave_session(session_id, user)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e
    return MessageResponse(message="Left session successfully")


@router.delete(
    "/{session_id}",
    response_model=MessageResponse,
    summary="Delete a live session",
)
async def delete_session(
    session_id: UUID,
    admin: SessionManager,
    service: LiveSessionServiceDep,
) -> MessageResponse:
    try:
        await service.delete_session(session_id, admin)
    except LiveSessionError as e:
        raise handle_live_session_error(e) from e
    return MessageResponse(message="Live session deleted successfully")

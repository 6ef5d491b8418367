"""Authentication and user management API endpoints.

Provides routes for:
- Registration, login and current profile (``/api/auth``)
- Admin user management and statistics (``/api/users``)
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.auth.dependencies import (
    AuthServiceDep,
    CurrentUser,
    StatsViewer,
    UserManager,
    handle_auth_error,
)
from src.auth.permissions import is_admin
from src.auth.schemas import (
    CreateUserRequest,
    EnrollmentCounts,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UpdateUserRequest,
    UserDetailResponse,
    UserListFilters,
    UserResponse,
    UserStatsResponse,
)
from src.auth.service import AuthError
from src.core.pagination import Page, PageDep, paginate
from src.enrollments.dependencies import EnrollmentServiceDep
from src.enrollments.models import EnrollmentStatus
from src.enrollments.schemas import EnrollmentResponse
from src.notifications.dependencies import NotificationServiceDep


router = APIRouter(prefix="/api/auth", tags=["auth"])
users_router = APIRouter(prefix="/api/users", tags=["users"])


def _require_self_or_admin(user: CurrentUser, user_id: UUID) -> None:
    if user.id != user_id and not is_admin(user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )


# ==============================================================================
# Auth Endpoints
# ==============================================================================


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a student account",
    responses={409: {"description": "Email already registered"}},
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> TokenResponse:
    try:
        user = await auth_service.register_user(data)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.issue_token(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User login",
    responses={401: {"description": "Invalid credentials or inactive account"}},
)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> TokenResponse:
    try:
        user = await auth_service.authenticate_user(data.email, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.issue_token(user)


@router.get("/me", response_model=UserResponse, summary="Current user profile")
async def me(user: CurrentUser, auth_service: AuthServiceDep) -> UserResponse:
    try:
        return auth_service.to_response(await auth_service.require_user(user.id))
    except AuthError as e:
        raise handle_auth_error(e) from e


# ==============================================================================
# User Management
# ==============================================================================


@users_router.get("", response_model=Page[UserResponse], summary="List users")
async def list_users(
    _admin: UserManager,
    auth_service: AuthServiceDep,
    page: PageDep,
    filters: Annotated[UserListFilters, Query()],
) -> Page[UserResponse]:
    users = await auth_service.list_users(filters)
    return paginate([auth_service.to_response(u) for u in users], page)


@users_router.get(
    "/stats/overview", response_model=UserStatsResponse, summary="User statistics"
)
async def user_stats(
    _admin: StatsViewer,
    auth_service: AuthServiceDep,
) -> UserStatsResponse:
    return await auth_service.get_stats()


@users_router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user (any role)",
)
async def create_user(
    data: CreateUserRequest,
    _admin: UserManager,
    auth_service: AuthServiceDep,
) -> UserResponse:
    try:
        user = await auth_service.create_user(data)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(user)


@users_router.get(
    "/{user_id}", response_model=UserDetailResponse, summary="Get user by ID"
)
async def get_user(
    user_id: UUID,
    user: CurrentUser,
    auth_service: AuthServiceDep,
    enrollment_service: EnrollmentServiceDep,
    notification_service: NotificationServiceDep,
) -> UserDetailResponse:
    """Profile with enrollment counts. Admin or the user themself."""
    _require_self_or_admin(user, user_id)
    try:
        target = await auth_service.require_user(user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e

    counts = await enrollment_service.count_by_status_for_user(user_id)
    return UserDetailResponse(
        **auth_service.to_response(target).model_dump(),
        enrollment_stats=EnrollmentCounts(**counts),
        unread_notifications=await notification_service.get_unread_count(user_id),
    )


@users_router.put("/{user_id}", response_model=UserResponse, summary="Update user")
async def update_user(
    user_id: UUID,
    data: UpdateUserRequest,
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    try:
        updated = await auth_service.update_user(user_id, data, actor=user)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(updated)


@users_router.delete(
    "/{user_id}", response_model=UserResponse, summary="Deactivate user"
)
async def deactivate_user(
    user_id: UUID,
    admin: UserManager,
    auth_service: AuthServiceDep,
) -> UserResponse:
    try:
        updated = await auth_service.set_user_active(user_id, False, actor_id=admin.id)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(updated)


@users_router.put(
    "/{user_id}/activate", response_model=UserResponse, summary="Activate user"
)
async def activate_user(
    user_id: UUID,
    admin: UserManager,
    auth_service: AuthServiceDep,
) -> UserResponse:
    try:
        updated = await auth_service.set_user_active(user_id, True, actor_id=admin.id)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(updated)


@users_router.get(
    "/{user_id}/enrollments",
    response_model=Page[EnrollmentResponse],
    summary="Enrollments of a user",
)
async def user_enrollments(
    user_id: UUID,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
    page: PageDep,
    status_filter: Annotated[EnrollmentStatus | None, Query(alias="status")] = None,
) -> Page[EnrollmentResponse]:
    _require_self_or_admin(user, user_id)
    enrollments = await enrollment_service.list_for_user(user_id, status_filter)
    return paginate([EnrollmentResponse.from_enrollment(e) for e in enrollments], page)


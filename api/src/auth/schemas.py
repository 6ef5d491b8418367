"""Pydantic schemas for authentication and user management.

Request and response models for:
- Registration, login and token responses
- Admin user management
- User statistics
"""

from datetime import datetime
from typing import TYPE_CHECKING, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.auth.permissions import UserRole
from src.auth.validators import normalize_phone, validate_password, validate_phone


if TYPE_CHECKING:
    from src.auth.models import User


def _check_password(v: str) -> str:
    result = validate_password(v)
    if not result.valid:
        raise ValueError(result.message or "Invalid password")
    return v


def _check_phone(v: str | None) -> str | None:
    if v is None or v.strip() == "":
        return None
    result = validate_phone(v)
    if not result.valid:
        raise ValueError(result.message or "Invalid phone number")
    return normalize_phone(v)


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """Student self-registration request."""

    email: EmailStr = Field(..., description="Email address")
    name: str = Field(..., min_length=2, max_length=50, description="Full name")
    password: str = Field(..., description="Password")
    phone: str | None = Field(None, description="Phone number")

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, v: str | None) -> str | None:
        return _check_phone(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class CreateUserRequest(BaseModel):
    """Admin user creation request (any role)."""

    email: EmailStr
    name: str = Field(..., min_length=2, max_length=50)
    password: str
    role: UserRole = UserRole.STUDENT
    phone: str | None = None
    bio: str | None = Field(None, max_length=500)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, v: str | None) -> str | None:
        return _check_phone(v)


class UpdateUserRequest(BaseModel):
    """Profile update. ``role`` and ``is_active`` are honoured for admins only."""

    name: str | None = Field(None, min_length=2, max_length=50)
    phone: str | None = None
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = Field(None, max_length=500)
    role: UserRole | None = None
    is_active: bool | None = None

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, v: str | None) -> str | None:
        return _check_phone(v)


class UserListFilters(BaseModel):
    """Query filters for the admin user listing."""

    role: UserRole | None = None
    is_active: bool | None = None
    search: str | None = Field(None, max_length=100)
    sort_by: Literal["created_at", "name", "email"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(BaseModel):
    """User response (public profile)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str | None = None
    role: str
    is_active: bool = True
    phone: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user: "User") -> "UserResponse":
        """Create response from User model."""
        return cls.model_validate(user)


class EnrollmentCounts(BaseModel):
    """Number of enrollments per status."""

    pending: int = 0
    approved: int = 0
    rejected: int = 0
    completed: int = 0


class UserDetailResponse(UserResponse):
    """User profile with enrollment and notification summary."""

    enrollment_stats: EnrollmentCounts = Field(default_factory=EnrollmentCounts)
    unread_notifications: int = 0


class TokenResponse(BaseModel):
    """Login/registration response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    user: UserResponse


class UserStatsResponse(BaseModel):
    """Admin user statistics."""

    total_users: int
    active_users: int
    by_role: dict[str, int]
    recent_users: list[UserResponse]


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str

"""Authentication and user management service layer.

Business logic for:
- User registration and login
- Admin user management (create, update, deactivate, activate)
- User queries and statistics
"""

from collections import Counter
from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.auth.models import User
from src.auth.permissions import UserRole, is_admin
from src.auth.schemas import (
    CreateUserRequest,
    RegisterRequest,
    TokenResponse,
    UpdateUserRequest,
    UserListFilters,
    UserResponse,
    UserStatsResponse,
)
from src.auth.security import create_access_token, hash_password, verify_password
from src.config.settings import get_settings
from src.core.documents import utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)

RECENT_USERS_LIMIT = 5


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(Exception):
    """Base authentication error."""

    def __init__(self, message: str, code: str = "auth_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Invalid email or password."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, "invalid_credentials")


class UserExistsError(AuthError):
    """User with the same email already exists."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, "user_exists")


class UserNotFoundError(AuthError):
    """User not found."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class UserInactiveError(AuthError):
    """User account is deactivated."""

    def __init__(self, message: str = "Account is deactivated"):
        super().__init__(message, "user_inactive")


class PermissionDeniedError(AuthError):
    """User lacks permission for the operation."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "permission_denied")


class InvalidOperationError(AuthError):
    """Operation not allowed in the current state."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_operation")


# ==============================================================================
# Service
# ==============================================================================


class AuthService:
    """Service for accounts, login and user administration."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra driver session
            keyspace: Keyspace name for queries
        """
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_user_by_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE email = ?"
        )
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._list_users = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users"
        )
        self._list_users_by_role = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE role = ?"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, email, name, password_hash, role, is_active, phone, bio,
             avatar_url, last_login_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_user = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET name = ?, phone = ?, bio = ?, avatar_url = ?, role = ?,
                is_active = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_login = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET last_login_at = ?, password_hash = ?
            WHERE id = ?
        """)
        self._set_active = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET is_active = ?, updated_at = ?
            WHERE id = ?
        """)

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def get_user_by_email(self, email: str) -> User | None:
        """Find user by email address."""
        result = await self.session.aexecute(
            self._get_user_by_email, [email.lower().strip()]
        )
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Find user by ID."""
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def require_user(self, user_id: UUID) -> User:
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError
        return user

    async def list_users_by_role(
        self, role: UserRole, active_only: bool = True
    ) -> list[User]:
        """List users with a role (admins to notify, instructors to assign)."""
        result = await self.session.aexecute(self._list_users_by_role, [role.value])
        users = [User.from_row(row) for row in result]
        if active_only:
            users = [u for u in users if u.is_active]
        return users

    async def list_users(self, filters: UserListFilters) -> list[User]:
        """List users with filtering and sorting applied in memory.

        Admin-only, low-frequency listing; Cassandra can neither sort nor
        match substrings, so the table is scanned.
        """
        if filters.role:
            result = await self.session.aexecute(
                self._list_users_by_role, [filters.role.value]
            )
        else:
            result = await self.session.aexecute(self._list_users)
        users = [User.from_row(row) for row in result]

        if filters.is_active is not None:
            users = [u for u in users if u.is_active == filters.is_active]
        if filters.search:
            term = filters.search.lower()
            users = [
                u for u in users if term in u.email or term in (u.name or "").lower()
            ]

        users.sort(
            key=lambda u: (getattr(u, filters.sort_by) or "")
            if filters.sort_by != "created_at"
            else u.created_at,
            reverse=filters.sort_order == "desc",
        )
        return users

    # ==========================================================================
    # Accounts
    # ==========================================================================

    async def register_user(self, data: RegisterRequest) -> User:
        """Register a new student account.

        Raises:
            UserExistsError: If the email is already registered
        """
        return await self._create(
            email=data.email,
            name=data.name,
            password=data.password,
            role=UserRole.STUDENT,
            phone=data.phone,
        )

    async def create_user(self, data: CreateUserRequest) -> User:
        """Create an account with any role (admin only)."""
        return await self._create(
            email=data.email,
            name=data.name,
            password=data.password,
            role=data.role,
            phone=data.phone,
            bio=data.bio,
        )

    async def _create(
        self,
        email: str,
        name: str,
        password: str,
        role: UserRole,
        phone: str | None = None,
        bio: str | None = None,
    ) -> User:
        if await self.get_user_by_email(email):
            raise UserExistsError

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password),
            role=role.value,
            phone=phone,
            bio=bio,
        )
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.email,
                user.name,
                user.password_hash,
                user.role,
                user.is_active,
                user.phone,
                user.bio,
                user.avatar_url,
                user.last_login_at,
                user.created_at,
                user.updated_at,
            ],
        )
        logger.info("user_created", user_id=str(user.id), role=user.role)
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If email or password is wrong
            UserInactiveError: If the account was deactivated
        """
        user = await self.get_user_by_email(email)
        if user is None:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            logger.info("login_failed", user_id=str(user.id))
            raise InvalidCredentialsError
        if not user.is_active:
            raise UserInactiveError

        user.last_login_at = utc_now()
        if new_hash:
            user.password_hash = new_hash
        await self.session.aexecute(
            self._update_login, [user.last_login_at, user.password_hash, user.id]
        )
        return user

    def issue_token(self, user: User) -> TokenResponse:
        """Create the access token response for a user."""
        settings = get_settings()
        lifetime = timedelta(minutes=settings.auth_access_token_expire_minutes)
        token = create_access_token(
            {
                "sub": str(user.id),
                "email": user.email,
                "name": user.name,
                "role": user.role,
            },
            expires_delta=lifetime,
        )
        return TokenResponse(
            access_token=token,
            expires_in=int(lifetime.total_seconds()),
            user=self.to_response(user),
        )

    async def update_user(
        self,
        user_id: UUID,
        data: UpdateUserRequest,
        actor: UserResponse,
    ) -> User:
        """Update a profile.

        Only admins may change ``role`` or ``is_active``; other users may
        only edit their own profile.

        Raises:
            PermissionDeniedError: Editing someone else, or role/status as non-admin
            UserNotFoundError: If user doesn't exist
        """
        actor_is_admin = is_admin(actor.role)
        if not actor_is_admin and actor.id != user_id:
            raise PermissionDeniedError
        if not actor_is_admin and (data.role is not None or data.is_active is not None):
            raise PermissionDeniedError("Only admins can change role or status")

        user = await self.require_user(user_id)
        for field in ("name", "phone", "bio", "avatar_url"):
            value = getattr(data, field)
            if value is not None:
                setattr(user, field, value)
        if data.role is not None:
            user.role = data.role.value
        if data.is_active is not None:
            user.is_active = data.is_active
        user.updated_at = utc_now()

        await self.session.aexecute(
            self._update_user,
            [
                user.name,
                user.phone,
                user.bio,
                user.avatar_url,
                user.role,
                user.is_active,
                user.updated_at,
                user.id,
            ],
        )
        logger.info("user_updated", user_id=str(user.id), actor_id=str(actor.id))
        return user

    async def set_user_active(
        self, user_id: UUID, is_active: bool, actor_id: UUID
    ) -> User:
        """Deactivate (soft delete) or reactivate an account.

        Raises:
            InvalidOperationError: If an admin tries to deactivate themselves
        """
        if not is_active and user_id == actor_id:
            raise InvalidOperationError("You cannot deactivate your own account")
        user = await self.require_user(user_id)
        user.is_active = is_active
        user.updated_at = utc_now()
        await self.session.aexecute(
            self._set_active, [is_active, user.updated_at, user_id]
        )
        logger.info(
            "user_activated" if is_active else "user_deactivated",
            user_id=str(user_id),
            actor_id=str(actor_id),
        )
        return user

    # ==========================================================================
    # Statistics
    # ==========================================================================

    async def get_stats(self) -> UserStatsResponse:
        result = await self.session.aexecute(self._list_users)
        users = [User.from_row(row) for row in result]
        by_role = Counter(u.role for u in users)
        recent = sorted(users, key=lambda u: u.created_at, reverse=True)
        return UserStatsResponse(
            total_users=len(users),
            active_users=sum(1 for u in users if u.is_active),
            by_role={role.value: by_role.get(role.value, 0) for role in UserRole},
            recent_users=[self.to_response(u) for u in recent[:RECENT_USERS_LIMIT]],
        )

    def to_response(self, user: User) -> UserResponse:
        """Convert User model to UserResponse schema."""
        return UserResponse.from_user(user)

"""Database models for users.

Cassandra table definitions for:
- Users: main table, email lookups via secondary index
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from src.auth.permissions import UserRole
from src.core.documents import ensure_utc_aware, utc_now


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    name TEXT,
    password_hash TEXT,
    role TEXT,
    is_active BOOLEAN,
    phone TEXT,
    bio TEXT,
    avatar_url TEXT,
    last_login_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USER_EMAIL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_email_idx ON {keyspace}.users (email)
"""

USER_ROLE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_role_idx ON {keyspace}.users (role)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_EMAIL_INDEX_CQL,
    USER_ROLE_INDEX_CQL,
]


class User:
    """User account.

    Attributes:
        id: Unique identifier
        email: Unique, lower-cased email address
        name: Display name
        password_hash: Argon2id hash
        role: student, instructor or admin
        is_active: False once deactivated (soft delete)
        phone, bio, avatar_url: Optional profile fields
        last_login_at: Last successful login
    """

    def __init__(
        self,
        id: UUID | None = None,
        email: str = "",
        name: str = "",
        password_hash: str = "",
        role: str = UserRole.STUDENT.value,
        is_active: bool = True,
        phone: str | None = None,
        bio: str | None = None,
        avatar_url: str | None = None,
        last_login_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.email = email.lower().strip()
        self.name = name
        self.password_hash = password_hash
        self.role = role
        self.is_active = is_active
        self.phone = phone
        self.bio = bio
        self.avatar_url = avatar_url
        self.last_login_at = ensure_utc_aware(last_login_at)
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email,
            name=row.name,
            password_hash=row.password_hash,
            role=row.role,
            is_active=row.is_active,
            phone=row.phone,
            bio=row.bio,
            avatar_url=row.avatar_url,
            last_login_at=row.last_login_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        """Convert to dictionary (excludes password_hash by default)."""
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "phone": self.phone,
            "bio": self.bio,
            "avatar_url": self.avatar_url,
            "last_login_at": self.last_login_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_password:
            data["password_hash"] = self.password_hash
        return data

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"

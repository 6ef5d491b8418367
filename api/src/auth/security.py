"""Password hashing (Argon2id) and JWT access tokens."""

from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError
from jose import JWTError, jwt

from src.config.settings import get_settings


# OWASP password storage parameters
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,
    parallelism=1,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Example:
        >>> hash_password("my-secure-password").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> tuple[bool, str | None]:
    """Verify a password against its hash.

    Returns:
        Tuple of (is_valid, new_hash) where new_hash is set only when the
        stored hash was produced with outdated parameters.
    """
    try:
        _password_hasher.verify(password_hash, password)
    except VerifyMismatchError:
        return False, None
    if _password_hasher.check_needs_rehash(password_hash):
        return True, hash_password(password)
    return True, None


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token.

    Args:
        data: Claims, typically ``sub``, ``email``, ``name`` and ``role``
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT carrying ``exp``, ``iat`` and ``type="access"``
    """
    settings = get_settings()
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)
    )
    claims = {**data, "exp": expire, "iat": now, "type": "access"}
    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        JWTError: If the signature is bad, the token expired or it is not
            an access token
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )
    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)
    return payload

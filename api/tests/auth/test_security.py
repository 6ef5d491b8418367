"""Tests for auth security functions."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from src.auth.permissions import UserRole
from src.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from src.config.settings import get_settings


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_creates_hash(self) -> None:
        """Hash should be different from plain password."""
        password = "learning123"
        hashed = hash_password(password)
        assert hashed != password
        assert len(hashed) > 0

    def test_hash_password_unique_hashes(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        password = "learning123"
        assert hash_password(password) != hash_password(password)

    def test_verify_password_correct(self) -> None:
        """Correct password should verify successfully."""
        password = "learning123"
        hashed = hash_password(password)
        is_valid, new_hash = verify_password(password, hashed)
        assert is_valid is True
        assert new_hash is None  # No rehash needed for fresh hash

    def test_verify_password_incorrect(self) -> None:
        """Incorrect password should fail verification."""
        hashed = hash_password("learning123")
        is_valid, new_hash = verify_password("teaching456", hashed)
        assert is_valid is False
        assert new_hash is None

    def test_verify_password_empty(self) -> None:
        """Empty password should fail verification."""
        hashed = hash_password("learning123")
        is_valid, _new_hash = verify_password("", hashed)
        assert is_valid is False

    def test_hash_is_argon2id(self) -> None:
        """Hash should use the Argon2id variant."""
        assert hash_password("learning123").startswith("$argon2id$")


class TestAccessToken:
    """Tests for access token creation and decoding."""

    def test_decode_access_token(self) -> None:
        """Should decode token and return the claims."""
        user_id = uuid4()
        token = create_access_token(
            {
                "sub": str(user_id),
                "email": "ada@example.com",
                "name": "Ada",
                "role": UserRole.INSTRUCTOR.value,
            }
        )
        payload = decode_access_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["email"] == "ada@example.com"
        assert payload["name"] == "Ada"
        assert payload["role"] == "instructor"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_decode_access_token_expired(self) -> None:
        """Should raise JWTError for expired token."""
        token = create_access_token(
            {"sub": str(uuid4()), "email": "a@example.com", "role": "student"},
            expires_delta=timedelta(seconds=-1),
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_decode_access_token_invalid(self) -> None:
        """Should raise JWTError for invalid token."""
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_wrong_type(self) -> None:
        """Tokens that are not access tokens are refused."""
        settings = get_settings()
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "sub": str(uuid4()),
                "email": "a@example.com",
                "role": "student",
                "type": "refresh",
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError, match="expected 'access'"):
            decode_access_token(token)

    def test_decode_access_token_wrong_key(self) -> None:
        """Tokens signed with another key are refused."""
        settings = get_settings()
        now = datetime.now(UTC)
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access", "exp": now + timedelta(minutes=5)},
            "another-secret-key-that-is-long-enough!!",
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

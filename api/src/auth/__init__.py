"""Authentication, users and role capabilities."""

from src.auth.permissions import Capability, UserRole


__all__ = ["Capability", "UserRole"]

"""Liveness and readiness checks."""

from src.health.router import router


__all__ = ["router"]

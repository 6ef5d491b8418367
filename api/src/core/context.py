"""Request-scoped context stored in contextvars.

The request id and the authenticated user id are set once per request and
picked up by the logging processors without being passed around.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID, generating one when none is supplied."""
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_context() -> dict[str, Any]:
    """Return the non-empty context values as a dict."""
    context: dict[str, Any] = {}
    if request_id := get_request_id():
        context["request_id"] = request_id
    if user_id := get_user_id():
        context["user_id"] = user_id
    return context


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    user_id_var.set(None)

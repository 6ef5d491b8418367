# Core infrastructure
from src.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware, get_client_ip, set_user_context
from src.core.pagination import PageParams, paginate


__all__ = [
    "PageParams",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_client_ip",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "paginate",
    "set_request_id",
    "set_user_context",
    "set_user_id",
]

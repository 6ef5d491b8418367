"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.announcements.router import router as announcements_router
from src.announcements.service import AnnouncementService
from src.auth.router import router as auth_router
from src.auth.router import users_router
from src.auth.service import AuthService
from src.config import get_settings
from src.contact.router import router as contact_router
from src.contact.service import ContactService
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.courses.router import router as courses_router
from src.courses.service import CourseService
from src.enrollments.router import router as enrollments_router
from src.enrollments.service import EnrollmentService
from src.health import router as health_router
from src.live_sessions.router import router as live_sessions_router
from src.live_sessions.service import LiveSessionService
from src.notifications.router import router as notifications_router
from src.notifications.service import NotificationService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    auth_service: AuthService | None = None
    course_service: CourseService | None = None
    enrollment_service: EnrollmentService | None = None
    notification_service: NotificationService | None = None
    live_session_service: LiveSessionService | None = None
    announcement_service: AnnouncementService | None = None
    contact_service: ContactService | None = None


app_state = AppState()


def _require(name: str) -> Any:
    """Service from app state; 503 while the database is unavailable."""
    service = getattr(app_state, name)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not available",
        )
    return service


def get_auth_service() -> AuthService:
    """Get AuthService instance from app state."""
    return _require("auth_service")


def get_course_service() -> CourseService:
    """Get CourseService instance from app state."""
    return _require("course_service")


def get_enrollment_service() -> EnrollmentService:
    """Get EnrollmentService instance from app state."""
    return _require("enrollment_service")


def get_notification_service() -> NotificationService:
    """Get NotificationService instance from app state."""
    return _require("notification_service")


def get_live_session_service() -> LiveSessionService:
    """Get LiveSessionService instance from app state."""
    return _require("live_session_service")


def get_announcement_service() -> AnnouncementService:
    """Get AnnouncementService instance from app state."""
    return _require("announcement_service")


def get_contact_service() -> ContactService:
    """Get ContactService instance from app state."""
    return _require("contact_service")


def init_services(session: Any, keyspace: str, redis_client: Any = None) -> None:
    """Build the service graph on top of a Cassandra session."""
    auth_service = AuthService(session=session, keyspace=keyspace)
    notification_service = NotificationService(
        session=session, keyspace=keyspace, redis=redis_client
    )
    course_service = CourseService(
        session=session, keyspace=keyspace, auth_service=auth_service
    )
    enrollment_service = EnrollmentService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        notification_service=notification_service,
        auth_service=auth_service,
    )

    app_state.auth_service = auth_service
    app_state.notification_service = notification_service
    app_state.course_service = course_service
    app_state.enrollment_service = enrollment_service
    app_state.live_session_service = LiveSessionService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        enrollment_service=enrollment_service,
        notification_service=notification_service,
        auth_service=auth_service,
    )
    app_state.announcement_service = AnnouncementService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        enrollment_service=enrollment_service,
        notification_service=notification_service,
    )
    app_state.contact_service = ContactService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        notification_service=notification_service,
        auth_service=auth_service,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis only caches unread counts; the app works without it
    redis_client = None
    if settings.redis_enabled:
        try:
            redis_client = await init_redis()
            logger.info("redis_initialized")
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - unread counts are not cached",
            )

    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")
        init_services(
            app_state.cassandra_session, settings.cassandra_keyspace, redis_client
        )
        logger.info("services_initialized", redis_enabled=redis_client is not None)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays off so Starlette never renders stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LearnHub - Learning Management System API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Render HTTP errors as ``{"message": ...}``."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "message": str(exc.detail)
                if exc.status_code != status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "request_id": _get_request_id_safe(request),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Invalid input is a 400 listing every failing field."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "message": "Validation failed",
                "request_id": _get_request_id_safe(request),
                "errors": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                        "type": err.get("type", "value_error"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "Internal server error",
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(courses_router)
    app.include_router(enrollments_router)
    app.include_router(notifications_router)
    app.include_router(live_sessions_router)
    app.include_router(announcements_router)
    app.include_router(contact_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


# Configure router dependencies before creating app
from src.announcements.dependencies import set_announcement_service_getter  # noqa: E402
from src.auth.dependencies import set_auth_service_getter  # noqa: E402
from src.contact.dependencies import set_contact_service_getter  # noqa: E402
from src.courses.dependencies import set_course_service_getter  # noqa: E402
from src.enrollments.dependencies import set_enrollment_service_getter  # noqa: E402
from src.live_sessions.dependencies import (  # noqa: E402
    set_live_session_service_getter,
)
from src.notifications.dependencies import (  # noqa: E402
    set_notification_service_getter,
)


set_auth_service_getter(get_auth_service)
set_course_service_getter(get_course_service)
set_enrollment_service_getter(get_enrollment_service)
set_notification_service_getter(get_notification_service)
set_live_session_service_getter(get_live_session_service)
set_announcement_service_getter(get_announcement_service)
set_contact_service_getter(get_contact_service)


app = create_app()

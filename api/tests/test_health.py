"""Tests for health endpoints and application-wide error rendering."""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_database(client: TestClient) -> None:
    """Without a Cassandra connection the app is not ready."""
    response = client.get("/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["checks"]["cassandra"] == "unavailable"
    assert "environment" in data


def test_readiness_with_database(client: TestClient) -> None:
    """A Cassandra session answering the ping makes the app ready."""
    session = MagicMock()
    session.aexecute = AsyncMock(return_value=MagicMock())
    with (
        patch(
            "src.health.router.AsyncCassandraConnection.is_connected",
            return_value=True,
        ),
        patch(
            "src.health.router.AsyncCassandraConnection.get_session",
            return_value=session,
        ),
    ):
        response = client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["cassandra"] == "ok"
    session.aexecute.assert_awaited_once()


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "learnhub"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "LearnHub" in data["message"]
    assert "version" in data


def test_service_unavailable_without_database(client: TestClient) -> None:
    """Routes answer 503 with a message while services are not initialised."""
    response = client.get("/api/courses")
    assert response.status_code == 503
    assert response.json()["message"] == "Service not available"


def test_missing_token(client: TestClient) -> None:
    response = client.get("/api/enrollments/my")
    assert response.status_code == 401
    assert response.json()["message"] == "Access token required"
    assert response.headers["www-authenticate"] == "Bearer"


def test_invalid_token(client: TestClient) -> None:
    response = client.get(
        "/api/notifications",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


def test_request_id_header(client: TestClient) -> None:
    response = client.get("/health/live", headers={"X-Request-ID": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"


def test_server_error_detail_is_hidden_but_503_message_is_kept() -> None:
    from fastapi import HTTPException

    from src.main import create_app

    app = create_app()

    @app.get("/boom")
    async def boom() -> None:
        raise HTTPException(status_code=500, detail="keyspace learnhub missing")

    @app.get("/down")
    async def down() -> None:
        raise HTTPException(status_code=503, detail="Service not available")

    client = TestClient(app)

    response = client.get("/boom")
    assert response.status_code == 500
    assert response.json()["message"] == "Internal server error"

    response = client.get("/down")
    assert response.status_code == 503
    assert response.json()["message"] == "Service not available"

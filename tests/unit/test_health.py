"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "booking-backend"


def test_readyz_endpoint_database_healthy():
    """Test readiness endpoint when the pool reports healthy."""
    db_health = {"healthy": True, "pool_stats": {"pool_size": 3, "pool_available": 2}}
    with patch("app.routes.health.db_health_check", AsyncMock(return_value=db_health)):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["database"]["ok"] is True
    assert data["checks"]["database"]["pool_size"] == 3
    assert isinstance(data["checks"]["database"]["latency_ms"], (int, float))


def test_readyz_endpoint_database_unhealthy():
    """Test readiness endpoint when the database is down."""
    db_health = {"healthy": False, "error": "Connection failed"}
    with patch("app.routes.health.db_health_check", AsyncMock(return_value=db_health)):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Connection failed"


def test_readyz_endpoint_database_check_raises():
    with patch(
        "app.routes.health.db_health_check", AsyncMock(side_effect=RuntimeError("pool closed"))
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "RuntimeError: pool closed"


def test_readyz_reports_calendar_without_failing():
    """An unconfigured calendar is reported but does not fail readiness."""
    with (
        patch("app.routes.health.db_health_check", AsyncMock(return_value={"healthy": True})),
        patch("app.routes.health.settings.GOOGLE_CALENDAR_REFRESH_TOKEN", None),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["calendar"]["configured"] is False

"""Root, health and error-envelope behaviour of the application shell."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.config import EnvironmentMode


def test_root(client):
    body = client.get("/").json()

    assert body["documentation"] == "/docs"
    assert body["health"] == "/health"


def test_health_reports_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "healthy"
    assert body["status"] in ("operational", "degraded")
    assert body["environment"] == "development"


def test_request_headers_added(client):
    response = client.get("/")

    assert "X-Request-ID" in response.headers
    assert float(response.headers["X-Process-Time"]) >= 0


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}


def test_validation_errors_list_fields(client):
    response = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["details"][0]["field"] == "email"


# =============================================================================
# STARTUP
# =============================================================================

def _run_lifespan(client, monkeypatch, mode) -> AsyncMock:
    from app import main

    create_tables = AsyncMock()
    monkeypatch.setattr(main, "connect_db", AsyncMock())
    monkeypatch.setattr(main, "init_db", create_tables)
    monkeypatch.setattr(main, "engine", MagicMock(dispose=AsyncMock()))
    monkeypatch.setattr(main.settings, "env_mode", mode)

    async def start_and_stop():
        async with main.lifespan(main.app):
            pass

    client.portal.call(start_and_stop)
    return create_tables


def test_startup_creates_tables_in_development(client, monkeypatch):
    create_tables = _run_lifespan(client, monkeypatch, EnvironmentMode.DEVELOPMENT)

    create_tables.assert_awaited_once()


@pytest.mark.parametrize("mode", [EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING])
def test_startup_leaves_schema_to_migrations(client, monkeypatch, mode):
    create_tables = _run_lifespan(client, monkeypatch, mode)

    create_tables.assert_not_awaited()

"""Tests for Health endpoint and the error envelope."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from app.core.deps import COOKIE_NAME, get_db
from app.core.rate_limit import limiter
from app.core.security import create_session_token
from app.main import app
from app.services import os_alert_service


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "env" in data
    assert "version" in data


@pytest.mark.asyncio
async def test_unauthenticated_request_uses_error_envelope(client: AsyncClient):
    response = await client.get("/os/instances")
    assert response.status_code == 401
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "UNAUTHORIZED"
    assert data["error"]


@pytest.mark.asyncio
async def test_database_error_uses_envelope(authed_client: AsyncClient, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(os_alert_service, "list_alerts", broken)

    response = await authed_client.get("/os/alerts")

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {
        "success": False,
        "error": "Database error",
        "code": "UNEXPECTED",
    }


@pytest.mark.asyncio
async def test_unhandled_error_uses_envelope(db, test_user, test_org, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(os_alert_service, "alert_summary", broken)
    app.dependency_overrides[get_db] = lambda: db
    token = create_session_token(
        user_id=test_user.id, org_id=test_org.id, token_version=test_user.token_version
    )

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
            cookies={COOKIE_NAME: token},
        ) as c:
            response = await c.get("/os/alerts/summary")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal server error",
        "code": "UNEXPECTED",
    }


@pytest.mark.asyncio
async def test_rate_limited_accept_uses_envelope(authed_client: AsyncClient):
    try:
        for _ in range(10):
            response = await authed_client.post("/invites/accept", json={"token": "unknown"})
            assert response.status_code == 404

        response = await authed_client.post("/invites/accept", json={"token": "unknown"})
    finally:
        limiter.reset()

    assert response.status_code == 429
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "RATE_LIMITED"
    assert data["error"].startswith("Rate limit exceeded")

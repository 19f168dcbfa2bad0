"""Health and diagnostics endpoint tests."""

import pytest

from littlegabriel.config import settings


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint reports server status, version, and a reachable DB."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert "version" in data
    assert data["services"]["openai"] == "not configured"


@pytest.mark.asyncio
async def test_debug_env_reports_presence_not_values(client, monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-very-secret-value")
    resp = await client.get("/api/debug/env")
    assert resp.status_code == 200
    data = resp.json()
    assert "sk-very-secret-value" not in resp.text
    assert data["secrets"]["OPENAI_API_KEY"] == {"set": True, "length": 20}
    assert data["secrets"]["BIBLE_API_KEY"]["set"] is False
    assert "BIBLE_API_KEY" in data["missing"]
    assert "OPENAI_API_KEY" not in data["missing"]


@pytest.mark.asyncio
async def test_debug_openai_without_key(client):
    resp = await client.get("/api/debug/openai")
    assert resp.status_code == 200
    data = resp.json()
    assert data["mode"] == "completion"
    assert data["connection"]["ok"] is False

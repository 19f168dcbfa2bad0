"""Legacy site password gate tests."""

import pytest

from littlegabriel.auth.password import hash_password
from littlegabriel.config import settings


@pytest.mark.asyncio
async def test_plain_site_password(client, monkeypatch):
    monkeypatch.setattr(settings, "site_password", "shalom")
    r = await client.post("/api/site-password", json={"password": "shalom"})
    assert r.status_code == 200
    assert r.json() == {"isValid": True}

    r = await client.post("/api/site-password", json={"password": "shalom!"})
    assert r.json() == {"isValid": False}


@pytest.mark.asyncio
async def test_hashed_site_password(client, monkeypatch):
    monkeypatch.setattr(settings, "site_password_hash", hash_password("grace", rounds=4))
    r = await client.post("/api/site-password", json={"password": "grace"})
    assert r.json() == {"isValid": True}

    r = await client.post("/api/site-password", json={"password": "works"})
    assert r.json() == {"isValid": False}


@pytest.mark.asyncio
async def test_site_password_not_configured(client):
    r = await client.post("/api/site-password", json={"password": "anything"})
    assert r.status_code == 500
    assert r.json() == {"error": "Site password not configured"}

"""Admin API tests — user management behind require_admin."""

import pytest
from sqlalchemy import func, select

from littlegabriel.db.models import ChatMessage, PrayerRequest


@pytest.mark.asyncio
async def test_admin_routes_need_session(client):
    r = await client.get("/api/admin/users")
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_admin_routes_reject_members(client, alice, bearer):
    r = await client.get("/api/admin/users", headers=bearer(alice))
    assert r.status_code == 403
    assert r.json() == {"error": "Admin access required"}


@pytest.mark.asyncio
async def test_list_users_newest_first(client, alice, bob, admin, bearer):
    r = await client.get("/api/admin/users", headers=bearer(admin))
    assert r.status_code == 200
    users = r.json()
    assert [u["email"] for u in users] == [
        "admin@example.com",
        "bob@example.com",
        "alice@example.com",
    ]
    assert all(set(u) == {"id", "name", "email", "role", "createdAt"} for u in users)


@pytest.mark.asyncio
async def test_get_and_update_user(client, alice, admin, bearer):
    url = f"/api/admin/users/{alice.id}"
    r = await client.get(url, headers=bearer(admin))
    assert r.status_code == 200
    assert r.json()["name"] == "Alice"

    r = await client.put(url, json={"name": "Alice B.", "role": "admin"}, headers=bearer(admin))
    assert r.status_code == 200
    assert r.json()["name"] == "Alice B."
    assert r.json()["role"] == "admin"


@pytest.mark.asyncio
async def test_update_rejects_unknown_role(client, alice, admin, bearer):
    r = await client.put(
        f"/api/admin/users/{alice.id}", json={"role": "superuser"}, headers=bearer(admin)
    )
    assert r.status_code == 400
    assert "role" in r.json()["details"]


@pytest.mark.asyncio
async def test_unknown_user_is_404(client, admin, bearer):
    r = await client.get(
        "/api/admin/users/00000000-0000-0000-0000-000000000000", headers=bearer(admin)
    )
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}


@pytest.mark.asyncio
async def test_delete_user_cascades(client, alice, admin, bearer, db):
    r = await client.post(
        "/api/prayer-requests",
        json={"title": "Strength this week", "content": "Pray for strength in a hard season."},
        headers=bearer(alice),
    )
    assert r.status_code == 201
    db.add(ChatMessage(user_id=alice.id, content="Hello Gabriel", is_user_message=True))
    await db.commit()

    r = await client.delete(f"/api/admin/users/{alice.id}", headers=bearer(admin))
    assert r.status_code == 200
    assert r.json() == {"success": True}

    prayers = await db.scalar(select(func.count()).select_from(PrayerRequest))
    chats = await db.scalar(select(func.count()).select_from(ChatMessage))
    assert prayers == 0
    assert chats == 0

    r = await client.get(f"/api/admin/users/{alice.id}", headers=bearer(admin))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client, admin, bearer):
    r = await client.delete(f"/api/admin/users/{admin.id}", headers=bearer(admin))
    assert r.status_code == 400
    assert r.json() == {"error": "Admins cannot delete their own account"}


@pytest.mark.asyncio
async def test_promote_admin(client, alice, admin, bearer):
    r = await client.post(
        "/api/admin/promote-admin", json={"email": "alice@example.com"}, headers=bearer(admin)
    )
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["message"] == "User alice@example.com has been promoted to admin"
    assert data["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_promote_admin_errors(client, admin, alice, bearer):
    r = await client.post("/api/admin/promote-admin", json={}, headers=bearer(admin))
    assert r.status_code == 400
    assert r.json() == {"error": "Email is required"}

    r = await client.post(
        "/api/admin/promote-admin", json={"email": "ghost@example.com"}, headers=bearer(admin)
    )
    assert r.status_code == 404

    r = await client.post(
        "/api/admin/promote-admin", json={"email": "alice@example.com"}, headers=bearer(alice)
    )
    assert r.status_code == 403

"""
Shared helpers for LittleGabriel examples.

Handles the health check and account setup (register + login) so each
example can focus on its own flow.
"""

import os
import sys
import uuid

import httpx

BASE = os.environ.get("GABRIEL_API_URL", "http://localhost:8000").rstrip("/") + "/api"


def check_backend() -> None:
    """Verify the backend is reachable and its database is up."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  uvicorn littlegabriel.main:app --reload --port 8000")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  OpenAI:   {health['services']['openai']} ({health['services']['openaiMode']} mode)")
    print(f"  Bible:    {health['services']['bible']}")

    if health["status"] != "healthy":
        print(f"\nERROR: Database check failed: {health['database']}")
        sys.exit(1)


def register(name: str = "Demo User") -> tuple[str, str]:
    """Register a fresh account. Returns (email, password).

    Uses a unique email per run so examples are idempotent.
    """
    run_id = uuid.uuid4().hex[:8]
    email = f"demo-{run_id}@example.com"
    password = "demo-password-123"

    resp = httpx.post(
        f"{BASE}/auth/register",
        json={"email": email, "name": f"{name} {run_id}", "password": password},
        timeout=10,
    )
    if resp.status_code != 201:
        print(f"ERROR: Registration failed: {resp.status_code} {resp.text}")
        sys.exit(1)
    return email, password


def login(email: str, password: str) -> str:
    """Session login. Returns the bearer token."""
    resp = httpx.post(
        f"{BASE}/auth/login",
        json={"email": email, "password": password},
        timeout=10,
    )
    if resp.status_code != 200:
        print(f"ERROR: Login failed: {resp.status_code} {resp.text}")
        sys.exit(1)
    return resp.json()["accessToken"]


def create_client(name: str = "Demo User") -> httpx.Client:
    """Check backend, register + log in, and return an authenticated Client."""
    check_backend()
    email, password = register(name)
    token = login(email, password)
    print(f"  Auth:     ✓ ({email})")
    return httpx.Client(
        base_url=BASE,
        timeout=60,
        headers={"Authorization": f"Bearer {token}"},
    )

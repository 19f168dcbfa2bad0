"""Test fixtures — a fresh in-memory database and app per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI without a server:

1. Settings are read at import time, so the environment is pinned here
   before anything from littlegabriel is imported.
2. Each test builds an aiosqlite in-memory engine. StaticPool keeps one
   connection, so every session sees the same database.
3. create_app(engine) wires that engine in; httpx's ASGITransport calls
   the app directly. No lifespan runs, so fixtures close what they open.

Auth is real in these tests: helpers sign tokens with the same service
the login routes use, and requests carry them as Bearer headers.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_SECRET"] = "test-secret-with-enough-entropy-for-hs256"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENAI_ASSISTANT_ID"] = ""
os.environ["BIBLE_API_KEY"] = ""
os.environ["SITE_PASSWORD"] = ""
os.environ["SITE_PASSWORD_HASH"] = ""

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from littlegabriel.auth.jwt import SessionClaims, issue_session_token  # noqa: E402
from littlegabriel.db.models import ROLE_ADMIN, ROLE_USER, Base  # noqa: E402
from littlegabriel.main import create_app  # noqa: E402
from littlegabriel.services.user_service import UserService  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def app(engine):
    app = create_app(engine)
    yield app
    app.dependency_overrides.clear()
    await app.state.bible_client.aclose()
    await app.state.llm.aclose()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def db(app):
    """A session on the test database, for seeding and inspecting rows."""
    async with app.state.session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def make_user(app):
    """Create a user directly through UserService.

    Returns the User row. Pass password=None for a social-only account.
    """
    async def _make(email, name="Test User", password=TEST_PASSWORD, role=ROLE_USER):
        async with app.state.session_factory() as session:
            user = await UserService(session).create(
                email=email, name=name, password=password, role=role
            )
            await session.commit()
            return user

    return _make


def token_for(user) -> str:
    return issue_session_token(SessionClaims.from_user(user)).token


@pytest.fixture()
def token():
    """A signed session token for a user."""
    return token_for


@pytest.fixture()
def bearer():
    """Authorization header for a user, signed like a real login."""
    def _bearer(user) -> dict:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _bearer


@pytest_asyncio.fixture()
async def alice(make_user):
    return await make_user("alice@example.com", name="Alice")


@pytest_asyncio.fixture()
async def bob(make_user):
    return await make_user("bob@example.com", name="Bob")


@pytest_asyncio.fixture()
async def admin(make_user):
    return await make_user("admin@example.com", name="Admin", role=ROLE_ADMIN)

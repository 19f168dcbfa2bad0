"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Everything with a lifecycle (database engine, api.bible HTTP
client, OpenAI client) is built here and kept on app.state; the lifespan
closes them at shutdown. Nothing is a module-level global, so tests can
build an app against an in-memory database without touching the real one.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from littlegabriel import __version__
from littlegabriel.api import api_router
from littlegabriel.config import settings
from littlegabriel.db.engine import build_engine, build_session_factory
from littlegabriel.errors import register_exception_handlers
from littlegabriel.middleware.gatekeeper import EdgeGatekeeperMiddleware
from littlegabriel.middleware.request_id import RequestIdMiddleware
from littlegabriel.middleware.security import SecurityHeadersMiddleware
from littlegabriel.services.bible_service import BibleClient
from littlegabriel.services.llm_service import LLMGateway

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    logger.info(
        "littlegabriel.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        openai_mode="assistant" if settings.use_assistant_mode() else "completion",
    )
    if not settings.auth_secret_configured:
        logger.warning("littlegabriel.default_auth_secret")

    yield

    logger.info("littlegabriel.shutdown")
    await app.state.bible_client.aclose()
    await app.state.llm.aclose()
    await app.state.engine.dispose()


def create_app(engine: Optional[AsyncEngine] = None) -> FastAPI:
    """Build and return the FastAPI application.

    Pass `engine` to run against a specific database (tests do).
    """
    app = FastAPI(
        title="LittleGabriel",
        description="Biblical counseling chat, Bible reader, sermons, and prayer wall",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.engine = engine or build_engine()
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.bible_client = BibleClient()
    app.state.llm = LLMGateway.from_settings()

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → Gatekeeper → handler

    app.add_middleware(EdgeGatekeeperMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: littlegabriel.main:app)
app = create_app()

"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

There is no module-level engine. The process entry point (create_app, or a
CLI command) owns the engine: it builds one with build_engine(), keeps it
on app.state, and disposes it on shutdown. Route handlers only ever see
the per-request session handed to them by get_db().
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from littlegabriel.config import settings


def build_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an engine for the configured database.

    Connection pool: 5 connections + 15 overflow on Postgres. SQLite (used in
    tests and local experiments) does not take pool sizing arguments.
    """
    url = url or settings.database_url
    kwargs: dict = {"echo": settings.debug if echo is None else echo}
    if not url.startswith("sqlite"):
        kwargs.update(pool_size=5, max_overflow=15, pool_pre_ping=True)
    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory — each request gets its own session."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a session per request, auto-closes."""
    factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()

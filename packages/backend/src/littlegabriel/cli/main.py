"""gabriel CLI — operations and diagnostics for a LittleGabriel deployment.

Usage:
    gabriel check env                          # Which settings are present (never values)
    gabriel check db                           # SELECT 1 against DATABASE_URL
    gabriel check openai                       # Live OpenAI call (list models)
    gabriel check assistant                    # Look up OPENAI_ASSISTANT_ID
    gabriel check bible                        # Fetch the Bible list from api.bible
    gabriel check remote --url https://...     # Probe a running deployment
    gabriel users create a@b.com --name Ann --password ... [--admin]
    gabriel users promote a@b.com
    gabriel users list
    gabriel hash-password 's3cret'             # Value for SITE_PASSWORD_HASH
    gabriel db init                            # Create tables (development)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from littlegabriel import __version__
from littlegabriel.auth.password import hash_password
from littlegabriel.config import settings
from littlegabriel.db.engine import build_engine, build_session_factory
from littlegabriel.db.models import ROLE_ADMIN, ROLE_USER, Base
from littlegabriel.errors import ConfigurationError, UpstreamError
from littlegabriel.services.bible_service import BibleClient
from littlegabriel.services.diagnostics import check_database, env_report, missing_required
from littlegabriel.services.llm_service import LLMGateway
from littlegabriel.services.user_service import DuplicateEmailError, UserService

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_REMOTE_URL = "http://localhost:8000"


def _remote_url(url: Optional[str]) -> str:
    return (url or os.environ.get("GABRIEL_API_URL") or settings.site_url or DEFAULT_REMOTE_URL).rstrip("/")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _ok(label: str, detail: str = "") -> None:
    click.echo(f"{click.style('ok', fg='green'):>14}  {label}  {detail}".rstrip())


def _fail(label: str, detail: str = "") -> None:
    click.echo(f"{click.style('FAIL', fg='red'):>14}  {label}  {detail}".rstrip())


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="gabriel")
def main():
    """gabriel — manage and diagnose a LittleGabriel deployment."""


# ---------------------------------------------------------------------------
# gabriel check ...
# ---------------------------------------------------------------------------


@main.group()
def check():
    """Diagnostics. Each subcommand exits 1 on failure."""


@check.command("env")
@click.option("--json", "as_json", is_flag=True, help="Print the raw report")
def check_env(as_json: bool):
    """Show which settings are present, by length only."""
    report = env_report(settings)
    missing = missing_required(settings)
    if as_json:
        report["missing"] = missing
        click.echo(_pretty_json(report))
    else:
        click.secho(f"Environment: {settings.environment}  (OpenAI mode: {report['openaiMode']})", bold=True)
        for name, info in report["secrets"].items():
            if info["set"]:
                _ok(name, f"length={info['length']}")
            else:
                _fail(name, "not set")
        for name, value in report["settings"].items():
            click.echo(f"{'':>5}  {name} = {value}")
    if missing:
        click.secho(f"Missing required: {', '.join(missing)}", fg="red", err=True)
        sys.exit(1)


@check.command("db")
def check_db():
    """Connect to DATABASE_URL and run SELECT 1."""
    result = _run(_check_db_impl())
    if result != "ok":
        _fail("database", result)
        sys.exit(1)
    _ok("database")


async def _check_db_impl() -> str:
    engine = build_engine()
    try:
        return await check_database(engine)
    finally:
        await engine.dispose()


@check.command("openai")
def check_openai():
    """List models with OPENAI_API_KEY."""
    result = _run(_with_gateway(lambda gw: gw.check_connection()))
    _report("openai", result)


@check.command("assistant")
def check_assistant():
    """Retrieve the configured assistant."""
    result = _run(_with_gateway(lambda gw: gw.check_assistant()))
    _report("assistant", result)


async def _with_gateway(fn):
    gateway = LLMGateway.from_settings()
    try:
        return await fn(gateway)
    finally:
        await gateway.aclose()


def _report(label: str, result: dict) -> None:
    if result.get("ok"):
        details = "  ".join(f"{k}={v}" for k, v in result.items() if k != "ok")
        _ok(label, details)
        return
    _fail(label, result.get("error", ""))
    info = result.get("errorInfo")
    if info:
        click.echo(f"{'':>5}  {info['title']}: {info['suggestion']}")
    sys.exit(1)


@check.command("bible")
def check_bible():
    """Fetch the Bible list from api.bible."""
    try:
        count = _run(_check_bible_impl())
    except UpstreamError as e:
        _fail("bible", e.detail or e.message)
        sys.exit(1)
    except ConfigurationError as e:
        _fail("bible", str(e))
        sys.exit(1)
    _ok("bible", f"{count} bibles available")


async def _check_bible_impl() -> int:
    client = BibleClient()
    try:
        return len(await client.get_bibles())
    finally:
        await client.aclose()


@check.command("remote")
@click.option("--url", help="Deployment base URL (or set GABRIEL_API_URL)")
def check_remote(url: Optional[str]):
    """Probe /api/health and /api/debug/env on a running deployment."""
    ok = _run(_check_remote_impl(_remote_url(url)))
    if not ok:
        sys.exit(1)


async def _check_remote_impl(base_url: str) -> bool:
    click.secho(f"Remote: {base_url}", bold=True)
    ok = True
    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as c:
        try:
            r = await c.get("/api/health")
            health = r.json()
        except (httpx.HTTPError, ValueError) as e:
            _fail("health", str(e))
            return False
        if health.get("status") == "healthy":
            _ok("health", f"version={health.get('version')}")
        else:
            _fail("health", f"database={health.get('database')}")
            ok = False

        r = await c.get("/api/debug/env")
        if r.status_code == 200:
            missing = r.json().get("missing", [])
            if missing:
                _fail("env", f"missing: {', '.join(missing)}")
                ok = False
            else:
                _ok("env")
        else:
            _fail("env", f"HTTP {r.status_code}")
            ok = False
    return ok


# ---------------------------------------------------------------------------
# gabriel users ...
# ---------------------------------------------------------------------------


@main.group()
def users():
    """Manage accounts directly in the database."""


async def _with_users(fn):
    engine = build_engine()
    factory = build_session_factory(engine)
    try:
        async with factory() as db:
            result = await fn(UserService(db))
            await db.commit()
            return result
    finally:
        await engine.dispose()


@users.command("create")
@click.argument("email")
@click.option("--name", "-n", required=True, help="Display name")
@click.option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--admin", is_flag=True, help="Create with the admin role")
def users_create(email: str, name: str, password: str, admin: bool):
    """Create an account with a password."""
    role = ROLE_ADMIN if admin else ROLE_USER
    try:
        user = _run(_with_users(lambda svc: svc.create(email=email, name=name, password=password, role=role)))
    except DuplicateEmailError:
        click.secho(f"A user with email {email.lower()} already exists", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Created {user.email} ({user.role})  id={user.id}", fg="green")


@users.command("promote")
@click.argument("email")
def users_promote(email: str):
    """Give the account with this exact email the admin role."""
    user = _run(_with_users(lambda svc: svc.promote(email)))
    if not user:
        click.secho(f"No user found with email {email.lower()}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"{user.email} is now an admin", fg="green")


@users.command("list")
def users_list():
    """List all accounts, newest first."""
    rows = _run(_with_users(_list_rows))
    if not rows:
        click.echo("(no users)")
        return
    _print_table(
        rows,
        [("EMAIL", "email", 32), ("NAME", "name", 20), ("ROLE", "role", 6),
         ("PASSWORD", "password", 8), ("CREATED", "created_at", 19)],
    )


async def _list_rows(svc: UserService) -> list[dict]:
    return [
        {
            "email": u.email,
            "name": u.name,
            "role": u.role,
            "password": "yes" if u.password_hash else "no",
            "created_at": u.created_at.strftime("%Y-%m-%d %H:%M:%S") if u.created_at else "",
        }
        for u in await svc.list_users()
    ]


# ---------------------------------------------------------------------------
# gabriel hash-password / db init
# ---------------------------------------------------------------------------


@main.command("hash-password")
@click.argument("password")
def hash_password_cmd(password: str):
    """Print a bcrypt hash suitable for SITE_PASSWORD_HASH."""
    click.echo(hash_password(password))


@main.group()
def db():
    """Database helpers."""


@db.command("init")
def db_init():
    """Create all tables directly. Use `alembic upgrade head` for real deployments."""
    _run(_db_init_impl())
    click.secho("Tables created", fg="green")


async def _db_init_impl():
    engine = build_engine()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    main()

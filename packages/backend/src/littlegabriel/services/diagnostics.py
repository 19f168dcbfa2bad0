"""Environment and dependency diagnostics.

Learn: Shared by /api/health, /api/debug/*, and `gabriel check ...`.
Secrets are reported by presence and length only; no value, prefix, or
preview of a secret ever leaves this module.
"""

from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from littlegabriel.config import Settings

# Variable name → Settings attribute
SECRET_VARIABLES = {
    "DATABASE_URL": "database_url",
    "AUTH_SECRET": "auth_secret",
    "OPENAI_API_KEY": "openai_api_key",
    "BIBLE_API_KEY": "bible_api_key",
    "SITE_PASSWORD": "site_password",
    "SITE_PASSWORD_HASH": "site_password_hash",
}

# Non-secret settings that are safe to echo
PLAIN_VARIABLES = {
    "ENVIRONMENT": "environment",
    "SITE_URL": "site_url",
    "OPENAI_ASSISTANT_ID": "openai_assistant_id",
    "OPENAI_MODEL": "openai_model",
    "FORCE_OPENAI_ASSISTANT": "force_openai_assistant",
    "FORCE_OPENAI_FALLBACK": "force_openai_fallback",
}


def env_report(settings: Settings) -> dict:
    """Presence and length of every setting the app depends on."""
    secrets = {}
    for name, attr in SECRET_VARIABLES.items():
        value = getattr(settings, attr) or ""
        secrets[name] = {"set": bool(value), "length": len(value)}
    secrets["AUTH_SECRET"]["set"] = settings.auth_secret_configured

    plain = {name: getattr(settings, attr) for name, attr in PLAIN_VARIABLES.items()}
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "secrets": secrets,
        "settings": plain,
        "openaiMode": "assistant" if settings.use_assistant_mode() else "completion",
    }


def missing_required(settings: Settings) -> list[str]:
    """Names of variables a production deployment cannot run without."""
    missing = []
    if not settings.auth_secret_configured:
        missing.append("AUTH_SECRET")
    if not settings.openai_api_key:
        missing.append("OPENAI_API_KEY")
    if settings.use_assistant_mode() and not settings.openai_assistant_id:
        missing.append("OPENAI_ASSISTANT_ID")
    if not settings.bible_api_key:
        missing.append("BIBLE_API_KEY")
    return missing


async def check_database(engine: AsyncEngine) -> str:
    """'ok' or 'error: ...' for a SELECT 1 round trip."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:
        return f"error: {e}"

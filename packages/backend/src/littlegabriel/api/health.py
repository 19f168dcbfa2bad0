"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
database is reachable. OpenAI and api.bible are reported by configuration
only; a live OpenAI probe lives at /api/debug/openai.
"""

from fastapi import APIRouter, Request

from littlegabriel import __version__
from littlegabriel.config import settings
from littlegabriel.services.diagnostics import check_database

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {
        "server": "ok",
        "version": __version__,
        "environment": settings.environment,
        "database": await check_database(request.app.state.engine),
    }
    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {
        "status": status,
        **checks,
        "services": {
            "openai": "configured" if settings.openai_api_key else "not configured",
            "openaiMode": "assistant" if settings.use_assistant_mode() else "completion",
            "bible": "configured" if settings.bible_api_key else "not configured",
        },
    }

"""Edge gatekeeper — classify page requests by the auth they carry.

Learn: This runs before page routes and records who the visitor appears
to be in request.state.edge_auth:
- "direct-cookie": a gabriel-auth-token cookie is present
- "session":       the gabriel-session-token cookie verifies
- "anonymous":     neither

It never rejects a request. Page-level protection is the reconciler's
redirect, and data is protected by the API routes, which verify a signed
token on every call. API, static, and public-page paths are skipped
entirely and get no edge_auth attribute.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from littlegabriel.auth.cookies import DIRECT_TOKEN_COOKIE, SESSION_COOKIE
from littlegabriel.auth.jwt import TokenError, verify_session_token
from littlegabriel.auth.reconciler import is_public_page
from littlegabriel.config import settings

logger = structlog.get_logger()

SKIPPED_PREFIXES = ("/api/", "/_next/", "/static/")

EDGE_DIRECT = "direct-cookie"
EDGE_SESSION = "session"
EDGE_ANONYMOUS = "anonymous"


def is_skipped(path: str) -> bool:
    if path.startswith(SKIPPED_PREFIXES):
        return True
    if "." in path:  # favicon.ico, robots.txt, asset files
        return True
    return is_public_page(path)


def classify(request: Request) -> str:
    if request.cookies.get(DIRECT_TOKEN_COOKIE):
        return EDGE_DIRECT
    token = request.cookies.get(SESSION_COOKIE)
    if token and settings.auth_secret_configured:
        try:
            verify_session_token(token)
        except TokenError:
            return EDGE_ANONYMOUS
        return EDGE_SESSION
    return EDGE_ANONYMOUS


class EdgeGatekeeperMiddleware(BaseHTTPMiddleware):
    """Record edge auth for page requests. Always passes the request on."""

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if not is_skipped(path):
            outcome = classify(request)
            request.state.edge_auth = outcome
            logger.info("edge.auth_checked", path=path, outcome=outcome)
        return await call_next(request)

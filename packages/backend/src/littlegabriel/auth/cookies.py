"""Auth cookie names and helpers.

Learn: The direct-login path sets three cookies at once:
- gabriel-auth-token: the signed session token (httpOnly)
- gabriel-auth-user: the same claims as plain JSON, readable by page scripts
- gabriel-site-auth: legacy "true" flag from the old site-password gate

Only the first one is ever trusted by the server. The other two exist so
client code can render "logged in as ..." without an extra request.
"""

import json
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote, unquote

from starlette.requests import Request
from starlette.responses import Response

from littlegabriel.auth.jwt import SessionClaims
from littlegabriel.config import settings

SESSION_COOKIE = "gabriel-session-token"
DIRECT_TOKEN_COOKIE = "gabriel-auth-token"
DIRECT_USER_COOKIE = "gabriel-auth-user"
SITE_AUTH_COOKIE = "gabriel-site-auth"

ALL_AUTH_COOKIES = (
    SESSION_COOKIE,
    DIRECT_TOKEN_COOKIE,
    DIRECT_USER_COOKIE,
    SITE_AUTH_COOKIE,
)


def cookie_domain(request: Request) -> str | None:
    """Domain for auth cookies: the request host in production, else unset."""
    if not settings.is_production:
        return None
    host = request.headers.get("host", "").split(":")[0]
    if not host or "localhost" in host or "127.0.0.1" in host:
        return None
    return host


def encode_user_cookie(user: dict) -> str:
    """JSON, percent-encoded the way browser cookie APIs encode values."""
    return quote(json.dumps(user, separators=(",", ":")), safe="")


def decode_user_cookie(value: Optional[str]) -> Optional[dict]:
    """Parse a gabriel-auth-user value. Anything unparseable is None."""
    if not value:
        return None
    try:
        data = json.loads(unquote(value))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _max_age(expires_at: datetime) -> int:
    return max(0, int((expires_at - datetime.now(timezone.utc)).total_seconds()))


def set_session_cookie(
    response: Response, request: Request, token: str, expires_at: datetime
) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=_max_age(expires_at),
        path="/",
        domain=cookie_domain(request),
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def set_direct_auth_cookies(
    response: Response,
    request: Request,
    token: str,
    expires_at: datetime,
    claims: SessionClaims,
) -> None:
    """Set the signed token plus its two client-readable companions."""
    common = dict(
        max_age=_max_age(expires_at),
        path="/",
        domain=cookie_domain(request),
        secure=settings.is_production,
        samesite="lax",
    )
    response.set_cookie(DIRECT_TOKEN_COOKIE, token, httponly=True, **common)
    response.set_cookie(
        DIRECT_USER_COOKIE,
        encode_user_cookie(claims.to_dict()),
        httponly=False,
        **common,
    )
    response.set_cookie(SITE_AUTH_COOKIE, "true", httponly=False, **common)


def clear_auth_cookies(response: Response, request: Request) -> None:
    for name in ALL_AUTH_COOKIES:
        response.delete_cookie(name, path="/", domain=cookie_domain(request))

"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract and verify
the current user's identity from the request.

Token transports, checked in this order:
1. Authorization: Bearer <token>
2. gabriel-session-token cookie
3. gabriel-auth-token cookie (direct login)

Every transport goes through the same signature check. A cookie that is
merely present proves nothing; a bad Bearer token is an explicit 401 (the
reason is logged, not returned), a bad cookie is treated as "not logged in".
"""

from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Header, Request

from littlegabriel.auth.cookies import DIRECT_TOKEN_COOKIE, SESSION_COOKIE
from littlegabriel.auth.jwt import SessionClaims, TokenError, verify_session_token

logger = structlog.get_logger()


class CurrentSession:
    """The verified identity making the request.

    Learn: This is the unified auth context. Whatever transport carried the
    token, downstream code sees the same claims plus where they came from.
    """

    def __init__(self, claims: SessionClaims, transport: str, token: str):
        self.claims = claims
        self.transport = transport  # "bearer", "session-cookie", "direct-cookie"
        self.token = token

    @property
    def user_id(self) -> str:
        return self.claims.id

    @property
    def email(self) -> str:
        return self.claims.email

    @property
    def role(self) -> str:
        return self.claims.role

    @property
    def is_admin(self) -> bool:
        return self.claims.is_admin


async def get_current_session_optional(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentSession]:
    """Extract current session (optional — returns None if no auth).

    Learn: This is the "soft" auth dependency. Used for endpoints that
    work both authenticated and unauthenticated. For mandatory auth,
    use get_current_session instead.
    """
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]
        try:
            claims, _ = verify_session_token(token)
        except TokenError as e:
            logger.info("auth.bearer_rejected", reason=str(e))
            raise HTTPException(
                status_code=401,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return CurrentSession(claims, "bearer", token)

    for cookie_name, transport in (
        (SESSION_COOKIE, "session-cookie"),
        (DIRECT_TOKEN_COOKIE, "direct-cookie"),
    ):
        token = request.cookies.get(cookie_name)
        if not token:
            continue
        try:
            claims, _ = verify_session_token(token)
        except TokenError:
            continue
        return CurrentSession(claims, transport, token)

    return None


async def get_current_session(
    session: Optional[CurrentSession] = Depends(get_current_session_optional),
) -> CurrentSession:
    """Extract current session (required — 401 if no auth)."""
    if not session:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def require_admin(
    session: CurrentSession = Depends(get_current_session),
) -> CurrentSession:
    """Admin-only routes. 401 without a session, 403 for non-admins.

    The role comes from the token's claims, not a fresh database read.
    """
    if not session.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return session

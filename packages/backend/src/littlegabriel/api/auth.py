"""Auth API — registration, both login paths, and the session lifecycle.

Learn: There is one signing service (auth.jwt) and two ways to log in:
- POST /auth/login         → session cookie + token in the body (Bearer use)
- POST /auth/direct-login  → the gabriel-auth-* cookie triplet

Both run the same credential check and sign the same claims; they differ
only in how the token travels. Every protected route verifies whichever
token arrives, so neither path is "more trusted" than the other.

Routes:
- POST /auth/register
- POST /auth/login
- POST /auth/direct-login
- GET  /auth/session
- POST /auth/session/refresh
- POST /auth/logout
- POST /auth/check-admin
- POST /auth/reconcile
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from littlegabriel.auth.cookies import (
    DIRECT_TOKEN_COOKIE,
    clear_auth_cookies,
    set_direct_auth_cookies,
    set_session_cookie,
)
from littlegabriel.auth.credentials import CredentialError, validate_credentials
from littlegabriel.auth.dependencies import (
    CurrentSession,
    get_current_session,
    get_current_session_optional,
)
from littlegabriel.auth.jwt import (
    TokenError,
    issue_session_token,
    renew_session_token,
    verify_session_token,
)
from littlegabriel.auth.reconciler import AuthSnapshot, reconcile
from littlegabriel.db.engine import get_db
from littlegabriel.schemas.auth import (
    CheckAdminRequest,
    CheckAdminResponse,
    DirectLoginResponse,
    LoginRequest,
    LoginResponse,
    ReconcileRequest,
    ReconcileResponse,
    RegisterRequest,
    RegisterResponse,
    UserPublic,
)
from littlegabriel.services.user_service import DuplicateEmailError, UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a new user account. The response never includes the password."""
    svc = UserService(db)
    try:
        user = await svc.create(email=body.email, name=body.name, password=body.password)
    except DuplicateEmailError:
        raise HTTPException(status_code=409, detail="User already exists with this email")
    await db.commit()
    return {
        "message": "User registered successfully",
        "user": UserPublic.model_validate(user),
    }


# ─── Session login ───────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    response: Response,
    body: Optional[LoginRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Email/password → signed session token (cookie and body)."""
    if body is None or not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Please provide both email and password")
    try:
        claims = await validate_credentials(db, body.email, body.password)
    except CredentialError as e:
        logger.info("auth.login_failed", reason=type(e).__name__)
        raise HTTPException(status_code=401, detail=str(e))

    issued = issue_session_token(claims)
    set_session_cookie(response, request, issued.token, issued.expires_at)
    logger.info("auth.login", user_id=claims.id, transport="session")
    return {
        "user": claims.to_dict(),
        "access_token": issued.token,
        "expires": issued.expires_at,
    }


# ─── Direct login ────────────────────────────────────────


def _direct_failure(status: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "error": error})


@router.post(
    "/direct-login", response_model=DirectLoginResponse, response_model_exclude_none=True
)
async def direct_login(
    request: Request,
    response: Response,
    body: Optional[LoginRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Email/password → the cookie triplet. Safe to call repeatedly.

    Each failure kind gets its own message so the login form can say
    exactly what went wrong.
    """
    if body is None or not body.email or not body.password:
        return _direct_failure(400, "Email and password are required")
    try:
        claims = await validate_credentials(db, body.email, body.password)
    except CredentialError as e:
        logger.info("auth.direct_login_failed", reason=type(e).__name__)
        return _direct_failure(401, str(e))
    except Exception:
        logger.exception("auth.direct_login_error")
        return _direct_failure(500, "An unexpected error occurred during login")

    issued = issue_session_token(claims)
    set_direct_auth_cookies(response, request, issued.token, issued.expires_at, claims)
    logger.info("auth.login", user_id=claims.id, transport="direct-cookie")
    return {"success": True, "user": claims.to_dict()}


# ─── Session lifecycle ───────────────────────────────────


@router.get("/session")
async def get_session(
    session: Optional[CurrentSession] = Depends(get_current_session_optional),
):
    """The verified session, or {} when there is none."""
    if session is None:
        return {}
    _, expires = verify_session_token(session.token)
    return {"user": session.claims.to_dict(), "expires": expires}


@router.post("/session/refresh", response_model=LoginResponse)
async def refresh_session(
    request: Request,
    response: Response,
    session: CurrentSession = Depends(get_current_session),
):
    """Re-sign the current claims with a fresh expiry.

    Learn: Claims are copied forward from the old token. The role is NOT
    re-read from the database, so a demoted admin stays admin until they
    log in again or the token expires.
    """
    try:
        claims, issued = renew_session_token(session.token)
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))

    if session.transport == "direct-cookie":
        set_direct_auth_cookies(response, request, issued.token, issued.expires_at, claims)
    else:
        set_session_cookie(response, request, issued.token, issued.expires_at)
    return {
        "user": claims.to_dict(),
        "access_token": issued.token,
        "expires": issued.expires_at,
    }


@router.post("/logout")
async def logout(request: Request, response: Response):
    """Expire every auth cookie. Tokens already handed out stay valid until expiry."""
    had_direct = DIRECT_TOKEN_COOKIE in request.cookies
    clear_auth_cookies(response, request)
    logger.info("auth.logout", had_direct_cookie=had_direct)
    return {"success": True}


# ─── Admin check ─────────────────────────────────────────


@router.post("/check-admin", response_model=CheckAdminResponse)
async def check_admin(
    body: Optional[CheckAdminRequest] = None,
    session: CurrentSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Is this email (or the caller) an admin, according to the database?"""
    email = (body.email if body and body.email else None) or session.email
    user = await UserService(db).get_by_email(email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {
        "is_admin": user.is_admin,
        "user": {"id": str(user.id), "email": user.email, "role": user.role},
    }


# ─── Reconcile ───────────────────────────────────────────


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_auth(body: ReconcileRequest):
    """Run the client reconciler server-side for a browser snapshot.

    The answer is a UI hint. It trusts whatever the snapshot says and is
    authoritative only when the framework session was the deciding signal.
    """
    result = reconcile(
        AuthSnapshot(
            framework_status=body.framework_status,
            framework_user=body.framework_user,
            storage=body.storage,
            cookies=body.cookies,
            pathname=body.pathname,
        )
    )
    return result.to_dict()

"""Client auth reconciler — merge every auth signal into one decision.

Learn: A browser has up to three independent claims about who it is:
1. The framework session (a verified, server-issued session)
2. Direct-login leftovers: gabriel-auth-user in localStorage or cookie,
   and the gabriel-auth-token cookie
3. The legacy gabriel-site-auth == "true" flag

reconcile() is a pure function from a snapshot of those signals to one
effective state. It never touches the network or the clock unless you
pass `now`, which makes it easy to test and to run server-side behind
POST /api/auth/reconcile.

Tie-break rules:
- While the framework session is loading, nothing is decided.
- A loaded framework user always wins.
- Direct signals are consulted only after the framework reports no user.
- Public pages never redirect.

Direct signals are never signature-checked here. The result marks them
authoritative=False: good enough to render a name in the header, never
good enough for an access decision. That happens server-side.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Optional

from littlegabriel.auth.cookies import (
    DIRECT_TOKEN_COOKIE,
    DIRECT_USER_COOKIE,
    SITE_AUTH_COOKIE,
    decode_user_cookie,
)

# ─── States ──────────────────────────────────────────────

STATE_UNKNOWN = "unknown"
STATE_FRAMEWORK_LOADING = "framework_loading"
STATE_FRAMEWORK_AUTHENTICATED = "framework_authenticated"
STATE_FRAMEWORK_UNAUTHENTICATED = "framework_unauthenticated"
STATE_DIRECT_AUTHENTICATED = "direct_authenticated"
STATE_REDIRECTING = "redirecting"

AUTHENTICATED_STATES = (STATE_FRAMEWORK_AUTHENTICATED, STATE_DIRECT_AUTHENTICATED)

FRAMEWORK_LOADING = "loading"
FRAMEWORK_AUTHENTICATED = "authenticated"
FRAMEWORK_UNAUTHENTICATED = "unauthenticated"
FRAMEWORK_STATUSES = (FRAMEWORK_LOADING, FRAMEWORK_AUTHENTICATED, FRAMEWORK_UNAUTHENTICATED)

# ─── localStorage keys ───────────────────────────────────

STORAGE_SITE_AUTH = "gabriel-site-auth"
STORAGE_AUTH_EMAIL = "gabriel-auth-email"
STORAGE_AUTH_USER = "gabriel-auth-user"
STORAGE_AUTH_TIMESTAMP = "gabriel-auth-timestamp"
STORAGE_USER_ROLE = "gabriel-user-role"

ALL_STORAGE_KEYS = (
    STORAGE_SITE_AUTH,
    STORAGE_AUTH_EMAIL,
    STORAGE_AUTH_USER,
    STORAGE_AUTH_TIMESTAMP,
    STORAGE_USER_ROLE,
)

CLIENT_COOKIES = (DIRECT_TOKEN_COOKIE, DIRECT_USER_COOKIE, SITE_AUTH_COOKIE)

LOGIN_PATH = "/login"
PUBLIC_PAGES = frozenset({
    "/login",
    "/register",
    "/forgot-password",
    "/privacy-policy",
    "/terms-of-service",
})


def is_public_page(pathname: str) -> bool:
    path = pathname.rstrip("/") or "/"
    return path in PUBLIC_PAGES


# ─── Data ────────────────────────────────────────────────


@dataclass
class AuthSnapshot:
    """Everything the browser knows at one navigation."""

    framework_status: str = FRAMEWORK_LOADING
    framework_user: Optional[dict] = None
    storage: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    pathname: str = "/"


@dataclass
class Reconciliation:
    """The effective auth state plus what to write back to storage."""

    state: str
    user: Optional[dict] = None
    source: Optional[str] = None  # "framework" | "direct"
    authoritative: bool = False
    redirect_to: Optional[str] = None
    storage_writes: dict[str, str] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.state in AUTHENTICATED_STATES

    @property
    def is_loading(self) -> bool:
        return self.state in (STATE_UNKNOWN, STATE_FRAMEWORK_LOADING)

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "isAuthenticated": self.is_authenticated,
            "isLoading": self.is_loading,
            "user": self.user,
            "source": self.source,
            "authoritative": self.authoritative,
            "redirectTo": self.redirect_to,
            "storageWrites": self.storage_writes,
        }


# ─── Signal parsing ──────────────────────────────────────


def _parse_user(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def direct_signals(snapshot: AuthSnapshot) -> tuple[bool, Optional[dict]]:
    """Return (any_signal_present, best_known_user) from local state.

    The stored user wins over the cookie copy; either may be missing or
    garbled, in which case the flags alone still count as a signal.
    """
    user = _parse_user(snapshot.storage.get(STORAGE_AUTH_USER))
    if user is None:
        user = decode_user_cookie(snapshot.cookies.get(DIRECT_USER_COOKIE))

    present = (
        user is not None
        or bool(snapshot.cookies.get(DIRECT_TOKEN_COOKIE))
        or snapshot.storage.get(STORAGE_SITE_AUTH) == "true"
        or snapshot.cookies.get(SITE_AUTH_COOKIE) == "true"
    )
    if present and user is None:
        email = snapshot.storage.get(STORAGE_AUTH_EMAIL)
        if email:
            user = {"email": email, "role": snapshot.storage.get(STORAGE_USER_ROLE)}
    return present, user


def _writes_for(user: Optional[dict], now_ms: int) -> dict[str, str]:
    writes = {
        STORAGE_SITE_AUTH: "true",
        STORAGE_AUTH_TIMESTAMP: str(now_ms),
    }
    if user:
        if user.get("email"):
            writes[STORAGE_AUTH_EMAIL] = user["email"]
        if user.get("role"):
            writes[STORAGE_USER_ROLE] = user["role"]
    return writes


# ─── Reconcile ───────────────────────────────────────────


def reconcile(snapshot: AuthSnapshot, now: Optional[float] = None) -> Reconciliation:
    """Compute the effective auth state for one navigation.

    `now` is epoch seconds; defaults to time.time().
    """
    now_ms = int((time.time() if now is None else now) * 1000)

    if snapshot.framework_status == FRAMEWORK_LOADING:
        return Reconciliation(state=STATE_FRAMEWORK_LOADING)

    if snapshot.framework_status == FRAMEWORK_AUTHENTICATED and snapshot.framework_user:
        user = snapshot.framework_user
        return Reconciliation(
            state=STATE_FRAMEWORK_AUTHENTICATED,
            user=user,
            source="framework",
            authoritative=True,
            storage_writes=_writes_for(user, now_ms),
        )

    present, user = direct_signals(snapshot)
    if present:
        return Reconciliation(
            state=STATE_DIRECT_AUTHENTICATED,
            user=user,
            source="direct",
            storage_writes=_writes_for(user, now_ms),
        )

    if is_public_page(snapshot.pathname):
        return Reconciliation(state=STATE_FRAMEWORK_UNAUTHENTICATED)

    return Reconciliation(state=STATE_REDIRECTING, redirect_to=LOGIN_PATH)


# ─── Stateful wrapper ────────────────────────────────────


class BrowserAuthState:
    """Per-browser-session machine holding storage and cookies.

    Learn: This mirrors what a page does on each navigation: build a
    snapshot, reconcile, apply the storage writes. A redirect puts the
    machine back in `unknown` on the login page.
    """

    def __init__(
        self,
        storage: Optional[dict[str, str]] = None,
        cookies: Optional[dict[str, str]] = None,
    ):
        self.storage: dict[str, str] = dict(storage or {})
        self.cookies: dict[str, str] = dict(cookies or {})
        self.state = STATE_UNKNOWN
        self.pathname = "/"
        self.last: Optional[Reconciliation] = None

    def navigate(
        self,
        pathname: str,
        framework_status: str,
        framework_user: Optional[dict] = None,
        now: Optional[float] = None,
    ) -> Reconciliation:
        self.pathname = pathname
        result = reconcile(
            AuthSnapshot(
                framework_status=framework_status,
                framework_user=framework_user,
                storage=self.storage,
                cookies=self.cookies,
                pathname=pathname,
            ),
            now=now,
        )
        self.storage.update(result.storage_writes)
        self.last = result
        if result.state == STATE_REDIRECTING:
            self.pathname = result.redirect_to or LOGIN_PATH
            self.state = STATE_UNKNOWN
        else:
            self.state = result.state
        return result

    def record_direct_login(self, user: dict, now: Optional[float] = None) -> None:
        """Cache a successful direct-login response the way the login form does."""
        now_ms = int((time.time() if now is None else now) * 1000)
        self.storage[STORAGE_AUTH_USER] = json.dumps(user)
        self.storage.update(_writes_for(user, now_ms))

    def logout(self) -> None:
        for key in ALL_STORAGE_KEYS:
            self.storage.pop(key, None)
        for name in CLIENT_COOKIES:
            self.cookies.pop(name, None)
        self.state = STATE_UNKNOWN
        self.last = None
        self.pathname = LOGIN_PATH

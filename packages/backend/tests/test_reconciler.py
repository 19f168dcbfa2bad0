"""Client auth reconciler tests.

Learn: reconcile() is pure, so these run without the app. `now` is fixed
so the timestamp written back to storage is predictable.
"""

import json

from littlegabriel.auth.cookies import (
    DIRECT_TOKEN_COOKIE,
    DIRECT_USER_COOKIE,
    SITE_AUTH_COOKIE,
    encode_user_cookie,
)
from littlegabriel.auth.reconciler import (
    STATE_DIRECT_AUTHENTICATED,
    STATE_FRAMEWORK_AUTHENTICATED,
    STATE_FRAMEWORK_LOADING,
    STATE_FRAMEWORK_UNAUTHENTICATED,
    STATE_REDIRECTING,
    STATE_UNKNOWN,
    STORAGE_AUTH_EMAIL,
    STORAGE_AUTH_TIMESTAMP,
    STORAGE_AUTH_USER,
    STORAGE_SITE_AUTH,
    STORAGE_USER_ROLE,
    AuthSnapshot,
    BrowserAuthState,
    direct_signals,
    is_public_page,
    reconcile,
)

NOW = 1_700_000_000.0
ALICE = {"id": "u-1", "email": "alice@example.com", "name": "Alice", "role": "user"}
ADMIN = {"id": "u-2", "email": "admin@example.com", "name": "Admin", "role": "admin"}


# ═══════════════════════════════════════════════════════════
# reconcile()
# ═══════════════════════════════════════════════════════════


def test_loading_decides_nothing():
    result = reconcile(
        AuthSnapshot(
            framework_status="loading",
            storage={STORAGE_SITE_AUTH: "true"},
            pathname="/bible",
        ),
        now=NOW,
    )
    assert result.state == STATE_FRAMEWORK_LOADING
    assert result.is_loading
    assert not result.is_authenticated
    assert result.redirect_to is None
    assert result.storage_writes == {}


def test_framework_user_is_authoritative():
    result = reconcile(
        AuthSnapshot(framework_status="authenticated", framework_user=ADMIN, pathname="/admin"),
        now=NOW,
    )
    assert result.state == STATE_FRAMEWORK_AUTHENTICATED
    assert result.authoritative is True
    assert result.source == "framework"
    assert result.storage_writes == {
        STORAGE_SITE_AUTH: "true",
        STORAGE_AUTH_TIMESTAMP: "1700000000000",
        STORAGE_AUTH_EMAIL: "admin@example.com",
        STORAGE_USER_ROLE: "admin",
    }


def test_framework_user_beats_stored_user():
    result = reconcile(
        AuthSnapshot(
            framework_status="authenticated",
            framework_user=ADMIN,
            storage={STORAGE_AUTH_USER: json.dumps(ALICE)},
        ),
        now=NOW,
    )
    assert result.user == ADMIN


def test_authenticated_without_user_falls_through_to_direct():
    result = reconcile(
        AuthSnapshot(
            framework_status="authenticated",
            framework_user=None,
            storage={STORAGE_AUTH_USER: json.dumps(ALICE)},
        ),
        now=NOW,
    )
    assert result.state == STATE_DIRECT_AUTHENTICATED


def test_direct_user_from_storage_is_not_authoritative():
    result = reconcile(
        AuthSnapshot(
            framework_status="unauthenticated",
            storage={STORAGE_AUTH_USER: json.dumps(ALICE)},
            pathname="/prayer-wall",
        ),
        now=NOW,
    )
    assert result.state == STATE_DIRECT_AUTHENTICATED
    assert result.is_authenticated
    assert result.authoritative is False
    assert result.source == "direct"
    assert result.user == ALICE
    assert result.storage_writes[STORAGE_AUTH_EMAIL] == "alice@example.com"


def test_direct_user_from_cookie():
    result = reconcile(
        AuthSnapshot(
            framework_status="unauthenticated",
            cookies={DIRECT_USER_COOKIE: encode_user_cookie(ALICE)},
        ),
        now=NOW,
    )
    assert result.state == STATE_DIRECT_AUTHENTICATED
    assert result.user == ALICE


def test_stored_user_wins_over_cookie_user():
    present, user = direct_signals(
        AuthSnapshot(
            storage={STORAGE_AUTH_USER: json.dumps(ALICE)},
            cookies={DIRECT_USER_COOKIE: encode_user_cookie(ADMIN)},
        )
    )
    assert present
    assert user == ALICE


def test_flags_alone_count_as_direct_signal():
    for snapshot in (
        AuthSnapshot(framework_status="unauthenticated", storage={STORAGE_SITE_AUTH: "true"}),
        AuthSnapshot(framework_status="unauthenticated", cookies={SITE_AUTH_COOKIE: "true"}),
        AuthSnapshot(framework_status="unauthenticated", cookies={DIRECT_TOKEN_COOKIE: "x"}),
    ):
        result = reconcile(snapshot, now=NOW)
        assert result.state == STATE_DIRECT_AUTHENTICATED
        assert result.user is None


def test_garbled_user_falls_back_to_stored_email():
    result = reconcile(
        AuthSnapshot(
            framework_status="unauthenticated",
            storage={
                STORAGE_AUTH_USER: "{not json",
                STORAGE_SITE_AUTH: "true",
                STORAGE_AUTH_EMAIL: "alice@example.com",
                STORAGE_USER_ROLE: "user",
            },
        ),
        now=NOW,
    )
    assert result.state == STATE_DIRECT_AUTHENTICATED
    assert result.user == {"email": "alice@example.com", "role": "user"}


def test_site_auth_must_be_exactly_true():
    result = reconcile(
        AuthSnapshot(
            framework_status="unauthenticated",
            storage={STORAGE_SITE_AUTH: "false"},
            pathname="/bible",
        ),
        now=NOW,
    )
    assert result.state == STATE_REDIRECTING


def test_public_page_never_redirects():
    result = reconcile(
        AuthSnapshot(framework_status="unauthenticated", pathname="/register/"),
        now=NOW,
    )
    assert result.state == STATE_FRAMEWORK_UNAUTHENTICATED
    assert result.redirect_to is None


def test_protected_page_redirects_to_login():
    result = reconcile(
        AuthSnapshot(framework_status="unauthenticated", pathname="/sermon"),
        now=NOW,
    )
    assert result.state == STATE_REDIRECTING
    assert result.redirect_to == "/login"
    assert result.to_dict()["redirectTo"] == "/login"


def test_public_pages():
    assert is_public_page("/login")
    assert is_public_page("/privacy-policy")
    assert not is_public_page("/")
    assert not is_public_page("/admin")


# ═══════════════════════════════════════════════════════════
# BrowserAuthState
# ═══════════════════════════════════════════════════════════


def test_browser_redirect_returns_to_unknown_on_login():
    browser = BrowserAuthState()
    result = browser.navigate("/prayer-wall", "unauthenticated", now=NOW)
    assert result.state == STATE_REDIRECTING
    assert browser.state == STATE_UNKNOWN
    assert browser.pathname == "/login"


def test_browser_direct_login_then_navigate():
    browser = BrowserAuthState()
    browser.record_direct_login(ALICE, now=NOW)
    assert browser.storage[STORAGE_SITE_AUTH] == "true"
    assert json.loads(browser.storage[STORAGE_AUTH_USER]) == ALICE

    result = browser.navigate("/bible", "loading", now=NOW)
    assert browser.state == STATE_FRAMEWORK_LOADING
    assert result.storage_writes == {}

    result = browser.navigate("/bible", "unauthenticated", now=NOW + 5)
    assert browser.state == STATE_DIRECT_AUTHENTICATED
    assert result.user == ALICE
    assert browser.storage[STORAGE_AUTH_TIMESTAMP] == "1700000005000"


def test_browser_framework_session_refreshes_storage():
    browser = BrowserAuthState(storage={STORAGE_AUTH_EMAIL: "old@example.com"})
    browser.navigate("/", "authenticated", framework_user=ADMIN, now=NOW)
    assert browser.state == STATE_FRAMEWORK_AUTHENTICATED
    assert browser.storage[STORAGE_AUTH_EMAIL] == "admin@example.com"
    assert browser.storage[STORAGE_USER_ROLE] == "admin"


def test_browser_logout_clears_everything():
    browser = BrowserAuthState(
        cookies={DIRECT_TOKEN_COOKIE: "t", DIRECT_USER_COOKIE: encode_user_cookie(ALICE)},
    )
    browser.record_direct_login(ALICE, now=NOW)
    browser.logout()
    assert browser.storage == {}
    assert browser.cookies == {}
    assert browser.state == STATE_UNKNOWN

    result = browser.navigate("/bible", "unauthenticated", now=NOW)
    assert result.state == STATE_REDIRECTING

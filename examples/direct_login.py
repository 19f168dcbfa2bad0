#!/usr/bin/env python3
"""
Direct login and the client reconciler, step by step.

Logs in through /auth/direct-login, shows the three cookies it sets,
proves the signed cookie authorizes API calls (and a forged one does not),
then asks /auth/reconcile what a browser holding those signals would do.
Run with: python examples/direct_login.py
"""

import httpx

from _common import BASE, check_backend, register


def main():
    check_backend()
    email, password = register("Direct Login")

    # ── Direct login ──────────────────────────────────────────────
    print("\n1. Direct login...")
    with httpx.Client(base_url=BASE, timeout=10) as browser:
        resp = browser.post("/auth/direct-login", json={"email": email, "password": password})
        assert resp.status_code == 200, f"Failed: {resp.text}"
        user = resp.json()["user"]
        print(f"   Logged in as {user['name']} ({user['role']})")
        for name in ("gabriel-auth-token", "gabriel-auth-user", "gabriel-site-auth"):
            print(f"   Cookie {name}: {'set' if browser.cookies.get(name) else 'missing'}")

        # ── The signed cookie is a real session ───────────────────
        print("\n2. Calling the API with the cookie...")
        resp = browser.get("/prayer-requests")
        print(f"   GET /prayer-requests → {resp.status_code}")
        user_cookie = browser.cookies.get("gabriel-auth-user") or ""

    print("\n3. Same call with a forged cookie...")
    with httpx.Client(base_url=BASE, timeout=10) as forger:
        forger.cookies.set("gabriel-auth-token", "forged")
        forger.cookies.set("gabriel-site-auth", "true")
        resp = forger.get("/prayer-requests")
        print(f"   GET /prayer-requests → {resp.status_code} {resp.json()}")

    # ── Reconcile ─────────────────────────────────────────────────
    print("\n4. What would the page show?")
    for status, pathname, cookies in (
        ("loading", "/prayer-wall", {"gabriel-auth-user": user_cookie}),
        ("unauthenticated", "/prayer-wall", {"gabriel-auth-user": user_cookie}),
        ("unauthenticated", "/prayer-wall", {}),
        ("unauthenticated", "/privacy-policy", {}),
    ):
        resp = httpx.post(f"{BASE}/auth/reconcile", json={
            "frameworkStatus": status,
            "cookies": cookies,
            "pathname": pathname,
        }, timeout=10)
        r = resp.json()
        print(f"   {status:<16} {pathname:<16} → {r['state']}"
              f"{' → ' + r['redirectTo'] if r['redirectTo'] else ''}")

    print("\nDone.")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
LittleGabriel Quickstart — the prayer wall in one script.

Registers a member → posts an anonymous prayer request → edits it →
reads a chapter of the Bible → asks Gabriel for a word of comfort.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000 (or set GABRIEL_API_URL)
Promote yourself with `gabriel users promote <email>` to try approvals.
"""

import json

from _common import create_client


def main():
    client = create_client("Quickstart")

    # ── Post a prayer request ─────────────────────────────────────
    print("\n1. Posting an anonymous prayer request...")
    resp = client.post("/prayer-requests", json={
        "title": "Healing for my mother",
        "content": "Please pray for her recovery after surgery this week.",
        "isAnonymous": True,
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    prayer = resp.json()
    print(f"   Request: {prayer['title']} ({prayer['status']})")
    print(f"   Shown to you as: {prayer['user']['name']} (others will see 'Anonymous')")

    # ── Edit it ───────────────────────────────────────────────────
    print("\n2. Editing the title...")
    resp = client.patch(f"/prayer-requests/{prayer['id']}", json={"title": "Healing for my mom"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Title: {resp.json()['title']}")

    print("\n3. Trying to approve it yourself...")
    resp = client.patch(f"/prayer-requests/{prayer['id']}", json={"status": "approved"})
    print(f"   {resp.status_code}: {resp.json()['error']}")

    # ── Read the Bible ────────────────────────────────────────────
    print("\n4. Reading Psalm 23...")
    resp = client.get("/bible", params={"action": "getBibles", "preferred": "true"})
    if resp.status_code != 200:
        print(f"   Skipped ({resp.status_code}: {resp.json()['error']})")
    else:
        bible = resp.json()[0]
        resp = client.get("/bible", params={
            "action": "getChapterContent",
            "bibleId": bible["id"],
            "chapterId": "PSA.23",
        })
        text = resp.json().get("content", "")
        print(f"   {bible['abbreviation']}: {text[:120].strip()}...")

    # ── Talk to Gabriel ───────────────────────────────────────────
    print("\n5. Asking Gabriel...")
    with client.stream("POST", "/chat", json={
        "messages": [{"role": "user", "content": "My mother is in surgery. How do I find peace?"}],
    }) as resp:
        if resp.status_code != 200:
            resp.read()
            print(f"   Skipped ({resp.status_code}: {resp.json()['error']})")
        elif resp.headers["content-type"].startswith("text/plain"):
            print(f"   Gabriel: {resp.read().decode()}")
        else:
            print("   Gabriel: ", end="", flush=True)
            for line in resp.iter_lines():
                if not line.startswith("data: ") or line == "data: [DONE]":
                    continue
                print(json.loads(line[6:])["text"], end="", flush=True)
            print()

    # ── Clean up ──────────────────────────────────────────────────
    print("\n6. Deleting the request...")
    resp = client.delete(f"/prayer-requests/{prayer['id']}")
    print(f"   {resp.json()['message']}")

    print("\nDone.")


if __name__ == "__main__":
    main()

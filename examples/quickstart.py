#!/usr/bin/env python3
"""
Eisenhower Quickstart — a topic's full lifecycle in one script.

Creates a topic → four tasks, one per quadrant → moves and completes one
→ trashes and restores the topic.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
An account and a bearer token for it:
    eisenhower token you@example.com   # then export EISENHOWER_TOKEN=<token>
"""

import os
import sys

import httpx

BASE = os.environ.get("EISENHOWER_API_URL", "http://localhost:8000").rstrip("/")

QUADRANTS = [
    ("Fix the production outage", 80, 85),
    ("Plan next quarter", -60, 70),
    ("Reply to the meeting invite", 55, -45),
    ("Sort old bookmarks", -70, -75),
]


def main():
    token = os.environ.get("EISENHOWER_TOKEN")
    if not token:
        print("Set EISENHOWER_TOKEN (see: eisenhower token --help)")
        sys.exit(1)
    client = httpx.Client(
        base_url=BASE, timeout=10, headers={"Authorization": f"Bearer {token}"}
    )

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/api/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗'}")

    # ── Who am I ──────────────────────────────────────────────────
    me = client.get("/auth/whoami").json()
    if not me:
        print("Token is not valid for any account.")
        sys.exit(1)
    print(f"\nSigned in as {me['email']} (user #{me['id']})")

    # ── Create topic ──────────────────────────────────────────────
    print("\n1. Creating topic...")
    resp = client.post("/api/topics", json={"name": "Quickstart", "description": "Demo topic"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    topic = resp.json()
    print(f"   Topic #{topic['id']}: {topic['name']}")

    # ── One task per quadrant ─────────────────────────────────────
    print("\n2. Placing tasks on the grid...")
    tasks = []
    for description, x, y in QUADRANTS:
        resp = client.post("/api/tasks", json={
            "description": description,
            "coordX": x,
            "coordY": y,
            "topicId": topic["id"],
        })
        assert resp.status_code == 200, f"Failed: {resp.text}"
        tasks.append(resp.json())
        print(f"   ({x:>4}, {y:>4})  {description}")

    # ── Out-of-range coordinates are rejected ─────────────────────
    resp = client.post("/api/tasks", json={"description": "Off the grid", "coordX": 150})
    print(f"\n3. coordX=150 → {resp.status_code} {resp.json()['status']}")

    # ── Move and complete ─────────────────────────────────────────
    print("\n4. Moving the planning task up and completing it...")
    resp = client.patch(f"/api/tasks/{tasks[1]['id']}", json={"coordY": 95, "state": "complete"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    moved = resp.json()
    print(f"   Now at ({moved['coordX']}, {moved['coordY']}), {moved['state']}")

    # ── Trash and restore ─────────────────────────────────────────
    print("\n5. Trashing the topic...")
    resp = client.delete(f"/api/topics/{topic['id']}")
    assert resp.status_code == 204, f"Failed: {resp.text}"
    trash = client.get("/api/tasks/trash", params={"topicId": topic["id"]}).json()
    print(f"   {len(trash)} tasks moved to the trash with it")

    resp = client.post(f"/api/topics/{topic['id']}/restore")
    assert resp.status_code == 200, f"Failed: {resp.text}"
    live = client.get(f"/api/topics/{topic['id']}/tasks").json()
    print(f"   Restored: {len(live)} tasks back on the grid")

    # ── Done ──────────────────────────────────────────────────────
    print(f"\n✓ Done. See the grid at {BASE}/topics/{topic['id']}")


if __name__ == "__main__":
    main()

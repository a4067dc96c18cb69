#!/usr/bin/env python3
"""
Smoke E2E test: walks one script through the whole production pipeline.

Needs a running backend and one seeded admin. Creates a writer, a
videographer, an editor and a posting manager, then:
submit → review(approve) → assign → shoot → shoot review → edit →
edit review → post, and checks the event log.

Env vars:
  BASE_URL   (default http://localhost:8000)
  ADMIN_ID   (required, id of an existing ADMIN team member)
"""
from __future__ import annotations

import json
import os
import sys
import time
from urllib.request import Request, urlopen
from urllib.error import HTTPError, URLError

BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000").rstrip("/")
ADMIN_ID = os.environ.get("ADMIN_ID", "")

SMOKE_TAG = f"smoke_{int(time.time())}"

# ── Helpers ──────────────────────────────────────────────────

class SmokeError(Exception):
    pass


def _req(method: str, path: str, actor: int | str, body: dict | None = None) -> dict | list:
    url = f"{BASE_URL}{path}"
    data = json.dumps(body).encode() if body is not None else None
    headers = {"Content-Type": "application/json", "X-Actor-Id": str(actor)}
    req = Request(url, data=data, headers=headers, method=method)
    try:
        with urlopen(req, timeout=30) as resp:
            raw = resp.read().decode()
            return json.loads(raw) if raw else {}
    except HTTPError as e:
        raise SmokeError(f"{method} {path} → {e.code}: {e.read().decode()[:500]}")
    except URLError as e:
        raise SmokeError(f"{method} {path} → URLError: {e}")


def GET(path: str, actor: int | str) -> dict | list:
    return _req("GET", path, actor)


def POST(path: str, actor: int | str, body: dict | None = None) -> dict | list:
    return _req("POST", path, actor, body or {})


def step(name: str):
    print(f"\n{'='*60}")
    print(f"  STEP: {name}")
    print(f"{'='*60}")


def ok(msg: str):
    print(f"  ✅ {msg}")


def fail(msg: str):
    print(f"  ❌ {msg}")
    raise SmokeError(msg)


def expect_stage(item: dict, stage: str):
    if item.get("production_stage") != stage:
        fail(f"Item #{item.get('id')} expected at {stage}, got {item.get('production_stage')}")
    ok(f"Item #{item['id']} at {stage} (v{item['version']})")


# ── Steps ────────────────────────────────────────────────────

def step1_team() -> dict[str, int]:
    step("1. Create team")
    team = {}
    for role in ("SCRIPT_WRITER", "VIDEOGRAPHER", "EDITOR", "POSTING_MANAGER"):
        person = POST("/api/team", ADMIN_ID, {
            "email": f"{role.lower()}.{SMOKE_TAG}@example.com",
            "role": role,
            "full_name": f"Smoke {role.title()}",
        })
        team[role] = person["id"]
        ok(f"{role} #{person['id']}")
    return team


def step2_submit(writer_id: int) -> int:
    step("2. Submit script")
    res = POST("/api/content", writer_id, {"title": f"SMOKE {SMOKE_TAG}", "reference_url": "https://example.com/ref"})
    item = res["item"]
    if res["auto_approved"] or item["status"] != "PENDING":
        fail(f"Untrusted writer should land in review queue, got {item['status']}")
    ok(f"Item #{item['id']} PENDING")
    return item["id"]


def step3_review(item_id: int):
    step("3. Approve script")
    item = POST(f"/api/content/{item_id}/review", ADMIN_ID, {
        "decision": "APPROVED",
        "hook_strength": 8, "content_quality": 7, "viral_potential": 9, "replication_clarity": 6,
        "feedback": "smoke",
    })
    if item["status"] != "APPROVED":
        fail(f"Expected APPROVED, got {item['status']}")
    ok(f"Approved, overall={item['scores']['overall_score']}")


def step4_assign(item_id: int, team: dict[str, int]):
    step("4. Assign team")
    item = POST(f"/api/content/{item_id}/assign", ADMIN_ID, {
        "videographer": {"person_id": team["VIDEOGRAPHER"]},
        "editor": {"auto_assign": True},
        "posting_manager": {"person_id": team["POSTING_MANAGER"]},
    })
    ok(f"Assignees: {item['assignees']}")


def step5_production(item_id: int, team: dict[str, int]) -> dict:
    step("5. Production")
    path = f"/api/content/{item_id}/transition"
    item = POST(path, team["VIDEOGRAPHER"], {"to_stage": "SHOOTING"})
    expect_stage(item, "SHOOTING")
    item = POST(path, team["VIDEOGRAPHER"], {"to_stage": "SHOOT_REVIEW"})
    expect_stage(item, "SHOOT_REVIEW")
    item = POST(path, ADMIN_ID, {"to_stage": "EDITING"})
    expect_stage(item, "EDITING")

    editor_id = item["assignees"].get("EDITOR")
    if editor_id is None:
        fail("No editor assigned")
    item = POST(path, editor_id, {"to_stage": "EDIT_REVIEW"})
    expect_stage(item, "EDIT_REVIEW")
    item = POST(path, ADMIN_ID, {"to_stage": "READY_TO_POST", "expected_version": item["version"]})
    expect_stage(item, "READY_TO_POST")
    item = POST(f"/api/content/{item_id}/posting", team["POSTING_MANAGER"], {
        "platform": "INSTAGRAM_REEL",
        "caption": "Smoke test reel",
        "hashtags": ["#smoke"],
    })
    ok(f"Posting details: {item['posting_platform']}")
    item = POST(path, team["POSTING_MANAGER"], {
        "to_stage": "POSTED",
        "posted_url": "https://instagram.com/reel/smoke",
    })
    expect_stage(item, "POSTED")
    ok(f"Live at {item['posted_url']}")
    return item


def step6_events(item_id: int):
    step("6. Event log")
    events = GET(f"/api/content/{item_id}/events", ADMIN_ID)
    names = [e["event"] for e in events]
    ok(f"{len(events)} events: {', '.join(names)}")
    if names[-1] != "posted":
        fail(f"Last event should be posted, got {names[-1]}")


def main():
    print(f"\n🔬 Smoke E2E Test: {BASE_URL}")
    if not ADMIN_ID:
        print("  ADMIN_ID env is required")
        sys.exit(2)

    try:
        if GET("/ping", ADMIN_ID).get("status") != "ok":
            fail("Backend not healthy")
        team = step1_team()
        item_id = step2_submit(team["SCRIPT_WRITER"])
        step3_review(item_id)
        step4_assign(item_id, team)
        step5_production(item_id, team)
        step6_events(item_id)
        print(f"\n  ✅ PASS: item #{item_id} posted\n")
    except SmokeError as e:
        print(f"\n{'='*60}")
        print(f"  ❌ FAIL: {e}")
        print(f"{'='*60}\n")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n  ⏹ Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()

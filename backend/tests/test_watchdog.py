"""
Tests for services/watchdog_service.py: stale review detection and stats.
"""
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from conftest import NOW
from reelflow.models import ContentItemRecord, ProjectAssignment
from reelflow.services.watchdog_service import get_health, run_watchdog
from reelflow.services.workflow_types import Role


async def _add(db, author_id, *, status="APPROVED", stage=None, hours_old=0, dissolved=False):
    rec = ContentItemRecord(
        author_id=author_id,
        title=f"{status}/{stage}",
        status=status,
        production_stage=stage,
        is_dissolved=dissolved,
        updated_at=NOW - timedelta(hours=hours_old),
    )
    db.add(rec)
    await db.commit()
    return rec


@pytest.fixture
def mock_warn():
    with patch("reelflow.services.notify.notify_warn", new_callable=AsyncMock) as mock:
        yield mock


class TestRunWatchdog:
    async def test_reports_stale_reviews_only(self, db, team, mock_warn):
        author = team[Role.script_writer].id
        pending = await _add(db, author, status="PENDING", hours_old=72)
        shoot = await _add(db, author, stage="SHOOT_REVIEW", hours_old=50)
        await _add(db, author, stage="EDIT_REVIEW", hours_old=2)
        await _add(db, author, stage="EDITING", hours_old=200)
        await _add(db, author, status="PENDING", hours_old=100, dissolved=True)

        report = await run_watchdog(db, now=NOW)
        assert report["stale_count"] == 2
        assert [(it["item_id"], it["waiting_on"]) for it in report["items"]] == [
            (pending.id, "SCRIPT_REVIEW"),
            (shoot.id, "SHOOT_REVIEW"),
        ]
        assert report["items"][0]["age_hours"] == 72
        mock_warn.assert_awaited_once()
        assert mock_warn.await_args.args[0] == "Watchdog: 2 reviews waiting"

    async def test_dry_run_does_not_notify(self, db, team, mock_warn):
        await _add(db, team[Role.script_writer].id, stage="EDIT_REVIEW", hours_old=80)
        report = await run_watchdog(db, dry_run=True, now=NOW)
        assert report["stale_count"] == 1
        mock_warn.assert_not_awaited()

    async def test_state_untouched(self, db, team, mock_warn):
        rec = await _add(db, team[Role.script_writer].id, stage="SHOOT_REVIEW", hours_old=80)
        await run_watchdog(db, now=NOW)
        await db.refresh(rec)
        assert rec.production_stage == "SHOOT_REVIEW"
        assert rec.version == 1


class TestGetHealth:
    async def test_counts(self, db, team):
        author = team[Role.script_writer].id
        editor = team[Role.editor].id
        active = await _add(db, author, stage="EDITING")
        posted = await _add(db, author, stage="POSTED")
        db.add(ProjectAssignment(content_item_id=active.id, person_id=editor, role="EDITOR"))
        db.add(ProjectAssignment(content_item_id=posted.id, person_id=editor, role="EDITOR"))
        await db.commit()

        health = await get_health(db)
        assert health["items_by_stage"]["EDITING"] == 1
        assert health["items_by_stage"]["POSTED"] == 1
        assert health["team_by_role"]["EDITOR"] == 1
        assert health["busiest"] == [{"person_id": editor, "active": 1}]
        assert health["settings"]["dissolution_threshold"] == 4

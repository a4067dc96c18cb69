"""
Tests for services/content_repository.py and services/team_directory.py (SQLite).
"""
from datetime import date

from reelflow.services.content_repository import ContentRepository
from reelflow.services.team_directory import TeamDirectory
from reelflow.services.workflow_types import (
    ContentItem,
    ErrorCode,
    PostingPlatform,
    ProductionStage as S,
    ReviewStatus,
    Role,
    Scores,
)


async def _create(db, author_id, **changes):
    item = ContentItem(id=None, author_id=author_id, title="Draft", **changes)
    return await ContentRepository(db).create_item(item, actor_id=author_id)


class TestContentRepository:
    async def test_create_and_load(self, db, team):
        writer = team[Role.script_writer]
        created = await _create(db, writer.id)
        assert created.id is not None
        assert created.version == 1
        assert created.status == ReviewStatus.pending

        loaded = await ContentRepository(db).load_item(created.id)
        assert loaded == created

    async def test_load_missing(self, db):
        assert await ContentRepository(db).load_item(12345) is None

    async def test_save_bumps_version_and_logs_event(self, db, team):
        repo = ContentRepository(db)
        created = await _create(db, team[Role.script_writer].id)
        scores = Scores(8, 7, 9, 6)
        changed = created.evolve(status=ReviewStatus.approved, production_stage=S.planning, scores=scores)

        result = await repo.save_item(changed, created.version, event="approved", actor_id=team[Role.admin].id)
        assert result.ok
        saved = result.value
        assert saved.version == 2
        assert saved.production_stage == S.planning
        assert saved.scores == scores
        assert saved.overall_score == 7.5

        events = await repo.list_events(created.id)
        assert [e.event for e in events] == ["submitted", "approved"]
        assert events[-1].to_stage == "PLANNING"

    async def test_stale_version_conflicts(self, db, team):
        repo = ContentRepository(db)
        created = await _create(db, team[Role.script_writer].id)
        first = await repo.save_item(created.evolve(title="A"), 1, event="edited")
        assert first.ok

        second = await repo.save_item(created.evolve(title="B"), 1, event="edited")
        assert not second.ok
        assert second.code == ErrorCode.conflict
        assert (await repo.load_item(created.id)).title == "A"

    async def test_posting_fields_persist(self, db, team):
        repo = ContentRepository(db)
        created = await _create(db, team[Role.script_writer].id)
        changed = created.evolve(
            production_stage=S.ready_to_post,
            planned_date=date(2026, 10, 24),
            posting_platform=PostingPlatform.instagram_reel,
            posting_caption="Five tips",
            posting_hashtags=["#tips", "#reels"],
            posted_urls=[{"url": "https://tiktok.com/@us/video/1", "posted_at": "2026-10-19T12:00:00+00:00"}],
        )
        saved = (await repo.save_item(changed, created.version, event="posting_details_set")).value

        assert saved.planned_date == date(2026, 10, 24)
        assert saved.posting_platform == PostingPlatform.instagram_reel
        assert saved.posting_caption == "Five tips"
        assert saved.posting_hashtags == ("#tips", "#reels")
        assert saved.posted_urls == changed.posted_urls

        cleared = await repo.save_item(saved.evolve(posting_platform=None, posting_hashtags=()), saved.version, event="cross_posted")
        assert cleared.value.posting_platform is None
        assert cleared.value.posting_hashtags == ()

    async def test_assignments_sync(self, db, team):
        repo = ContentRepository(db)
        created = await _create(db, team[Role.script_writer].id, status=ReviewStatus.approved)
        videographer = team[Role.videographer]
        editor = team[Role.editor]

        r1 = await repo.save_item(
            created.evolve(assignees={Role.videographer: videographer.id, Role.editor: editor.id}),
            1, event="assigned",
        )
        assert r1.value.assignees == {Role.videographer: videographer.id, Role.editor: editor.id}

        r2 = await repo.save_item(r1.value.evolve(assignees={Role.videographer: videographer.id}), 2, event="assigned")
        assert r2.value.assignees == {Role.videographer: videographer.id}

    async def test_list_items_filters(self, db, team):
        repo = ContentRepository(db)
        writer_id = team[Role.script_writer].id
        await _create(db, writer_id)
        approved = await _create(db, writer_id, status=ReviewStatus.approved, production_stage=S.planning)
        await _create(db, writer_id, status=ReviewStatus.rejected, is_dissolved=True)

        items, total = await repo.list_items()
        assert total == 2

        items, total = await repo.list_items(stage=S.planning)
        assert [i.id for i in items] == [approved.id]

        items, total = await repo.list_items(include_dissolved=True)
        assert total == 3

        counts = await repo.stage_counts()
        assert counts == {"PENDING": 1, "PLANNING": 1, "DISSOLVED": 1}


class TestTeamDirectory:
    async def test_create_and_lookup(self, db, team):
        directory = TeamDirectory(db)
        admin = team[Role.admin]
        assert (await directory.get_person(admin.id)).role == Role.admin
        assert [p.id for p in await directory.list_admins()] == [admin.id]
        assert [p.id for p in await directory.list_by_role(Role.editor, for_update=True)] == [team[Role.editor].id]

    async def test_email_normalized(self, db):
        person = await TeamDirectory(db).create_person(email="  Mixed@Example.COM ", role=Role.editor)
        assert person.email == "mixed@example.com"

    async def test_set_trusted(self, db, team):
        directory = TeamDirectory(db)
        writer = team[Role.script_writer]
        updated = await directory.set_trusted(writer.id, True)
        assert updated.is_trusted_writer
        assert await directory.set_trusted(9999, True) is None

    async def test_workload_ignores_posted_and_dissolved(self, db, team):
        repo = ContentRepository(db)
        directory = TeamDirectory(db)
        writer_id = team[Role.script_writer].id
        editor_id = team[Role.editor].id
        assignees = {Role.editor: editor_id}

        await _create(db, writer_id, status=ReviewStatus.approved, production_stage=S.editing, assignees=assignees)
        await _create(db, writer_id, status=ReviewStatus.approved, production_stage=S.posted, assignees=assignees)
        await _create(db, writer_id, status=ReviewStatus.rejected, is_dissolved=True, assignees=assignees)
        assert await directory.count_active_assignments(editor_id) == 1

        await _create(db, writer_id, status=ReviewStatus.approved, production_stage=S.planning, assignees=assignees)
        assert await directory.count_active_assignments(editor_id) == 2
        assert len((await repo.list_items(assignee_id=editor_id))[0]) == 3

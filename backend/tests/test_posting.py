"""
Tests for services/posting.py: posting details, scheduling, cross-posts.
"""
from datetime import timedelta

import pytest

from conftest import ADMIN, EDITOR, NOW, POSTER, make_item, make_person
from reelflow.services.posting import (
    check_post_url,
    record_cross_post,
    schedule_post,
    set_posting_details,
)
from reelflow.services.workflow_types import ErrorCode, PostingPlatform as P, ProductionStage as S, Role

TOMORROW = NOW + timedelta(days=1)


def _ready(**changes):
    return make_item(stage=S.ready_to_post, **changes)


class TestCheckPostUrl:
    def test_accepts_http_links(self):
        assert check_post_url("https://youtube.com/shorts/xyz") is None
        assert check_post_url("http://example.com/p/1") is None

    @pytest.mark.parametrize("url", [None, "", "youtube.com/shorts/xyz", "mailto:a@b.c"])
    def test_rejects(self, url):
        assert check_post_url(url)


class TestSetPostingDetails:
    def test_sets_details_and_claims_posting_manager(self):
        result = set_posting_details(
            _ready(), POSTER,
            platform=P.instagram_reel, caption=" Five tips ", hashtags=["#tips", " ", "#reels"],
            scheduled_post_time=TOMORROW, now=NOW,
        )
        item = result.value
        assert item.posting_platform == P.instagram_reel
        assert item.posting_caption == "Five tips"
        assert item.posting_hashtags == ("#tips", "#reels")
        assert item.scheduled_post_time == TOMORROW
        assert item.assignee(Role.posting_manager) == POSTER.id
        assert "Posting details set for INSTAGRAM_REEL by Person 4" in item.admin_remarks

    def test_caption_required(self):
        result = set_posting_details(_ready(), POSTER, platform=P.instagram_reel, caption="  ")
        assert result.code == ErrorCode.validation_error

    @pytest.mark.parametrize("platform", [P.tiktok, P.youtube_shorts, P.youtube_video])
    def test_heading_required_for_video_platforms(self, platform):
        missing = set_posting_details(_ready(), POSTER, platform=platform, caption="Go")
        assert missing.code == ErrorCode.validation_error
        assert set_posting_details(_ready(), POSTER, platform=platform, caption="Go", heading="Five tips").ok

    def test_only_in_posting_queue(self):
        result = set_posting_details(make_item(stage=S.editing), POSTER, platform=P.tiktok, caption="Go")
        assert result.code == ErrorCode.invalid_transition

    def test_editor_forbidden(self):
        result = set_posting_details(_ready(), EDITOR, platform=P.instagram_post, caption="Go")
        assert result.code == ErrorCode.forbidden

    def test_other_posting_manager_forbidden(self):
        other = make_person(44, Role.posting_manager)
        item = _ready(assignees={Role.posting_manager: POSTER.id})
        result = set_posting_details(item, other, platform=P.instagram_post, caption="Go")
        assert result.code == ErrorCode.forbidden

    def test_admin_does_not_claim(self):
        result = set_posting_details(_ready(), ADMIN, platform=P.instagram_story, caption="Go")
        assert result.value.assignees == {}

    def test_dissolved(self):
        result = set_posting_details(_ready(is_dissolved=True), ADMIN, platform=P.instagram_story, caption="Go")
        assert result.code == ErrorCode.dissolved


class TestSchedulePost:
    def test_needs_details_first(self):
        result = schedule_post(_ready(), POSTER, TOMORROW)
        assert result.code == ErrorCode.validation_error

    def test_reschedules(self):
        item = _ready(posting_platform=P.instagram_reel, posting_caption="Go", scheduled_post_time=NOW)
        result = schedule_post(item, POSTER, TOMORROW, now=NOW)
        assert result.value.scheduled_post_time == TOMORROW
        assert f"Post scheduled for {TOMORROW.isoformat()}" in result.value.admin_remarks


class TestCrossPost:
    def test_records_url_and_clears_details(self):
        item = _ready(
            posting_platform=P.tiktok,
            posting_caption="Go",
            posting_heading="Five tips",
            posting_hashtags=("#tips",),
            scheduled_post_time=NOW,
        )
        result = record_cross_post(item, POSTER, "https://tiktok.com/@us/video/1", now=NOW)
        posted = result.value
        assert posted.production_stage == S.ready_to_post
        assert posted.posted_urls == ({"url": "https://tiktok.com/@us/video/1", "posted_at": NOW.isoformat()},)
        assert posted.posted_url is None
        assert posted.posting_platform is None
        assert posted.posting_hashtags == ()
        assert posted.scheduled_post_time is None
        assert "Posted to TIKTOK: https://tiktok.com/@us/video/1" in posted.admin_remarks

    def test_invalid_url(self):
        result = record_cross_post(_ready(), POSTER, "not a url")
        assert result.code == ErrorCode.validation_error

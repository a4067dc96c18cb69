"""
Posting details for items in READY_TO_POST.

The posting manager picks a platform, writes the caption (and a heading
for YouTube / TikTok), optionally schedules the post, and finally marks
the item POSTED with its live URL. Posting the same cut to another
platform first is a cross-post: the URL is recorded, the posting details
are cleared and the item stays in the posting queue.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable
from urllib.parse import urlsplit

from reelflow.services.remarks import append_remark
from reelflow.services.workflow_types import (
    ContentItem,
    ErrorCode,
    Ok,
    Person,
    PostingPlatform,
    ProductionStage,
    Result,
    Role,
    fail,
)


def check_post_url(url: str | None) -> str | None:
    """Return an error message, or None when url is a usable http(s) link."""
    if not (url or "").strip():
        return "Posted URL is required"
    parts = urlsplit(url.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return f"Not a valid URL: {url.strip()}"
    return None


def record_post(item: ContentItem, url: str, now: datetime | None = None) -> ContentItem:
    """Append one live URL to the item's posting history."""
    now = now or datetime.now(timezone.utc)
    entry = {"url": url.strip(), "posted_at": now.isoformat()}
    return item.evolve(posted_urls=item.posted_urls + (entry,))


def _check_posting_actor(item: ContentItem, actor: Person) -> Result[None]:
    if item.is_dissolved:
        return fail(ErrorCode.dissolved, f"Item {item.id} is dissolved")
    if not (actor.role.is_admin or actor.role == Role.posting_manager):
        return fail(ErrorCode.forbidden, "Only posting managers or admins handle posting")
    assigned = item.assignee(Role.posting_manager)
    if not actor.role.is_admin and assigned is not None and assigned != actor.id:
        return fail(ErrorCode.forbidden, f"Item {item.id} is assigned to another posting manager")
    if item.production_stage != ProductionStage.ready_to_post:
        stage = item.production_stage.value if item.production_stage else "-"
        return fail(ErrorCode.invalid_transition, f"Item {item.id} is not ready to post (stage {stage})")
    return Ok(None)


def _claim(item: ContentItem, actor: Person) -> dict[Role, int]:
    assignees = dict(item.assignees)
    if actor.role == Role.posting_manager and Role.posting_manager not in assignees:
        assignees[Role.posting_manager] = actor.id
    return assignees


def set_posting_details(
    item: ContentItem,
    actor: Person,
    *,
    platform: PostingPlatform,
    caption: str | None,
    heading: str | None = None,
    hashtags: Iterable[str] = (),
    scheduled_post_time: datetime | None = None,
    now: datetime | None = None,
) -> Result[ContentItem]:
    checked = _check_posting_actor(item, actor)
    if not checked.ok:
        return checked

    caption = (caption or "").strip()
    heading = (heading or "").strip() or None
    if not caption:
        return fail(ErrorCode.validation_error, "Caption is required")
    if platform.requires_heading and not heading:
        return fail(ErrorCode.validation_error, f"A heading is required for {platform.value} posts")

    tags = tuple(t.strip() for t in hashtags if t and t.strip())
    updated = item.evolve(
        posting_platform=platform,
        posting_caption=caption,
        posting_heading=heading,
        posting_hashtags=tags,
        scheduled_post_time=scheduled_post_time,
        assignees=_claim(item, actor),
    )
    text = f"Posting details set for {platform.value} by {actor.display_name}"
    if scheduled_post_time is not None:
        text += f", scheduled {scheduled_post_time.isoformat()}"
    return Ok(append_remark(updated, text, now=now))


def schedule_post(
    item: ContentItem,
    actor: Person,
    when: datetime,
    *,
    now: datetime | None = None,
) -> Result[ContentItem]:
    checked = _check_posting_actor(item, actor)
    if not checked.ok:
        return checked
    if item.posting_platform is None:
        return fail(ErrorCode.validation_error, "Set posting details before scheduling")

    updated = item.evolve(scheduled_post_time=when, assignees=_claim(item, actor))
    return Ok(append_remark(updated, f"Post scheduled for {when.isoformat()} by {actor.display_name}", now=now))


def record_cross_post(
    item: ContentItem,
    actor: Person,
    url: str,
    *,
    now: datetime | None = None,
) -> Result[ContentItem]:
    """Record a live URL but keep the item queued for another platform."""
    checked = _check_posting_actor(item, actor)
    if not checked.ok:
        return checked
    error = check_post_url(url)
    if error:
        return fail(ErrorCode.validation_error, error)

    platform = item.posting_platform.value if item.posting_platform else "unspecified platform"
    updated = record_post(item, url, now).evolve(
        posting_platform=None,
        posting_caption=None,
        posting_heading=None,
        posting_hashtags=(),
        scheduled_post_time=None,
        assignees=_claim(item, actor),
    )
    return Ok(append_remark(updated, f"Posted to {platform}: {url.strip()} by {actor.display_name}", now=now))

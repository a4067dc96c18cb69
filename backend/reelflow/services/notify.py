"""
Notification service: Telegram alerts with throttle.

Env:
  TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID

Throttle: the same warning title is not sent more than once per 15 minutes.
Workflow events are never throttled; each one is a distinct decision.

WorkflowNotifier.notify() is fire-and-forget: it hands the message to
Celery (or the running event loop when Celery is disabled) and never
raises into the caller.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Sequence

import httpx

from reelflow.services.workflow_types import ContentItem, Person

logger = logging.getLogger(__name__)

_throttle: dict[str, float] = {}
THROTTLE_SEC = 15 * 60  # 15 minutes

# Strong refs to in-loop deliveries (the loop only keeps weak ones)
_pending: set[asyncio.Task] = set()

EVENT_TITLES = {
    "submitted": "New script submitted",
    "auto_approved": "Script auto-approved",
    "approved": "Script approved",
    "rejected": "Script rejected",
    "resubmitted": "Script resubmitted",
    "disapproved": "Script disapproved",
    "dissolved": "Project dissolved",
    "assigned": "Team assigned",
    "stage_changed": "Stage changed",
    "shoot_submitted": "Shoot ready for review",
    "shoot_auto_approved": "Shoot review skipped",
    "reshoot_requested": "Reshoot requested",
    "edit_submitted": "Edit ready for review",
    "revision_requested": "Edit revision requested",
    "posted": "Content posted",
    "remark_added": "Admin remark added",
    "posting_details_set": "Posting details set",
    "post_scheduled": "Post scheduled",
    "cross_posted": "Cross-posted",
}


def _should_send(key: str) -> bool:
    now = time.monotonic()
    for stale in [k for k, sent in _throttle.items() if now - sent >= THROTTLE_SEC]:
        del _throttle[stale]
    last = _throttle.get(key, 0.0)
    if now - last < THROTTLE_SEC:
        return False
    _throttle[key] = now
    return True


def _get_config() -> tuple[str | None, str | None]:
    from reelflow.settings import get_settings
    s = get_settings()
    return s.telegram_bot_token, s.telegram_chat_id


async def _send_telegram(text: str, *, raise_transport_errors: bool = False) -> bool:
    """Post one message to the configured chat.

    Transport failures (connect, timeout) are logged and reported as False
    unless raise_transport_errors is set, in which case they propagate so a
    Celery task can retry.
    """
    token, chat_id = _get_config()
    if not token or not chat_id:
        logger.debug("[notify] Telegram not configured, skipping")
        return False
    url = f"https://api.telegram.org/bot{token}/sendMessage"
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            r = await client.post(url, json={
                "chat_id": chat_id,
                "text": text[:4000],
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            })
            if r.status_code == 200:
                return True
            logger.warning(f"[notify] Telegram API {r.status_code}: {r.text[:200]}")
    except httpx.TransportError as e:
        logger.warning(f"[notify] Telegram send failed: {e}")
        if raise_transport_errors:
            raise
    except httpx.HTTPError as e:
        logger.warning(f"[notify] Telegram send failed: {e}")
    return False


async def notify_warn(title: str, payload: Any = None) -> bool:
    """Send warning-level alert (throttled by title)."""
    if not _should_send(f"warn:{title}"):
        logger.debug(f"[notify] throttled warn: {title}")
        return False
    body = f"🟡 <b>{title}</b>"
    if payload:
        body += f"\n<pre>{str(payload)[:500]}</pre>"
    return await _send_telegram(body)


def build_event_message(event: str, item: dict[str, Any], recipients: Sequence[str]) -> tuple[str, str]:
    """Return (title, body) for a workflow event.

    item is the serialized form sent through Celery: id, title, status,
    production_stage, rejection_count.
    """
    label = item.get("title") or f"#{item.get('id')}"
    title = f"{EVENT_TITLES.get(event, event)}: {label}"
    lines = [
        f"item: #{item.get('id')}",
        f"status: {item.get('status')}",
        f"stage: {item.get('production_stage') or '-'}",
    ]
    if event in ("disapproved", "rejected", "dissolved"):
        lines.append(f"rejections: {item.get('rejection_count', 0)}")
    if recipients:
        lines.append(f"for: {', '.join(recipients)}")
    return title, "\n".join(lines)


async def send_workflow_event(
    event: str,
    item: dict[str, Any],
    recipients: Sequence[str],
    *,
    raise_transport_errors: bool = False,
) -> bool:
    title, body = build_event_message(event, item, recipients)
    icon = "🔴" if event == "dissolved" else "🟢"
    return await _send_telegram(
        f"{icon} <b>{title}</b>\n<pre>{body}</pre>", raise_transport_errors=raise_transport_errors,
    )


def _finish(task: asyncio.Task) -> None:
    _pending.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.warning(f"[notify] in-loop delivery failed: {task.exception()}")


def serialize_item(item: ContentItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "status": item.status.value,
        "production_stage": item.production_stage.value if item.production_stage else None,
        "rejection_count": item.rejection_count,
    }


class WorkflowNotifier:
    """Notifier collaborator: dispatches workflow events without waiting on delivery."""

    def __init__(self, *, use_celery: bool | None = None):
        if use_celery is None:
            from reelflow.settings import get_settings
            use_celery = get_settings().celery_enabled
        self.use_celery = use_celery

    def notify(self, event: str, item: ContentItem, recipients: Sequence[Person]) -> None:
        payload = serialize_item(item)
        names = [p.display_name for p in recipients]
        try:
            if self.use_celery:
                from reelflow.worker.tasks import deliver_workflow_event
                deliver_workflow_event.delay(event, payload, names)
            else:
                task = asyncio.get_running_loop().create_task(send_workflow_event(event, payload, names))
                _pending.add(task)
                task.add_done_callback(_finish)
            logger.debug(f"[notify] queued {event} for item {item.id} -> {names}")
        except Exception as e:
            # Best-effort: a broken broker must not fail the transition
            logger.warning(f"[notify] could not dispatch {event} for item {item.id}: {e}")

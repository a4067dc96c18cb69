"""
Append-only admin remarks log.

Each entry is one "[YYYY-MM-DD HH:MM:SS UTC] text" block; entries are
separated by a newline and existing history is never rewritten.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone

from reelflow.services.workflow_types import ContentItem

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

_ENTRY_RE = re.compile(r"^\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} UTC)\] ", re.MULTILINE)


def format_remark(text: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return f"[{now.strftime(TIMESTAMP_FORMAT)}] {text.strip()}"


def append_remark(item: ContentItem, text: str, *, now: datetime | None = None) -> ContentItem:
    """Return a copy of item with one more remark at the end of the log."""
    entry = format_remark(text, now)
    existing = item.admin_remarks or ""
    remarks = f"{existing}\n{entry}" if existing else entry
    return item.evolve(admin_remarks=remarks)


def parse_remarks(remarks: str | None) -> list[dict[str, str]]:
    """Split a remarks log back into [{"at": ..., "text": ...}] entries.

    Text written before the first timestamped entry (legacy notes) is kept
    as an entry with an empty "at".
    """
    if not remarks:
        return []
    entries: list[dict[str, str]] = []
    matches = list(_ENTRY_RE.finditer(remarks))
    head = remarks[: matches[0].start()] if matches else remarks
    if head.strip():
        entries.append({"at": "", "text": head.strip()})
    for idx, m in enumerate(matches):
        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(remarks)
        entries.append({"at": m.group(1), "text": remarks[m.end():end].rstrip("\n")})
    return entries

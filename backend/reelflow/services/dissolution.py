"""
Rejection counter and dissolution.

Every rejection of an item (disapproving an approved script, or rejecting
it in review) bumps rejection_count. Reaching the policy threshold
dissolves the item permanently.
"""
from __future__ import annotations

from datetime import datetime

from reelflow.services.remarks import append_remark
from reelflow.services.stage_graph import DISAPPROVABLE_STAGES, lookup_stage
from reelflow.services.workflow_types import (
    DEFAULT_POLICY,
    ContentItem,
    ErrorCode,
    Ok,
    Person,
    Result,
    ReviewStatus,
    WorkflowPolicy,
    fail,
)


def register_rejection(item: ContentItem, policy: WorkflowPolicy = DEFAULT_POLICY) -> ContentItem:
    """Increment the counter; dissolve when it reaches the threshold."""
    count = item.rejection_count + 1
    if count >= policy.dissolution_threshold:
        return item.evolve(
            rejection_count=count,
            is_dissolved=True,
            dissolution_reason=f"Rejected {count} times - project automatically dissolved",
            status=ReviewStatus.rejected,
            production_stage=None,
        )
    return item.evolve(rejection_count=count)


def can_disapprove(item: ContentItem) -> bool:
    return (
        not item.is_dissolved
        and item.status == ReviewStatus.approved
        and lookup_stage(item.production_stage) in DISAPPROVABLE_STAGES
    )


def disapprove(
    item: ContentItem,
    reason: str,
    actor: Person,
    *,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> Result[ContentItem]:
    """Send an approved script back to PENDING, counting it as a rejection."""
    if item.is_dissolved:
        return fail(ErrorCode.dissolved, f"Item {item.id} is dissolved")
    if not actor.role.is_admin:
        return fail(ErrorCode.forbidden, "Only admins can disapprove a script")

    reason = (reason or "").strip()
    if not reason:
        return fail(ErrorCode.validation_error, "Disapproval reason is required")

    if item.status != ReviewStatus.approved:
        return fail(ErrorCode.invalid_transition, f"Item {item.id} is {item.status.value}, not APPROVED")
    stage = lookup_stage(item.production_stage)
    if stage not in DISAPPROVABLE_STAGES:
        return fail(
            ErrorCode.invalid_transition,
            f"Cannot disapprove at {stage.value}; request a reshoot or revision instead",
        )

    counted = register_rejection(item, policy)
    if counted.is_dissolved:
        text = (
            f"DISSOLVED by {actor.display_name} after {counted.rejection_count} rejections\n"
            f"Reason: {reason}"
        )
        return Ok(append_remark(counted, text, now=now))

    reset = counted.evolve(status=ReviewStatus.pending, production_stage=None)
    text = (
        f"DISAPPROVED by {actor.display_name} at {stage.value} "
        f"(rejection {counted.rejection_count}/{policy.dissolution_threshold})\nReason: {reason}"
    )
    return Ok(append_remark(reset, text, now=now))

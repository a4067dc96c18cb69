"""
Script submission and review.

A submitted script starts PENDING (unless the trust gate approves it).
An admin scores it 1-10 on four axes and approves or rejects it;
rejection needs written feedback and counts toward dissolution. The
author may resubmit a rejected script.
"""
from __future__ import annotations

from datetime import datetime

from reelflow.services.dissolution import register_rejection
from reelflow.services.remarks import append_remark
from reelflow.services.trust_gate import gate_submission
from reelflow.services.workflow_types import (
    DEFAULT_POLICY,
    ContentItem,
    ErrorCode,
    GateDecision,
    Ok,
    Person,
    Result,
    ReviewStatus,
    Scores,
    WorkflowPolicy,
    fail,
)


def submit_script(
    author: Person,
    *,
    title: str | None = None,
    reference_url: str | None = None,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> GateDecision:
    draft = ContentItem(id=None, author_id=author.id, title=title, reference_url=reference_url)
    return gate_submission(draft, author, policy=policy, now=now)


def review_script(
    item: ContentItem,
    actor: Person,
    decision: ReviewStatus,
    scores: Scores,
    feedback: str | None = None,
    *,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> Result[ContentItem]:
    if item.is_dissolved:
        return fail(ErrorCode.dissolved, f"Item {item.id} is dissolved")
    if not actor.role.is_admin:
        return fail(ErrorCode.forbidden, "Only admins can review scripts")
    if decision == ReviewStatus.pending:
        return fail(ErrorCode.validation_error, "Review decision must be APPROVED or REJECTED")
    if item.status != ReviewStatus.pending:
        return fail(ErrorCode.invalid_transition, f"Item {item.id} is {item.status.value}, not awaiting review")

    bad = scores.out_of_range()
    if bad:
        return fail(ErrorCode.validation_error, f"Scores must be between 1 and 10: {', '.join(bad)}")

    feedback = (feedback or "").strip() or None
    scored = item.evolve(scores=scores, feedback=feedback)

    if decision == ReviewStatus.approved:
        approved = scored.evolve(status=ReviewStatus.approved, production_stage=policy.initial_stage)
        text = f"Script APPROVED by {actor.display_name} (overall {scores.overall_score})"
        if feedback:
            text += f"\nFeedback: {feedback}"
        return Ok(append_remark(approved, text, now=now))

    if not feedback:
        return fail(ErrorCode.validation_error, "Feedback is required when rejecting a script")

    rejected = register_rejection(scored.evolve(status=ReviewStatus.rejected, production_stage=None), policy)
    if rejected.is_dissolved:
        text = (
            f"Script REJECTED and DISSOLVED by {actor.display_name} "
            f"after {rejected.rejection_count} rejections\nFeedback: {feedback}"
        )
    else:
        text = (
            f"Script REJECTED by {actor.display_name} "
            f"(rejection {rejected.rejection_count}/{policy.dissolution_threshold})\nFeedback: {feedback}"
        )
    return Ok(append_remark(rejected, text, now=now))


def resubmit_script(
    item: ContentItem,
    actor: Person,
    *,
    note: str | None = None,
    now: datetime | None = None,
) -> Result[ContentItem]:
    """Put a rejected script back into the review queue."""
    if item.is_dissolved:
        return fail(ErrorCode.dissolved, f"Item {item.id} is dissolved and cannot be resubmitted")
    if actor.id != item.author_id and not actor.role.is_admin:
        return fail(ErrorCode.forbidden, "Only the author or an admin can resubmit a script")
    if item.status != ReviewStatus.rejected:
        return fail(ErrorCode.invalid_transition, f"Item {item.id} is {item.status.value}, not REJECTED")

    text = f"Resubmitted for review by {actor.display_name}"
    if note and note.strip():
        text += f"\nNote: {note.strip()}"
    return Ok(append_remark(item.evolve(status=ReviewStatus.pending, production_stage=None), text, now=now))

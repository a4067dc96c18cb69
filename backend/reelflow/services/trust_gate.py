"""
Trust gate: lets trusted team members skip manual review.

- Scripts authored by a trusted writer are approved on submission.
- Footage submitted by a trusted videographer skips SHOOT_REVIEW.

The flag is read at the moment of the decision; changing it later does
not touch items that already went through the gate.
"""
from __future__ import annotations

from datetime import datetime

from reelflow.services.remarks import append_remark
from reelflow.services.workflow_types import (
    DEFAULT_POLICY,
    ContentItem,
    GateDecision,
    Person,
    ProductionStage,
    ReviewStatus,
    Role,
    WorkflowPolicy,
)


def gate_submission(
    item: ContentItem,
    author: Person,
    *,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> GateDecision:
    if policy.auto_approve_trusted and author.is_trusted_writer:
        approved = item.evolve(status=ReviewStatus.approved, production_stage=policy.initial_stage)
        approved = append_remark(approved, f"Auto-approved (trusted writer {author.display_name})", now=now)
        return GateDecision(auto_approved=True, item=approved)

    return GateDecision(
        auto_approved=False,
        item=item.evolve(status=ReviewStatus.pending, production_stage=None),
    )


def gate_shoot_review(
    item: ContentItem,
    videographer: Person,
    *,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> GateDecision:
    """Move a just-submitted shoot straight to READY_FOR_EDIT for trusted videographers."""
    trusted = (
        policy.trusted_shoot_bypass
        and videographer.role == Role.videographer
        and videographer.is_trusted_writer
        and item.production_stage == ProductionStage.shoot_review
        and not item.is_dissolved
    )
    if not trusted:
        return GateDecision(auto_approved=False, item=item)

    bypassed = item.evolve(production_stage=ProductionStage.ready_for_edit)
    bypassed = append_remark(
        bypassed,
        f"Shoot review skipped (trusted videographer {videographer.display_name}): "
        f"SHOOT_REVIEW -> READY_FOR_EDIT",
        now=now,
    )
    return GateDecision(auto_approved=True, item=bypassed)

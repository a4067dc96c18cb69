"""
Transition validator: decides whether an actor may move an item to a stage.

validate_transition() is pure: it returns the updated item (stage moved,
remark appended, assignee claimed where the edge says so) or a tagged
error. Saving the result is the caller's job.
"""
from __future__ import annotations

from datetime import date, datetime, timezone

from reelflow.services.posting import check_post_url, record_post
from reelflow.services.remarks import append_remark
from reelflow.services.stage_graph import Edge, edges_from, find_edge, lookup_stage
from reelflow.services.workflow_types import (
    ASSIGNMENT_ROLES,
    ContentItem,
    ErrorCode,
    Ok,
    Person,
    ProductionStage,
    Result,
    ReviewStatus,
    fail,
)


def _check_edge(item: ContentItem, requested: ProductionStage, actor: Person) -> Result[Edge]:
    if item.is_dissolved:
        return fail(ErrorCode.dissolved, f"Item {item.id} is dissolved and accepts no transitions")

    if item.status != ReviewStatus.approved:
        return fail(
            ErrorCode.invalid_transition,
            f"Item {item.id} is {item.status.value}; production starts only after approval",
        )

    current = lookup_stage(item.production_stage)
    edge = find_edge(item.production_stage, requested)
    if edge is None:
        allowed = ", ".join(e.to_stage.value for e in edges_from(item.production_stage)) or "none"
        return fail(
            ErrorCode.invalid_transition,
            f"Cannot move from {current.value} to {requested.value} (allowed: {allowed})",
        )

    if not actor.role.is_admin:
        if actor.role != edge.role:
            return fail(
                ErrorCode.forbidden,
                f"{current.value} -> {requested.value} requires {edge.role.value}, actor is {actor.role.value}",
            )
        if edge.role in ASSIGNMENT_ROLES:
            assigned = item.assignee(edge.role)
            if assigned is not None and assigned != actor.id:
                return fail(
                    ErrorCode.forbidden,
                    f"Item {item.id} is assigned to another {edge.role.value.lower()}",
                )

    return Ok(edge)


def can_transition(item: ContentItem, requested: ProductionStage, actor: Person) -> bool:
    return _check_edge(item, requested, actor).ok


def validate_transition(
    item: ContentItem,
    requested_stage: ProductionStage,
    actor: Person,
    *,
    note: str | None = None,
    planned_date: date | None = None,
    posted_url: str | None = None,
    now: datetime | None = None,
) -> Result[ContentItem]:
    checked = _check_edge(item, requested_stage, actor)
    if not checked.ok:
        return checked
    edge: Edge = checked.value

    note = (note or "").strip()
    if edge.requires_note and not note:
        return fail(ErrorCode.validation_error, f"'{edge.label}' requires a note explaining why")
    if edge.requires_planned_date and planned_date is None:
        return fail(ErrorCode.validation_error, f"'{edge.label}' requires a planned shoot date")
    if edge.requires_posted_url:
        error = check_post_url(posted_url)
        if error:
            return fail(ErrorCode.validation_error, error)

    current = lookup_stage(item.production_stage)
    assignees = dict(item.assignees)
    if edge.claims_assignment and edge.role in ASSIGNMENT_ROLES and edge.role not in assignees:
        if actor.role == edge.role:
            assignees[edge.role] = actor.id

    updated = item.evolve(production_stage=requested_stage, assignees=assignees)
    text = f"{edge.label}: {current.value} -> {requested_stage.value} by {actor.display_name}"
    if edge.requires_planned_date:
        updated = updated.evolve(planned_date=planned_date)
        text += f"\nShoot planned for {planned_date.isoformat()}"
    if edge.requires_posted_url:
        posted_at = now or datetime.now(timezone.utc)
        updated = record_post(updated, posted_url, posted_at).evolve(
            posted_url=posted_url.strip(), posted_at=posted_at,
        )
        text += f"\nLive at {posted_url.strip()}"
    if note:
        text += f"\nNote: {note}"
    return Ok(append_remark(updated, text, now=now))

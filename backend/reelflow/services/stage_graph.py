"""
Production stage graph: the single table of allowed stage moves.

Every consumer (transition validator, next-stage listings, tests) reads
STAGE_GRAPH; there is no other copy of the flow.

Items with no stage yet are looked up as NOT_STARTED.
"""
from __future__ import annotations

from dataclasses import dataclass

from reelflow.services.workflow_types import ProductionStage as S
from reelflow.services.workflow_types import Role


@dataclass(frozen=True)
class Edge:
    to_stage: S
    role: Role
    label: str
    description: str = ""
    claims_assignment: bool = False  # actor becomes the assignee for `role` if none is set
    requires_note: bool = False
    requires_planned_date: bool = False
    requires_posted_url: bool = False
    event: str = "stage_changed"

    def to_dict(self) -> dict:
        return {
            "next": self.to_stage.value,
            "role": self.role.value,
            "label": self.label,
            "description": self.description,
            "requires_note": self.requires_note,
            "requires_planned_date": self.requires_planned_date,
            "requires_posted_url": self.requires_posted_url,
        }


STAGE_GRAPH: dict[S, tuple[Edge, ...]] = {
    S.not_started: (
        Edge(S.pre_production, Role.admin, "Start Production", "Assign team and begin"),
        Edge(S.planning, Role.admin, "Open for Pickup", "Make available to videographers"),
    ),
    S.planning: (
        Edge(S.shooting, Role.videographer, "Start Shooting", "Videographer picks the project", claims_assignment=True),
        Edge(S.pre_production, Role.admin, "Start Pre-Production", "Plan before the shoot"),
    ),
    S.pre_production: (
        Edge(S.planned, Role.admin, "Set as Planned", "Set planned date for shoot", requires_planned_date=True),
        Edge(S.shooting, Role.videographer, "Begin Shooting", "Skip planning, start immediately", claims_assignment=True),
    ),
    S.planned: (
        Edge(S.shooting, Role.videographer, "Start Shooting", "Videographer starts shooting", claims_assignment=True),
        Edge(S.pre_production, Role.admin, "Back to Planning", "Needs more planning"),
    ),
    S.shooting: (
        Edge(S.shoot_review, Role.videographer, "Submit for Review", "Send to admin for review", event="shoot_submitted"),
    ),
    S.shoot_review: (
        Edge(S.editing, Role.admin, "Approve Shoot", "Move to editing stage"),
        Edge(S.ready_for_edit, Role.admin, "Approve for Edit Queue", "Let an editor pick it up"),
        Edge(S.shooting, Role.admin, "Request Reshoot", "Send back to videographer",
             requires_note=True, event="reshoot_requested"),
    ),
    S.ready_for_edit: (
        Edge(S.editing, Role.editor, "Start Editing", "Editor picks the project", claims_assignment=True),
    ),
    S.editing: (
        Edge(S.edit_review, Role.editor, "Submit Edit", "Send to admin for review", event="edit_submitted"),
    ),
    S.edit_review: (
        Edge(S.ready_to_post, Role.admin, "Approve Edit", "Ready for posting"),
        Edge(S.editing, Role.admin, "Request Revision", "Send back to editor",
             requires_note=True, event="revision_requested"),
    ),
    S.ready_to_post: (
        Edge(S.posted, Role.posting_manager, "Mark as Posted", "Content is live",
             requires_posted_url=True, event="posted"),
    ),
    S.posted: (),
}

# Disapproving is only allowed before substantial production work
DISAPPROVABLE_STAGES: frozenset[S] = frozenset({
    S.not_started, S.planning, S.pre_production, S.planned, S.shooting, S.shoot_review,
})

# Stages waiting on an admin decision
REVIEW_STAGES: frozenset[S] = frozenset({S.shoot_review, S.edit_review})

# Work still in progress; assignments on these count toward workload
ACTIVE_STAGES: frozenset[S] = frozenset(s for s in S if s != S.posted)

TERMINAL_STAGES: frozenset[S] = frozenset(s for s, edges in STAGE_GRAPH.items() if not edges)


def lookup_stage(stage: S | None) -> S:
    return stage if stage is not None else S.not_started


def edges_from(stage: S | None) -> tuple[Edge, ...]:
    return STAGE_GRAPH.get(lookup_stage(stage), ())


def find_edge(from_stage: S | None, to_stage: S) -> Edge | None:
    for edge in edges_from(from_stage):
        if edge.to_stage == to_stage:
            return edge
    return None


def all_edges() -> list[tuple[S, Edge]]:
    return [(src, edge) for src, edges in STAGE_GRAPH.items() for edge in edges]


def is_terminal(stage: S | None) -> bool:
    return lookup_stage(stage) in TERMINAL_STAGES


def edges_for_role(stage: S | None, role: Role) -> tuple[Edge, ...]:
    """Edges an actor with `role` may take from `stage` (admins see all)."""
    if role.is_admin:
        return edges_from(stage)
    return tuple(e for e in edges_from(stage) if e.role == role)

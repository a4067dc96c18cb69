"""
Assignment resolver: picks or validates the videographer / editor /
posting manager for an item.

Auto-assign uses a least-loaded policy: the active member of the role
with the fewest active assignments wins; ties go to the member created
first (then lowest id) so the choice is deterministic.

Workloads must be read fresh from persistence for every call.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping

from reelflow.services.remarks import append_remark
from reelflow.services.workflow_types import (
    ASSIGNMENT_ROLES,
    ContentItem,
    ErrorCode,
    Ok,
    Person,
    Result,
    Role,
    fail,
)

_EPOCH = datetime.min


@dataclass(frozen=True)
class AssignmentSpec:
    """One role of an assignment request: an explicit person or auto-assign."""
    person_id: int | None = None
    auto_assign: bool = False

    @property
    def is_empty(self) -> bool:
        return self.person_id is None and not self.auto_assign


def _tie_break_key(person: Person, workloads: Mapping[int, int]) -> tuple:
    created = person.created_at or _EPOCH
    if created.tzinfo is not None:
        created = created.astimezone(timezone.utc).replace(tzinfo=None)
    return (workloads.get(person.id, 0), created, person.id)


def pick_least_loaded(candidates: Iterable[Person], role: Role, workloads: Mapping[int, int]) -> Person | None:
    eligible = [p for p in candidates if p.role == role and p.is_active]
    if not eligible:
        return None
    return min(eligible, key=lambda p: _tie_break_key(p, workloads))


def resolve_assignment(
    item: ContentItem,
    role: Role,
    candidates: Iterable[Person],
    workloads: Mapping[int, int],
    *,
    person_id: int | None = None,
    auto_assign: bool = False,
) -> Result[Person]:
    """Resolve one role to a Person.

    candidates: registry members to choose from (usually everyone holding
    `role`, plus the explicitly requested person).
    """
    if item.is_dissolved:
        return fail(ErrorCode.dissolved, f"Item {item.id} is dissolved")
    if role not in ASSIGNMENT_ROLES:
        return fail(ErrorCode.validation_error, f"{role.value} is not an assignable role")

    candidates = list(candidates)
    if person_id is not None:
        person = next((p for p in candidates if p.id == person_id), None)
        if person is None:
            return fail(ErrorCode.role_mismatch, f"Person {person_id} is not a known {role.value.lower()}")
        if person.role != role:
            return fail(
                ErrorCode.role_mismatch,
                f"Person {person_id} is {person.role.value}, cannot be assigned as {role.value}",
            )
        if not person.is_active:
            return fail(ErrorCode.role_mismatch, f"Person {person_id} is inactive")
        return Ok(person)

    if auto_assign:
        chosen = pick_least_loaded(candidates, role, workloads)
        if chosen is None:
            return fail(ErrorCode.no_eligible_person, f"No active {role.value.lower()} available")
        return Ok(chosen)

    return fail(ErrorCode.empty_assignment, f"No person or auto-assign given for {role.value}")


@dataclass(frozen=True)
class AssignmentPlan:
    item: ContentItem
    assigned: dict[Role, Person]


def plan_assignments(
    item: ContentItem,
    requests: Mapping[Role, AssignmentSpec],
    candidates: Mapping[Role, list[Person]],
    workloads: Mapping[int, int],
    *,
    assigned_by: Person | None = None,
    now: datetime | None = None,
) -> Result[AssignmentPlan]:
    """Resolve every requested role and apply them to the item.

    At least one role must carry a person or auto-assign. Nothing is
    applied if any single role fails.
    """
    if item.is_dissolved:
        return fail(ErrorCode.dissolved, f"Item {item.id} is dissolved")
    if assigned_by is not None and not assigned_by.role.is_admin:
        return fail(ErrorCode.forbidden, "Only admins can assign team members")

    wanted = {role: spec for role, spec in requests.items() if not spec.is_empty}
    if not wanted:
        return fail(ErrorCode.empty_assignment, "Please assign at least one team member")

    load = dict(workloads)
    assigned: dict[Role, Person] = {}
    for role in ASSIGNMENT_ROLES:
        spec = wanted.pop(role, None)
        if spec is None:
            continue
        resolved = resolve_assignment(
            item, role, candidates.get(role, []), load,
            person_id=spec.person_id, auto_assign=spec.auto_assign,
        )
        if not resolved.ok:
            return resolved
        assigned[role] = resolved.value
        load[resolved.value.id] = load.get(resolved.value.id, 0) + 1

    if wanted:
        bad = ", ".join(r.value for r in wanted)
        return fail(ErrorCode.validation_error, f"Not assignable roles: {bad}")

    assignees = dict(item.assignees)
    for role, person in assigned.items():
        assignees[role] = person.id
    summary = ", ".join(f"{role.value.lower()}={person.display_name}" for role, person in assigned.items())
    by = f" by {assigned_by.display_name}" if assigned_by else ""
    updated = append_remark(item.evolve(assignees=assignees), f"Team assigned{by}: {summary}", now=now)
    return Ok(AssignmentPlan(item=updated, assigned=assigned))

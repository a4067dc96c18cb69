"""
Tests for services/assignment_resolver.py: explicit and least-loaded assignment.
"""
from datetime import datetime, timezone

from conftest import ADMIN, EDITOR, NOW, make_item, make_person
from reelflow.services.assignment_resolver import (
    AssignmentSpec,
    pick_least_loaded,
    plan_assignments,
    resolve_assignment,
)
from reelflow.services.workflow_types import ErrorCode, Person, ReviewStatus, Role

V1 = make_person(21, Role.videographer, minutes=0)
V2 = make_person(22, Role.videographer, minutes=5)


class TestPickLeastLoaded:
    def test_picks_lowest_workload(self):
        assert pick_least_loaded([V1, V2], Role.videographer, {21: 2, 22: 0}) == V2

    def test_tie_goes_to_earliest_member(self):
        assert pick_least_loaded([V2, V1], Role.videographer, {21: 1, 22: 1}) == V1

    def test_tie_on_created_at_goes_to_lowest_id(self):
        a = make_person(31, Role.editor)
        b = make_person(30, Role.editor)
        assert pick_least_loaded([a, b], Role.editor, {}) == b

    def test_mixed_naive_and_aware_timestamps(self):
        naive = Person(
            id=40, email="n@example.com", role=Role.editor, created_at=datetime(2026, 1, 1),
        )
        aware = Person(
            id=41, email="a@example.com", role=Role.editor, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        assert pick_least_loaded([naive, aware], Role.editor, {}) == aware

    def test_skips_inactive_and_wrong_role(self):
        inactive = make_person(23, Role.videographer, active=False)
        assert pick_least_loaded([inactive, EDITOR], Role.videographer, {}) is None


class TestResolveAssignment:
    def test_auto_assign(self):
        result = resolve_assignment(make_item(), Role.videographer, [V1, V2], {21: 2, 22: 0}, auto_assign=True)
        assert result.value == V2

    def test_no_candidates(self):
        result = resolve_assignment(make_item(), Role.editor, [], {}, auto_assign=True)
        assert result.code == ErrorCode.no_eligible_person

    def test_explicit_wrong_role(self):
        result = resolve_assignment(make_item(), Role.videographer, [V1, EDITOR], {}, person_id=EDITOR.id)
        assert result.code == ErrorCode.role_mismatch

    def test_explicit_unknown_person(self):
        result = resolve_assignment(make_item(), Role.videographer, [V1], {}, person_id=999)
        assert result.code == ErrorCode.role_mismatch

    def test_explicit_wins_over_auto(self):
        result = resolve_assignment(
            make_item(), Role.videographer, [V1, V2], {21: 5, 22: 0}, person_id=21, auto_assign=True,
        )
        assert result.value == V1

    def test_nothing_requested(self):
        result = resolve_assignment(make_item(), Role.editor, [EDITOR], {})
        assert result.code == ErrorCode.empty_assignment

    def test_not_assignable_role(self):
        result = resolve_assignment(make_item(), Role.admin, [ADMIN], {}, auto_assign=True)
        assert result.code == ErrorCode.validation_error

    def test_dissolved(self):
        item = make_item(status=ReviewStatus.rejected, stage=None, is_dissolved=True)
        result = resolve_assignment(item, Role.videographer, [V1], {}, auto_assign=True)
        assert result.code == ErrorCode.dissolved


class TestPlanAssignments:
    def test_all_roles_at_once(self):
        poster = make_person(4, Role.posting_manager)
        result = plan_assignments(
            make_item(),
            {
                Role.videographer: AssignmentSpec(auto_assign=True),
                Role.editor: AssignmentSpec(person_id=EDITOR.id),
                Role.posting_manager: AssignmentSpec(auto_assign=True),
            },
            {Role.videographer: [V1, V2], Role.editor: [EDITOR], Role.posting_manager: [poster]},
            {21: 2, 22: 0},
            assigned_by=ADMIN,
            now=NOW,
        )
        assert result.ok
        plan = result.value
        assert plan.item.assignees == {Role.videographer: 22, Role.editor: EDITOR.id, Role.posting_manager: 4}
        assert "Team assigned by Person 100: videographer=Person 22" in plan.item.admin_remarks

    def test_empty_request(self):
        result = plan_assignments(
            make_item(), {Role.editor: AssignmentSpec()}, {}, {}, assigned_by=ADMIN,
        )
        assert result.code == ErrorCode.empty_assignment

    def test_one_failure_applies_nothing(self):
        item = make_item()
        result = plan_assignments(
            item,
            {Role.videographer: AssignmentSpec(auto_assign=True), Role.editor: AssignmentSpec(auto_assign=True)},
            {Role.videographer: [V1], Role.editor: []},
            {},
            assigned_by=ADMIN,
        )
        assert result.code == ErrorCode.no_eligible_person
        assert item.assignees == {}

    def test_non_admin_cannot_assign(self):
        result = plan_assignments(
            make_item(), {Role.videographer: AssignmentSpec(person_id=21)}, {Role.videographer: [V1]}, {},
            assigned_by=V1,
        )
        assert result.code == ErrorCode.forbidden

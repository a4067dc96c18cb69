"""
Tests for services/stage_graph.py: production stage edges.
"""
import pytest

from reelflow.services.stage_graph import (
    ACTIVE_STAGES,
    DISAPPROVABLE_STAGES,
    REVIEW_STAGES,
    STAGE_GRAPH,
    all_edges,
    edges_for_role,
    edges_from,
    find_edge,
    is_terminal,
    lookup_stage,
)
from reelflow.services.workflow_types import PostingPlatform, ProductionStage as S, ReviewStatus, Role


class TestGraphShape:
    def test_every_stage_has_an_entry(self):
        assert set(STAGE_GRAPH) == set(S)

    def test_posted_is_the_only_terminal_stage(self):
        terminal = [s for s in S if is_terminal(s)]
        assert terminal == [S.posted]

    def test_no_self_loops(self):
        for src, edge in all_edges():
            assert edge.to_stage != src

    def test_review_rework_edges_require_note(self):
        assert find_edge(S.shoot_review, S.shooting).requires_note
        assert find_edge(S.edit_review, S.editing).requires_note
        assert not find_edge(S.shoot_review, S.editing).requires_note


class TestLookup:
    def test_null_stage_reads_as_not_started(self):
        assert lookup_stage(None) == S.not_started
        assert edges_from(None) == STAGE_GRAPH[S.not_started]

    def test_find_edge_missing(self):
        assert find_edge(S.planning, S.posted) is None

    def test_admin_approves_shoot_straight_to_editing(self):
        edge = find_edge(S.shoot_review, S.editing)
        assert edge.role == Role.admin
        assert edge.label == "Approve Shoot"

    def test_pickup_edges_claim_assignment(self):
        assert find_edge(S.planning, S.shooting).claims_assignment
        assert find_edge(S.ready_for_edit, S.editing).claims_assignment
        assert not find_edge(S.shooting, S.shoot_review).claims_assignment


class TestEdgesForRole:
    def test_admin_sees_every_edge(self):
        assert edges_for_role(S.shoot_review, Role.admin) == edges_from(S.shoot_review)
        assert edges_for_role(S.ready_to_post, Role.super_admin) == edges_from(S.ready_to_post)

    def test_videographer_only_sees_own_edges(self):
        targets = [e.to_stage for e in edges_for_role(S.planning, Role.videographer)]
        assert targets == [S.shooting]

    def test_writer_has_no_production_edges(self):
        for stage in S:
            assert edges_for_role(stage, Role.script_writer) == ()

    def test_disapprovable_stages_stop_before_editing(self):
        assert S.shoot_review in DISAPPROVABLE_STAGES
        assert S.ready_for_edit not in DISAPPROVABLE_STAGES
        assert S.editing not in DISAPPROVABLE_STAGES
        assert S.posted not in DISAPPROVABLE_STAGES

    def test_edge_to_dict(self):
        data = find_edge(S.ready_to_post, S.posted).to_dict()
        assert data == {
            "next": "POSTED",
            "role": "POSTING_MANAGER",
            "label": "Mark as Posted",
            "description": "Content is live",
            "requires_note": False,
            "requires_planned_date": False,
            "requires_posted_url": True,
        }

    def test_field_requirements(self):
        assert find_edge(S.pre_production, S.planned).requires_planned_date
        assert [e for _, e in all_edges() if e.requires_planned_date] == [find_edge(S.pre_production, S.planned)]
        assert [e for _, e in all_edges() if e.requires_posted_url] == [find_edge(S.ready_to_post, S.posted)]

    def test_stage_sets(self):
        assert ACTIVE_STAGES == set(S) - {S.posted}
        assert REVIEW_STAGES == {S.shoot_review, S.edit_review}


class TestEnumParsing:
    def test_names_are_case_and_separator_insensitive(self):
        assert S.parse("ready-to-post") == S.ready_to_post
        assert Role.parse("Posting Manager") == Role.posting_manager
        assert PostingPlatform.parse("youtube shorts") == PostingPlatform.youtube_shorts
        assert S.parse("  ") is None

    @pytest.mark.parametrize("parse", [Role.parse, ReviewStatus.parse, S.parse, PostingPlatform.parse])
    @pytest.mark.parametrize("value", [5, 1.5, ["EDITOR"], {"role": "EDITOR"}])
    def test_non_string_is_value_error(self, parse, value):
        with pytest.raises(ValueError):
            parse(value)

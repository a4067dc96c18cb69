"""
Tests for services/trust_gate.py and script submission.
"""
from conftest import NOW, make_item, make_person
from reelflow.services.script_review import submit_script
from reelflow.services.trust_gate import gate_shoot_review, gate_submission
from reelflow.services.workflow_types import (
    ContentItem,
    ProductionStage as S,
    ReviewStatus,
    Role,
    WorkflowPolicy,
)


class TestGateSubmission:
    def test_trusted_writer_auto_approved(self):
        author = make_person(1, Role.script_writer, trusted=True)
        decision = gate_submission(ContentItem(id=None, author_id=1), author, now=NOW)
        assert decision.auto_approved
        assert decision.item.status == ReviewStatus.approved
        assert decision.item.production_stage == S.planning
        assert decision.item.admin_remarks == (
            "[2026-10-19 12:00:00 UTC] Auto-approved (trusted writer Person 1)"
        )

    def test_untrusted_writer_pending(self):
        decision = gate_submission(ContentItem(id=None, author_id=1), make_person(1, Role.script_writer))
        assert not decision.auto_approved
        assert decision.item.status == ReviewStatus.pending
        assert decision.item.production_stage is None
        assert decision.item.admin_remarks == ""

    def test_policy_can_switch_off_auto_approval(self):
        author = make_person(1, Role.script_writer, trusted=True)
        policy = WorkflowPolicy(auto_approve_trusted=False)
        assert not gate_submission(ContentItem(id=None, author_id=1), author, policy=policy).auto_approved

    def test_initial_stage_from_policy(self):
        author = make_person(1, Role.script_writer, trusted=True)
        policy = WorkflowPolicy(initial_stage=S.not_started)
        decision = submit_script(author, title="Hook test", policy=policy, now=NOW)
        assert decision.item.production_stage == S.not_started
        assert decision.item.title == "Hook test"


class TestGateShootReview:
    def test_trusted_videographer_skips_review(self):
        videographer = make_person(2, Role.videographer, trusted=True)
        decision = gate_shoot_review(make_item(stage=S.shoot_review), videographer, now=NOW)
        assert decision.auto_approved
        assert decision.item.production_stage == S.ready_for_edit
        assert "Shoot review skipped" in decision.item.admin_remarks

    def test_untrusted_videographer_waits(self):
        item = make_item(stage=S.shoot_review)
        decision = gate_shoot_review(item, make_person(2, Role.videographer))
        assert not decision.auto_approved
        assert decision.item is item

    def test_bypass_disabled(self):
        videographer = make_person(2, Role.videographer, trusted=True)
        policy = WorkflowPolicy(trusted_shoot_bypass=False)
        decision = gate_shoot_review(make_item(stage=S.shoot_review), videographer, policy=policy)
        assert not decision.auto_approved

    def test_only_at_shoot_review(self):
        videographer = make_person(2, Role.videographer, trusted=True)
        assert not gate_shoot_review(make_item(stage=S.shooting), videographer).auto_approved

"""
Tests for services/script_review.py: review scoring, rejection, resubmission.
"""
from conftest import ADMIN, NOW, WRITER, make_item, make_person
from reelflow.services.script_review import resubmit_script, review_script
from reelflow.services.workflow_types import ErrorCode, ProductionStage as S, ReviewStatus, Role, Scores

GOOD = Scores(hook_strength=8, content_quality=7, viral_potential=9, replication_clarity=6)


def _pending(**changes):
    return make_item(status=ReviewStatus.pending, stage=None, **changes)


class TestReview:
    def test_approve_sets_scores_and_stage(self):
        result = review_script(_pending(), ADMIN, ReviewStatus.approved, GOOD, "Nice hook", now=NOW)
        item = result.value
        assert item.status == ReviewStatus.approved
        assert item.production_stage == S.planning
        assert item.overall_score == 7.5
        assert item.feedback == "Nice hook"
        assert "Script APPROVED by Person 100 (overall 7.5)" in item.admin_remarks

    def test_reject_needs_feedback(self):
        result = review_script(_pending(), ADMIN, ReviewStatus.rejected, GOOD, "  ")
        assert result.code == ErrorCode.validation_error

    def test_reject_counts_toward_dissolution(self):
        result = review_script(_pending(), ADMIN, ReviewStatus.rejected, GOOD, "Too long", now=NOW)
        item = result.value
        assert item.status == ReviewStatus.rejected
        assert item.rejection_count == 1
        assert not item.is_dissolved

    def test_fourth_rejection_dissolves(self):
        result = review_script(_pending(rejection_count=3), ADMIN, ReviewStatus.rejected, GOOD, "No", now=NOW)
        assert result.value.is_dissolved
        assert "DISSOLVED" in result.value.admin_remarks

    def test_scores_out_of_range(self):
        bad = Scores(hook_strength=0, content_quality=7, viral_potential=11, replication_clarity=6)
        result = review_script(_pending(), ADMIN, ReviewStatus.approved, bad)
        assert result.code == ErrorCode.validation_error
        assert "hook_strength" in result.error.message
        assert "viral_potential" in result.error.message

    def test_non_admin_forbidden(self):
        result = review_script(_pending(), WRITER, ReviewStatus.approved, GOOD)
        assert result.code == ErrorCode.forbidden

    def test_already_reviewed(self):
        result = review_script(make_item(), ADMIN, ReviewStatus.approved, GOOD)
        assert result.code == ErrorCode.invalid_transition

    def test_pending_decision_rejected(self):
        result = review_script(_pending(), ADMIN, ReviewStatus.pending, GOOD)
        assert result.code == ErrorCode.validation_error


class TestResubmit:
    def test_author_resubmits(self):
        item = make_item(status=ReviewStatus.rejected, stage=None, rejection_count=1)
        result = resubmit_script(item, WRITER, note="Shortened intro", now=NOW)
        assert result.value.status == ReviewStatus.pending
        assert result.value.rejection_count == 1
        assert "Note: Shortened intro" in result.value.admin_remarks

    def test_other_writer_forbidden(self):
        item = make_item(status=ReviewStatus.rejected, stage=None)
        result = resubmit_script(item, make_person(9, Role.script_writer))
        assert result.code == ErrorCode.forbidden

    def test_only_rejected_items(self):
        result = resubmit_script(_pending(), WRITER)
        assert result.code == ErrorCode.invalid_transition

    def test_dissolved_cannot_come_back(self):
        item = make_item(status=ReviewStatus.rejected, stage=None, is_dissolved=True)
        result = resubmit_script(item, ADMIN)
        assert result.code == ErrorCode.dissolved


class TestOverallScore:
    def test_quarter_means_round_half_up(self):
        assert Scores(5, 5, 5, 6).overall_score == 5.3
        assert Scores(7, 7, 7, 8).overall_score == 7.3
        assert Scores(1, 1, 1, 2).overall_score == 1.3

    def test_three_quarter_means(self):
        assert Scores(5, 6, 6, 6).overall_score == 5.8

    def test_remark_uses_rounded_score(self):
        result = review_script(_pending(), ADMIN, ReviewStatus.approved, Scores(5, 5, 5, 6), now=NOW)
        assert "(overall 5.3)" in result.value.admin_remarks

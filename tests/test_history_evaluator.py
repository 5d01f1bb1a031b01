"""
TEST_HISTORY_EVALUATOR.PY - Record confirmation and failure labels
==================================================================

Tests verify:
1. Success iff the winner lies in some active type's zone
2. pocket_distance is None iff the record failed
3. Confirmed records are never re-evaluated
4. Streak-break / section-shift / normal-loss labelling

Run with: python -m pytest tests/test_history_evaluator.py -v
"""

from core.history_types import new_pending_record
from core.hit_zone import resolve_group_zone
from core.invariants import WHEEL_SIZE
from core.prediction_types import ALL_PREDICTION_TYPES, PREDICTION_TYPE_CATALOG
from core.scoring_contract import FailureMode, RecordStatus
from history_evaluator import evaluate_record, label_failure_modes


# =============================================================================
# SCENARIO: ZERO-TERMINAL ZONE
# =============================================================================

class TestZeroTerminalScenario:
    """Operands (10, 15), base |15-10| = 5, no terminals."""

    def test_winner_on_base_is_success(self, diff_type, no_terminals):
        record = new_pending_record(1, 10, 15)
        evaluate_record(record, 5, [diff_type], no_terminals)
        assert record.status == RecordStatus.SUCCESS
        assert record.pocket_distance == 0
        assert record.type_hits == {"diff": True}

    def test_far_winner_is_fail(self, diff_type, no_terminals):
        record = new_pending_record(1, 10, 15)
        evaluate_record(record, 32, [diff_type], no_terminals)
        assert record.status == RecordStatus.FAIL
        assert record.pocket_distance is None

    def test_wheel_adjacent_winner_still_fails(self, diff_type, no_terminals):
        """Neighbour inclusion depends only on terminal count, not adjacency."""
        for adjacent in (24, 10):
            record = new_pending_record(1, 10, 15)
            evaluate_record(record, adjacent, [diff_type], no_terminals)
            assert record.status == RecordStatus.FAIL


# =============================================================================
# STATUS / DISTANCE INVARIANTS
# =============================================================================

class TestEvaluateRecord:

    def test_status_matches_zone_membership(self):
        for winner in range(WHEEL_SIZE):
            record = new_pending_record(1, 3, 17)
            evaluate_record(record, winner, ALL_PREDICTION_TYPES)
            in_some_zone = any(
                winner in resolve_group_zone(t, 3, 17, last_winning_position=winner)[2]
                for t in ALL_PREDICTION_TYPES
            )
            assert (record.status == RecordStatus.SUCCESS) == in_some_zone
            assert (record.pocket_distance is None) == (record.status == RecordStatus.FAIL)

    def test_every_active_type_recorded(self):
        record = new_pending_record(1, 3, 17)
        evaluate_record(record, 0, ALL_PREDICTION_TYPES)
        assert set(record.type_hits) == {t.id for t in ALL_PREDICTION_TYPES}

    def test_wrapped_bases_recorded(self):
        record = new_pending_record(1, 20, 20)
        evaluate_record(record, 3, [PREDICTION_TYPE_CATALOG["sumResult"], PREDICTION_TYPE_CATALOG["diffResult"]])
        assert record.wrapped_bases == {"sumResult": (40, 3)}

    def test_recommended_group_distance(self, diff_type, no_terminals):
        record = new_pending_record(1, 10, 15)
        record.recommended_group_id = "diff"
        evaluate_record(record, 5, [diff_type], no_terminals)
        assert record.recommended_group_pocket_distance == 0

    def test_recommended_group_distance_none_on_miss(self, diff_type, no_terminals):
        record = new_pending_record(1, 10, 15)
        record.recommended_group_id = "diff"
        evaluate_record(record, 20, [diff_type], no_terminals)
        assert record.recommended_group_pocket_distance is None

    def test_confirmed_record_not_reevaluated(self, diff_type, no_terminals):
        record = new_pending_record(1, 10, 15)
        evaluate_record(record, 5, [diff_type], no_terminals)
        evaluate_record(record, 20, [diff_type], no_terminals)
        assert record.winning_position == 5
        assert record.status == RecordStatus.SUCCESS

    def test_no_active_types_is_fail(self):
        record = new_pending_record(1, 10, 15)
        evaluate_record(record, 5, [])
        assert record.status == RecordStatus.FAIL
        assert record.type_hits == {}


# =============================================================================
# FAILURE MODES
# =============================================================================

class TestLabelFailureModes:

    def test_success_is_none(self, confirmed_record):
        records = label_failure_modes([confirmed_record(1, {"a": True}, recommended_group_id="a")])
        assert records[0].failure_mode == FailureMode.NONE

    def test_loss_without_prior_win_is_normal(self, confirmed_record):
        records = label_failure_modes([confirmed_record(1, {"a": False}, recommended_group_id="a")])
        assert records[0].failure_mode == FailureMode.NORMAL_LOSS

    def test_loss_without_recommendation_is_normal(self, confirmed_record):
        records = label_failure_modes([
            confirmed_record(1, {"a": True}, recommended_group_id="a"),
            confirmed_record(2, {"a": False}),
        ])
        assert records[1].failure_mode == FailureMode.NORMAL_LOSS

    def test_streak_break(self, confirmed_record):
        records = label_failure_modes([
            confirmed_record(1, {"a": True, "b": False}, recommended_group_id="a"),
            confirmed_record(2, {"a": False, "b": False}, recommended_group_id="a"),
        ])
        assert records[1].failure_mode == FailureMode.STREAK_BREAK

    def test_section_shift(self, confirmed_record):
        records = label_failure_modes([
            confirmed_record(1, {"a": True, "b": False}, recommended_group_id="a"),
            confirmed_record(2, {"a": False, "b": False}, recommended_group_id="b"),
        ])
        assert records[1].failure_mode == FailureMode.SECTION_SHIFT

    def test_success_where_recommendation_missed_does_not_count(self, confirmed_record):
        """A record can succeed through another group; it is not a winning recommendation."""
        records = label_failure_modes([
            confirmed_record(1, {"a": False, "b": True}, recommended_group_id="a"),
            confirmed_record(2, {"a": False, "b": False}, recommended_group_id="a"),
        ])
        assert records[0].failure_mode == FailureMode.NONE
        assert records[1].failure_mode == FailureMode.NORMAL_LOSS

    def test_sorted_by_id(self, confirmed_record):
        records = label_failure_modes([
            confirmed_record(2, {"a": False}, recommended_group_id="a"),
            confirmed_record(1, {"a": True}, recommended_group_id="a"),
        ])
        assert [r.id for r in records] == [1, 2]
        assert records[1].failure_mode == FailureMode.STREAK_BREAK

    def test_pending_left_unlabelled(self):
        pending = new_pending_record(1, 0, 1)
        label_failure_modes([pending])
        assert pending.failure_mode is None

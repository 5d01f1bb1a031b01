"""
tests/conftest.py - Pytest configuration and fixtures

Shared builders for history records and prediction types so individual test
modules stay focused on behaviour:
- Root directory on sys.path (flat module layout)
- Deterministic record builders (pending / confirmed)
- A single-type catalog for hand-checked scenarios
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.history_types import HistoryRecord, ScoreSnapshot
from core.prediction_types import PredictionTypeDefinition
from core.scoring_contract import FactorKind, RecordStatus


@pytest.fixture
def no_terminals():
    """Terminal mapping with no entries: every zone is the bare base."""
    return {}


@pytest.fixture
def diff_type():
    """|b - a| prediction type."""
    return PredictionTypeDefinition("diff", "Diff", "Diff Group", lambda a, b: abs(b - a))


@pytest.fixture
def diff_catalog(diff_type):
    return {diff_type.id: diff_type}


def make_confirmed(
    record_id,
    hits,
    winning_position=0,
    operand_a=0,
    operand_b=1,
    recommended_group_id=None,
    final_score=0.0,
    primary_factor=None,
):
    """Confirmed record with explicit per-type hits."""
    status = RecordStatus.SUCCESS if any(hits.values()) else RecordStatus.FAIL
    snapshot = None
    if recommended_group_id is not None:
        snapshot = ScoreSnapshot(
            group_id=recommended_group_id,
            final_score=final_score,
            raw_score=final_score,
            primary_factor=primary_factor,
        )
    return HistoryRecord(
        id=record_id,
        operand_a=operand_a,
        operand_b=operand_b,
        status=status,
        winning_position=winning_position,
        type_hits=dict(hits),
        recommended_group_id=recommended_group_id,
        recommendation=snapshot,
    )


@pytest.fixture
def confirmed_record():
    """Factory fixture for confirmed records."""
    return make_confirmed


@pytest.fixture
def hit_rate_record():
    """Confirmed win for diffResult driven by hit rate, final score 30."""
    return make_confirmed(
        1,
        {"diffResult": True},
        recommended_group_id="diffResult",
        final_score=30.0,
        primary_factor=FactorKind.HIT_RATE,
    )

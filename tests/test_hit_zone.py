"""
TEST_HIT_ZONE.PY - Base wrapping and hit zone construction
==========================================================

Tests verify:
1. wrap_base is idempotent and lands in 0..36 for any integer
2. Neighbour counts depend only on the number of terminals
3. Dynamic mode drops terminal neighbours for a confirmed zone
4. resolve_group_zone wraps before the terminal lookup

Run with: python -m pytest tests/test_hit_zone.py -v
"""

import pytest

from core.hit_zone import compute_hit_zone, resolve_group_zone, wrap_base
from core.invariants import TERMINAL_MAPPING
from core.prediction_types import PREDICTION_TYPE_CATALOG
from core.wheel_geometry import neighbors_of


# =============================================================================
# WRAP
# =============================================================================

class TestWrapBase:

    @pytest.mark.parametrize("n", [-100, -38, -37, -1, 0, 5, 36, 37, 38, 72, 1000])
    def test_range_and_idempotence(self, n):
        wrapped = wrap_base(n)
        assert 0 <= wrapped <= 36
        assert wrap_base(wrapped) == wrapped

    def test_known_values(self):
        assert wrap_base(37) == 0
        assert wrap_base(40) == 3
        assert wrap_base(-1) == 36


# =============================================================================
# ZONE
# =============================================================================

class TestComputeHitZone:

    def test_no_terminals_is_bare_base(self):
        assert compute_hit_zone(5, []) == [5]

    def test_always_contains_wrapped_base(self):
        for base in range(-40, 80):
            zone = compute_hit_zone(base, TERMINAL_MAPPING.get(wrap_base(base), ()))
            assert wrap_base(base) in zone

    def test_no_duplicates(self):
        for base, terminals in TERMINAL_MAPPING.items():
            zone = compute_hit_zone(base, terminals)
            assert len(zone) == len(set(zone))

    def test_single_terminal_counts(self):
        """One terminal: 3 neighbours around both base and terminal."""
        zone = compute_hit_zone(1, [8])
        expected = {1, 8} | set(neighbors_of(1, 3)) | set(neighbors_of(8, 3))
        assert set(zone) == expected

    def test_two_terminals_counts(self):
        """Two terminals: 1 neighbour around base, 3 around each terminal."""
        zone = compute_hit_zone(0, [4, 6])
        expected = {0, 4, 6} | set(neighbors_of(0, 1)) | set(neighbors_of(4, 3)) | set(neighbors_of(6, 3))
        assert set(zone) == expected

    def test_many_terminals_counts(self):
        """Four terminals: 1 neighbour around base and each terminal."""
        terminals = [15, 13, 3, 1]
        zone = compute_hit_zone(8, terminals)
        expected = {8} | set(neighbors_of(8, 1))
        for terminal in terminals:
            expected |= {terminal} | set(neighbors_of(terminal, 1))
        assert set(zone) == expected

    def test_base_listed_first(self):
        assert compute_hit_zone(40, [7, 9])[0] == 3

    def test_dynamic_mode_drops_terminal_neighbours(self):
        zone = compute_hit_zone(
            0, [4, 6], last_winning_position=4, dynamic_terminal_neighbours=True
        )
        assert set(zone) == {0, 4, 6} | set(neighbors_of(0, 1))

    def test_dynamic_mode_off_keeps_neighbours(self):
        static = compute_hit_zone(0, [4, 6])
        same = compute_hit_zone(0, [4, 6], last_winning_position=4, dynamic_terminal_neighbours=False)
        assert static == same

    def test_dynamic_mode_unrelated_winner(self):
        static = compute_hit_zone(0, [4, 6])
        dynamic = compute_hit_zone(0, [4, 6], last_winning_position=20, dynamic_terminal_neighbours=True)
        assert static == dynamic


# =============================================================================
# GROUP PIPELINE
# =============================================================================

class TestResolveGroupZone:

    def test_sum_wraps_past_36(self):
        sum_type = PREDICTION_TYPE_CATALOG["sumResult"]
        raw, wrapped, zone = resolve_group_zone(sum_type, 20, 20)
        assert raw == 40
        assert wrapped == 3
        assert zone == compute_hit_zone(3, TERMINAL_MAPPING[3])

    def test_diff_minus_wraps_negative(self):
        minus_type = PREDICTION_TYPE_CATALOG["diffMinus"]
        raw, wrapped, _ = resolve_group_zone(minus_type, 7, 7)
        assert raw == -1
        assert wrapped == 36

    def test_custom_mapping(self, diff_type, no_terminals):
        _, wrapped, zone = resolve_group_zone(diff_type, 10, 15, no_terminals)
        assert wrapped == 5
        assert zone == [5]

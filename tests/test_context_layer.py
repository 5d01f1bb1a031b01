"""
TEST_CONTEXT_LAYER.PY - Streak context provider
===============================================

Tests verify:
1. Severity bands and confidence modifiers (never above 1.0)
2. Loss streaks computed from a spin list
3. External loss feeds (numbers and sectors), malformed input rejected
4. Group context for number and sector views, zero excluded from sectors

Run with: python -m pytest tests/test_context_layer.py -v
"""

import pytest

from context_layer import (
    NO_CONTEXT,
    SECTOR_DEFINITIONS,
    StreakContextProvider,
    confidence_modifier_for,
    standardize_sector,
)


@pytest.fixture
def provider():
    return StreakContextProvider()


# =============================================================================
# BANDS
# =============================================================================

class TestSeverityBands:

    @pytest.mark.parametrize("severity,modifier", [
        (0.0, 1.0),
        (0.29, 1.0),
        (0.3, 0.98),
        (0.5, 0.95),
        (0.7, 0.90),
        (0.85, 0.85),
        (3.0, 0.85),
    ])
    def test_modifier_bands(self, severity, modifier):
        assert confidence_modifier_for(severity) == modifier

    def test_modifier_never_above_one(self):
        for step in range(0, 200):
            assert confidence_modifier_for(step / 100) <= 1.0


class TestSectorNames:

    def test_aliases(self):
        assert standardize_sector("1st 12") == "dozen1"
        assert standardize_sector("19-36") == "high"
        assert standardize_sector("RED") == "red"

    def test_every_sector_excludes_zero(self):
        for definition in SECTOR_DEFINITIONS.values():
            assert 0 not in definition["numbers"]


# =============================================================================
# FEEDING
# =============================================================================

class TestFromSpins:

    def test_uninitialized_has_no_context(self, provider):
        assert provider.get_group_number_context([1, 2, 3]) is NO_CONTEXT
        assert provider.get_group_sector_context([1, 2, 3]) is NO_CONTEXT

    def test_number_losses(self, provider):
        provider.update_from_spins([1, 2, 3])
        assert provider.number_losses[3] == 0
        assert provider.number_losses[2] == 1
        assert provider.number_losses[1] == 2
        assert provider.number_losses[17] == 3
        assert provider.data_source == "calculated"

    def test_sector_losses(self, provider):
        provider.update_from_spins([1, 2, 3])
        assert provider.sector_losses["red"] == 0
        assert provider.sector_losses["black"] == 1
        assert provider.sector_losses["dozen2"] == 3

    def test_number_context(self, provider):
        provider.update_from_spins([1, 2, 3])
        context = provider.get_group_number_context([1, 2, 3])
        assert context.has_context
        assert context.kind == "number"
        assert context.aggregate_severity == pytest.approx(1 / 150)
        assert context.elevated_numbers == []
        assert provider.get_confidence_modifier(context) == 1.0


class TestFromApi:

    def test_number_feed(self, provider):
        assert provider.update_number_losses_from_api({"17": {"current": 120, "max": 150}})
        severity = provider.number_severity(17)
        assert severity.ratio == pytest.approx(0.8)
        assert severity.level == "high"
        assert severity.is_api_max

        context = provider.get_group_number_context([17])
        assert context.elevated_numbers == [17]
        assert context.has_api_data
        assert provider.get_confidence_modifier(context) == 0.90

    def test_ratio_capped(self, provider):
        provider.update_number_losses_from_api({"8": {"losses": 300, "max": 150}})
        severity = provider.number_severity(8)
        assert severity.ratio == 1.0
        assert severity.level == "extreme"

    def test_invalid_keys_skipped(self, provider):
        provider.update_number_losses_from_api({"x": {"current": 5}, "40": {"current": 5}, "2": {"current": 7}})
        assert provider.number_losses[2] == 7
        assert 40 not in provider.number_losses

    def test_malformed_feeds_rejected(self, provider):
        assert not provider.update_number_losses_from_api(None)
        assert not provider.update_sector_losses_from_api("junk")
        assert not provider.is_initialized

    def test_sector_feed_list(self, provider):
        assert provider.update_sector_losses_from_api([{"name": "Red", "losses": 20, "max": 25}])
        severity = provider.sector_severity("red")
        assert severity.ratio == pytest.approx(0.8)
        assert severity.is_api_max

    def test_sector_feed_dict(self, provider):
        provider.update_sector_losses_from_api({"1st 12": {"losses": 7, "max": 35}})
        assert provider.sector_losses["dozen1"] == 7


# =============================================================================
# SECTOR CONTEXT
# =============================================================================

class TestSectorContext:

    def test_zero_only_zone(self, provider):
        provider.update_from_spins([5, 6])
        context = provider.get_group_sector_context([0])
        assert not context.has_context

    def test_dominant_sector_and_api_flag(self, provider):
        provider.update_sector_losses_from_api([{"name": "Red", "losses": 20, "max": 25}])
        context = provider.get_group_sector_context([1, 3, 0])
        assert context.has_context
        assert context.kind == "sector"
        assert context.dominant_sector is not None
        assert context.has_api_data
        assert 0.0 < context.aggregate_severity <= 1.0

    def test_summary(self, provider):
        provider.update_from_spins([1, 2, 3])
        summary = provider.summary()
        assert summary["is_initialized"]
        assert set(summary["sectors"]) == set(SECTOR_DEFINITIONS)

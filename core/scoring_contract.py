"""
Scoring Contract - Single Source of Truth
All scoring logic MUST reference these definitions (no duplicated literals).

Contents:
    FactorKind            - fixed enumeration of score components
    Signal                - discrete recommendation outcomes
    StrategyConfig        - thresholds, multipliers and caps
    AdaptiveLearningRates - influence learning rates and bounds
    FeatureToggles        - named boolean switches
"""

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Optional


# =============================================================================
# ENUMS
# =============================================================================

class FactorKind(str, Enum):
    """Score components. Values double as display labels."""
    HIT_RATE = "Hit Rate"
    STREAK = "Streak"
    PROXIMITY = "Proximity to Last Spin"
    HOT_ZONE = "Hot Zone Weighting"
    AI_CONFIDENCE = "High AI Confidence"
    CONDITIONAL = "Statistical Trends"


# Tie order for primary-factor selection
FACTOR_ORDER = (
    FactorKind.HIT_RATE,
    FactorKind.STREAK,
    FactorKind.PROXIMITY,
    FactorKind.HOT_ZONE,
    FactorKind.AI_CONFIDENCE,
    FactorKind.CONDITIONAL,
)


class Signal(str, Enum):
    STRONG_PLAY = "Strong Play"
    PLAY = "Play"
    WAIT = "Wait"
    AVOID_PLAY = "Avoid Play"
    WAIT_FOR_SIGNAL = "Wait for Signal"


ACTIONABLE_SIGNALS = frozenset({Signal.STRONG_PLAY, Signal.PLAY})


class RecordStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAIL = "fail"


class FailureMode(str, Enum):
    NONE = "none"
    NORMAL_LOSS = "normal_loss"
    STREAK_BREAK = "streak_break"
    SECTION_SHIFT = "section_shift"


# =============================================================================
# STRATEGY CONFIG
# =============================================================================

@dataclass(frozen=True)
class StrategyConfig:
    """Named thresholds, multipliers and caps for scoring and signals."""

    # Aggregation
    decay_factor: float = 0.88

    # Component: hit rate (percent)
    hit_rate_threshold: float = 40.0
    hit_rate_multiplier: float = 0.5

    # Component: streak
    streak_multiplier: float = 5.0
    max_streak_points: float = 15.0

    # Component: proximity to last winning position
    proximity_max_distance: int = 5
    proximity_multiplier: float = 2.0

    # Component: hot zone (neighbour analysis mass)
    neighbour_multiplier: float = 0.5
    max_neighbour_points: float = 10.0

    # Component: external AI probability
    ai_confidence_multiplier: float = 25.0
    min_ai_points_for_reason: float = 5.0

    # Component: conditional transition probability
    conditional_prob_multiplier: float = 20.0
    min_conditional_sample_size: int = 5

    # Final score modifiers
    low_pocket_distance_boost_multiplier: float = 1.5

    # Signal thresholds (inclusive)
    adaptive_strong_play_threshold: float = 50.0
    adaptive_play_threshold: float = 20.0
    less_strict_strong_play_threshold: float = 40.0
    less_strict_play_threshold: float = 10.0
    less_strict_high_hit_rate_threshold: float = 60.0
    less_strict_min_streak: int = 3
    simple_play_threshold: float = 20.0

    # Table change warning
    warning_rolling_window_size: int = 10
    warning_min_plays_for_eval: int = 5
    warning_loss_streak_threshold: int = 4
    warning_rolling_win_rate_threshold: float = 40.0

    # Factor shift
    warning_factor_shift_window_size: int = 5
    warning_factor_shift_diversity_threshold: float = 0.8
    warning_factor_shift_min_dominance_percent: float = 50.0

    def with_overrides(self, overrides: Optional[Dict[str, Any]] = None) -> "StrategyConfig":
        """Return a copy with known fields replaced; unknown keys are ignored."""
        return replace(self, **_known_fields(self, overrides))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AdaptiveLearningRates:
    """Learning rates for the adaptive influence map."""
    success: float = 0.15
    failure: float = 0.10
    min_influence: float = 0.2
    max_influence: float = 2.5
    forget_factor: float = 0.99
    confidence_weighting_multiplier: float = 0.01
    confidence_weighting_min_threshold: float = 15.0

    def with_overrides(self, overrides: Optional[Dict[str, Any]] = None) -> "AdaptiveLearningRates":
        return replace(self, **_known_fields(self, overrides))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Failure-mode multiplier applied to influence penalties
FAILURE_SEVERITY = {
    FailureMode.NONE: 1.0,
    FailureMode.NORMAL_LOSS: 1.0,
    FailureMode.STREAK_BREAK: 1.5,
    FailureMode.SECTION_SHIFT: 1.8,
}


# =============================================================================
# FEATURE TOGGLES
# =============================================================================

@dataclass(frozen=True)
class FeatureToggles:
    use_trend_confirmation: bool = False
    use_weighted_zone: bool = True
    use_proximity_boost: bool = True
    use_lowest_pocket_distance: bool = False
    use_adaptive_play: bool = False
    use_less_strict: bool = False
    use_table_change_warnings: bool = False
    use_dynamic_terminal_neighbours: bool = False
    # AI probability and context stress feed the ranking score when enabled;
    # otherwise they are carried as annotations only
    use_ai_scoring: bool = True
    use_context_modifiers: bool = True

    @classmethod
    def from_env(cls) -> "FeatureToggles":
        """Build toggles from SIGNAL_* environment variables."""
        from env_config import get_env_bool

        defaults = cls()
        return cls(**{
            f.name: get_env_bool(f"SIGNAL_{f.name.upper()}", getattr(defaults, f.name))
            for f in fields(cls)
        })

    def with_overrides(self, overrides: Optional[Dict[str, Any]] = None) -> "FeatureToggles":
        return replace(self, **_known_fields(self, overrides))

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


def _known_fields(instance: Any, overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not overrides:
        return {}
    types = {f.name: f.type for f in fields(instance)}
    known = {}
    for key, value in overrides.items():
        if key not in types or value is None:
            continue
        # JSON numbers arrive as floats; window sizes and counts must stay int
        field_type = types[key]
        known[key] = field_type(value) if field_type in (int, float, bool) else value
    return known


DEFAULT_STRATEGY_CONFIG = StrategyConfig()
DEFAULT_LEARNING_RATES = AdaptiveLearningRates()

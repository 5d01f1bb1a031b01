"""
Core module - Wheel invariants and single source of truth
"""

from .invariants import (
    # Wheel layout
    WHEEL_SIZE,
    MIN_POSITION,
    MAX_POSITION,
    ROULETTE_WHEEL,

    # Terminals
    TERMINAL_MAPPING,

    # Validation functions
    is_valid_position,
    validate_position_sequence,
    validate_terminal_mapping,
)

from .scoring_contract import (
    FactorKind,
    Signal,
    RecordStatus,
    FailureMode,
    StrategyConfig,
    AdaptiveLearningRates,
    FeatureToggles,
    DEFAULT_STRATEGY_CONFIG,
    DEFAULT_LEARNING_RATES,
)

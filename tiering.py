"""
TIERING.PY - SINGLE SOURCE OF TRUTH FOR SIGNALS
===============================================

This module is the ONLY place signal classification is defined.
All other files should import from here via:
    from tiering import classify_signal

SIGNAL PRIORITY (first match wins):
1. AVOID_PLAY  - Table change warning (rolling losses / low win rate)
2. STRONG_PLAY / PLAY / WAIT - Adaptive thresholds (standard or less-strict),
   or the single simple-play threshold when adaptive play is off
3. WAIT        - Trend confirmation override on an actionable signal

WAIT_FOR_SIGNAL is decided upstream: no eligible candidate reaches here.

All threshold comparisons are inclusive (score >= threshold).
"""

import logging
from typing import Iterable, Optional, Tuple

from core.scoring_contract import (
    ACTIONABLE_SIGNALS,
    DEFAULT_STRATEGY_CONFIG,
    FeatureToggles,
    Signal,
    StrategyConfig,
)

logger = logging.getLogger(__name__)

TREND_NOT_CONFIRMED_REASON = "awaiting trend confirmation"
DEFAULT_REASON = "General patterns"


def is_actionable(signal: Signal) -> bool:
    return signal in ACTIONABLE_SIGNALS


# =============================================================================
# CLASSIFICATION
# =============================================================================

def table_change_warning(rolling_performance, config: StrategyConfig = DEFAULT_STRATEGY_CONFIG) -> Optional[str]:
    """
    Reason text when recent plays say the table changed, else None.

    Requires sufficient rolling data; then either the loss streak reaching
    its threshold or the win rate falling below its threshold triggers.
    """
    if rolling_performance is None or not rolling_performance.sufficient_data:
        return None
    if (
        rolling_performance.current_loss_streak >= config.warning_loss_streak_threshold
        or rolling_performance.win_rate < config.warning_rolling_win_rate_threshold
    ):
        return (
            f"Table change warning: {rolling_performance.current_loss_streak} recent losses, "
            f"{rolling_performance.win_rate:.0f}% win rate"
        )
    return None


def score_to_signal(
    final_score: float,
    hit_rate: float = 0.0,
    current_streak: int = 0,
    config: StrategyConfig = DEFAULT_STRATEGY_CONFIG,
    toggles: FeatureToggles = FeatureToggles(),
) -> Signal:
    """Threshold classification (priority 2)."""
    if not toggles.use_adaptive_play:
        return Signal.PLAY if final_score >= config.simple_play_threshold else Signal.WAIT

    if toggles.use_less_strict:
        strong = config.less_strict_strong_play_threshold
        play = config.less_strict_play_threshold
    else:
        strong = config.adaptive_strong_play_threshold
        play = config.adaptive_play_threshold

    if final_score >= strong:
        signal = Signal.STRONG_PLAY
    elif final_score >= play:
        signal = Signal.PLAY
    else:
        signal = Signal.WAIT

    if toggles.use_less_strict and signal == Signal.WAIT:
        if (
            hit_rate >= config.less_strict_high_hit_rate_threshold
            or current_streak >= config.less_strict_min_streak
        ):
            signal = Signal.STRONG_PLAY

    return signal


def classify_signal(
    final_score: float,
    group_id: str,
    hit_rate: float = 0.0,
    current_streak: int = 0,
    rolling_performance=None,
    last_success_state: Optional[Iterable[str]] = None,
    reason: str = DEFAULT_REASON,
    config: StrategyConfig = DEFAULT_STRATEGY_CONFIG,
    toggles: FeatureToggles = FeatureToggles(),
) -> Tuple[Signal, str]:
    """
    Run the signal state machine for the best candidate.

    Args:
        final_score: Best candidate's final score (> 0)
        group_id: Best candidate's group id
        hit_rate: Board hit rate % of the group
        current_streak: Current hit streak of the group
        rolling_performance: RollingPerformance or None
        last_success_state: Hit types of the most recent successful record
        reason: Reason text carried when no override applies
        config: Strategy thresholds
        toggles: Feature toggles

    Returns:
        Tuple of (signal, reason)
    """
    # PRIORITY 1: Table change warning (terminal)
    if toggles.use_table_change_warnings:
        warning = table_change_warning(rolling_performance, config)
        if warning:
            logger.info(f"AVOID_PLAY for {group_id}: {warning}")
            return Signal.AVOID_PLAY, warning

    # PRIORITY 2: Thresholds
    signal = score_to_signal(final_score, hit_rate, current_streak, config, toggles)

    # PRIORITY 3: Trend confirmation
    if toggles.use_trend_confirmation and is_actionable(signal):
        last_success = list(last_success_state or [])
        if last_success and group_id not in last_success:
            return Signal.WAIT, TREND_NOT_CONFIRMED_REASON

    return signal, reason

"""
RECOMMENDATION ENGINE - multi-factor group scoring
==================================================

Scores every active prediction group for the next spin and returns the
ranked candidates, the best one and its signal.

Per group:
    1. wrapped base -> terminals -> hit zone
    2. optional context (number first, sector fallback)
    3. components:
         HIT_RATE      max(0, board hit rate - threshold) * multiplier
         STREAK        min(cap, current streak * multiplier)
         PROXIMITY     (max_distance - d) * multiplier, d = zone distance to last winner
         HOT_ZONE      min(cap, neighbour mass over zone * multiplier)
         AI_CONFIDENCE probability * multiplier (AI ready + toggle)
         CONDITIONAL   probability * multiplier (sample >= minimum)
    4. raw = sum(components); primary factor = argmax(component * influence)
    5. final = raw * pocket boost (d <= 1, toggle) * context modifier (< 1, toggle)
    6. non-finite or <= 0 finals are excluded from ranking

Nothing raises past get_recommendation(): unexpected failures are logged and
resolve to WAIT_FOR_SIGNAL.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from context_layer import NO_CONTEXT, ContextProvider, GroupContext
from core.hit_zone import resolve_group_zone
from core.history_types import HistoryRecord, ScoreSnapshot, last_winning_position
from core.invariants import ROULETTE_WHEEL, TERMINAL_MAPPING
from core.prediction_types import (
    DEFAULT_ACTIVE_TYPE_IDS,
    PREDICTION_TYPE_CATALOG,
    PredictionTypeDefinition,
    resolve_active_types,
)
from core.scoring_contract import (
    DEFAULT_STRATEGY_CONFIG,
    FACTOR_ORDER,
    FactorKind,
    FeatureToggles,
    Signal,
    StrategyConfig,
)
from core.wheel_geometry import min_pocket_distance
from explanation_generator import Explanation, generate_explanation, insufficient_data_explanation
from learning_engine import InfluenceMap, normalize_influences
from statistics_engine import (
    ConditionalProbability,
    FactorShift,
    RollingPerformance,
    StatisticsSnapshot,
    compute_statistics,
)
from tiering import DEFAULT_REASON, classify_signal

logger = logging.getLogger(__name__)

NOT_ENOUGH_DATA_REASON = "Not enough data"
NO_CLEAR_SIGNAL_REASON = "No clear signal"
ENGINE_ERROR_REASON = "Recommendation unavailable"


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass
class CandidateScore:
    """Score breakdown for one prediction group."""
    group_id: str
    label: str
    display_label: str
    raw_base: int
    wrapped_base: int
    hit_zone: List[int]
    components: Dict[FactorKind, float] = field(default_factory=dict)
    raw_score: float = 0.0
    final_score: float = 0.0
    primary_factor: Optional[FactorKind] = None
    influence_used: float = 1.0
    hit_rate: float = 0.0
    current_streak: int = 0
    average_streak: float = 0.0
    predictive_distance: Optional[int] = None
    ai_probability: float = 0.0
    conditional: Optional[ConditionalProbability] = None
    context: GroupContext = field(default_factory=lambda: GroupContext(has_context=False))
    context_modifier: float = 1.0
    pocket_boost_applied: bool = False
    context_modifier_applied: bool = False
    reasons: List[str] = field(default_factory=list)

    @property
    def reason_text(self) -> str:
        return ", ".join(self.reasons) if self.reasons else DEFAULT_REASON

    def to_snapshot(self, signal: Optional[Signal] = None) -> ScoreSnapshot:
        """Frozen copy stored on the history record."""
        return ScoreSnapshot(
            group_id=self.group_id,
            final_score=self.final_score,
            raw_score=self.raw_score,
            primary_factor=self.primary_factor,
            components=dict(self.components),
            signal=signal,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "label": self.label,
            "display_label": self.display_label,
            "raw_base": self.raw_base,
            "wrapped_base": self.wrapped_base,
            "hit_zone": list(self.hit_zone),
            "components": {k.value: round(v, 4) for k, v in self.components.items()},
            "raw_score": round(self.raw_score, 4),
            "final_score": round(self.final_score, 4) if math.isfinite(self.final_score) else None,
            "primary_factor": self.primary_factor.value if self.primary_factor else None,
            "influence_used": round(self.influence_used, 4),
            "hit_rate": round(self.hit_rate, 2),
            "current_streak": self.current_streak,
            "average_streak": round(self.average_streak, 2),
            "predictive_distance": self.predictive_distance,
            "ai_probability": round(self.ai_probability, 4),
            "conditional": self.conditional.to_dict() if self.conditional else None,
            "context": self.context.to_dict(),
            "context_modifier": self.context_modifier,
            "pocket_boost_applied": self.pocket_boost_applied,
            "context_modifier_applied": self.context_modifier_applied,
            "reasons": list(self.reasons),
        }


@dataclass
class RecommendationResult:
    signal: Signal
    reason: str
    best: Optional[CandidateScore] = None
    candidates: List[CandidateScore] = field(default_factory=list)
    excluded: List[CandidateScore] = field(default_factory=list)
    explanation: Optional[Explanation] = None
    rolling_performance: Optional[RollingPerformance] = None
    factor_shift: Optional[FactorShift] = None

    @property
    def recommended_group_id(self) -> Optional[str]:
        return self.best.group_id if self.best else None

    def snapshot(self) -> Optional[ScoreSnapshot]:
        return self.best.to_snapshot(self.signal) if self.best else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signal": self.signal.value,
            "reason": self.reason,
            "recommended_group_id": self.recommended_group_id,
            "best": self.best.to_dict() if self.best else None,
            "candidates": [c.to_dict() for c in self.candidates],
            "excluded": [c.group_id for c in self.excluded],
            "explanation": self.explanation.to_dict() if self.explanation else None,
            "rolling_performance": self.rolling_performance.to_dict() if self.rolling_performance else None,
            "factor_shift": self.factor_shift.to_dict() if self.factor_shift else None,
        }


def wait_for_signal(
    reason: str,
    statistics: Optional[StatisticsSnapshot] = None,
    excluded: Optional[List[CandidateScore]] = None,
) -> RecommendationResult:
    return RecommendationResult(
        signal=Signal.WAIT_FOR_SIGNAL,
        reason=reason,
        excluded=excluded or [],
        explanation=insufficient_data_explanation(),
        rolling_performance=statistics.rolling_performance if statistics else None,
        factor_shift=statistics.factor_shift if statistics else None,
    )


# ============================================================================
# CONTEXT
# ============================================================================

def _lookup_context(provider: Optional[ContextProvider], hit_zone: List[int], group_id: str):
    """Number context first, sector as fallback. Provider errors mean no context."""
    if provider is None:
        return NO_CONTEXT, 1.0
    try:
        context = provider.get_group_number_context(hit_zone)
        if context is None or not context.has_context:
            context = provider.get_group_sector_context(hit_zone)
        if context is None or not context.has_context:
            return NO_CONTEXT, 1.0
        modifier = float(provider.get_confidence_modifier(context))
    except Exception as e:
        logger.warning(f"Context provider failed for {group_id}: {e}")
        return NO_CONTEXT, 1.0
    if not math.isfinite(modifier):
        return context, 1.0
    return context, min(1.0, modifier)


# ============================================================================
# SCORING
# ============================================================================

def _primary_factor(components: Dict[FactorKind, float], influences: InfluenceMap):
    best_factor: Optional[FactorKind] = None
    best_value = 0.0
    for factor in FACTOR_ORDER:
        points = components.get(factor)
        if points is None:
            continue
        influenced = points * influences.get(factor, 1.0)
        if influenced > best_value:
            best_value = influenced
            best_factor = factor
    return best_factor


def score_candidate(
    type_def: PredictionTypeDefinition,
    operand_a: int,
    operand_b: int,
    statistics: StatisticsSnapshot,
    influences: InfluenceMap,
    last_winner: Optional[int],
    config: StrategyConfig = DEFAULT_STRATEGY_CONFIG,
    toggles: FeatureToggles = FeatureToggles(),
    ai_probabilities: Optional[Mapping[str, float]] = None,
    ai_ready: bool = False,
    context_provider: Optional[ContextProvider] = None,
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    sequence: Sequence[int] = ROULETTE_WHEEL,
) -> CandidateScore:
    """Compute one group's components, primary factor and final score."""
    raw_base, wrapped, zone = resolve_group_zone(
        type_def,
        operand_a,
        operand_b,
        terminal_mapping,
        last_winner,
        toggles.use_dynamic_terminal_neighbours,
        sequence,
    )

    board = statistics.board.get(type_def.id)
    candidate = CandidateScore(
        group_id=type_def.id,
        label=type_def.label,
        display_label=type_def.display_label,
        raw_base=raw_base,
        wrapped_base=wrapped,
        hit_zone=zone,
        hit_rate=board.hit_rate if board else 0.0,
        current_streak=statistics.trend.current_streaks.get(type_def.id, 0),
        average_streak=statistics.trend.averages.get(type_def.id, 0.0),
        conditional=statistics.conditional.get(type_def.id),
    )
    if last_winner is not None:
        candidate.predictive_distance = min_pocket_distance(zone, last_winner, sequence)

    candidate.context, candidate.context_modifier = _lookup_context(context_provider, zone, type_def.id)

    components: Dict[FactorKind, float] = {}

    # (a) hit rate
    components[FactorKind.HIT_RATE] = max(0.0, candidate.hit_rate - config.hit_rate_threshold) * config.hit_rate_multiplier
    if components[FactorKind.HIT_RATE] > 0:
        candidate.reasons.append("HitRate")

    # (b) streak
    components[FactorKind.STREAK] = min(
        config.max_streak_points, candidate.current_streak * config.streak_multiplier
    )
    if candidate.current_streak >= 2:
        candidate.reasons.append("Streak")

    # (c) proximity
    distance = candidate.predictive_distance
    if toggles.use_proximity_boost and distance is not None and distance <= config.proximity_max_distance:
        components[FactorKind.PROXIMITY] = (config.proximity_max_distance - distance) * config.proximity_multiplier
        if components[FactorKind.PROXIMITY] > 0:
            candidate.reasons.append("Proximity")

    # (d) hot zone
    if toggles.use_weighted_zone:
        mass = sum(statistics.neighbour_scores.get(position, 0.0) for position in zone)
        components[FactorKind.HOT_ZONE] = min(config.max_neighbour_points, mass * config.neighbour_multiplier)
        if components[FactorKind.HOT_ZONE] > 0:
            candidate.reasons.append("Neighbours")

    # (e) AI confidence
    if ai_probabilities:
        candidate.ai_probability = float(ai_probabilities.get(type_def.id, 0.0) or 0.0)
    if toggles.use_ai_scoring and ai_ready and candidate.ai_probability > 0:
        components[FactorKind.AI_CONFIDENCE] = candidate.ai_probability * config.ai_confidence_multiplier
        if components[FactorKind.AI_CONFIDENCE] > config.min_ai_points_for_reason:
            candidate.reasons.append("AI")

    # (f) conditional probability
    conditional = candidate.conditional
    if conditional is not None and conditional.sufficient_data and conditional.probability > 0:
        components[FactorKind.CONDITIONAL] = conditional.probability * config.conditional_prob_multiplier
        if components[FactorKind.CONDITIONAL] > 1:
            candidate.reasons.append("Stats")

    candidate.components = components
    candidate.raw_score = sum(components.values())
    candidate.primary_factor = _primary_factor(components, influences)
    if candidate.primary_factor is not None:
        candidate.influence_used = influences.get(candidate.primary_factor, 1.0)

    final = candidate.raw_score
    if toggles.use_lowest_pocket_distance and distance is not None and distance <= 1:
        final *= config.low_pocket_distance_boost_multiplier
        candidate.pocket_boost_applied = True
        candidate.reasons.append("PD")
    if toggles.use_context_modifiers and candidate.context_modifier < 1.0:
        final *= candidate.context_modifier
        candidate.context_modifier_applied = True
        candidate.reasons.append("Context")
    candidate.final_score = final

    return candidate


def _is_eligible(candidate: CandidateScore) -> bool:
    return math.isfinite(candidate.final_score) and candidate.final_score > 0


def get_recommendation(
    operand_a: int,
    operand_b: int,
    history: List[HistoryRecord],
    active_type_ids: Optional[Sequence[str]] = None,
    catalog: Optional[Dict[str, PredictionTypeDefinition]] = None,
    influences: Optional[Mapping] = None,
    config: StrategyConfig = DEFAULT_STRATEGY_CONFIG,
    toggles: FeatureToggles = FeatureToggles(),
    ai_probabilities: Optional[Mapping[str, float]] = None,
    ai_ready: bool = False,
    context_provider: Optional[ContextProvider] = None,
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    sequence: Sequence[int] = ROULETTE_WHEEL,
    statistics: Optional[StatisticsSnapshot] = None,
) -> RecommendationResult:
    """
    Score every active group for the operand pair and classify the best one.

    Args:
        operand_a: Older of the two most recent positions
        operand_b: Newer of the two most recent positions
        history: Record collection (read only)
        active_type_ids: Active group ids; defaults to the whole catalog
        catalog: Prediction type catalog
        influences: Caller-owned adaptive influence map
        config: Strategy thresholds and multipliers
        toggles: Feature toggles
        ai_probabilities: External {group_id: probability} map
        ai_ready: Whether the AI collaborator answered
        context_provider: Optional number/sector context capability
        terminal_mapping: Base -> terminals
        sequence: Circular position ordering
        statistics: Precomputed aggregates (computed here when None)

    Returns:
        RecommendationResult; WAIT_FOR_SIGNAL on any failure
    """
    try:
        catalog = PREDICTION_TYPE_CATALOG if catalog is None else catalog
        type_ids = DEFAULT_ACTIVE_TYPE_IDS if active_type_ids is None else active_type_ids
        active_types = resolve_active_types(type_ids, catalog)
        if not active_types:
            logger.warning("No active prediction types - waiting for signal")
            return wait_for_signal(NOT_ENOUGH_DATA_REASON)

        influence_map = normalize_influences(influences)
        if statistics is None:
            statistics = compute_statistics(
                history,
                active_types,
                config,
                catalog,
                terminal_mapping,
                sequence,
                toggles.use_dynamic_terminal_neighbours,
            )
        last_winner = last_winning_position(history)

        scored = [
            score_candidate(
                type_def,
                operand_a,
                operand_b,
                statistics,
                influence_map,
                last_winner,
                config,
                toggles,
                ai_probabilities,
                ai_ready,
                context_provider,
                terminal_mapping,
                sequence,
            )
            for type_def in active_types
        ]

        eligible = [c for c in scored if _is_eligible(c)]
        excluded = [c for c in scored if not _is_eligible(c)]
        if not eligible:
            return wait_for_signal(NO_CLEAR_SIGNAL_REASON, statistics, excluded)

        ranked = sorted(eligible, key=lambda c: c.final_score, reverse=True)
        best = ranked[0]

        signal, reason = classify_signal(
            final_score=best.final_score,
            group_id=best.group_id,
            hit_rate=best.hit_rate,
            current_streak=best.current_streak,
            rolling_performance=statistics.rolling_performance,
            last_success_state=statistics.trend.last_success_state,
            reason=best.reason_text,
            config=config,
            toggles=toggles,
        )

        result = RecommendationResult(
            signal=signal,
            reason=reason,
            best=best,
            candidates=ranked,
            excluded=excluded,
            explanation=generate_explanation(ranked, best, history),
            rolling_performance=statistics.rolling_performance,
            factor_shift=statistics.factor_shift,
        )
        logger.debug(
            f"Recommendation ({operand_a},{operand_b}): {best.group_id} "
            f"score={best.final_score:.2f} signal={signal.value}"
        )
        return result

    except Exception:
        logger.exception(f"Recommendation failed for operands ({operand_a},{operand_b})")
        return wait_for_signal(ENGINE_ERROR_REASON)


# ============================================================================
# ASYNC (AI LOOKUP)
# ============================================================================

async def fetch_ai_probabilities(predictor, history: List[HistoryRecord], timeout_s: float = 1.0):
    """
    One bounded AI lookup. Timeout and failure both mean "unavailable".

    Returns:
        {group_id: probability} or None
    """
    if predictor is None:
        return None
    try:
        return await asyncio.wait_for(predictor.predict(history), timeout=timeout_s)
    except asyncio.TimeoutError:
        logger.warning(f"AI prediction timed out after {timeout_s}s")
    except Exception as e:
        logger.warning(f"AI prediction failed: {e}")
    return None


async def get_recommendation_async(
    predictor,
    operand_a: int,
    operand_b: int,
    history: List[HistoryRecord],
    timeout_s: float = 1.0,
    **kwargs,
) -> RecommendationResult:
    """get_recommendation() with the AI map fetched from predictor first."""
    probabilities = await fetch_ai_probabilities(predictor, history, timeout_s)
    kwargs.pop("ai_probabilities", None)
    kwargs.pop("ai_ready", None)
    return get_recommendation(
        operand_a,
        operand_b,
        history,
        ai_probabilities=probabilities,
        ai_ready=probabilities is not None,
        **kwargs,
    )

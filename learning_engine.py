"""
Learning Engine - Adaptive Factor Influence Loop

Responsibilities:
1. Provide the neutral influence map (every factor at 1.0)
2. Decay influences toward neutral once per cycle
3. Nudge the primary factor of each confirmed recommendation up or down
4. Clamp every influence to [min_influence, max_influence]

Rules (pure + small steps):
1. Decay:   v' = 1 + (v - 1) * forget_factor
2. Success: v' = v + success + magnitude
3. Failure: v' = v - (failure + magnitude) * FAILURE_SEVERITY[failure_mode]
   magnitude = max(0, final_score - confidence_min_threshold) * confidence_multiplier

The influence map is owned by the caller. Every function here returns a new
map and never mutates its input.
"""
import logging
from typing import Dict, Mapping, Optional

from core.history_types import HistoryRecord
from core.scoring_contract import (
    DEFAULT_LEARNING_RATES,
    FACTOR_ORDER,
    FAILURE_SEVERITY,
    AdaptiveLearningRates,
    FactorKind,
    FailureMode,
)

logger = logging.getLogger(__name__)

InfluenceMap = Dict[FactorKind, float]

NEUTRAL_INFLUENCE = 1.0


def default_influences() -> InfluenceMap:
    """Neutral influence map."""
    return {factor: NEUTRAL_INFLUENCE for factor in FACTOR_ORDER}


def _clamp(value: float, rates: AdaptiveLearningRates) -> float:
    return max(rates.min_influence, min(rates.max_influence, value))


def normalize_influences(
    influences: Optional[Mapping],
    rates: AdaptiveLearningRates = DEFAULT_LEARNING_RATES,
) -> InfluenceMap:
    """
    Coerce a caller-supplied map into a complete, clamped InfluenceMap.

    Keys may be FactorKind members or their display strings; unknown keys are
    dropped with a warning and missing factors default to neutral.
    """
    result = default_influences()
    for key, value in (influences or {}).items():
        try:
            factor = FactorKind(key)
        except ValueError:
            logger.warning(f"Unknown influence factor '{key}' - ignored")
            continue
        result[factor] = _clamp(float(value), rates)
    return result


def decay_influences(
    influences: Mapping[FactorKind, float],
    rates: AdaptiveLearningRates = DEFAULT_LEARNING_RATES,
) -> InfluenceMap:
    """Move every factor toward neutral by the forget factor."""
    decayed = normalize_influences(influences, rates)
    for factor, value in decayed.items():
        decayed[factor] = _clamp(
            NEUTRAL_INFLUENCE + (value - NEUTRAL_INFLUENCE) * rates.forget_factor, rates
        )
    return decayed


def confidence_magnitude(final_score: float, rates: AdaptiveLearningRates = DEFAULT_LEARNING_RATES) -> float:
    """Extra step size for confident recommendations."""
    return max(0.0, final_score - rates.confidence_weighting_min_threshold) * rates.confidence_weighting_multiplier


def update_influences(
    influences: Mapping[FactorKind, float],
    record: HistoryRecord,
    rates: AdaptiveLearningRates = DEFAULT_LEARNING_RATES,
) -> InfluenceMap:
    """
    Apply one confirmed record's outcome to the influence map.

    Only records that are confirmed, carry a recommended group and a recorded
    primary factor teach anything; anything else returns an unchanged copy.
    A win means the recommended group itself hit.

    Args:
        influences: Current map (not mutated)
        record: Evaluated history record
        rates: Learning rates and bounds

    Returns:
        New InfluenceMap
    """
    updated = normalize_influences(influences, rates)

    snapshot = record.recommendation
    if not record.is_confirmed or not record.recommended_group_id or snapshot is None:
        return updated
    factor = snapshot.primary_factor
    if factor is None:
        return updated

    magnitude = confidence_magnitude(snapshot.final_score, rates)
    before = updated[factor]

    if record.type_hits.get(record.recommended_group_id):
        updated[factor] = _clamp(before + rates.success + magnitude, rates)
    else:
        severity = FAILURE_SEVERITY.get(record.failure_mode or FailureMode.NORMAL_LOSS, 1.0)
        updated[factor] = _clamp(before - (rates.failure + magnitude) * severity, rates)

    logger.debug(
        f"Influence {factor.value}: {before:.3f} -> {updated[factor]:.3f} "
        f"(record {record.id}, status={record.status.value})"
    )
    return updated


def influences_to_dict(influences: Mapping[FactorKind, float]) -> Dict[str, float]:
    """Serialize with display-string keys."""
    return {factor.value: round(value, 6) for factor, value in influences.items()}

"""
History Simulator - rebuild a history collection from a raw spin sequence

For every window (s[i-2], s[i-1]) -> s[i], i >= 2:
    1. decay the influence map toward neutral
    2. recommend from the history built so far
    3. record the recommendation snapshot on a new pending record
    4. evaluate the record against s[i] and label failure modes
    5. update the influence map from the outcome

n spins produce n - 2 confirmed records with ids 1..n-2.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from context_layer import SpinFedContextProvider
from core.history_types import HistoryRecord, new_pending_record
from core.invariants import ROULETTE_WHEEL, TERMINAL_MAPPING, is_valid_position
from core.prediction_types import (
    DEFAULT_ACTIVE_TYPE_IDS,
    PREDICTION_TYPE_CATALOG,
    PredictionTypeDefinition,
    resolve_active_types,
)
from core.scoring_contract import (
    DEFAULT_LEARNING_RATES,
    ACTIONABLE_SIGNALS,
    DEFAULT_STRATEGY_CONFIG,
    AdaptiveLearningRates,
    FeatureToggles,
    RecordStatus,
    StrategyConfig,
)
from core.structured_logging import correlation_scope
from history_evaluator import evaluate_record, label_failure_modes
from learning_engine import InfluenceMap, decay_influences, default_influences, influences_to_dict, update_influences
from recommendation_engine import get_recommendation

logger = logging.getLogger(__name__)

MIN_SPINS = 3


@dataclass
class SimulationResult:
    records: List[HistoryRecord] = field(default_factory=list)
    influences: InfluenceMap = field(default_factory=default_influences)
    wins: int = 0
    losses: int = 0

    @property
    def plays(self) -> int:
        return self.wins + self.losses

    def to_dict(self) -> Dict[str, Any]:
        return {
            "records": [r.to_dict() for r in self.records],
            "influences": influences_to_dict(self.influences),
            "wins": self.wins,
            "losses": self.losses,
            "plays": self.plays,
        }


def simulate_history(
    spins: Sequence[int],
    active_type_ids: Optional[Sequence[str]] = None,
    catalog: Optional[Dict[str, PredictionTypeDefinition]] = None,
    config: StrategyConfig = DEFAULT_STRATEGY_CONFIG,
    rates: AdaptiveLearningRates = DEFAULT_LEARNING_RATES,
    toggles: FeatureToggles = FeatureToggles(),
    influences: Optional[InfluenceMap] = None,
    context_provider: Optional[SpinFedContextProvider] = None,
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    sequence: Sequence[int] = ROULETTE_WHEEL,
) -> SimulationResult:
    """
    Replay a chronological spin list through recommend -> evaluate -> learn.

    Args:
        spins: Winning positions, oldest first
        active_type_ids: Active group ids; defaults to the whole catalog
        catalog: Prediction type catalog
        config: Strategy config
        rates: Adaptive learning rates
        toggles: Feature toggles
        influences: Starting influence map (neutral when None)
        context_provider: Optional context capability, refreshed with the spins seen so far
        terminal_mapping: Base -> terminals
        sequence: Circular position ordering

    Returns:
        SimulationResult with rebuilt records and the final influence map
    """
    result = SimulationResult(influences=dict(influences) if influences else default_influences())

    invalid = [s for s in spins if not is_valid_position(s)]
    if invalid:
        logger.warning(f"Skipping simulation: spins outside 0..36: {invalid[:5]}")
        return result
    if len(spins) < MIN_SPINS:
        return result

    catalog = PREDICTION_TYPE_CATALOG if catalog is None else catalog
    type_ids = DEFAULT_ACTIVE_TYPE_IDS if active_type_ids is None else active_type_ids
    active_types = resolve_active_types(type_ids, catalog)

    history: List[HistoryRecord] = []
    for i in range(2, len(spins)):
        operand_a, operand_b, winner = spins[i - 2], spins[i - 1], spins[i]
        record_id = i - 1

        with correlation_scope(f"sim-{record_id}"):
            result.influences = decay_influences(result.influences, rates)

            if context_provider is not None:
                context_provider.update_from_spins(spins[:i])

            recommendation = get_recommendation(
                operand_a,
                operand_b,
                history,
                active_type_ids=[t.id for t in active_types],
                catalog=catalog,
                influences=result.influences,
                config=config,
                toggles=toggles,
                context_provider=context_provider,
                terminal_mapping=terminal_mapping,
                sequence=sequence,
            )

            record = new_pending_record(record_id, operand_a, operand_b)
            record.recommended_group_id = recommendation.recommended_group_id
            record.recommendation = recommendation.snapshot()
            record.signal = recommendation.signal

            evaluate_record(
                record,
                winner,
                active_types,
                terminal_mapping,
                sequence,
                toggles.use_dynamic_terminal_neighbours,
            )
            history.append(record)
            label_failure_modes(history)

            if record.recommended_group_id and record.signal in ACTIONABLE_SIGNALS:
                if record.type_hits.get(record.recommended_group_id):
                    result.wins += 1
                elif record.status != RecordStatus.PENDING:
                    result.losses += 1

            result.influences = update_influences(result.influences, record, rates)

    result.records = history
    logger.info(
        f"Simulated {len(history)} records from {len(spins)} spins "
        f"(plays={result.plays}, wins={result.wins})"
    )
    return result

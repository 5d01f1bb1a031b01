"""
STATISTICS ENGINE - decay-weighted aggregates over a history collection
=======================================================================

Aggregates consumed by the recommendation engine:
1. Trend stats        - weighted occurrences/successes and streaks per group
2. Board stats        - weighted success/total per group (hit rate %)
3. Neighbour analysis - weighted "hot" mass per wheel position
4. Conditional prob.  - P(group hits next | group was closest last spin)
5. Rolling performance- recent played recommendations (win rate, loss streak)
6. Factor shift       - diversity of primary factors behind recent wins

Weighting rule (trend / board / neighbour):
    Only confirmed records count. Sorted by id, the i-th of N confirmed
    records weighs decay_factor ** (N - 1 - i), so the newest weighs 1.0.

Insufficient samples never raise; every aggregate reports an explicit
sufficient_data / sample_size instead.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.hit_zone import resolve_group_zone
from core.history_types import HistoryRecord, confirmed_records, sort_chronological
from core.invariants import MAX_POSITION, MIN_POSITION, ROULETTE_WHEEL, TERMINAL_MAPPING
from core.prediction_types import PREDICTION_TYPE_CATALOG, PredictionTypeDefinition
from core.scoring_contract import DEFAULT_STRATEGY_CONFIG, FactorKind, RecordStatus, StrategyConfig
from core.wheel_geometry import min_pocket_distance

logger = logging.getLogger(__name__)


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass
class TrendStats:
    """Streak and weighted-occurrence tracking per group."""
    averages: Dict[str, float] = field(default_factory=dict)
    current_streaks: Dict[str, int] = field(default_factory=dict)
    last_success_state: List[str] = field(default_factory=list)
    streak_history: Dict[str, List[int]] = field(default_factory=dict)
    weighted_occurrences: Dict[str, float] = field(default_factory=dict)
    weighted_successes: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "averages": {k: round(v, 4) for k, v in self.averages.items()},
            "current_streaks": dict(self.current_streaks),
            "last_success_state": list(self.last_success_state),
            "streak_history": {k: list(v) for k, v in self.streak_history.items()},
            "weighted_occurrences": {k: round(v, 6) for k, v in self.weighted_occurrences.items()},
            "weighted_successes": {k: round(v, 6) for k, v in self.weighted_successes.items()},
        }


@dataclass
class BoardStat:
    success: float = 0.0
    total: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Weighted hit rate as a percentage (0 when nothing counted)."""
        return (self.success / self.total * 100) if self.total > 0 else 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "success": round(self.success, 6),
            "total": round(self.total, 6),
            "hit_rate": round(self.hit_rate, 2),
        }


@dataclass
class ConditionalProbability:
    probability: float = 0.0
    sample_size: int = 0
    hits: int = 0
    min_sample_size: int = 0

    @property
    def sufficient_data(self) -> bool:
        return self.sample_size > 0 and self.sample_size >= self.min_sample_size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probability": round(self.probability, 4),
            "sample_size": self.sample_size,
            "hits": self.hits,
            "sufficient_data": self.sufficient_data,
        }


@dataclass
class RollingPerformance:
    plays: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    current_loss_streak: int = 0
    sufficient_data: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plays": self.plays,
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": round(self.win_rate, 2),
            "current_loss_streak": self.current_loss_streak,
            "sufficient_data": self.sufficient_data,
        }


@dataclass
class FactorShift:
    sufficient_data: bool = False
    is_shifting: bool = False
    dominant_factor: Optional[FactorKind] = None
    factor_distribution: Dict[FactorKind, int] = field(default_factory=dict)
    diversity_ratio: float = 0.0
    dominance_percent: float = 0.0
    reason: str = "Not enough data"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sufficient_data": self.sufficient_data,
            "is_shifting": self.is_shifting,
            "dominant_factor": self.dominant_factor.value if self.dominant_factor else None,
            "factor_distribution": {k.value: v for k, v in self.factor_distribution.items()},
            "diversity_ratio": round(self.diversity_ratio, 4),
            "dominance_percent": round(self.dominance_percent, 2),
            "reason": self.reason,
        }


@dataclass
class StatisticsSnapshot:
    """Every aggregate the engine needs for one recommendation cycle."""
    trend: TrendStats
    board: Dict[str, BoardStat]
    neighbour_scores: Dict[int, float]
    conditional: Dict[str, ConditionalProbability]
    rolling_performance: RollingPerformance
    factor_shift: FactorShift

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trend": self.trend.to_dict(),
            "board": {k: v.to_dict() for k, v in self.board.items()},
            "neighbour_scores": {str(k): round(v, 6) for k, v in self.neighbour_scores.items() if v > 0},
            "conditional": {k: v.to_dict() for k, v in self.conditional.items()},
            "rolling_performance": self.rolling_performance.to_dict(),
            "factor_shift": self.factor_shift.to_dict(),
        }


def _decay_weights(count: int, decay_factor: float) -> List[float]:
    return [decay_factor ** (count - 1 - i) for i in range(count)]


# ============================================================================
# TREND / BOARD / NEIGHBOUR
# ============================================================================

def calculate_trend_stats(
    history: List[HistoryRecord],
    active_type_ids: Iterable[str],
    decay_factor: float = DEFAULT_STRATEGY_CONFIG.decay_factor,
) -> TrendStats:
    """
    Walk confirmed records oldest to newest tracking streaks per group.

    A hit extends the group's streak; a recorded miss closes a non-zero
    streak into streak_history and resets it. Occurrences are weighted for
    every confirmed record, successes only on hit.
    """
    type_ids = list(dict.fromkeys(active_type_ids))
    stats = TrendStats(
        current_streaks={t: 0 for t in type_ids},
        streak_history={t: [] for t in type_ids},
        weighted_occurrences={t: 0.0 for t in type_ids},
        weighted_successes={t: 0.0 for t in type_ids},
    )

    records = confirmed_records(history)
    for record, weight in zip(records, _decay_weights(len(records), decay_factor)):
        for type_id in type_ids:
            stats.weighted_occurrences[type_id] += weight
            if type_id not in record.type_hits:
                continue
            if record.type_hits[type_id]:
                stats.current_streaks[type_id] += 1
                stats.weighted_successes[type_id] += weight
            else:
                if stats.current_streaks[type_id] > 0:
                    stats.streak_history[type_id].append(stats.current_streaks[type_id])
                stats.current_streaks[type_id] = 0

        if record.status == RecordStatus.SUCCESS:
            stats.last_success_state = record.hit_types

    for type_id in type_ids:
        streaks = list(stats.streak_history[type_id])
        if stats.current_streaks[type_id] > 0:
            streaks.append(stats.current_streaks[type_id])
        stats.averages[type_id] = sum(streaks) / len(streaks) if streaks else 0.0

    return stats


def calculate_board_stats(
    history: List[HistoryRecord],
    active_type_ids: Iterable[str],
    decay_factor: float = DEFAULT_STRATEGY_CONFIG.decay_factor,
) -> Dict[str, BoardStat]:
    """Weighted success/total per group, pending records skipped."""
    board = {type_id: BoardStat() for type_id in dict.fromkeys(active_type_ids)}

    records = confirmed_records(history)
    for record, weight in zip(records, _decay_weights(len(records), decay_factor)):
        for stat in board.values():
            stat.total += weight
        if record.status == RecordStatus.SUCCESS:
            for type_id in record.hit_types:
                if type_id in board:
                    board[type_id].success += weight

    return board


def run_neighbour_analysis(
    history: List[HistoryRecord],
    catalog: Optional[Dict[str, PredictionTypeDefinition]] = None,
    decay_factor: float = DEFAULT_STRATEGY_CONFIG.decay_factor,
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    sequence: Sequence[int] = ROULETTE_WHEEL,
    dynamic_terminal_neighbours: bool = False,
) -> Dict[int, float]:
    """
    Weighted mass per position 0..36.

    Every position inside the hit zone of a group that hit at a record gains
    that record's weight. Zones are rebuilt with the record's own winner as
    dynamic context, exactly as they were when the record was evaluated.
    """
    catalog = PREDICTION_TYPE_CATALOG if catalog is None else catalog
    scores: Dict[int, float] = {position: 0.0 for position in range(MIN_POSITION, MAX_POSITION + 1)}

    records = confirmed_records(history)
    for record, weight in zip(records, _decay_weights(len(records), decay_factor)):
        if record.status != RecordStatus.SUCCESS:
            continue
        for type_id in record.hit_types:
            type_def = catalog.get(type_id)
            if type_def is None:
                continue
            _, _, zone = resolve_group_zone(
                type_def,
                record.operand_a,
                record.operand_b,
                terminal_mapping,
                record.winning_position,
                dynamic_terminal_neighbours,
                sequence,
            )
            for position in zone:
                if position in scores:
                    scores[position] += weight

    return scores


# ============================================================================
# CONDITIONAL PROBABILITY
# ============================================================================

def _closest_group(
    record: HistoryRecord,
    active_types: List[PredictionTypeDefinition],
    terminal_mapping: Dict[int, Sequence[int]],
    sequence: Sequence[int],
    dynamic_terminal_neighbours: bool,
) -> Optional[str]:
    """Group whose zone sat nearest the record's winner; first type wins ties."""
    closest_id: Optional[str] = None
    closest_distance: Optional[int] = None
    for type_def in active_types:
        _, _, zone = resolve_group_zone(
            type_def,
            record.operand_a,
            record.operand_b,
            terminal_mapping,
            record.winning_position,
            dynamic_terminal_neighbours,
            sequence,
        )
        distance = min_pocket_distance(zone, record.winning_position, sequence)
        if distance is None:
            continue
        if closest_distance is None or distance < closest_distance:
            closest_distance = distance
            closest_id = type_def.id
    return closest_id


def calculate_conditional_probabilities(
    history: List[HistoryRecord],
    active_types: List[PredictionTypeDefinition],
    min_sample_size: int = DEFAULT_STRATEGY_CONFIG.min_conditional_sample_size,
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    sequence: Sequence[int] = ROULETTE_WHEEL,
    dynamic_terminal_neighbours: bool = False,
) -> Dict[str, ConditionalProbability]:
    """
    Conditional probability for every active group in a single pass.

    For each consecutive pair of confirmed records (earlier, later): if group
    G was closest at the earlier record, that is one occurrence for G, and a
    hit for G at the later record counts toward its probability. Probability
    stays 0 until occurrences reach min_sample_size.
    """
    results = {
        type_def.id: ConditionalProbability(min_sample_size=min_sample_size)
        for type_def in active_types
    }

    records = confirmed_records(history)
    if len(records) < 2:
        return results

    for earlier, later in zip(records, records[1:]):
        closest = _closest_group(
            earlier, active_types, terminal_mapping, sequence, dynamic_terminal_neighbours
        )
        if closest is None or closest not in results:
            continue
        entry = results[closest]
        entry.sample_size += 1
        if later.type_hits.get(closest):
            entry.hits += 1

    for entry in results.values():
        if entry.sufficient_data:
            entry.probability = entry.hits / entry.sample_size

    return results


def calculate_conditional_probability(
    group_id: str,
    history: List[HistoryRecord],
    active_types: List[PredictionTypeDefinition],
    min_sample_size: int = DEFAULT_STRATEGY_CONFIG.min_conditional_sample_size,
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    sequence: Sequence[int] = ROULETTE_WHEEL,
    dynamic_terminal_neighbours: bool = False,
) -> ConditionalProbability:
    """Conditional probability for a single target group."""
    results = calculate_conditional_probabilities(
        history, active_types, min_sample_size, terminal_mapping, sequence, dynamic_terminal_neighbours
    )
    return results.get(group_id, ConditionalProbability(min_sample_size=min_sample_size))


# ============================================================================
# ROLLING PERFORMANCE / FACTOR SHIFT
# ============================================================================

def _is_play(record: HistoryRecord) -> bool:
    return (
        record.is_confirmed
        and record.recommended_group_id is not None
        and record.recommendation_score > 0
    )


def calculate_rolling_performance(
    history: List[HistoryRecord],
    window: int = DEFAULT_STRATEGY_CONFIG.warning_rolling_window_size,
    min_plays: int = DEFAULT_STRATEGY_CONFIG.warning_min_plays_for_eval,
) -> RollingPerformance:
    """
    Win/loss record of the most recent played recommendations.

    A play is a confirmed record carrying a recommendation with a positive
    final score; it wins when the recommended group hit. The loss streak is
    the run of losses ending at the newest play.
    """
    plays = [r for r in sort_chronological(history) if _is_play(r)]
    recent = plays[-window:] if window > 0 else []

    perf = RollingPerformance(plays=len(recent))
    for record in recent:
        if record.type_hits.get(record.recommended_group_id):
            perf.wins += 1
            perf.current_loss_streak = 0
        else:
            perf.losses += 1
            perf.current_loss_streak += 1

    perf.win_rate = (perf.wins / perf.plays * 100) if perf.plays else 0.0
    perf.sufficient_data = perf.plays >= min_plays and perf.plays > 0
    return perf


def analyze_factor_shift(
    history: List[HistoryRecord],
    window: int = DEFAULT_STRATEGY_CONFIG.warning_factor_shift_window_size,
    diversity_threshold: float = DEFAULT_STRATEGY_CONFIG.warning_factor_shift_diversity_threshold,
    min_dominance_percent: float = DEFAULT_STRATEGY_CONFIG.warning_factor_shift_min_dominance_percent,
) -> FactorShift:
    """Check whether recent wins are driven by a stable primary factor."""
    successes = [
        r for r in reversed(sort_chronological(history))
        if r.status == RecordStatus.SUCCESS and r.recommendation and r.recommendation.primary_factor
    ][:window]

    if len(successes) < 3:
        return FactorShift()

    counts: Dict[FactorKind, int] = {}
    for record in successes:
        factor = record.recommendation.primary_factor
        counts[factor] = counts.get(factor, 0) + 1

    dominant: Optional[FactorKind] = None
    max_count = 0
    for factor, count in counts.items():
        if count > max_count:
            max_count = count
            dominant = factor

    dominance_percent = max_count / len(successes) * 100
    diversity_ratio = len(counts) / len(successes)
    is_shifting = diversity_ratio >= diversity_threshold or dominance_percent < min_dominance_percent

    return FactorShift(
        sufficient_data=True,
        is_shifting=is_shifting,
        dominant_factor=dominant,
        factor_distribution=counts,
        diversity_ratio=diversity_ratio,
        dominance_percent=dominance_percent,
        reason="High factor diversity detected" if is_shifting else "Stable factor dominance",
    )


# ============================================================================
# SNAPSHOT
# ============================================================================

def compute_statistics(
    history: List[HistoryRecord],
    active_types: List[PredictionTypeDefinition],
    config: StrategyConfig = DEFAULT_STRATEGY_CONFIG,
    catalog: Optional[Dict[str, PredictionTypeDefinition]] = None,
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    sequence: Sequence[int] = ROULETTE_WHEEL,
    dynamic_terminal_neighbours: bool = False,
) -> StatisticsSnapshot:
    """Compute every aggregate for one recommendation cycle."""
    type_ids = [t.id for t in active_types]
    snapshot = StatisticsSnapshot(
        trend=calculate_trend_stats(history, type_ids, config.decay_factor),
        board=calculate_board_stats(history, type_ids, config.decay_factor),
        neighbour_scores=run_neighbour_analysis(
            history, catalog, config.decay_factor, terminal_mapping, sequence, dynamic_terminal_neighbours
        ),
        conditional=calculate_conditional_probabilities(
            history,
            active_types,
            config.min_conditional_sample_size,
            terminal_mapping,
            sequence,
            dynamic_terminal_neighbours,
        ),
        rolling_performance=calculate_rolling_performance(
            history, config.warning_rolling_window_size, config.warning_min_plays_for_eval
        ),
        factor_shift=analyze_factor_shift(
            history,
            config.warning_factor_shift_window_size,
            config.warning_factor_shift_diversity_threshold,
            config.warning_factor_shift_min_dominance_percent,
        ),
    )
    logger.debug(
        f"Statistics computed over {len(history)} records "
        f"(rolling plays={snapshot.rolling_performance.plays})"
    )
    return snapshot

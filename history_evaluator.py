"""
History Evaluator - confirms pending records against a winning position

Responsibilities:
1. Test the winning position against every active group's hit zone
2. Set status, per-type hits and the closest pocket distance
3. Label failure modes (streak break / section shift) across a history

A record is evaluated exactly once. Re-evaluating a confirmed record is
logged and ignored; a full re-simulation rebuilds records instead.
"""

import logging
from typing import Dict, List, Optional, Sequence

from core.hit_zone import resolve_group_zone
from core.history_types import HistoryRecord, sort_chronological
from core.invariants import ROULETTE_WHEEL, TERMINAL_MAPPING
from core.prediction_types import PredictionTypeDefinition
from core.scoring_contract import FailureMode, RecordStatus
from core.wheel_geometry import min_pocket_distance

logger = logging.getLogger(__name__)


def evaluate_record(
    record: HistoryRecord,
    winning_position: int,
    active_types: List[PredictionTypeDefinition],
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    sequence: Sequence[int] = ROULETTE_WHEEL,
    dynamic_terminal_neighbours: bool = False,
) -> HistoryRecord:
    """
    Confirm a pending record.

    Status is success iff the winning position lies in at least one active
    type's hit zone. pocket_distance is the minimum distance from the winner
    to any member of a hitting zone, None when nothing hit.

    Args:
        record: Pending record (mutated in place)
        winning_position: Confirmed outcome
        active_types: Resolved prediction type definitions
        terminal_mapping: Base -> terminals
        sequence: Circular position ordering
        dynamic_terminal_neighbours: Use the winner as dynamic zone context

    Returns:
        The same record, for chaining
    """
    if record.status != RecordStatus.PENDING:
        logger.warning(f"Record {record.id} already {record.status.value} - evaluation skipped")
        return record

    record.winning_position = winning_position
    record.type_hits = {}
    record.wrapped_bases = {}
    best_distance: Optional[int] = None

    for type_def in active_types:
        raw_base, wrapped, zone = resolve_group_zone(
            type_def,
            record.operand_a,
            record.operand_b,
            terminal_mapping,
            winning_position,
            dynamic_terminal_neighbours,
            sequence,
        )
        if raw_base != wrapped:
            record.wrapped_bases[type_def.id] = (raw_base, wrapped)

        hit = winning_position in zone
        record.type_hits[type_def.id] = hit
        if not hit:
            continue

        distance = min_pocket_distance(zone, winning_position, sequence)
        if distance is not None and (best_distance is None or distance < best_distance):
            best_distance = distance

    record.status = RecordStatus.SUCCESS if record.hit_types else RecordStatus.FAIL
    record.pocket_distance = best_distance if record.status == RecordStatus.SUCCESS else None

    if record.recommended_group_id and record.type_hits.get(record.recommended_group_id):
        record.recommended_group_pocket_distance = record.pocket_distance
    else:
        record.recommended_group_pocket_distance = None

    logger.debug(
        f"Record {record.id} evaluated: winner={winning_position} "
        f"status={record.status.value} hits={record.hit_types}"
    )
    return record


def label_failure_modes(history: List[HistoryRecord]) -> List[HistoryRecord]:
    """
    Label confirmed records with a failure mode, in id order.

    - success                                      -> none
    - fail, recommended == last winning recommendation -> streak_break
    - fail, recommended != last winning recommendation -> section_shift
    - fail otherwise                               -> normal_loss

    Returns:
        The records in chronological order
    """
    ordered = sort_chronological(history)
    last_successful_group: Optional[str] = None

    for record in ordered:
        if not record.is_confirmed:
            continue

        if record.status == RecordStatus.SUCCESS:
            record.failure_mode = FailureMode.NONE
            if record.recommended_group_id and record.recommended_group_id in record.hit_types:
                last_successful_group = record.recommended_group_id
            continue

        if record.recommended_group_id and last_successful_group:
            if record.recommended_group_id == last_successful_group:
                record.failure_mode = FailureMode.STREAK_BREAK
            else:
                record.failure_mode = FailureMode.SECTION_SHIFT
        else:
            record.failure_mode = FailureMode.NORMAL_LOSS

    return ordered

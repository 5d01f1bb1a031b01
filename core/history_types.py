"""
History record types.

A HistoryRecord is created pending when a calculation is requested, confirmed
once by history_evaluator.evaluate_record(), and only rebuilt by a full
re-simulation afterwards.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from core.scoring_contract import FactorKind, FailureMode, RecordStatus, Signal


@dataclass(frozen=True)
class ScoreSnapshot:
    """Frozen copy of the recommended candidate at recommendation time."""
    group_id: str
    final_score: float
    raw_score: float = 0.0
    primary_factor: Optional[FactorKind] = None
    components: Dict[FactorKind, float] = field(default_factory=dict)
    signal: Optional[Signal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "final_score": round(self.final_score, 4),
            "raw_score": round(self.raw_score, 4),
            "primary_factor": self.primary_factor.value if self.primary_factor else None,
            "components": {k.value: round(v, 4) for k, v in self.components.items()},
            "signal": self.signal.value if self.signal else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreSnapshot":
        primary = data.get("primary_factor")
        signal = data.get("signal")
        return cls(
            group_id=data["group_id"],
            final_score=float(data.get("final_score", 0.0)),
            raw_score=float(data.get("raw_score", 0.0)),
            primary_factor=FactorKind(primary) if primary else None,
            components={FactorKind(k): float(v) for k, v in (data.get("components") or {}).items()},
            signal=Signal(signal) if signal else None,
        )


@dataclass
class HistoryRecord:
    id: int
    operand_a: int
    operand_b: int
    status: RecordStatus = RecordStatus.PENDING
    winning_position: Optional[int] = None
    type_hits: Dict[str, bool] = field(default_factory=dict)
    pocket_distance: Optional[int] = None
    recommended_group_id: Optional[str] = None
    recommendation: Optional[ScoreSnapshot] = None
    recommended_group_pocket_distance: Optional[int] = None
    wrapped_bases: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    failure_mode: Optional[FailureMode] = None
    signal: Optional[Signal] = None

    @property
    def difference(self) -> int:
        return abs(self.operand_b - self.operand_a)

    @property
    def hit_types(self) -> List[str]:
        return [type_id for type_id, hit in self.type_hits.items() if hit]

    @property
    def is_confirmed(self) -> bool:
        return self.status != RecordStatus.PENDING and self.winning_position is not None

    @property
    def recommendation_score(self) -> float:
        return self.recommendation.final_score if self.recommendation else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "operand_a": self.operand_a,
            "operand_b": self.operand_b,
            "difference": self.difference,
            "status": self.status.value,
            "winning_position": self.winning_position,
            "type_hits": dict(self.type_hits),
            "hit_types": self.hit_types,
            "pocket_distance": self.pocket_distance,
            "recommended_group_id": self.recommended_group_id,
            "recommendation": self.recommendation.to_dict() if self.recommendation else None,
            "recommended_group_pocket_distance": self.recommended_group_pocket_distance,
            "wrapped_bases": {k: list(v) for k, v in self.wrapped_bases.items()},
            "failure_mode": self.failure_mode.value if self.failure_mode else None,
            "signal": self.signal.value if self.signal else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        recommendation = data.get("recommendation")
        failure_mode = data.get("failure_mode")
        signal = data.get("signal")
        return cls(
            id=int(data["id"]),
            operand_a=int(data["operand_a"]),
            operand_b=int(data["operand_b"]),
            status=RecordStatus(data.get("status", RecordStatus.PENDING.value)),
            winning_position=data.get("winning_position"),
            type_hits={k: bool(v) for k, v in (data.get("type_hits") or {}).items()},
            pocket_distance=data.get("pocket_distance"),
            recommended_group_id=data.get("recommended_group_id"),
            recommendation=ScoreSnapshot.from_dict(recommendation) if recommendation else None,
            recommended_group_pocket_distance=data.get("recommended_group_pocket_distance"),
            wrapped_bases={k: (int(v[0]), int(v[1])) for k, v in (data.get("wrapped_bases") or {}).items()},
            failure_mode=FailureMode(failure_mode) if failure_mode else None,
            signal=Signal(signal) if signal else None,
        )


def new_pending_record(record_id: int, operand_a: int, operand_b: int) -> HistoryRecord:
    """Create the pending record for a newly requested calculation."""
    return HistoryRecord(id=record_id, operand_a=operand_a, operand_b=operand_b)


def sort_chronological(history: List[HistoryRecord]) -> List[HistoryRecord]:
    return sorted(history, key=lambda r: r.id)


def confirmed_records(history: List[HistoryRecord]) -> List[HistoryRecord]:
    """Confirmed records in id order."""
    return [r for r in sort_chronological(history) if r.is_confirmed]


def last_winning_position(history: List[HistoryRecord]) -> Optional[int]:
    """Winning position of the newest confirmed record."""
    confirmed = confirmed_records(history)
    return confirmed[-1].winning_position if confirmed else None

"""
Pydantic models for API request/response validation.
Provides type safety, automatic validation, and OpenAPI documentation.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

from core.history_types import HistoryRecord, ScoreSnapshot
from core.invariants import MAX_POSITION, MIN_POSITION
from core.scoring_contract import FactorKind, FailureMode, RecordStatus, Signal


def _check_position(value: Optional[int], name: str = "position") -> Optional[int]:
    if value is not None and not MIN_POSITION <= value <= MAX_POSITION:
        raise ValueError(f"{name} must be within {MIN_POSITION}..{MAX_POSITION}")
    return value


# ============================================================================
# BASE RESPONSE MODEL
# ============================================================================

class APIResponse(BaseModel):
    """Standardized API response wrapper."""
    status: str = "ok"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    class Config:
        extra = "allow"


# ============================================================================
# HISTORY RECORD
# ============================================================================

class ScoreSnapshotModel(BaseModel):
    """Wire form of the recommendation snapshot stored on a record."""
    group_id: str = Field(..., min_length=1)
    final_score: float = 0.0
    raw_score: float = 0.0
    primary_factor: Optional[FactorKind] = None
    components: Dict[FactorKind, float] = Field(default_factory=dict)
    signal: Optional[Signal] = None

    def to_snapshot(self) -> ScoreSnapshot:
        return ScoreSnapshot(
            group_id=self.group_id,
            final_score=self.final_score,
            raw_score=self.raw_score,
            primary_factor=self.primary_factor,
            components=dict(self.components),
            signal=self.signal,
        )


class HistoryRecordModel(BaseModel):
    """Wire form of a history record."""
    id: int = Field(..., ge=0, description="Monotonic record id")
    operand_a: int = Field(..., description="Older operand position")
    operand_b: int = Field(..., description="Newer operand position")
    status: RecordStatus = Field(default=RecordStatus.PENDING)
    winning_position: Optional[int] = Field(None, description="Confirmed outcome")
    type_hits: Dict[str, bool] = Field(default_factory=dict)
    pocket_distance: Optional[int] = None
    recommended_group_id: Optional[str] = None
    recommendation: Optional[ScoreSnapshotModel] = Field(None, description="Frozen score snapshot")
    recommended_group_pocket_distance: Optional[int] = None
    failure_mode: Optional[FailureMode] = None
    signal: Optional[Signal] = None

    @validator("operand_a", "operand_b", "winning_position")
    def validate_position(cls, v):
        return _check_position(v)

    def to_record(self) -> HistoryRecord:
        return HistoryRecord(
            id=self.id,
            operand_a=self.operand_a,
            operand_b=self.operand_b,
            status=self.status,
            winning_position=self.winning_position,
            type_hits=dict(self.type_hits),
            pocket_distance=self.pocket_distance,
            recommended_group_id=self.recommended_group_id,
            recommendation=self.recommendation.to_snapshot() if self.recommendation else None,
            recommended_group_pocket_distance=self.recommended_group_pocket_distance,
            failure_mode=self.failure_mode,
            signal=self.signal,
        )


# ============================================================================
# SHARED OPTIONS
# ============================================================================

class EngineOptions(BaseModel):
    """Overrides shared by every scoring endpoint."""
    active_type_ids: Optional[List[str]] = Field(None, description="Active group ids (default: all)")
    toggles: Optional[Dict[str, bool]] = Field(None, description="FeatureToggles overrides")
    config: Optional[Dict[str, float]] = Field(None, description="StrategyConfig overrides")


# ============================================================================
# REQUESTS
# ============================================================================

class RecommendRequest(EngineOptions):
    """Request model for a recommendation."""
    operand_a: int = Field(..., description="Older of the two most recent positions")
    operand_b: int = Field(..., description="Newer of the two most recent positions")
    history: List[HistoryRecordModel] = Field(default_factory=list)
    influences: Optional[Dict[str, float]] = Field(None, description="Adaptive influence map")
    ai_probabilities: Optional[Dict[str, float]] = Field(None, description="{group_id: probability}")
    use_ai_predictor: bool = Field(default=False, description="Query the configured AI predictor")
    recent_spins: Optional[List[int]] = Field(None, description="Spins feeding the streak context, oldest first")
    number_losses: Optional[Dict[str, Dict[str, Any]]] = Field(None, description="External number loss feed")
    sector_losses: Optional[Any] = Field(None, description="External sector loss feed")

    @validator("operand_a", "operand_b")
    def validate_operand(cls, v):
        return _check_position(v, "operand")

    @validator("recent_spins")
    def validate_spins(cls, v):
        for spin in v or []:
            _check_position(spin, "spin")
        return v


class EvaluateRequest(EngineOptions):
    """Request model for confirming a pending record."""
    record: HistoryRecordModel
    winning_position: int = Field(..., description="Confirmed outcome")

    @validator("winning_position")
    def validate_winner(cls, v):
        return _check_position(v, "winning_position")


class SimulateRequest(EngineOptions):
    """Request model for rebuilding history from raw spins."""
    spins: List[int] = Field(..., description="Winning positions, oldest first")
    learning_rates: Optional[Dict[str, float]] = Field(None, description="AdaptiveLearningRates overrides")
    influences: Optional[Dict[str, float]] = Field(None, description="Starting influence map")

    @validator("spins")
    def validate_spins(cls, v):
        for spin in v:
            _check_position(spin, "spin")
        return v


# ============================================================================
# RESPONSES
# ============================================================================

class RecommendResponse(APIResponse):
    recommendation: Dict[str, Any]


class EvaluateResponse(APIResponse):
    record: Dict[str, Any]


class SimulateResponse(APIResponse):
    records: List[Dict[str, Any]]
    influences: Dict[str, float]
    wins: int
    losses: int
    next_recommendation: Optional[Dict[str, Any]] = None

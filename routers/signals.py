"""
SIGNALS.PY - Recommendation Router

Endpoints:
    GET  /signals/prediction-types - Prediction type catalog and default active set
    POST /signals/recommend        - Score groups for the next spin
    POST /signals/evaluate         - Confirm a pending record with its winning position
    POST /signals/simulate         - Rebuild history (and influences) from raw spins
"""

import logging
from typing import List, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ai_client import HttpAiPredictor
from context_layer import StreakContextProvider
from core.error_responses import ErrorCode, make_error
from core.prediction_types import ALL_PREDICTION_TYPES, DEFAULT_ACTIVE_TYPE_IDS, resolve_active_types
from core.scoring_contract import (
    DEFAULT_LEARNING_RATES,
    DEFAULT_STRATEGY_CONFIG,
    FeatureToggles,
    RecordStatus,
)
from core.structured_logging import get_correlation_id, log_info
from env_config import Config
from history_evaluator import evaluate_record
from history_simulator import MIN_SPINS, simulate_history
from learning_engine import influences_to_dict, normalize_influences
from models.api_models import (
    EngineOptions,
    EvaluateRequest,
    EvaluateResponse,
    RecommendRequest,
    RecommendResponse,
    SimulateRequest,
    SimulateResponse,
)
from recommendation_engine import get_recommendation, get_recommendation_async

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/signals", tags=["signals"])


def _bad_request(code: str, message: str, field: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=make_error(code=code, message=message, field=field, request_id=get_correlation_id()),
    )


def _resolve_options(options: EngineOptions):
    """Active types, toggles and config from request overrides."""
    type_ids = options.active_type_ids if options.active_type_ids is not None else DEFAULT_ACTIVE_TYPE_IDS
    active_types = resolve_active_types(type_ids)
    toggles = FeatureToggles.from_env().with_overrides(options.toggles)
    config = DEFAULT_STRATEGY_CONFIG.with_overrides(options.config)
    return active_types, toggles, config


def _build_context_provider(request: RecommendRequest) -> Optional[StreakContextProvider]:
    if not Config.CONTEXT_PROVIDER_ENABLED:
        return None
    if not (request.recent_spins or request.number_losses or request.sector_losses):
        return None

    provider = StreakContextProvider()
    if request.recent_spins:
        provider.update_from_spins(request.recent_spins)
    if request.number_losses:
        provider.update_number_losses_from_api(request.number_losses)
    if request.sector_losses:
        provider.update_sector_losses_from_api(request.sector_losses)
    return provider


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/prediction-types")
async def prediction_types():
    return {
        "status": "ok",
        "prediction_types": [t.to_dict() for t in ALL_PREDICTION_TYPES],
        "default_active": list(DEFAULT_ACTIVE_TYPE_IDS),
    }


@router.post("/recommend")
async def recommend(request: RecommendRequest):
    active_types, toggles, config = _resolve_options(request)
    if not active_types:
        return _bad_request(ErrorCode.NO_ACTIVE_TYPES, "No known prediction types are active", "active_type_ids")

    history = [r.to_record() for r in request.history]
    kwargs = dict(
        active_type_ids=[t.id for t in active_types],
        influences=request.influences,
        config=config,
        toggles=toggles,
        context_provider=_build_context_provider(request),
    )

    if request.use_ai_predictor and Config.AI_PREDICTOR_URL:
        result = await get_recommendation_async(
            HttpAiPredictor(),
            request.operand_a,
            request.operand_b,
            history,
            timeout_s=Config.AI_TIMEOUT_SECONDS,
            **kwargs,
        )
    else:
        result = get_recommendation(
            request.operand_a,
            request.operand_b,
            history,
            ai_probabilities=request.ai_probabilities,
            ai_ready=request.ai_probabilities is not None,
            **kwargs,
        )

    log_info(
        logger,
        "Recommendation served",
        group_id=result.recommended_group_id,
        signal=result.signal.value,
        history_size=len(history),
    )
    return RecommendResponse(recommendation=result.to_dict())


@router.post("/evaluate")
async def evaluate(request: EvaluateRequest):
    active_types, toggles, _ = _resolve_options(request)
    if not active_types:
        return _bad_request(ErrorCode.NO_ACTIVE_TYPES, "No known prediction types are active", "active_type_ids")

    record = request.record.to_record()
    if record.status != RecordStatus.PENDING:
        return _bad_request(
            ErrorCode.RECORD_ALREADY_CONFIRMED,
            f"Record {record.id} is already {record.status.value}",
            "record.status",
        )

    evaluate_record(
        record,
        request.winning_position,
        active_types,
        dynamic_terminal_neighbours=toggles.use_dynamic_terminal_neighbours,
    )
    return EvaluateResponse(record=record.to_dict())


@router.post("/simulate")
async def simulate(request: SimulateRequest):
    if len(request.spins) < MIN_SPINS:
        return _bad_request(
            ErrorCode.INSUFFICIENT_SPINS, f"At least {MIN_SPINS} spins are required", "spins"
        )
    if len(request.spins) > Config.MAX_SIMULATION_SPINS:
        return _bad_request(
            ErrorCode.TOO_MANY_SPINS, f"At most {Config.MAX_SIMULATION_SPINS} spins are accepted", "spins"
        )

    active_types, toggles, config = _resolve_options(request)
    if not active_types:
        return _bad_request(ErrorCode.NO_ACTIVE_TYPES, "No known prediction types are active", "active_type_ids")

    type_ids: List[str] = [t.id for t in active_types]
    rates = DEFAULT_LEARNING_RATES.with_overrides(request.learning_rates)
    simulation = simulate_history(
        request.spins,
        active_type_ids=type_ids,
        config=config,
        rates=rates,
        toggles=toggles,
        influences=normalize_influences(request.influences, rates) if request.influences else None,
    )

    next_recommendation = get_recommendation(
        request.spins[-2],
        request.spins[-1],
        simulation.records,
        active_type_ids=type_ids,
        influences=simulation.influences,
        config=config,
        toggles=toggles,
    )

    return SimulateResponse(
        records=[r.to_dict() for r in simulation.records],
        influences=influences_to_dict(simulation.influences),
        wins=simulation.wins,
        losses=simulation.losses,
        next_recommendation=next_recommendation.to_dict(),
    )

"""
ai_client.py - Thin client for the external AI probability service

Responsibilities:
- POST recent confirmed winning positions to the predictor endpoint
- Return {group_id: probability} clamped to [0, 1]
- Fail soft: non-200, bad JSON and transport errors all resolve to None

The engine bounds every call with its own timeout; the client timeout only
keeps the underlying connection from lingering.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

import httpx

from core.history_types import HistoryRecord, confirmed_records
from env_config import Config

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


def parse_probabilities(payload: Any) -> Optional[Dict[str, float]]:
    """
    Accept {"groups": {...}} or a flat {group_id: probability} map.

    Non-numeric entries are dropped; values are clamped to [0, 1].
    """
    if not isinstance(payload, dict):
        return None
    groups = payload.get("groups", payload)
    if not isinstance(groups, dict):
        return None

    probabilities: Dict[str, float] = {}
    for group_id, value in groups.items():
        try:
            probability = float(value)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(probability):
            continue
        probabilities[str(group_id)] = max(0.0, min(1.0, probability))
    return probabilities


class HttpAiPredictor:
    """AI predictor reached over HTTP."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.url = url or Config.AI_PREDICTOR_URL
        self.timeout_s = Config.AI_TIMEOUT_SECONDS if timeout_s is None else timeout_s
        self.client = client
        self.history_limit = history_limit

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    def build_payload(self, history: List[HistoryRecord]) -> Dict[str, Any]:
        recent = confirmed_records(history)[-self.history_limit:]
        return {"history": [r.winning_position for r in recent]}

    async def predict(self, history: List[HistoryRecord]) -> Optional[Dict[str, float]]:
        """Fetch group probabilities, or None when the predictor is unavailable."""
        if not self.is_configured:
            return None

        payload = self.build_payload(history)
        try:
            if self.client is None:
                async with httpx.AsyncClient(timeout=self.timeout_s) as local_client:
                    resp = await local_client.post(self.url, json=payload)
            else:
                resp = await self.client.post(self.url, json=payload, timeout=self.timeout_s)
        except httpx.HTTPError as e:
            logger.warning(f"AI predictor request failed: {type(e).__name__}: {e}")
            return None

        if resp.status_code != 200:
            logger.warning(f"AI predictor returned HTTP {resp.status_code}")
            return None

        try:
            data = resp.json()
        except ValueError:
            logger.warning("AI predictor returned invalid JSON")
            return None

        probabilities = parse_probabilities(data)
        if probabilities is None:
            logger.warning("AI predictor response missing probability map")
        return probabilities

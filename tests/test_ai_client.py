"""
TEST_AI_CLIENT.PY - External AI probability client
==================================================

Tests verify:
1. Payload carries recent confirmed winning positions only
2. Grouped and flat response maps parse, values clamped to [0, 1]
3. Non-200, invalid JSON and transport errors resolve to None
4. Unconfigured predictor never makes a request

Run with: python -m pytest tests/test_ai_client.py -v
"""

import asyncio
import json

import httpx

from ai_client import HttpAiPredictor, parse_probabilities
from core.history_types import new_pending_record

PREDICTOR_URL = "http://predictor.test/predict"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _predict(predictor, history):
    async def run():
        async with predictor.client:
            return await predictor.predict(history)
    return asyncio.run(run())


# =============================================================================
# PARSING
# =============================================================================

class TestParseProbabilities:

    def test_grouped(self):
        assert parse_probabilities({"groups": {"diffResult": 0.4}}) == {"diffResult": 0.4}

    def test_flat(self):
        assert parse_probabilities({"sumPlus": 0.25}) == {"sumPlus": 0.25}

    def test_clamped_and_filtered(self):
        parsed = parse_probabilities({"a": 1.7, "b": -0.2, "c": "n/a", "d": float("nan"), "e": "0.5"})
        assert parsed == {"a": 1.0, "b": 0.0, "e": 0.5}

    def test_not_a_map(self):
        assert parse_probabilities([0.1, 0.2]) is None
        assert parse_probabilities({"groups": [0.1]}) is None


# =============================================================================
# HTTP
# =============================================================================

class TestHttpAiPredictor:

    def test_posts_confirmed_history(self, confirmed_record):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"groups": {"diffResult": 0.6}})

        history = [
            confirmed_record(1, {"a": True}, winning_position=12),
            confirmed_record(2, {"a": False}, winning_position=30),
            new_pending_record(3, 12, 30),
        ]
        predictor = HttpAiPredictor(url=PREDICTOR_URL, client=_client(handler))
        result = _predict(predictor, history)

        assert result == {"diffResult": 0.6}
        assert seen["body"] == {"history": [12, 30]}
        assert seen["url"] == PREDICTOR_URL

    def test_history_limit(self, confirmed_record):
        history = [confirmed_record(i, {"a": True}, winning_position=i) for i in range(1, 21)]
        predictor = HttpAiPredictor(url=PREDICTOR_URL, history_limit=5)
        assert predictor.build_payload(history) == {"history": [16, 17, 18, 19, 20]}

    def test_non_200_is_none(self):
        predictor = HttpAiPredictor(
            url=PREDICTOR_URL, client=_client(lambda request: httpx.Response(503, text="busy"))
        )
        assert _predict(predictor, []) is None

    def test_invalid_json_is_none(self):
        predictor = HttpAiPredictor(
            url=PREDICTOR_URL, client=_client(lambda request: httpx.Response(200, text="<html>"))
        )
        assert _predict(predictor, []) is None

    def test_transport_error_is_none(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        predictor = HttpAiPredictor(url=PREDICTOR_URL, client=_client(handler))
        assert _predict(predictor, []) is None

    def test_unconfigured_skips_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        predictor = HttpAiPredictor(url="", client=_client(handler))
        predictor.url = None
        assert not predictor.is_configured
        assert _predict(predictor, []) is None
        assert calls == []

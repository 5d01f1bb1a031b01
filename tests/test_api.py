"""
TEST_API.PY - HTTP surface
==========================

Tests verify:
1. Health and prediction type catalog endpoints
2. /signals/recommend with AI map, overrides and validation errors (including
   malformed history records)
3. /signals/evaluate confirms pending records only
4. /signals/simulate rebuilds history usable as /recommend input
5. X-Request-ID correlation is echoed

Run with: python -m pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from env_config import Config
from main import app

SPINS = [10, 15, 5, 22, 17, 3, 36, 0, 14, 5, 8, 23]
CONFIRMED = {"id": 1, "operand_a": 10, "operand_b": 15, "status": "success", "winning_position": 5}


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


# =============================================================================
# META
# =============================================================================

class TestMeta:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["engine_version"] == "1.4.0"

    def test_prediction_types(self, client):
        data = client.get("/signals/prediction-types").json()
        ids = [t["id"] for t in data["prediction_types"]]
        assert ids == ["diffMinus", "diffResult", "diffPlus", "sumMinus", "sumResult", "sumPlus"]
        assert data["default_active"] == ids

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-fixed0001"})
        assert resp.headers["X-Request-ID"] == "req-fixed0001"

    def test_request_id_generated(self, client):
        resp = client.get("/health")
        assert resp.headers["X-Request-ID"].startswith("req-")


# =============================================================================
# RECOMMEND
# =============================================================================

class TestRecommend:

    def test_empty_history_waits(self, client):
        resp = client.post("/signals/recommend", json={"operand_a": 10, "operand_b": 15})
        assert resp.status_code == 200
        recommendation = resp.json()["recommendation"]
        assert recommendation["signal"] == "Wait for Signal"
        assert recommendation["best"] is None

    def test_ai_map_scores(self, client):
        resp = client.post(
            "/signals/recommend",
            json={"operand_a": 10, "operand_b": 15, "ai_probabilities": {"diffResult": 0.8}},
        )
        recommendation = resp.json()["recommendation"]
        assert recommendation["recommended_group_id"] == "diffResult"
        assert recommendation["signal"] == "Play"
        assert recommendation["best"]["primary_factor"] == "High AI Confidence"

    def test_config_override(self, client):
        resp = client.post(
            "/signals/recommend",
            json={
                "operand_a": 10,
                "operand_b": 15,
                "ai_probabilities": {"diffResult": 0.8},
                "config": {"simple_play_threshold": 30},
            },
        )
        assert resp.json()["recommendation"]["signal"] == "Wait"

    def test_operand_out_of_range(self, client):
        resp = client.post("/signals/recommend", json={"operand_a": 40, "operand_b": 15})
        assert resp.status_code == 400
        data = resp.json()
        assert data["status"] == "error"
        assert data["errors"][0]["code"] == "POSITION_OUT_OF_RANGE"
        assert data["errors"][0]["field"] == "operand_a"

    def test_missing_operand(self, client):
        resp = client.post("/signals/recommend", json={"operand_a": 4})
        assert resp.status_code == 400
        error = resp.json()["errors"][0]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "operand_b"

    def test_no_active_types(self, client):
        resp = client.post(
            "/signals/recommend",
            json={"operand_a": 10, "operand_b": 15, "active_type_ids": ["nope"]},
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["code"] == "NO_ACTIVE_TYPES"

    def _recommend_with_history(self, client, record):
        return client.post(
            "/signals/recommend",
            json={"operand_a": 10, "operand_b": 15, "history": [record]},
        )

    def test_unknown_primary_factor_rejected(self, client):
        snapshot = {"group_id": "diffResult", "final_score": 12.0, "primary_factor": "Bogus"}
        resp = self._recommend_with_history(client, dict(CONFIRMED, recommendation=snapshot))
        assert resp.status_code == 400
        error = resp.json()["errors"][0]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"].startswith("history.0.recommendation")

    def test_unknown_failure_mode_rejected(self, client):
        resp = self._recommend_with_history(client, dict(CONFIRMED, failure_mode="oops"))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "history.0.failure_mode"

    def test_unknown_signal_rejected(self, client):
        resp = self._recommend_with_history(client, dict(CONFIRMED, signal="Maybe"))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "history.0.signal"

    def test_snapshot_without_group_rejected(self, client):
        resp = self._recommend_with_history(client, dict(CONFIRMED, recommendation={"final_score": 12.0}))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "history.0.recommendation.group_id"

    def test_typed_snapshot_accepted(self, client):
        record = dict(
            CONFIRMED,
            recommended_group_id="diffResult",
            failure_mode="none",
            signal="Play",
            recommendation={
                "group_id": "diffResult",
                "final_score": 12.0,
                "primary_factor": "Streak",
                "components": {"Streak": 12.0},
                "signal": "Play",
            },
        )
        resp = self._recommend_with_history(client, record)
        assert resp.status_code == 200


# =============================================================================
# EVALUATE
# =============================================================================

class TestEvaluate:

    def test_confirms_pending_record(self, client):
        resp = client.post(
            "/signals/evaluate",
            json={"record": {"id": 1, "operand_a": 10, "operand_b": 15}, "winning_position": 5},
        )
        assert resp.status_code == 200
        record = resp.json()["record"]
        assert record["status"] == "success"
        assert record["winning_position"] == 5
        assert record["type_hits"]["diffResult"] is True
        assert record["pocket_distance"] == 0

    def test_already_confirmed(self, client):
        resp = client.post(
            "/signals/evaluate",
            json={
                "record": {"id": 1, "operand_a": 10, "operand_b": 15, "status": "fail", "winning_position": 20},
                "winning_position": 5,
            },
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["code"] == "RECORD_ALREADY_CONFIRMED"

    def test_winner_out_of_range(self, client):
        resp = client.post(
            "/signals/evaluate",
            json={"record": {"id": 1, "operand_a": 10, "operand_b": 15}, "winning_position": 37},
        )
        assert resp.status_code == 400


# =============================================================================
# SIMULATE
# =============================================================================

class TestSimulate:

    def test_rebuilds_history(self, client):
        resp = client.post("/signals/simulate", json={"spins": SPINS})
        assert resp.status_code == 200
        data = resp.json()
        assert [r["id"] for r in data["records"]] == list(range(1, len(SPINS) - 1))
        assert data["wins"] + data["losses"] <= len(SPINS) - 2
        assert set(data["influences"]) == {
            "Hit Rate",
            "Streak",
            "Proximity to Last Spin",
            "Hot Zone Weighting",
            "High AI Confidence",
            "Statistical Trends",
        }
        assert data["next_recommendation"]["signal"]

    def test_too_few_spins(self, client):
        resp = client.post("/signals/simulate", json={"spins": [1, 2]})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["code"] == "INSUFFICIENT_SPINS"

    def test_too_many_spins(self, client, monkeypatch):
        monkeypatch.setattr(Config, "MAX_SIMULATION_SPINS", len(SPINS))
        assert client.post("/signals/simulate", json={"spins": SPINS}).status_code == 200
        resp = client.post("/signals/simulate", json={"spins": SPINS + [4]})
        assert resp.status_code == 400
        error = resp.json()["errors"][0]
        assert error["code"] == "TOO_MANY_SPINS"
        assert error["field"] == "spins"

    def test_invalid_spin(self, client):
        resp = client.post("/signals/simulate", json={"spins": [1, 2, 99]})
        assert resp.status_code == 400

    def test_simulated_history_feeds_recommend(self, client):
        simulated = client.post("/signals/simulate", json={"spins": SPINS}).json()
        resp = client.post(
            "/signals/recommend",
            json={
                "operand_a": SPINS[-2],
                "operand_b": SPINS[-1],
                "history": simulated["records"],
                "influences": simulated["influences"],
            },
        )
        assert resp.status_code == 200
        recommendation = resp.json()["recommendation"]
        expected = simulated["next_recommendation"]
        assert recommendation["signal"] == expected["signal"]
        assert recommendation["recommended_group_id"] == expected["recommended_group_id"]

"""Tests for the status API endpoints."""

import pytest
from fastapi.testclient import TestClient

from retest.api.routers import (
    record_decision,
    reset_state,
    update_bot_status,
    update_strategy_state,
)
from retest.main import app, warn_if_live
from retest.models.retest_config import RetestConfig
from retest.strategy.opening_retest import OpeningRetestStrategy

client = TestClient(app)


@pytest.fixture(autouse=True)
def _clean_routers():
    reset_state()
    yield
    reset_state()


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestStatusEndpoint:
    def test_defaults(self):
        data = client.get("/status").json()
        assert data["running"] is False
        assert data["mode"] == "idle"
        assert data["cycle_count"] == 0

    def test_reflects_updates(self):
        update_bot_status(running=True, mode="paper", symbol="SPX500_USD", cycle_count=3)
        data = client.get("/status").json()
        assert data["running"] is True
        assert data["symbol"] == "SPX500_USD"
        assert data["cycle_count"] == 3


class TestStateEndpoint:
    def test_empty_before_first_cycle(self):
        assert client.get("/state").json() == {"state": None}

    def test_strategy_snapshot(self):
        strategy = OpeningRetestStrategy(RetestConfig())
        strategy.on_position_opened("6002")
        update_strategy_state(strategy.snapshot())

        state = client.get("/state").json()["state"]
        assert state["direction"] == "none"
        assert state["entry_price"] == 0.0
        assert state["traded_today"] is False
        assert state["position"] == "6002"
        assert state["samples"] == 0


class TestDecisionsEndpoint:
    def test_newest_first_with_limit(self):
        for i in range(5):
            record_decision({"action": "skipped", "reason": f"r{i}"})
        data = client.get("/decisions", params={"limit": 2}).json()
        assert [d["reason"] for d in data["decisions"]] == ["r4", "r3"]

    def test_history_is_capped(self):
        for i in range(60):
            record_decision({"action": "skipped", "reason": f"r{i}"})
        data = client.get("/decisions", params={"limit": 50}).json()
        assert len(data["decisions"]) == 50
        assert data["decisions"][-1]["reason"] == "r10"

    def test_limit_validation(self):
        assert client.get("/decisions", params={"limit": 0}).status_code == 422


def test_warn_if_live(caplog):
    assert warn_if_live("live") is True
    assert "LIVE TRADING MODE" in caplog.text
    assert warn_if_live("paper") is False

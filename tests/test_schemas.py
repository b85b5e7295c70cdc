"""
Tests for the JSON request/response schemas.
Run with: pytest tests/test_schemas.py -v
"""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from capper_engine.data_bundle import BundleAvailable, BundleUnavailable, MatchupContext
from capper_engine.factors.base import BetType
from capper_engine.pick_engine import PickEngine
from capper_engine.schemas import (
    CapperProfileIn,
    EvaluationOut,
    EvaluationRequest,
    FactorConfigIn,
    MarketIn,
)
from capper_engine.settings import EngineSettings

REQUEST = {
    "game_id": "0022400901",
    "away_team": "OKC",
    "home_team": "DAL",
    "away": {"pace": 101.0, "ortg": 119.5, "drtg": 107.0},
    "home": {"pace": 99.0, "ortg": 116.0, "drtg": 114.0, "is_back_to_back": True},
    "market": {"total_line": 226.5, "home_spread": 3.5, "home_moneyline": 140, "away_moneyline": -160},
    "injury": {"away": 0.0, "home": 0.15, "summary": "DAL missing a starter"},
    "profiles": [
        {
            "capperId": "sharp",
            "betType": "SPREAD",
            "factors": [
                {"key": "netRatingDiff", "enabled": True, "weight": 60, "dataSource": "team_ratings"},
                {"key": "paceMismatch", "enabled": False, "weight": 20},
            ],
        }
    ],
}


class TestFactorConfigIn:
    def test_camel_case_alias(self):
        cfg = FactorConfigIn.model_validate({"key": "paceIndex", "weight": 20, "dataSource": "team_pace"})
        assert cfg.data_source == "team_pace"

    def test_disabled_weight_zeroed(self):
        cfg = FactorConfigIn(key="paceIndex", enabled=False, weight=35)
        assert cfg.weight == 0.0

    def test_weight_range(self):
        with pytest.raises(ValidationError):
            FactorConfigIn(key="paceIndex", weight=140)

    def test_catalog_fills_defaults(self):
        from capper_engine.services.catalog import get_catalog

        config = FactorConfigIn(key="paceIndex", weight=20).to_config("nba", BetType.TOTAL, get_catalog())
        assert config.data_source == "team_pace"
        assert config.max_points == 2.0


class TestCapperProfileIn:
    def test_duplicate_keys_rejected(self):
        with pytest.raises(ValidationError, match="duplicate factor keys"):
            CapperProfileIn.model_validate({
                "capperId": "sharp",
                "betType": "TOTAL",
                "factors": [{"key": "paceIndex"}, {"key": "paceIndex"}],
            })

    def test_to_profile(self):
        profile = CapperProfileIn.model_validate(REQUEST["profiles"][0]).to_profile()
        assert profile.bet_type is BetType.SPREAD
        assert profile.enabled_keys() == ["netRatingDiff"]
        assert profile.get("paceMismatch").data_source == "team_pace"


class TestMarketIn:
    def test_invalid_odds_rejected(self):
        with pytest.raises(ValidationError):
            MarketIn(over_odds=-50)

    def test_snapshot(self):
        snapshot = MarketIn.model_validate(REQUEST["market"]).to_snapshot()
        assert snapshot.home_spread == 3.5
        assert snapshot.over_odds == -110


class TestEvaluationRequest:
    def test_conversions(self):
        request = EvaluationRequest.model_validate(REQUEST)
        assert request.to_context() == MatchupContext("0022400901", "OKC", "DAL")
        bundle = request.to_bundle()
        assert isinstance(bundle, BundleAvailable)
        assert bundle.data.home.is_back_to_back
        assert set(request.to_profiles()) == {BetType.SPREAD}

    def test_missing_team_is_unavailable(self):
        request = EvaluationRequest(game_id="g", away_team="A", home_team="B")
        assert isinstance(request.to_bundle(), BundleUnavailable)
        assert request.injury_provider() is None

    def test_injury_provider(self):
        provider = EvaluationRequest.model_validate(REQUEST).injury_provider()
        impact = asyncio.run(provider(MatchupContext("g", "A", "B")))
        assert impact.home == 0.15

    def test_one_profile_per_bet_type(self):
        body = dict(REQUEST, profiles=REQUEST["profiles"] * 2)
        with pytest.raises(ValidationError):
            EvaluationRequest.model_validate(body)


def test_evaluation_output_serializes():
    request = EvaluationRequest.model_validate(REQUEST)
    engine = PickEngine(
        settings=EngineSettings(), impact_provider=request.injury_provider(), log=MagicMock(),
    )
    result = engine.evaluate_sync(
        request.to_context(), request.to_bundle(), request.market.to_snapshot(), request.to_profiles(),
    )
    out = json.loads(EvaluationOut.from_result(result).model_dump_json())

    assert out["game_id"] == "0022400901"
    assert [h["bet_type"] for h in out["heads"]] == ["SPREAD", "TOTAL", "MONEYLINE"]
    assert [f["key"] for f in out["factors"]["SPREAD"]] == ["netRatingDiff"]
    assert out["factors"]["SPREAD"][0]["weight"] == 250.0
    assert set(out["edges"]) == {"TOTAL", "SPREAD"}
    assert (out["pick"] is None) == (out["verdict"] == "PASS")

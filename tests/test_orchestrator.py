"""
Tests for the factor orchestrator: isolation, weights, async injury factor.
Run with: pytest tests/test_orchestrator.py -v
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from capper_engine.core.league_config import LeagueConfig
from capper_engine.data_bundle import (
    BundleAvailable,
    BundleUnavailable,
    DataBundle,
    MatchupContext,
    TeamStats,
)
from capper_engine.factors import totals
from capper_engine.factors.base import BetType, FactorStatus
from capper_engine.factors.injury import INJURY_KEY, InjuryImpact
from capper_engine.services.orchestrator import DefaultBaseline, FactorOrchestrator
from capper_engine.services.profiles import FactorConfig

CTX = MatchupContext(game_id="0022400123", away_team="DEN", home_team="LAL")
BUNDLE = BundleAvailable(DataBundle(
    away=TeamStats(pace=104.0, ortg_last10=118.0),
    home=TeamStats(pace=103.0, ortg_last10=116.0),
))


def _cfg(key, weight=50.0, enabled=True):
    return FactorConfig(key=key, enabled=enabled, weight=weight, data_source="x", max_points=2.0)


def _boom(bundle):
    raise ZeroDivisionError("synthetic failure")


class TestIsolation:
    """One failing factor never removes its siblings"""

    def test_throwing_factor_becomes_error_result(self):
        log = MagicMock()
        orch = FactorOrchestrator(
            factor_tables={BetType.TOTAL: {"paceIndex": _boom, "offForm": totals.offensive_form}},
            log=log,
        )
        out = orch.evaluate_sync(CTX, [_cfg("paceIndex"), _cfg("offForm")], BUNDLE, BetType.TOTAL)

        by_key = out.by_key()
        assert by_key["paceIndex"].status is FactorStatus.ERROR
        assert "synthetic failure" in by_key["paceIndex"].rationale
        assert by_key["paceIndex"].is_neutral
        assert by_key["offForm"].status is FactorStatus.OK
        assert by_key["offForm"].signal > 0
        assert out.errors == [by_key["paceIndex"]]

    def test_failure_is_logged_with_structured_fields(self):
        log = MagicMock()
        orch = FactorOrchestrator(factor_tables={BetType.TOTAL: {"paceIndex": _boom}}, log=log)
        orch.evaluate_sync(CTX, [_cfg("paceIndex")], BUNDLE, BetType.TOTAL)

        assert log.warning.called
        extra = log.warning.call_args.kwargs["extra"]
        assert extra == {"factor_key": "paceIndex", "bet_type": "TOTAL", "game_id": CTX.game_id}

    def test_unknown_key_not_implemented(self):
        orch = FactorOrchestrator(log=MagicMock())
        out = orch.evaluate_sync(CTX, [_cfg("lineMovement")], BUNDLE, BetType.TOTAL)
        assert out.results[0].status is FactorStatus.NOT_IMPLEMENTED


class TestWeightsAndOrder:
    def test_weights_attached_in_profile_order(self):
        orch = FactorOrchestrator(log=MagicMock())
        configs = [_cfg("offForm", 100.0), _cfg("paceIndex", 150.0)]
        out = orch.evaluate_sync(CTX, configs, BUNDLE, BetType.TOTAL)
        assert [r.key for r in out.results] == ["offForm", "paceIndex"]
        assert [r.weight for r in out.results] == [100.0, 150.0]

    def test_weighted_points_sum(self):
        orch = FactorOrchestrator(log=MagicMock())
        out = orch.evaluate_sync(CTX, [_cfg("paceIndex", 100.0)], BUNDLE, BetType.TOTAL)
        # pace factor at weight 100 contributes its full over score
        assert out.weighted_points == pytest.approx(out.results[0].score_a)

    def test_disabled_and_market_edge_skipped(self):
        orch = FactorOrchestrator(log=MagicMock())
        configs = [_cfg("paceIndex"), _cfg("offForm", enabled=False), _cfg("edgeVsMarket", 100.0)]
        out = orch.evaluate_sync(CTX, configs, BUNDLE, BetType.TOTAL)
        assert [r.key for r in out.results] == ["paceIndex"]


class TestDegradedInputs:
    def test_no_enabled_factors(self):
        log = MagicMock()
        orch = FactorOrchestrator(log=log)
        out = orch.evaluate_sync(CTX, [_cfg("paceIndex", enabled=False)], BUNDLE, BetType.TOTAL)
        assert out.results == []
        assert out.weighted_points == 0.0
        assert log.info.called

    def test_unavailable_bundle_returns_neutral_results(self):
        orch = FactorOrchestrator(log=MagicMock())
        out = orch.evaluate_sync(
            CTX, [_cfg("paceIndex"), _cfg("offForm")], BundleUnavailable("feed down"), BetType.TOTAL,
        )
        assert out.bundle_available is False
        assert all(r.status is FactorStatus.UNAVAILABLE for r in out.results)
        assert all(r.is_neutral for r in out.results)
        assert out.baseline == DefaultBaseline.from_league(LeagueConfig.nba())

    def test_unsupported_bundle_type_raises(self):
        orch = FactorOrchestrator(log=MagicMock())
        with pytest.raises(TypeError):
            orch.evaluate_sync(CTX, [_cfg("paceIndex")], BUNDLE.data, BetType.TOTAL)

    def test_default_baseline(self):
        baseline = DefaultBaseline.from_league(LeagueConfig.nba())
        assert baseline.total == pytest.approx(2 * 99.5 * 114.5 / 100)
        assert baseline.away_margin == pytest.approx(-2.5)

    def test_data_requirements_reported(self):
        orch = FactorOrchestrator(log=MagicMock())
        out = orch.evaluate_sync(CTX, [_cfg("paceIndex")], BUNDLE, BetType.TOTAL)
        assert out.data_requirements == frozenset({"team_pace"})


class TestInjuryFactor:
    """The async factor runs after the synchronous ones, under a timeout"""

    def test_provider_result_used(self):
        async def provider(ctx):
            return InjuryImpact(away=0.2, home=0.1)

        orch = FactorOrchestrator(impact_provider=provider, log=MagicMock())
        out = orch.evaluate_sync(CTX, [_cfg(INJURY_KEY, 40.0), _cfg("paceIndex")], BUNDLE, BetType.TOTAL)
        injury = out.by_key()[INJURY_KEY]
        assert injury.status is FactorStatus.OK
        assert injury.favoured_side == "under"
        assert injury.weight == 40.0
        assert [r.key for r in out.results] == [INJURY_KEY, "paceIndex"]

    def test_awaited_after_sync_factors(self):
        calls = []

        def tracked(bundle):
            calls.append("sync")
            return totals.pace_index(bundle)

        async def provider(ctx):
            calls.append("async")
            return InjuryImpact()

        orch = FactorOrchestrator(
            impact_provider=provider,
            factor_tables={BetType.TOTAL: {"paceIndex": tracked}},
            log=MagicMock(),
        )
        orch.evaluate_sync(CTX, [_cfg(INJURY_KEY), _cfg("paceIndex")], BUNDLE, BetType.TOTAL)
        assert calls == ["sync", "async"]

    def test_timeout_degrades_to_neutral(self):
        async def slow(ctx):
            await asyncio.sleep(5)
            return InjuryImpact(away=1.0)

        log = MagicMock()
        orch = FactorOrchestrator(impact_provider=slow, impact_timeout_s=0.01, log=log)
        out = orch.evaluate_sync(CTX, [_cfg(INJURY_KEY)], BUNDLE, BetType.SPREAD)
        r = out.results[0]
        assert r.status is FactorStatus.ERROR
        assert r.is_neutral
        assert "timed out" in r.rationale
        assert log.warning.called

    def test_provider_exception_degrades_to_neutral(self):
        async def broken(ctx):
            raise ConnectionError("research service unreachable")

        orch = FactorOrchestrator(impact_provider=broken, log=MagicMock())
        out = orch.evaluate_sync(CTX, [_cfg(INJURY_KEY), _cfg("paceIndex")], BUNDLE, BetType.TOTAL)
        assert out.results[0].status is FactorStatus.ERROR
        assert out.results[1].status is FactorStatus.OK

    def test_no_provider_is_unavailable(self):
        orch = FactorOrchestrator(log=MagicMock())
        out = orch.evaluate_sync(CTX, [_cfg(INJURY_KEY)], BUNDLE, BetType.TOTAL)
        assert out.results[0].status is FactorStatus.UNAVAILABLE

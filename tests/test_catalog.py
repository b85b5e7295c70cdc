"""
Tests for the factor catalog and capper profiles.
Run with: pytest tests/test_catalog.py -v
"""

from dataclasses import replace

import pytest

from capper_engine.factors import FACTOR_TABLES
from capper_engine.factors.base import BetType
from capper_engine.factors.injury import INJURY_KEY
from capper_engine.services.catalog import (
    MARKET_EDGE_WEIGHT,
    NBA_DEFINITIONS,
    FactorCatalog,
    get_catalog,
    is_market_edge,
)
from capper_engine.services.profiles import CapperProfile, FactorConfig, default_profile
from capper_engine.services.weights import budget_sum


class TestCatalog:
    """Keys are scoped by (sport, bet type)"""

    def test_same_key_in_two_scopes(self):
        catalog = get_catalog()
        total = catalog.get("nba", BetType.TOTAL, INJURY_KEY)
        spread = catalog.get("nba", BetType.SPREAD, INJURY_KEY)
        assert total is not None and spread is not None
        assert total is not spread

    def test_duplicate_within_scope_raises(self):
        pace = next(d for d in NBA_DEFINITIONS if d.key == "paceIndex")
        with pytest.raises(ValueError, match="Duplicate"):
            FactorCatalog([pace, replace(pace, name="Pace Again")])

    def test_market_edge_weight_enforced(self):
        edge = next(d for d in NBA_DEFINITIONS if d.key == "edgeVsMarket")
        with pytest.raises(ValueError):
            FactorCatalog([replace(edge, default_weight=50)])

    def test_default_source_must_be_listed(self):
        pace = next(d for d in NBA_DEFINITIONS if d.key == "paceIndex")
        with pytest.raises(ValueError):
            FactorCatalog([replace(pace, default_data_source="scraper")])

    def test_moneyline_resolves_to_spread_scope(self):
        catalog = get_catalog()
        assert catalog.for_scope("nba", BetType.MONEYLINE) == catalog.for_scope("nba", BetType.SPREAD)

    def test_market_edge_lookup(self):
        catalog = get_catalog()
        assert catalog.market_edge_for("nba", BetType.TOTAL).key == "edgeVsMarket"
        assert catalog.market_edge_for("nba", BetType.SPREAD).key == "edgeVsMarketSpread"
        assert is_market_edge("edgeVsMarketSpread")
        assert not is_market_edge("paceIndex")

    def test_data_requirements_union(self):
        tags = get_catalog().data_requirements("nba", BetType.SPREAD, ["netRatingDiff", "turnoverDiff"])
        assert tags == frozenset({"team_ratings", "team_pace", "four_factors"})

    def test_every_implemented_key_has_a_function(self):
        catalog = get_catalog()
        for bet_type in (BetType.TOTAL, BetType.SPREAD):
            for d in catalog.for_scope("nba", bet_type):
                if d.implemented and not d.market_edge and d.key != INJURY_KEY:
                    assert d.key in FACTOR_TABLES[bet_type], d.key


class TestProfiles:
    def test_default_profile_is_normalized(self):
        profile = default_profile("sharp", "nba", BetType.TOTAL)
        assert profile.profile_id == "sharp-nba-total-default"
        assert profile.is_default
        assert budget_sum(profile.factors) == pytest.approx(250.0, abs=0.0101)

    def test_default_profile_disables_unimplemented(self):
        profile = default_profile("sharp", "nba", BetType.SPREAD)
        movement = profile.get("lineMovement")
        assert movement.enabled is False
        assert movement.weight == 0.0

    def test_default_profile_market_edge(self):
        profile = default_profile("sharp", "nba", BetType.SPREAD)
        edge = profile.get("edgeVsMarketSpread")
        assert edge.enabled and edge.weight == MARKET_EDGE_WEIGHT

    def test_unknown_scope_raises(self):
        with pytest.raises(ValueError):
            default_profile("sharp", "wnba", BetType.TOTAL)

    def test_duplicate_keys_rejected(self):
        cfg = FactorConfig("paceIndex", True, 50, "team_pace", 2.0)
        with pytest.raises(ValueError):
            CapperProfile("sharp", "nba", BetType.TOTAL, [cfg, cfg])

    def test_enabled_keys_and_weights(self):
        profile = CapperProfile("sharp", "nba", BetType.TOTAL, [
            FactorConfig("paceIndex", True, 150, "team_pace", 2.0),
            FactorConfig("offForm", False, 0, "team_ratings", 2.0),
        ])
        assert profile.enabled_keys() == ["paceIndex"]
        assert profile.weights() == {"paceIndex": 150, "offForm": 0}
        assert profile.get("missing") is None

"""
Tests for totals (over/under) factors.
Run with: pytest tests/test_totals_factors.py -v
"""

import math

import numpy as np
import pytest

from capper_engine.data_bundle import DataBundle, TeamStats
from capper_engine.factors.base import FactorStatus
from capper_engine.factors.totals import (
    defensive_erosion,
    fatigue_level,
    offensive_form,
    pace_index,
    rest_advantage,
    rest_score,
    three_point_env,
    whistle_env,
)

ALL_TOTALS = [pace_index, offensive_form, defensive_erosion, three_point_env, whistle_env, rest_advantage]


def _bundle(away=None, home=None):
    return DataBundle(away=TeamStats(**(away or {})), home=TeamStats(**(home or {})))


# ---------------------------------------------------------------------------
# Pace
# ---------------------------------------------------------------------------

class TestPaceIndex:
    """Expected pace vs league pace"""

    def test_documented_example(self):
        # (104 + 103) / 2 = 103.5 → delta 4.0 → tanh(0.5)
        r = pace_index(_bundle({"pace": 104.0}, {"pace": 103.0}))
        assert r.raw_values["expected_pace"] == pytest.approx(103.5)
        assert r.raw_values["delta"] == pytest.approx(4.0)
        assert r.signal == pytest.approx(0.4621, abs=1e-4)
        assert r.score_a == pytest.approx(0.924, abs=1e-3)
        assert r.score_b == 0.0
        assert r.favoured_side == "over"

    def test_slow_game_favours_under(self):
        r = pace_index(_bundle({"pace": 95.0}, {"pace": 94.0}))
        assert r.signal < 0
        assert r.score_a == 0.0
        assert r.favoured_side == "under"

    def test_swap_invariant(self):
        a = pace_index(_bundle({"pace": 104.0}, {"pace": 101.0}))
        b = pace_index(_bundle({"pace": 101.0}, {"pace": 104.0}))
        assert a.signal == pytest.approx(b.signal)

    def test_missing_pace_uses_league_fallback(self):
        r = pace_index(_bundle({"pace": 104.0}, {}))
        assert "home.pace" in r.fallbacks
        assert r.raw_values["home_pace"] == pytest.approx(99.5)

    def test_non_positive_pace_is_bad_input(self):
        r = pace_index(_bundle({"pace": 0.0}, {"pace": 100.0}))
        assert r.status is FactorStatus.BAD_INPUT
        assert r.signal == 0.0
        assert r.is_neutral
        assert "away_pace" in r.rationale

    def test_nan_is_bad_input(self):
        r = pace_index(_bundle({"pace": float("nan")}, {"pace": 100.0}))
        assert r.status is FactorStatus.BAD_INPUT
        assert "away_pace" not in r.raw_values

    def test_extreme_pace_is_capped(self):
        r = pace_index(_bundle({"pace": 500.0}, {"pace": 500.0}))
        assert r.caps_applied
        assert "capped" in r.cap_reason
        assert r.signal <= 1.0


# ---------------------------------------------------------------------------
# Efficiency and shooting
# ---------------------------------------------------------------------------

def test_offensive_form_hot_offenses_favour_over():
    r = offensive_form(_bundle({"ortg_last10": 120.0}, {"ortg_last10": 119.0}))
    assert r.raw_values["delta"] == pytest.approx(5.0)
    assert r.signal == pytest.approx(math.tanh(0.5))


def test_defensive_erosion_blends_injuries():
    r = defensive_erosion(_bundle(
        {"drtg": 116.5, "injury_defense_impact": 0.2},
        {"drtg": 116.5, "injury_defense_impact": 0.1},
    ))
    # 0.7 * 2.0 + 0.3 * 10 * 0.3
    assert r.raw_values["delta"] == pytest.approx(2.3)
    assert r.score_a > 0


def test_defensive_erosion_rejects_negative_injury():
    r = defensive_erosion(_bundle({"injury_defense_impact": -0.5}, {}))
    assert r.status is FactorStatus.BAD_INPUT


def test_three_point_env_volume_and_variance():
    r = three_point_env(_bundle(
        {"three_par": 0.46, "opp_three_par": 0.44, "three_pct_last10": 0.42},
        {"three_par": 0.45, "opp_three_par": 0.45, "three_pct_last10": 0.32},
    ))
    assert r.raw_values["env_rate"] == pytest.approx(0.45)
    assert r.raw_values["hot_var"] == pytest.approx(0.05 - 0.036)
    assert r.signal > 0


def test_whistle_env_low_free_throw_rate_favours_under():
    r = whistle_env(_bundle(
        {"ftr": 0.20, "opp_ftr": 0.22},
        {"ftr": 0.21, "opp_ftr": 0.21},
    ))
    assert r.raw_values["ftr_env"] == pytest.approx(0.21)
    assert r.favoured_side == "under"
    assert r.score_b <= 1.0


# ---------------------------------------------------------------------------
# Rest
# ---------------------------------------------------------------------------

class TestRest:
    """Rest scores and fatigue labels"""

    @pytest.mark.parametrize("days,score", [(0, -2.0), (1, 0.0), (2, 0.5), (3, 1.0), (7, 1.0)])
    def test_rest_score_table(self, days, score):
        assert rest_score(days) == score

    def test_fatigue_levels(self):
        assert fatigue_level(0, 0, True, True) == "SEVERE"
        assert fatigue_level(0, 2, True, False) == "MODERATE"
        assert fatigue_level(1, 3, False, False) == "MILD"
        assert fatigue_level(2, 3, False, False) == "NONE"

    def test_both_back_to_back_favours_under(self):
        r = rest_advantage(_bundle(
            {"rest_days": 2, "is_back_to_back": True},
            {"rest_days": 0},
        ))
        assert r.raw_values["delta"] == pytest.approx(-4.0)
        assert r.favoured_side == "under"
        assert "SEVERE" in r.rationale

    def test_well_rested_favours_over(self):
        r = rest_advantage(_bundle({"rest_days": 3}, {"rest_days": 2}))
        assert r.raw_values["delta"] == pytest.approx(1.5)
        assert r.favoured_side == "over"

    def test_numpy_integer_rest_days(self):
        r = rest_advantage(_bundle({"rest_days": np.int64(3)}, {"rest_days": np.int64(2)}))
        assert r.status is FactorStatus.OK
        assert r.raw_values["delta"] == pytest.approx(1.5)

    def test_missing_rest_is_neutral(self):
        r = rest_advantage(_bundle())
        assert r.signal == 0.0
        assert set(r.fallbacks) == {"away.rest_days", "home.rest_days"}


# ---------------------------------------------------------------------------
# Library-wide properties
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("factor", ALL_TOTALS)
def test_league_average_input_is_neutral(factor):
    r = factor(_bundle())
    assert r.status is FactorStatus.OK
    assert r.signal == pytest.approx(0.0, abs=1e-9)
    assert r.score_a == pytest.approx(0.0, abs=1e-9)
    assert r.score_b == pytest.approx(0.0, abs=1e-9)


@pytest.mark.parametrize("factor", ALL_TOTALS)
def test_extreme_inputs_stay_bounded(factor):
    extreme = {
        "pace": 140.0, "ortg_last10": 150.0, "drtg": 140.0, "three_par": 0.9,
        "opp_three_par": 0.9, "three_pct_last10": 0.6, "ftr": 0.8, "opp_ftr": 0.8,
        "rest_days": 5, "injury_defense_impact": 1.0,
    }
    r = factor(_bundle(extreme, extreme))
    assert -1.0 <= r.signal <= 1.0
    assert min(r.score_a, r.score_b) == 0.0

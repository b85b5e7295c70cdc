"""
Tests for fractional Kelly sizing and unit conversion.
Run with: pytest tests/test_kelly.py -v
"""

import pytest

from capper_engine.core.kelly import (
    full_kelly,
    kelly_fraction,
    kelly_stake,
    stake_to_units,
    units_to_dollars,
)


class TestFullKelly:
    def test_even_money_edge(self):
        # b = 1, p = 0.6 → f* = 0.2
        assert full_kelly(0.6, 2.0) == pytest.approx(0.2)

    def test_negative_ev_is_negative(self):
        assert full_kelly(0.45, 1.909) < 0

    @pytest.mark.parametrize("p", [0.0, 1.0, -0.1, 1.5])
    def test_probability_domain(self, p):
        with pytest.raises(ValueError):
            full_kelly(p, 2.0)

    def test_decimal_odds_domain(self):
        with pytest.raises(ValueError):
            full_kelly(0.6, 1.0)


class TestKellyFraction:
    """Quarter Kelly with a hard cap; never negative"""

    def test_quarter_kelly(self):
        assert kelly_fraction(0.55, 1.909) == pytest.approx(0.0137, abs=1e-4)

    def test_cap_applies(self):
        assert kelly_fraction(0.55, 1.909, fraction=1.0) == pytest.approx(0.05)

    def test_negative_edge_is_zero(self):
        assert kelly_fraction(0.45, 1.909) == 0.0

    def test_negative_fraction_raises(self):
        with pytest.raises(ValueError):
            kelly_fraction(0.55, 1.909, fraction=-0.1)


class TestKellyStake:
    def test_stake_in_dollars(self):
        assert kelly_stake(0.55, 1.909, 1000.0) == pytest.approx(13.74, abs=0.01)

    def test_never_negative(self):
        assert kelly_stake(0.30, 1.909, 1000.0) == 0.0

    def test_empty_bankroll(self):
        assert kelly_stake(0.60, 2.0, 0.0) == 0.0


class TestUnits:
    """One unit is 1% of bankroll; half-unit steps, capped"""

    def test_rounds_down_to_half_units(self):
        assert stake_to_units(13.74, 1000.0) == 1.0
        assert stake_to_units(27.0, 1000.0) == 2.5

    def test_capped(self):
        assert stake_to_units(90.0, 1000.0) == 5.0
        assert stake_to_units(90.0, 1000.0, max_units=3.0) == 3.0

    def test_zero_stake(self):
        assert stake_to_units(0.0, 1000.0) == 0.0

    def test_bad_unit_pct(self):
        with pytest.raises(ValueError):
            stake_to_units(10.0, 1000.0, unit_pct=0.0)

    def test_units_to_dollars(self):
        assert units_to_dollars(2.5, 1000.0) == pytest.approx(25.0)
        assert units_to_dollars(1.0, 2000.0, unit_pct=2.0) == pytest.approx(40.0)

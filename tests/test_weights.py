"""
Tests for the weight budget normalizer.
Run with: pytest tests/test_weights.py -v
"""

import pytest

from capper_engine.services.profiles import FactorConfig
from capper_engine.services.weights import BUDGET_TOLERANCE, budget_sum, normalize, set_enabled

# Float slack on top of the 0.01 budget tolerance.
TOL = BUDGET_TOLERANCE + 1e-9


def _cfg(key, weight, enabled=True):
    return FactorConfig(key=key, enabled=enabled, weight=weight, data_source="stats", max_points=1.0)


def _weights(configs):
    return {c.key: c.weight for c in configs}


class TestNormalize:
    """Enabled, non-market-edge weights always sum to the budget"""

    def test_equal_weights_example(self):
        out = normalize([_cfg("a", 20), _cfg("b", 20), _cfg("c", 20)], 250)
        assert budget_sum(out) == pytest.approx(250.0, abs=TOL)
        assert [c.weight for c in out] == [83.33, 83.33, 83.33]

    def test_proportional_rescale(self):
        out = normalize([_cfg("a", 10), _cfg("b", 30)], 100)
        assert _weights(out) == {"a": 25.0, "b": 75.0}

    def test_input_not_mutated(self):
        configs = [_cfg("a", 10), _cfg("b", 30)]
        normalize(configs, 100)
        assert configs[0].weight == 10

    def test_zero_enabled_enables_all(self):
        out = normalize([_cfg("a", 0, False), _cfg("b", 0, False)], 250)
        assert all(c.enabled for c in out)
        assert _weights(out) == {"a": 125.0, "b": 125.0}

    def test_enabled_with_zero_weights_split_equally(self):
        out = normalize([_cfg("a", 0), _cfg("b", 0), _cfg("c", 40, False)], 100)
        assert _weights(out) == {"a": 50.0, "b": 50.0, "c": 0.0}

    def test_disabled_weight_forced_to_zero(self):
        out = normalize([_cfg("a", 50), _cfg("b", 70, False)], 250)
        assert _weights(out) == {"a": 250.0, "b": 0.0}

    def test_idempotent(self):
        once = normalize([_cfg("a", 17), _cfg("b", 29), _cfg("c", 3), _cfg("d", 5, False)], 250)
        twice = normalize(once, 250)
        assert _weights(twice) == _weights(once)

    @pytest.mark.parametrize("raw", [[1, 1, 1], [7, 13, 29, 41, 3, 3, 3], [0.01, 99.99], [33, 33, 33, 1]])
    def test_budget_invariant(self, raw):
        out = normalize([_cfg(f"f{i}", w) for i, w in enumerate(raw)], 250)
        assert abs(budget_sum(out) - 250) <= TOL
        assert all(c.weight >= 0 for c in out)

    def test_drift_skips_factor_too_small_to_absorb_it(self):
        # six 41.67 shares overshoot by 0.02; the leading zero weight cannot take it
        out = normalize([_cfg("a", 0)] + [_cfg(f"f{i}", 1) for i in range(6)], 250)
        assert all(c.weight >= 0 for c in out)
        assert out[0].weight == 0.0
        assert out[1].weight == pytest.approx(41.65)
        assert [c.weight for c in out[2:]] == [41.67] * 5
        assert abs(budget_sum(out) - 250) <= TOL
        assert _weights(normalize(out, 250)) == _weights(out)

    def test_market_edge_fixed_outside_pool(self):
        out = normalize([_cfg("edgeVsMarket", 5, False), _cfg("a", 10), _cfg("b", 10)], 250)
        edge = out[0]
        assert edge.enabled and edge.weight == 100
        assert budget_sum(out) == pytest.approx(250.0)

    def test_non_positive_budget_raises(self):
        with pytest.raises(ValueError):
            normalize([_cfg("a", 10)], 0)

    def test_empty_list(self):
        assert normalize([], 250) == []


class TestSetEnabled:
    def test_disable_redistributes(self):
        base = normalize([_cfg("a", 20), _cfg("b", 20), _cfg("c", 10)], 250)
        out = set_enabled(base, "b", False, 250)
        w = _weights(out)
        assert w["b"] == 0.0
        assert w["a"] + w["c"] == pytest.approx(250.0, abs=TOL)
        assert w["a"] == pytest.approx(2 * w["c"], abs=0.02)

    def test_enable_joins_pool(self):
        base = normalize([_cfg("a", 20), _cfg("b", 0, False)], 100)
        out = set_enabled(base, "b", True, 100)
        # b joins with weight 0, so the whole budget stays on a
        assert _weights(out) == {"a": 100.0, "b": 0.0}

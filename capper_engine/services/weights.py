"""
Weight budget normalizer — keeps a profile's enabled factor weights on budget.

Enabled, non-market-edge weights must sum to the budget (default 250)
within 0.01.  Market-edge factors are always enabled at weight 100 and sit
outside the pool.  Disabled factors always carry weight 0.

Three cases, in order:

1. No budget-eligible factor enabled → enable all of them, equal split.
2. Enabled weights sum to zero → equal split across the enabled ones.
3. Off budget → rescale by ``budget / current_sum`` and round to 2 dp.
   A set already within tolerance keeps its weights.

After every case, rounding drift larger than the tolerance is folded into
the first enabled factor that can absorb it without going below zero, so
the invariant holds exactly and no weight turns negative.  Normalizing an
already-normalized set is a no-op.
"""

import logging
from dataclasses import replace
from typing import Callable, List, Sequence

from capper_engine.services.catalog import MARKET_EDGE_WEIGHT, is_market_edge
from capper_engine.services.profiles import FactorConfig

logger = logging.getLogger(__name__)

DEFAULT_BUDGET = 250.0
BUDGET_TOLERANCE = 0.01


def normalize(
    configs: Sequence[FactorConfig],
    budget: float = DEFAULT_BUDGET,
    *,
    market_edge: Callable[[str], bool] = is_market_edge,
) -> List[FactorConfig]:
    """Return a normalized copy of ``configs`` in the same order.

    Args:
        configs: Profile factor configs (not mutated).
        budget: Target sum of enabled, non-market-edge weights.
        market_edge: Predicate identifying fixed-weight market-edge keys.

    Raises:
        ValueError: If ``budget`` is not positive.

    Examples::

        3 enabled at 20/20/20, budget 250  →  83.33 / 83.33 / 83.33
        2 enabled at 10/30, budget 100     →  25.00 / 75.00
    """
    if budget <= 0:
        raise ValueError(f"Weight budget must be > 0, got {budget!r}")

    out = [replace(c) for c in configs]
    pool = [c for c in out if not market_edge(c.key)]

    for config in out:
        if market_edge(config.key):
            config.enabled = True
            config.weight = MARKET_EDGE_WEIGHT

    if not pool:
        return out

    enabled = [c for c in pool if c.enabled]
    if not enabled:
        logger.info("No factors enabled, enabling all %d at an equal split", len(pool))
        for config in pool:
            config.enabled = True
        enabled = pool
        _equal_split(enabled, budget)
    else:
        total = sum(c.weight for c in enabled)
        if total <= 0:
            _equal_split(enabled, budget)
        elif abs(total - budget) > BUDGET_TOLERANCE:
            factor = budget / total
            for config in enabled:
                config.weight = round(config.weight * factor, 2)

    for config in pool:
        if not config.enabled:
            config.weight = 0.0

    drift = round(budget - sum(c.weight for c in enabled), 2)
    if abs(drift) > BUDGET_TOLERANCE:
        target = _drift_target(enabled, drift)
        target.weight = round(target.weight + drift, 2)
        logger.debug("Folded %.2f rounding drift into %s", drift, target.key)

    return out


def _drift_target(enabled: List[FactorConfig], drift: float) -> FactorConfig:
    """First enabled factor that can absorb ``drift`` without going negative."""
    for config in enabled:
        if config.weight + drift >= 0:
            return config
    return max(enabled, key=lambda c: c.weight)


def _equal_split(configs: List[FactorConfig], budget: float) -> None:
    share = round(budget / len(configs), 2)
    for config in configs:
        config.weight = share


def budget_sum(configs: Sequence[FactorConfig], *, market_edge: Callable[[str], bool] = is_market_edge) -> float:
    """Sum of enabled, non-market-edge weights."""
    return sum(c.weight for c in configs if c.enabled and not market_edge(c.key))


def set_enabled(
    configs: Sequence[FactorConfig],
    key: str,
    enabled: bool,
    budget: float = DEFAULT_BUDGET,
) -> List[FactorConfig]:
    """Toggle one factor and re-normalize the rest of the pool."""
    toggled = [replace(c, enabled=enabled) if c.key == key else replace(c) for c in configs]
    return normalize(toggled, budget)

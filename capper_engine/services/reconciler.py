"""
Edge-vs-market reconciler — folds the factor model against the market line.

This is the one place where the *aggregate* output of other factors is
itself an input::

    predicted_line = team baseline + Σ weighted factor points
    edge_pts       = predicted_line − market_line
    signal         = clamp(edge_pts / scale, −2, 2)

The market-edge factor is applied last, always at weight 100, outside the
weight budget.  Its signal range is twice an ordinary factor's, and its
directional score (same single-positive-score rule) tops out at
``max_points`` when the signal saturates at ±2.

Conventions: totals lines are game totals (edge > 0 → OVER).  Spread lines
are quoted from the home side, so the market-implied *away* margin equals
the home spread number (edge > 0 → AWAY).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from capper_engine.core.league_config import LeagueConfig
from capper_engine.core.signal_math import clamp, directional_scores, is_saturated, sigmoid
from capper_engine.factors.base import BetType, FactorComputationResult

logger = logging.getLogger(__name__)

#: Market-edge signals live in [-2, 2].
EDGE_SIGNAL_BOUND = 2.0

#: Ceiling of the market-edge directional score.
EDGE_MAX_POINTS = 5.0

EDGE_KEYS: Dict[BetType, str] = {
    BetType.TOTAL: "edgeVsMarket",
    BetType.SPREAD: "edgeVsMarketSpread",
}


@dataclass(frozen=True)
class MarketEdgeResult:
    """Reconciled line and the market-edge factor score."""

    key: str
    bet_type: BetType
    baseline: float
    factor_points: float
    predicted_line: float
    market_line: float
    edge_pts: float
    signal: float
    score_a: float
    score_b: float
    weight: float = 100.0
    caps_applied: bool = False
    rationale: str = ""
    raw_values: Dict[str, float] = field(default_factory=dict)

    @property
    def favoured_side(self) -> Optional[str]:
        if self.score_a > 0:
            return self.bet_type.sides[0]
        if self.score_b > 0:
            return self.bet_type.sides[1]
        return None


def reconcile(
    weighted_points: float,
    market_line: float,
    team_baseline: float,
    *,
    bet_type: BetType,
    league: Optional[LeagueConfig] = None,
    max_points: float = EDGE_MAX_POINTS,
) -> MarketEdgeResult:
    """Compare the factor-adjusted prediction with the market.

    Args:
        weighted_points: Σ ``result.weighted_points`` for the bet type
            (signed toward over / away).
        market_line: Total line, or home spread for SPREAD.
        team_baseline: Zero-factor prior: predicted total, or predicted
            away margin for SPREAD.
        bet_type: ``TOTAL`` or ``SPREAD``.
        league: Supplies edge scales and total bounds.
        max_points: Score ceiling at a saturated (±2) signal.

    Examples::

        reconcile(3.0, 220.5, 221.0, bet_type=BetType.TOTAL)
          → predicted 224.0, edge +3.5, signal 0.70, over score 1.75
    """
    league = league or LeagueConfig.nba()
    if bet_type is BetType.TOTAL:
        raw_prediction = team_baseline + weighted_points
        predicted = clamp(raw_prediction, league.total_floor, league.total_ceiling)
        scale = league.total_edge_scale
    elif bet_type is BetType.SPREAD:
        raw_prediction = predicted = team_baseline + weighted_points
        scale = league.spread_edge_scale
    else:
        raise ValueError(f"Market-edge reconciliation is undefined for {bet_type.value}")

    edge_pts = predicted - market_line
    signal = clamp(edge_pts / scale, -EDGE_SIGNAL_BOUND, EDGE_SIGNAL_BOUND)
    score_a, score_b = directional_scores(signal / EDGE_SIGNAL_BOUND, max_points)

    side_a, side_b = bet_type.sides
    label = "total" if bet_type is BetType.TOTAL else "away margin"
    rationale = (
        f"Edge {edge_pts:+.1f} pts (pred {label} {predicted:.1f} vs market {market_line:g})"
    )
    result = MarketEdgeResult(
        key=EDGE_KEYS[bet_type],
        bet_type=bet_type,
        baseline=team_baseline,
        factor_points=weighted_points,
        predicted_line=predicted,
        market_line=market_line,
        edge_pts=edge_pts,
        signal=signal,
        score_a=score_a,
        score_b=score_b,
        caps_applied=is_saturated(signal, EDGE_SIGNAL_BOUND) or predicted != raw_prediction,
        rationale=rationale,
        raw_values={
            "baseline": team_baseline,
            "factor_points": weighted_points,
            "scale": scale,
        },
    )
    logger.debug(
        "Reconciled %s: %s → %s side %s",
        bet_type.value, rationale, side_a if score_a else side_b if score_b else "none",
        f"{signal:+.2f}",
    )
    return result


def edge_confidence(
    factors: Iterable[FactorComputationResult],
    edge: Optional[MarketEdgeResult] = None,
    *,
    scaling: float = 2.5,
) -> float:
    """Directional confidence in ``[0, 5]``; 2.5 means no lean.

    ``edge_raw = Σ weight/100 · signal`` (plus the market-edge signal at
    weight 100), mapped through ``5 · sigmoid(scaling · edge_raw)``.  Values
    above 2.5 lean to side A (over / away).
    """
    edge_raw = sum(f.weight / 100.0 * f.signal for f in factors)
    if edge is not None:
        edge_raw += edge.weight / 100.0 * edge.signal
    return 5.0 * sigmoid(scaling * edge_raw)

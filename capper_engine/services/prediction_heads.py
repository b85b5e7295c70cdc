"""
Prediction heads — one independently gated candidate bet per bet type.

Each head compares a model line with the market line, converts the
deviation into a win probability through a normal link over the head's
standard deviation, prices it against the offered odds and runs the
ordered gates:

    1. minimum EV (moneyline favourites also may not lay past the limit)
    2. minimum |deviation| (spread / total only)
    3. slippage: EV must survive a 0.03 drop in decimal price
    4. attribution: factor points must agree with the deviation and
       explain at least the structural share of it

Every failed gate appends its reason; a head with any failure is excluded
from selection.  Positive deviation always means side A (over / away).
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from scipy.stats import norm

from capper_engine.core.league_config import LeagueConfig
from capper_engine.core.odds_math import (
    expected_value,
    remove_vig,
    slippage_test,
)
from capper_engine.core.signal_math import clamp, is_finite, logit
from capper_engine.data_bundle import MarketSnapshot
from capper_engine.factors.base import BetType

logger = logging.getLogger(__name__)

PASSED_REASON = "All gates passed"
NO_LINE_REASON = "No market line"
NO_MODEL_REASON = "Model line unavailable"

# Keeps logit() and Kelly sizing finite for near-certain probabilities.
_PROB_EPS = 1e-6


@dataclass
class PredictionHead:
    """Gated evaluation of one bet type."""

    bet_type: BetType
    selection: str = ""
    side: Optional[str] = None
    true_line: Optional[float] = None
    market_line: Optional[float] = None
    deviation: float = 0.0
    win_probability: float = 0.0
    expected_value: float = 0.0
    offered_odds: Optional[int] = None
    sigma: float = 0.0
    factor_points: float = 0.0
    structural_share: float = 0.0
    failures: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.offered_odds is not None and not self.failures

    @property
    def ev_percentage(self) -> float:
        return self.expected_value * 100.0

    @property
    def threshold_reason(self) -> str:
        return PASSED_REASON if self.passed else "; ".join(self.failures)


def structural_share(factor_points: float, deviation: float) -> float:
    """Fraction of ``deviation`` explained by factor points (0 if they disagree)."""
    if deviation == 0 or factor_points * deviation <= 0:
        return 0.0
    return min(1.0, factor_points / deviation)


def _cover_probability(deviation: float, sigma: float) -> float:
    return min(float(norm.cdf(abs(deviation) / sigma)), 1.0 - _PROB_EPS)


def _missing(bet_type: BetType, reason: str = NO_LINE_REASON) -> PredictionHead:
    return PredictionHead(bet_type=bet_type, failures=[reason])


def _unusable(bet_type: BetType, model_line: float, *market_lines: Optional[float]) -> Optional[PredictionHead]:
    """Failed head when a line is missing or non-finite, else ``None``."""
    if any(line is None or not is_finite(line) for line in market_lines):
        return _missing(bet_type)
    if not is_finite(model_line):
        logger.warning("Non-finite %s model line %r", bet_type.value, model_line)
        return _missing(bet_type, NO_MODEL_REASON)
    return None


def _apply_gates(
    head: PredictionHead,
    *,
    min_ev: float,
    min_deviation: Optional[float],
    attribution_deviation: float,
    league: LeagueConfig,
) -> PredictionHead:
    if head.expected_value < min_ev:
        head.failures.append(f"EV {head.ev_percentage:.2f}% < {min_ev * 100:.1f}%")
    if head.bet_type is BetType.MONEYLINE and head.offered_odds < league.max_moneyline_lay:
        head.failures.append(f"Laying {head.offered_odds} worse than {league.max_moneyline_lay}")
    if min_deviation is not None and abs(head.deviation) < min_deviation:
        head.failures.append(f"|Δ| {abs(head.deviation):.2f} < {min_deviation:g}")
    if not slippage_test(head.win_probability, head.offered_odds, slippage=league.slippage).passes:
        head.failures.append("Fails slippage test")

    head.structural_share = structural_share(head.factor_points, attribution_deviation)
    if head.structural_share < league.min_structural_share:
        head.failures.append(
            f"Only {head.structural_share * 100:.1f}% structural edge "
            f"(need {league.min_structural_share * 100:.0f}%+)"
        )
    return head


# ---------------------------------------------------------------------------
# Heads
# ---------------------------------------------------------------------------

def spread_head(
    predicted_away_margin: float,
    factor_points: float,
    market: MarketSnapshot,
    sigma: float,
    *,
    league: Optional[LeagueConfig] = None,
    away_team: str = "away",
    home_team: str = "home",
) -> PredictionHead:
    """Against-the-spread head.

    ``market.home_spread`` of -4.5 means the market expects the away team to
    lose by 4.5, so the market away margin is the spread number itself.
    """
    league = league or LeagueConfig.nba()
    unusable = _unusable(BetType.SPREAD, predicted_away_margin, market.home_spread)
    if unusable is not None:
        return unusable

    deviation = predicted_away_margin - market.home_spread
    if deviation > 0:
        side, odds = "away", market.away_spread_odds
        selection = f"{away_team} {-market.home_spread:+g}"
    else:
        side, odds = "home", market.home_spread_odds
        selection = f"{home_team} {market.home_spread:+g}"

    p = _cover_probability(deviation, sigma)
    head = PredictionHead(
        bet_type=BetType.SPREAD,
        selection=selection,
        side=side,
        true_line=predicted_away_margin,
        market_line=market.home_spread,
        deviation=deviation,
        win_probability=p,
        expected_value=expected_value(p, odds),
        offered_odds=odds,
        sigma=sigma,
        factor_points=factor_points,
    )
    return _apply_gates(
        head,
        min_ev=league.min_ev_spread,
        min_deviation=league.min_spread_deviation,
        attribution_deviation=deviation,
        league=league,
    )


def total_head(
    predicted_total: float,
    factor_points: float,
    market: MarketSnapshot,
    sigma: float,
    *,
    league: Optional[LeagueConfig] = None,
) -> PredictionHead:
    league = league or LeagueConfig.nba()
    unusable = _unusable(BetType.TOTAL, predicted_total, market.total_line)
    if unusable is not None:
        return unusable

    deviation = predicted_total - market.total_line
    if deviation > 0:
        side, odds = "over", market.over_odds
    else:
        side, odds = "under", market.under_odds

    p = _cover_probability(deviation, sigma)
    head = PredictionHead(
        bet_type=BetType.TOTAL,
        selection=f"{side.upper()} {market.total_line:g}",
        side=side,
        true_line=predicted_total,
        market_line=market.total_line,
        deviation=deviation,
        win_probability=p,
        expected_value=expected_value(p, odds),
        offered_odds=odds,
        sigma=sigma,
        factor_points=factor_points,
    )
    return _apply_gates(
        head,
        min_ev=league.min_ev_total,
        min_deviation=league.min_total_deviation,
        attribution_deviation=deviation,
        league=league,
    )


def moneyline_head(
    predicted_away_margin: float,
    factor_points: float,
    market: MarketSnapshot,
    sigma: float,
    *,
    league: Optional[LeagueConfig] = None,
    away_team: str = "away",
    home_team: str = "home",
) -> PredictionHead:
    """Straight-up winner head.

    Deviation lives in log-odds space (model vs vig-free market for the
    away side).  Attribution is measured in margin points: the market's
    implied away margin is ``σ · Φ⁻¹(fair away prob)``.
    """
    league = league or LeagueConfig.nba()
    unusable = _unusable(
        BetType.MONEYLINE, predicted_away_margin, market.home_moneyline, market.away_moneyline,
    )
    if unusable is not None:
        return unusable

    fair_away, _ = remove_vig(market.away_moneyline, market.home_moneyline)
    fair_away = clamp(fair_away, _PROB_EPS, 1.0 - _PROB_EPS)
    model_away = clamp(float(norm.cdf(predicted_away_margin / sigma)), _PROB_EPS, 1.0 - _PROB_EPS)

    deviation = logit(model_away) - logit(fair_away)
    if deviation > 0:
        side, odds, p, team = "away", market.away_moneyline, model_away, away_team
    else:
        side, odds, p, team = "home", market.home_moneyline, 1.0 - model_away, home_team

    market_margin = sigma * float(norm.ppf(fair_away))
    head = PredictionHead(
        bet_type=BetType.MONEYLINE,
        selection=f"{team} ML",
        side=side,
        true_line=model_away,
        market_line=fair_away,
        deviation=deviation,
        win_probability=p,
        expected_value=expected_value(p, odds),
        offered_odds=odds,
        sigma=sigma,
        factor_points=factor_points,
    )
    min_ev = league.min_ev_moneyline_dog if odds > 0 else league.min_ev_moneyline_fav
    return _apply_gates(
        head,
        min_ev=min_ev,
        min_deviation=None,
        attribution_deviation=predicted_away_margin - market_margin,
        league=league,
    )


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def select_best(heads: Sequence[PredictionHead]) -> Optional[PredictionHead]:
    """Highest-EV passing head, or ``None``."""
    passing = [h for h in heads if h.passed]
    if not passing:
        return None
    best = max(passing, key=lambda h: h.expected_value)
    logger.debug("Selected %s %s (EV %.2f%%)", best.bet_type.value, best.selection, best.ev_percentage)
    return best


def no_pick_reason(heads: Sequence[PredictionHead]) -> str:
    """``"spread: … | total: … | moneyline: …"`` for a slate with no pick."""
    return " | ".join(f"{h.bet_type.value.lower()}: {h.threshold_reason}" for h in heads)

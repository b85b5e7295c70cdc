"""
Pre-market score model — predicts both scores before looking at any line.

Possession-based: ``points = pace × expected efficiency / 100`` plus context
adjustments (home court, rest, travel, altitude).  Expected efficiency is a
team's ORtg scaled by how the opponent's DRtg compares with the league::

    eff_home = home_ORtg × away_DRtg / league_DRtg

The prediction supplies the team-specific baseline the reconciler adds
factor points to, and the variance the prediction heads price with.

Team inputs go through the same domain checks as the factors: a missing,
non-finite or non-positive pace/rating is replaced by the league anchor
and named in :attr:`ScorePrediction.fallbacks`, so one bad statistic can
never turn the baseline into NaN.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from scipy.stats import norm

from capper_engine.core.league_config import LeagueConfig
from capper_engine.core.signal_math import is_finite
from capper_engine.data_bundle import DataBundle, MatchupContext, TeamStats
from capper_engine.services.orchestrator import DefaultBaseline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScorePrediction:
    """Model scores and derived lines.

    ``true_spread`` is home minus away (positive = home wins by that much).
    ``fallbacks`` names the team inputs (``"away.pace"``) that were missing or
    unusable and were replaced by the league anchor.
    """

    home_score: float
    away_score: float
    pace: float
    sigma_spread: float
    sigma_total: float
    home_win_prob: float
    adjustments: Dict[str, float] = field(default_factory=dict)
    fallbacks: Tuple[str, ...] = ()

    @property
    def true_spread(self) -> float:
        return self.home_score - self.away_score

    @property
    def true_total(self) -> float:
        return self.home_score + self.away_score

    @property
    def away_margin(self) -> float:
        return self.away_score - self.home_score


class ScoreModel:
    def __init__(self, league: Optional[LeagueConfig] = None):
        self.league = league or LeagueConfig.nba()

    # ------------------------------------------------------------------ #

    def predict(self, bundle: DataBundle, ctx: Optional[MatchupContext] = None) -> ScorePrediction:
        altitude = bool(ctx and ctx.altitude_venue)
        fallbacks: List[str] = []
        pace = self.predict_pace(bundle, altitude, fallbacks=fallbacks)

        avg = bundle.league
        home_o = _positive(bundle.home, "home", "ortg", avg.ortg, fallbacks)
        away_o = _positive(bundle.away, "away", "ortg", avg.ortg, fallbacks)
        home_d = _positive(bundle.home, "home", "drtg", avg.drtg, fallbacks)
        away_d = _positive(bundle.away, "away", "drtg", avg.drtg, fallbacks)

        home_eff = home_o * away_d / avg.drtg
        away_eff = away_o * home_d / avg.drtg

        home_adj = self.context_adjustments(bundle.home, is_home=True, altitude=altitude)
        away_adj = self.context_adjustments(bundle.away, is_home=False, altitude=altitude)

        home_score = pace * home_eff / 100.0 + sum(home_adj.values())
        away_score = pace * away_eff / 100.0 + sum(away_adj.values())

        b2b = bundle.home.is_back_to_back or bundle.away.is_back_to_back
        sigma_spread, sigma_total = self.estimate_variance(pace, altitude=altitude, back_to_back=b2b)
        home_win_prob = float(norm.cdf((home_score - away_score) / sigma_spread))

        adjustments = {f"home_{k}": v for k, v in home_adj.items()}
        adjustments.update({f"away_{k}": v for k, v in away_adj.items()})
        prediction = ScorePrediction(
            home_score=home_score,
            away_score=away_score,
            pace=pace,
            sigma_spread=sigma_spread,
            sigma_total=sigma_total,
            home_win_prob=home_win_prob,
            adjustments=adjustments,
            fallbacks=tuple(fallbacks),
        )
        logger.debug(
            "Score model: home %.1f away %.1f pace %.1f (σ %.2f / %.2f)",
            home_score, away_score, pace, sigma_spread, sigma_total,
        )
        return prediction

    def from_baseline(self, baseline: DefaultBaseline) -> ScorePrediction:
        """Prediction built from a league-average baseline (no bundle)."""
        home = (baseline.total - baseline.away_margin) / 2.0
        away = baseline.total - home
        sigma_spread, sigma_total = self.league.sigma_spread, self.league.sigma_total
        return ScorePrediction(
            home_score=home,
            away_score=away,
            pace=self.league.averages.pace,
            sigma_spread=sigma_spread,
            sigma_total=sigma_total,
            home_win_prob=float(norm.cdf((home - away) / sigma_spread)),
        )

    # ------------------------------------------------------------------ #

    def predict_pace(
        self,
        bundle: DataBundle,
        altitude: bool = False,
        *,
        fallbacks: Optional[List[str]] = None,
    ) -> float:
        cfg = self.league
        fallbacks = [] if fallbacks is None else fallbacks
        home_pace = _positive(bundle.home, "home", "pace", bundle.league.pace, fallbacks)
        away_pace = _positive(bundle.away, "away", "pace", bundle.league.pace, fallbacks)
        pace = home_pace * cfg.home_pace_weight + away_pace * (1.0 - cfg.home_pace_weight)
        if bundle.home.is_back_to_back or bundle.away.is_back_to_back:
            pace -= cfg.b2b_pace_penalty
        if altitude:
            pace += cfg.altitude_pace_bonus
        return pace

    def context_adjustments(self, team: TeamStats, *, is_home: bool, altitude: bool) -> Dict[str, float]:
        cfg = self.league
        rest_days = team.rest_days if is_finite(team.rest_days) else None
        travel = team.travel_miles if is_finite(team.travel_miles) else None

        adj: Dict[str, float] = {}
        if is_home:
            adj["home_court"] = cfg.home_advantage_pts
        if team.is_back_to_back or rest_days == 0:
            adj["rest"] = -cfg.b2b_points_penalty
        elif rest_days is not None and rest_days >= 3:
            adj["rest"] = cfg.rest_bonus_pts
        if travel is not None and travel > cfg.long_travel_miles:
            adj["travel"] = -cfg.travel_penalty_pts
        if altitude:
            adj["altitude"] = cfg.altitude_home_bonus if is_home else -cfg.altitude_away_penalty
        return adj

    def estimate_variance(
        self,
        pace: float,
        *,
        altitude: bool = False,
        back_to_back: bool = False,
    ) -> Tuple[float, float]:
        """``(σ_spread, σ_total)`` adjusted for tempo, altitude and fatigue."""
        sigma_spread = self.league.sigma_spread
        sigma_total = self.league.sigma_total
        if pace > 105:
            sigma_spread *= 1.05
            sigma_total *= 1.10
        elif pace < 95:
            sigma_spread *= 0.95
            sigma_total *= 0.90
        if altitude:
            sigma_spread *= 1.08
            sigma_total *= 1.05
        if back_to_back:
            sigma_spread *= 1.03
        return sigma_spread, sigma_total


def _positive(team: TeamStats, side: str, name: str, default: float, fallbacks: List[str]) -> float:
    """Team statistic that must be finite and > 0, else the league anchor."""
    value = getattr(team, name)
    if value is None:
        fallbacks.append(f"{side}.{name}")
        return default
    if not is_finite(value) or value <= 0:
        logger.warning("Unusable %s.%s=%r, using league %.1f", side, name, value, default)
        fallbacks.append(f"{side}.{name}")
        return default
    return float(value)

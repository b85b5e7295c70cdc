"""League-level configuration — every league constant in one place.

This module is the **registry** for constants that differ between
leagues.  Nowhere else in the codebase should league pace, efficiency
anchors, variance baselines or gate thresholds be hard-coded.

Architecture
------------
:class:`LeagueAverages` carries the statistical anchors a factor falls
back to when a team statistic is missing, and against which "vs league"
deltas are measured.  :class:`LeagueConfig` carries the scoring-model
context adjustments, the prediction-head variance baselines and the
gating thresholds.  Named constructors (:meth:`LeagueAverages.nba`,
:meth:`LeagueConfig.nba`) return pre-populated instances.

No field here is ever ``None``.  Every constant has a defensible default.

Typical usage::

    from capper_engine.core.league_config import LeagueConfig

    cfg = LeagueConfig.nba()

    # Override a single threshold for an A/B run:
    from dataclasses import replace
    strict = replace(cfg, min_ev_spread=0.02)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

#: League identifier strings used in profile ids and catalog scopes.
SPORT_ID_NBA: Final[str] = "nba"


@dataclass(frozen=True)
class LeagueAverages:
    """Statistical anchors for one league-season.

    Rates are fractions (0-1); ratings are points per 100 possessions;
    counting stats are per team per game.

    Attributes:
        pace: Possessions per 48 minutes.
        ortg: Offensive rating.
        drtg: Defensive rating (equals ``ortg`` in equilibrium).
        three_par: Three-point attempt rate (3PA / FGA).
        three_pct: Three-point make percentage.
        three_pct_stdev: Team-to-team stdev of 3P% over a 10-game window.
        ftr: Free-throw rate (FTA / FGA).
        efg_pct: Effective field-goal percentage.
        tov_pct: Turnovers per possession.
        oreb_pct: Offensive rebound percentage.
        dreb_pct: Defensive rebound percentage.
        assists, turnovers, steals, blocks: Per-game counts.
    """

    pace: float = 99.5
    ortg: float = 114.5
    drtg: float = 114.5
    three_par: float = 0.42
    three_pct: float = 0.36
    three_pct_stdev: float = 0.036
    ftr: float = 0.26
    efg_pct: float = 0.545
    tov_pct: float = 0.135
    oreb_pct: float = 0.245
    dreb_pct: float = 0.755
    assists: float = 26.5
    turnovers: float = 14.0
    steals: float = 8.0
    blocks: float = 5.0

    @classmethod
    def nba(cls) -> LeagueAverages:
        """NBA 2024-25 league anchors (NBA.com advanced team stats)."""
        return cls()

    @property
    def points_per_team(self) -> float:
        return self.pace * self.ortg / 100.0


@dataclass(frozen=True)
class LeagueConfig:
    """Immutable configuration bundle for a single league.

    Override via :func:`dataclasses.replace` for single-season or A/B
    tweaks.

    Attributes:
        sport_id: Short identifier (``"nba"``) used in catalog scopes.
        averages: Default :class:`LeagueAverages` used when a data bundle
            is unavailable.

        --- Score model ---
        home_pace_weight: Share of the predicted pace taken from the home
            team (away gets the remainder).
        home_advantage_pts: Home-court bonus added to the home score.
        b2b_pace_penalty: Pace drop when either team is on a back-to-back.
        altitude_pace_bonus: Pace bump at altitude venues.
        b2b_points_penalty / rest_bonus_pts / travel_penalty_pts /
        altitude_home_bonus / altitude_away_penalty: Context adjustments in
            points.
        long_travel_miles: Distance above which the travel penalty applies.

        --- Variance ---
        sigma_spread / sigma_total: Baseline standard deviations (points).

        --- Reconciler ---
        total_floor / total_ceiling: Bounds on a reconciled game total.
        total_edge_scale / spread_edge_scale: Edge (points) mapped to a
            market-edge signal of 1.0.

        --- Gates ---
        min_spread_deviation / min_total_deviation: Minimum |Δ| in points.
        min_ev_spread / min_ev_total: Minimum EV per unit.
        min_ev_moneyline_dog / min_ev_moneyline_fav: Moneyline EV floors.
        max_moneyline_lay: Most negative favourite price allowed.
        min_structural_share: Share of the deviation that identifiable
            factors must explain.
        slippage: Worst-case decimal-price move for the slippage gate.
    """

    sport_id: str = SPORT_ID_NBA
    averages: LeagueAverages = field(default_factory=LeagueAverages.nba)

    # Score model
    home_pace_weight: float = 0.52
    home_advantage_pts: float = 2.5
    b2b_pace_penalty: float = 2.0
    altitude_pace_bonus: float = 1.5
    b2b_points_penalty: float = 2.0
    rest_bonus_pts: float = 0.5
    travel_penalty_pts: float = 1.0
    long_travel_miles: float = 1500.0
    altitude_home_bonus: float = 1.5
    altitude_away_penalty: float = 1.0

    # Variance
    sigma_spread: float = 12.5
    sigma_total: float = 14.0

    # Reconciler
    total_floor: float = 180.0
    total_ceiling: float = 280.0
    total_edge_scale: float = 5.0
    spread_edge_scale: float = 3.0

    # Gates
    min_spread_deviation: float = 0.75
    min_total_deviation: float = 2.0
    min_ev_spread: float = 0.015
    min_ev_total: float = 0.015
    min_ev_moneyline_dog: float = 0.025
    min_ev_moneyline_fav: float = 0.035
    max_moneyline_lay: int = -250
    min_structural_share: float = 0.40
    slippage: float = 0.03

    @classmethod
    def nba(cls) -> LeagueConfig:
        """Return the canonical NBA configuration.

        Sources:
            * Pace / ratings: NBA.com 2024-25 advanced team stats.
            * Home court: ~2.5 pts pooled estimate.
            * σ spread 12.5 / total 14.0: closing-line residuals.
        """
        return cls()

    def __repr__(self) -> str:
        return (
            f"LeagueConfig(sport_id={self.sport_id!r}, "
            f"home_adv={self.home_advantage_pts}, "
            f"pace={self.averages.pace}, "
            f"sigma=({self.sigma_spread}, {self.sigma_total}))"
        )

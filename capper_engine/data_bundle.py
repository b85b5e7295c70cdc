"""
Raw matchup inputs — the field contract between the fetch layer and the engine.

A :class:`DataBundle` is built once per evaluation and shared read-only by
every factor.  Every team statistic is optional: a missing value falls back
to the league anchor (or a documented neutral value) and the factor records
which fields it had to fill in.

Whether a bundle exists at all is explicit: the orchestrator receives a
:data:`Bundle`, either :class:`BundleAvailable` or :class:`BundleUnavailable`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from capper_engine.core.league_config import LeagueAverages, SPORT_ID_NBA
from capper_engine.core.odds_math import STANDARD_PRICE


@dataclass(frozen=True)
class TeamStats:
    """Season / recent-form statistics for one side of a matchup.

    ``None`` means "not supplied".  Rates are fractions (0-1).
    """

    team: str = ""

    # Tempo and efficiency
    pace: Optional[float] = None
    pace_last10: Optional[float] = None
    ortg: Optional[float] = None
    ortg_last10: Optional[float] = None
    drtg: Optional[float] = None

    # Shooting environment
    three_par: Optional[float] = None
    opp_three_par: Optional[float] = None
    three_pct_last10: Optional[float] = None
    ftr: Optional[float] = None
    opp_ftr: Optional[float] = None
    efg_pct: Optional[float] = None

    # Possession battle
    tov_pct: Optional[float] = None
    oreb_pct: Optional[float] = None
    dreb_pct: Optional[float] = None

    # Per-game counts
    assists: Optional[float] = None
    turnovers: Optional[float] = None
    steals: Optional[float] = None
    blocks: Optional[float] = None

    # Form
    ppg_last3: Optional[float] = None
    ppg_last10: Optional[float] = None
    wins_last10: Optional[int] = None
    losses_last10: Optional[int] = None
    streak: Optional[int] = None          # +3 = three straight wins
    home_net_rating: Optional[float] = None
    road_net_rating: Optional[float] = None

    # Schedule
    rest_days: Optional[int] = None
    is_back_to_back: bool = False
    travel_miles: Optional[float] = None

    # Availability (0 = healthy, 1 = defence fully gutted by absences)
    injury_defense_impact: Optional[float] = None


@dataclass(frozen=True)
class DataBundle:
    """Snapshot of every raw statistic needed for one matchup."""

    away: TeamStats
    home: TeamStats
    league: LeagueAverages = field(default_factory=LeagueAverages.nba)


@dataclass(frozen=True)
class BundleAvailable:
    data: DataBundle


@dataclass(frozen=True)
class BundleUnavailable:
    reason: str = "no data bundle"


Bundle = Union[BundleAvailable, BundleUnavailable]


@dataclass(frozen=True)
class MarketSnapshot:
    """Current market lines and prices (American odds).

    ``home_spread`` is quoted from the home side: ``-4.5`` means the home
    team is favoured by 4.5.  Any ``None`` line disables the matching head.
    """

    total_line: Optional[float] = None
    over_odds: int = STANDARD_PRICE
    under_odds: int = STANDARD_PRICE
    home_spread: Optional[float] = None
    away_spread_odds: int = STANDARD_PRICE
    home_spread_odds: int = STANDARD_PRICE
    home_moneyline: Optional[int] = None
    away_moneyline: Optional[int] = None


@dataclass(frozen=True)
class MatchupContext:
    """Identity of the game being evaluated."""

    game_id: str
    away_team: str
    home_team: str
    sport: str = SPORT_ID_NBA
    altitude_venue: bool = False

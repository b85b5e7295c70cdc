"""
Spread factors — signals for the point spread (away / home).

Every factor is a difference between the two sides, so a positive delta
argues for the AWAY team (score A) and a negative delta for the HOME team
(score B).  Swapping the teams flips the sign of every signal here.

    netRatingDiff      — pace-scaled net rating gap
    turnoverDiff       — ball security
    reboundingDiff     — total rebounding rate
    shootingMomentum   — shooting efficiency plus scoring trend
    homeAwaySplits     — road form of the visitor vs home form of the host
    paceMismatch       — tempo control
    fourFactorsDiff    — Dean Oliver four-factor composite
    momentumIndex      — streak and last-10 record
    defensivePressure  — steals and blocks
    assistEfficiency   — assist-to-turnover ratio
"""

from typing import Final

from capper_engine.core.signal_math import clamp
from capper_engine.data_bundle import DataBundle
from capper_engine.factors.base import (
    BetType,
    FactorComputationResult,
    StatReader,
    bad_input_result,
    build_result,
    invalid_inputs,
)

_BET = BetType.SPREAD

#: Four-factor weights (eFG%, TOV%, OREB%, FTr).  TOV% is a negative.
FOUR_FACTOR_WEIGHTS: Final[dict] = {
    "efg_pct": 0.50,
    "tov_pct": -0.30,
    "oreb_pct": 0.15,
    "ftr": 0.05,
}


def _favoured(delta: float) -> str:
    if delta > 0:
        return "away"
    if delta < 0:
        return "home"
    return "neither side"


# ---------------------------------------------------------------------------
# Efficiency
# ---------------------------------------------------------------------------

def net_rating_diff(bundle: DataBundle) -> FactorComputationResult:
    """Net rating gap scaled to the expected number of possessions.

    ``delta = ((away ORtg − away DRtg) − (home ORtg − home DRtg)) · pace / 100``
    """
    key, name = "netRatingDiff", "Net Rating Differential"
    stats = StatReader(bundle)
    league = stats.league
    away_o, home_o = stats.both("ortg", league.ortg)
    away_d, home_d = stats.both("drtg", league.drtg)
    away_pace, home_pace = stats.both("pace", league.pace)
    raw = {
        "away_ortg": away_o, "away_drtg": away_d,
        "home_ortg": home_o, "home_drtg": home_d,
        "away_pace": away_pace, "home_pace": home_pace,
    }

    bad = invalid_inputs(raw, positive=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    away_net = away_o - away_d
    home_net = home_o - home_d
    pace = (away_pace + home_pace) / 2.0
    delta = (away_net - home_net) * pace / 100.0
    raw.update(away_net=away_net, home_net=home_net, expected_pace=pace)
    return build_result(
        key, name, _BET, delta,
        scale=3.5, safety_cap=20.0, max_points=2.0,
        raw_values=raw,
        rationale=f"Net {away_net:+.1f} (away) vs {home_net:+.1f} (home) → {delta:+.1f} pts",
        fallbacks=stats.fallbacks,
    )


def four_factors_diff(bundle: DataBundle) -> FactorComputationResult:
    """Weighted four-factor composite difference, in rating-like points."""
    key, name = "fourFactorsDiff", "Four Factors Differential"
    stats = StatReader(bundle)
    league = stats.league
    defaults = {
        "efg_pct": league.efg_pct,
        "tov_pct": league.tov_pct,
        "oreb_pct": league.oreb_pct,
        "ftr": league.ftr,
    }
    raw = {}
    for stat, default in defaults.items():
        raw[f"away_{stat}"], raw[f"home_{stat}"] = stats.both(stat, default)

    bad = invalid_inputs(raw, non_negative=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    composite = sum(
        weight * (raw[f"away_{stat}"] - raw[f"home_{stat}"])
        for stat, weight in FOUR_FACTOR_WEIGHTS.items()
    )
    delta = composite * 120.0
    raw["composite"] = composite
    return build_result(
        key, name, _BET, delta,
        scale=8.0, safety_cap=20.0, max_points=2.0,
        raw_values=raw,
        rationale=f"Four-factor edge {delta:+.2f} favours {_favoured(delta)}",
        fallbacks=stats.fallbacks,
    )


# ---------------------------------------------------------------------------
# Possession battle
# ---------------------------------------------------------------------------

def turnover_diff(bundle: DataBundle) -> FactorComputationResult:
    """Ball security: the side that turns it over less is favoured.

    ``delta = (home TOV% − away TOV%) · 100 · 1.1`` (points per turnover
    percentage point).
    """
    key, name = "turnoverDiff", "Turnover Differential"
    stats = StatReader(bundle)
    away_tov, home_tov = stats.both("tov_pct", stats.league.tov_pct)
    raw = {"away_tov_pct": away_tov, "home_tov_pct": home_tov}

    bad = invalid_inputs(raw, non_negative=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    delta = (home_tov - away_tov) * 100.0 * 1.1
    return build_result(
        key, name, _BET, delta,
        scale=5.0, safety_cap=20.0, max_points=1.0,
        raw_values=raw,
        rationale=f"TOV% {away_tov:.3f} (away) vs {home_tov:.3f} (home)",
        fallbacks=stats.fallbacks,
    )


def rebounding_diff(bundle: DataBundle) -> FactorComputationResult:
    """Total rebounding rate (OREB% + DREB%) difference in percentage points."""
    key, name = "reboundingDiff", "Rebounding Differential"
    stats = StatReader(bundle)
    league = stats.league
    away_oreb, home_oreb = stats.both("oreb_pct", league.oreb_pct)
    away_dreb, home_dreb = stats.both("dreb_pct", league.dreb_pct)
    raw = {
        "away_oreb_pct": away_oreb, "away_dreb_pct": away_dreb,
        "home_oreb_pct": home_oreb, "home_dreb_pct": home_dreb,
    }

    bad = invalid_inputs(raw, non_negative=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    delta = ((away_oreb + away_dreb) - (home_oreb + home_dreb)) * 100.0
    return build_result(
        key, name, _BET, delta,
        scale=10.0, safety_cap=30.0, max_points=1.0,
        raw_values=raw,
        rationale=f"Rebounding edge {delta:+.1f} pts favours {_favoured(delta)}",
        fallbacks=stats.fallbacks,
    )


def defensive_pressure(bundle: DataBundle) -> FactorComputationResult:
    """Disruption: ``steals·1.5 + blocks·0.8`` per game, away minus home."""
    key, name = "defensivePressure", "Defensive Pressure"
    stats = StatReader(bundle)
    league = stats.league
    away_stl, home_stl = stats.both("steals", league.steals)
    away_blk, home_blk = stats.both("blocks", league.blocks)
    raw = {
        "away_steals": away_stl, "away_blocks": away_blk,
        "home_steals": home_stl, "home_blocks": home_blk,
    }

    bad = invalid_inputs(raw, non_negative=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    away_pressure = away_stl * 1.5 + away_blk * 0.8
    home_pressure = home_stl * 1.5 + home_blk * 0.8
    delta = away_pressure - home_pressure
    raw.update(away_pressure=away_pressure, home_pressure=home_pressure)
    return build_result(
        key, name, _BET, delta,
        scale=4.0, safety_cap=10.0, max_points=1.0,
        raw_values=raw,
        rationale=f"Pressure {away_pressure:.1f} (away) vs {home_pressure:.1f} (home)",
        fallbacks=stats.fallbacks,
    )


def assist_ratio(assists: float, turnovers: float) -> float:
    """AST/TOV with a guard for zero turnovers (3.0 with assists, else 1.0)."""
    if turnovers == 0:
        return 3.0 if assists > 0 else 1.0
    return assists / turnovers


def assist_efficiency(bundle: DataBundle) -> FactorComputationResult:
    key, name = "assistEfficiency", "Assist Efficiency"
    stats = StatReader(bundle)
    league = stats.league
    away_ast, home_ast = stats.both("assists", league.assists)
    away_tov, home_tov = stats.both("turnovers", league.turnovers)
    raw = {
        "away_assists": away_ast, "away_turnovers": away_tov,
        "home_assists": home_ast, "home_turnovers": home_tov,
    }

    bad = invalid_inputs(raw, non_negative=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    away_ratio = assist_ratio(away_ast, away_tov)
    home_ratio = assist_ratio(home_ast, home_tov)
    delta = away_ratio - home_ratio
    raw.update(away_ast_tov=away_ratio, home_ast_tov=home_ratio)
    return build_result(
        key, name, _BET, delta,
        scale=0.5, safety_cap=3.0, max_points=1.0,
        raw_values=raw,
        rationale=f"AST/TOV {away_ratio:.2f} (away) vs {home_ratio:.2f} (home)",
        fallbacks=stats.fallbacks,
    )


# ---------------------------------------------------------------------------
# Form and venue
# ---------------------------------------------------------------------------

def shooting_momentum(bundle: DataBundle) -> FactorComputationResult:
    """Shooting quality (60%) blended with recent scoring trend (40%).

    ``shoot = eFG·0.7 + FTr·0.3``; ``trend = (ppg last 3 − ppg last 10) / ppg last 10``.
    """
    key, name = "shootingMomentum", "Shooting Efficiency & Momentum"
    stats = StatReader(bundle)
    league = stats.league
    ppg = league.points_per_team
    away_efg, home_efg = stats.both("efg_pct", league.efg_pct)
    away_ftr, home_ftr = stats.both("ftr", league.ftr)
    away_l3, home_l3 = stats.both("ppg_last3", ppg)
    away_l10, home_l10 = stats.both("ppg_last10", ppg)
    raw = {
        "away_efg_pct": away_efg, "home_efg_pct": home_efg,
        "away_ftr": away_ftr, "home_ftr": home_ftr,
        "away_ppg_l3": away_l3, "home_ppg_l3": home_l3,
        "away_ppg_l10": away_l10, "home_ppg_l10": home_l10,
    }

    bad = invalid_inputs(
        raw,
        positive=("away_ppg_l10", "home_ppg_l10"),
        non_negative=raw.keys(),
    )
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    shooting = (away_efg * 0.7 + away_ftr * 0.3) - (home_efg * 0.7 + home_ftr * 0.3)
    trend = (away_l3 - away_l10) / away_l10 - (home_l3 - home_l10) / home_l10
    delta = shooting * 100.0 * 0.6 + trend * 50.0 * 0.4
    raw.update(shooting_diff=shooting, trend_diff=trend)
    return build_result(
        key, name, _BET, delta,
        scale=6.0, safety_cap=20.0, max_points=1.0,
        raw_values=raw,
        rationale=f"Shooting {shooting * 100:+.1f}, trend {trend * 100:+.1f}%",
        fallbacks=stats.fallbacks,
    )


def home_away_splits(bundle: DataBundle) -> FactorComputationResult:
    """Visitor's road net rating vs the host's home net rating.

    A strong home team (large home net) pushes toward the home side.
    """
    key, name = "homeAwaySplits", "Home/Away Splits"
    stats = StatReader(bundle)
    away_road = stats.away("road_net_rating", 0.0)
    home_home = stats.home("home_net_rating", 0.0)
    raw = {"away_road_net": away_road, "home_home_net": home_home}

    bad = invalid_inputs(raw)
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    delta = away_road - home_home
    return build_result(
        key, name, _BET, delta,
        scale=6.0, safety_cap=20.0, max_points=1.0,
        raw_values=raw,
        rationale=f"Road net {away_road:+.1f} vs home net {home_home:+.1f}",
        fallbacks=stats.fallbacks,
    )


def pace_mismatch(bundle: DataBundle) -> FactorComputationResult:
    """Tempo control: the slower side tends to dictate, ``delta = −(away − home)·0.3``."""
    key, name = "paceMismatch", "Pace Mismatch"
    stats = StatReader(bundle)
    away_pace, home_pace = stats.both("pace", stats.league.pace)
    raw = {"away_pace": away_pace, "home_pace": home_pace}

    bad = invalid_inputs(raw, positive=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    gap = away_pace - home_pace
    delta = -gap * 0.3
    raw["pace_gap"] = gap
    return build_result(
        key, name, _BET, delta,
        scale=3.0, safety_cap=10.0, max_points=0.5,
        raw_values=raw,
        rationale=f"Pace gap {gap:+.1f} poss (away − home)",
        fallbacks=stats.fallbacks,
    )


def momentum_score(streak: float, wins: float, losses: float) -> float:
    """``clamp(streak, ±5)·0.5 + (W − L)/10·2.5``."""
    return clamp(streak, -5.0, 5.0) * 0.5 + (wins - losses) / 10.0 * 2.5


def momentum_index(bundle: DataBundle) -> FactorComputationResult:
    key, name = "momentumIndex", "Momentum Index"
    stats = StatReader(bundle)
    away_streak, home_streak = stats.both("streak", 0)
    away_w, home_w = stats.both("wins_last10", 5)
    away_l, home_l = stats.both("losses_last10", 5)
    raw = {
        "away_streak": away_streak, "away_wins_l10": away_w, "away_losses_l10": away_l,
        "home_streak": home_streak, "home_wins_l10": home_w, "home_losses_l10": home_l,
    }

    bad = invalid_inputs(
        raw,
        non_negative=("away_wins_l10", "away_losses_l10", "home_wins_l10", "home_losses_l10"),
    )
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    away_mom = momentum_score(away_streak, away_w, away_l)
    home_mom = momentum_score(home_streak, home_w, home_l)
    delta = away_mom - home_mom
    raw.update(away_momentum=away_mom, home_momentum=home_mom)
    return build_result(
        key, name, _BET, delta,
        scale=4.0, safety_cap=10.0, max_points=1.0,
        raw_values=raw,
        rationale=f"Momentum {away_mom:+.2f} (away) vs {home_mom:+.2f} (home)",
        fallbacks=stats.fallbacks,
    )

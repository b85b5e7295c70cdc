"""
Totals factors — signals for the game total (over / under).

Each factor compares the matchup's combined environment with the league
anchor.  A positive delta argues for the OVER (score A), a negative delta
for the UNDER (score B).

    paceIndex      — expected possessions vs league pace
    offForm        — recent offensive rating vs league ORtg
    defErosion     — defensive rating slippage, blended with injuries
    threeEnv       — three-point attempt environment and hot-hand variance
    whistleEnv     — free-throw environment
    restAdvantage  — rest / fatigue state of both teams
"""

from typing import Dict

import numpy as np

from capper_engine.data_bundle import DataBundle
from capper_engine.factors.base import (
    BetType,
    FactorComputationResult,
    StatReader,
    bad_input_result,
    build_result,
    invalid_inputs,
)

_BET = BetType.TOTAL


# ---------------------------------------------------------------------------
# Pace
# ---------------------------------------------------------------------------

def pace_index(bundle: DataBundle) -> FactorComputationResult:
    """Expected game pace vs league pace.

    ``delta = (away_pace + home_pace) / 2 − league_pace``, scale 8.
    """
    key, name = "paceIndex", "Pace Index"
    stats = StatReader(bundle)
    away_pace, home_pace = stats.both("pace", stats.league.pace)
    raw = {"away_pace": away_pace, "home_pace": home_pace, "league_pace": stats.league.pace}

    bad = invalid_inputs(raw, positive=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    expected = (away_pace + home_pace) / 2.0
    delta = expected - stats.league.pace
    raw["expected_pace"] = expected
    return build_result(
        key, name, _BET, delta,
        scale=8.0, safety_cap=30.0, max_points=2.0,
        raw_values=raw,
        rationale=f"Expected pace {expected:.1f} vs league {stats.league.pace:.1f}",
        fallbacks=stats.fallbacks,
    )


# ---------------------------------------------------------------------------
# Efficiency
# ---------------------------------------------------------------------------

def offensive_form(bundle: DataBundle) -> FactorComputationResult:
    """Recent (last 10) offensive rating of both teams vs league ORtg."""
    key, name = "offForm", "Offensive Form"
    stats = StatReader(bundle)
    league_ortg = stats.league.ortg
    away_ortg, home_ortg = stats.both("ortg_last10", league_ortg)
    raw = {"away_ortg_l10": away_ortg, "home_ortg_l10": home_ortg, "league_ortg": league_ortg}

    bad = invalid_inputs(raw, positive=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    combined = (away_ortg + home_ortg) / 2.0
    delta = combined - league_ortg
    raw["combined_ortg"] = combined
    return build_result(
        key, name, _BET, delta,
        scale=10.0, safety_cap=30.0, max_points=2.0,
        raw_values=raw,
        rationale=f"Combined ORtg {combined:.1f} vs league {league_ortg:.1f} ({delta:+.1f})",
        fallbacks=stats.fallbacks,
    )


def defensive_erosion(bundle: DataBundle) -> FactorComputationResult:
    """Defensive slippage: 70% rating delta, 30% injury-driven erosion.

    A worse (higher) combined DRtg and defenders missing both push toward
    the over.
    """
    key, name = "defErosion", "Defensive Erosion"
    stats = StatReader(bundle)
    league_drtg = stats.league.drtg
    away_drtg, home_drtg = stats.both("drtg", league_drtg)
    away_inj, home_inj = stats.both("injury_defense_impact", 0.0)
    raw = {
        "away_drtg": away_drtg,
        "home_drtg": home_drtg,
        "league_drtg": league_drtg,
        "away_injury_def": away_inj,
        "home_injury_def": home_inj,
    }

    bad = invalid_inputs(
        raw,
        positive=("away_drtg", "home_drtg", "league_drtg"),
        non_negative=("away_injury_def", "home_injury_def"),
    )
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    rating_delta = (away_drtg + home_drtg) / 2.0 - league_drtg
    injury_erosion = 10.0 * (min(away_inj, 1.0) + min(home_inj, 1.0))
    delta = 0.7 * rating_delta + 0.3 * injury_erosion
    raw.update(rating_delta=rating_delta, injury_erosion=injury_erosion)
    return build_result(
        key, name, _BET, delta,
        scale=8.0, safety_cap=30.0, max_points=2.0,
        raw_values=raw,
        rationale=f"DRtg delta {rating_delta:+.1f}, injury erosion {injury_erosion:.1f}",
        fallbacks=stats.fallbacks,
    )


# ---------------------------------------------------------------------------
# Shooting environment
# ---------------------------------------------------------------------------

def three_point_env(bundle: DataBundle) -> FactorComputationResult:
    """Three-point volume environment plus recent hot-hand variance.

    ``env = mean(away 3PAR, home 3PAR, away opp 3PAR, home opp 3PAR)``;
    ``hot_var = max(0, stdev(recent 3P%) − league stdev)``;
    ``delta = 2·(env − league 3PAR) + hot_var``.
    """
    key, name = "threeEnv", "3PT Environment"
    stats = StatReader(bundle)
    league = stats.league
    away_3par, home_3par = stats.both("three_par", league.three_par)
    away_opp, home_opp = stats.both("opp_three_par", league.three_par)
    away_pct, home_pct = stats.both("three_pct_last10", league.three_pct)
    raw = {
        "away_3par": away_3par,
        "home_3par": home_3par,
        "away_opp_3par": away_opp,
        "home_opp_3par": home_opp,
        "away_3pct_l10": away_pct,
        "home_3pct_l10": home_pct,
        "league_3par": league.three_par,
        "league_3p_stdev": league.three_pct_stdev,
    }

    bad = invalid_inputs(raw, non_negative=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    env_rate = float(np.mean([away_3par, home_3par, away_opp, home_opp]))
    recent_stdev = float(np.std([away_pct, home_pct]))
    hot_var = max(0.0, recent_stdev - league.three_pct_stdev)
    delta = 2.0 * (env_rate - league.three_par) + hot_var
    raw.update(env_rate=env_rate, recent_stdev=recent_stdev, hot_var=hot_var)
    return build_result(
        key, name, _BET, delta,
        scale=0.1, safety_cap=1.0, max_points=1.0,
        raw_values=raw,
        rationale=f"Env rate {env_rate:.3f} vs league {league.three_par:.3f}, var {hot_var:.3f}",
        fallbacks=stats.fallbacks,
    )


def whistle_env(bundle: DataBundle) -> FactorComputationResult:
    """Free-throw environment: mean of team and opponent FTr vs league FTr."""
    key, name = "whistleEnv", "Free-Throw Environment"
    stats = StatReader(bundle)
    league_ftr = stats.league.ftr
    away_ftr, home_ftr = stats.both("ftr", league_ftr)
    away_opp, home_opp = stats.both("opp_ftr", league_ftr)
    raw = {
        "away_ftr": away_ftr,
        "home_ftr": home_ftr,
        "away_opp_ftr": away_opp,
        "home_opp_ftr": home_opp,
        "league_ftr": league_ftr,
    }

    bad = invalid_inputs(raw, non_negative=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    env = (away_ftr + home_ftr + away_opp + home_opp) / 4.0
    delta = env - league_ftr
    raw["ftr_env"] = env
    return build_result(
        key, name, _BET, delta,
        scale=0.06, safety_cap=1.0, max_points=1.0,
        raw_values=raw,
        rationale=f"FTr env {env:.3f} vs league {league_ftr:.3f}",
        fallbacks=stats.fallbacks,
    )


# ---------------------------------------------------------------------------
# Rest
# ---------------------------------------------------------------------------

_REST_SCORES: Dict[int, float] = {0: -2.0, 1: 0.0, 2: 0.5}


def rest_score(days: int) -> float:
    """Energy score for a team's rest: 0 days → −2, 1 → 0, 2 → 0.5, 3+ → 1."""
    if days <= 0:
        return _REST_SCORES[0]
    return _REST_SCORES.get(days, 1.0)


def fatigue_level(away_days: int, home_days: int, away_b2b: bool, home_b2b: bool) -> str:
    if away_b2b and home_b2b:
        return "SEVERE"
    if away_b2b or home_b2b:
        return "MODERATE"
    if away_days <= 1 or home_days <= 1:
        return "MILD"
    return "NONE"


def rest_advantage(bundle: DataBundle) -> FactorComputationResult:
    """Both teams rested → more energy → over; both fatigued → under.

    Missing rest days default to 1 (normal rest).  A flagged back-to-back
    counts as 0 days regardless of the supplied day count.
    """
    key, name = "restAdvantage", "Rest Advantage"
    stats = StatReader(bundle)
    away_days, home_days = stats.both("rest_days", 1)
    raw = {"away_rest_days": away_days, "home_rest_days": home_days}

    bad = invalid_inputs(raw, non_negative=raw.keys())
    if bad:
        return bad_input_result(key, name, _BET, bad, raw)

    away_b2b = bundle.away.is_back_to_back or away_days == 0
    home_b2b = bundle.home.is_back_to_back or home_days == 0
    away_days = 0 if away_b2b else int(away_days)
    home_days = 0 if home_b2b else int(home_days)

    delta = rest_score(away_days) + rest_score(home_days)
    level = fatigue_level(away_days, home_days, away_b2b, home_b2b)

    if away_b2b and home_b2b:
        note = "Both teams on back-to-back"
    elif away_b2b:
        note = f"Away team B2B, home rested ({home_days}d)"
    elif home_b2b:
        note = f"Away rested ({away_days}d), home team B2B"
    elif away_days >= 2 and home_days >= 2:
        note = f"Both teams well rested ({away_days}d/{home_days}d)"
    else:
        note = f"Normal rest ({away_days}d/{home_days}d)"

    raw.update(
        away_rest_days=away_days,
        home_rest_days=home_days,
        rest_diff=away_days - home_days,
    )
    return build_result(
        key, name, _BET, delta,
        scale=2.0, safety_cap=4.0, max_points=2.0,
        raw_values=raw,
        rationale=f"{note} [fatigue {level}]",
        fallbacks=stats.fallbacks,
    )

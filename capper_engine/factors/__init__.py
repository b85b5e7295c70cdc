"""Factor Library — independent, stateless matchup signals.

Each synchronous factor is a pure ``DataBundle -> FactorComputationResult``
function.  The tables below map catalog keys to implementations per bet
type; keys are only unique inside one bet type.

- ``totals``  — over/under factors
- ``spread``  — away/home factors
- ``injury``  — asynchronous provider-backed availability factor
- ``base``    — result type, status tags, validation and builders
"""

from typing import Dict, Optional

from capper_engine.factors import spread, totals
from capper_engine.factors.base import BetType, FactorFn
from capper_engine.factors.injury import INJURY_KEY

TOTALS_FACTORS: Dict[str, FactorFn] = {
    "paceIndex": totals.pace_index,
    "offForm": totals.offensive_form,
    "defErosion": totals.defensive_erosion,
    "threeEnv": totals.three_point_env,
    "whistleEnv": totals.whistle_env,
    "restAdvantage": totals.rest_advantage,
}

SPREAD_FACTORS: Dict[str, FactorFn] = {
    "netRatingDiff": spread.net_rating_diff,
    "turnoverDiff": spread.turnover_diff,
    "reboundingDiff": spread.rebounding_diff,
    "shootingMomentum": spread.shooting_momentum,
    "homeAwaySplits": spread.home_away_splits,
    "paceMismatch": spread.pace_mismatch,
    "fourFactorsDiff": spread.four_factors_diff,
    "momentumIndex": spread.momentum_index,
    "defensivePressure": spread.defensive_pressure,
    "assistEfficiency": spread.assist_efficiency,
}

FACTOR_TABLES: Dict[BetType, Dict[str, FactorFn]] = {
    BetType.TOTAL: TOTALS_FACTORS,
    BetType.SPREAD: SPREAD_FACTORS,
    BetType.MONEYLINE: SPREAD_FACTORS,
}

#: Keys computed through the asynchronous provider path.
ASYNC_FACTOR_KEYS = frozenset({INJURY_KEY})


def resolve(bet_type: BetType, key: str) -> Optional[FactorFn]:
    """Synchronous implementation for ``key`` in ``bet_type``, if any."""
    return FACTOR_TABLES[bet_type].get(key)

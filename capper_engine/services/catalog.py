"""
Factor catalog — immutable definitions of every factor a capper can enable.

Keys are scoped by ``(sport, bet_type)``: the same key may appear in the
TOTAL and SPREAD scopes with different formulas, weights and ceilings
(``injuryAvailability``, ``lineMovement``).  Within one scope a key must be
unique; a violating catalog is a programmer error and raises ``ValueError``
at construction.

Defaults are a property of the catalog.  Nothing downstream should carry
its own fallback weight or ceiling.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from capper_engine.core.league_config import SPORT_ID_NBA
from capper_engine.factors.base import BetType

logger = logging.getLogger(__name__)

#: Fixed weight of market-edge factors (outside the budget pool).
MARKET_EDGE_WEIGHT = 100.0

MARKET_EDGE_KEYS = frozenset({"edgeVsMarket", "edgeVsMarketSpread"})


class FactorScope(str, Enum):
    GLOBAL = "global"
    MATCHUP = "matchup"
    TEAM = "team"


@dataclass(frozen=True)
class FactorDefinition:
    """Catalog entry.  Defined at build time, never mutated at runtime."""

    key: str
    name: str
    description: str
    sport: str
    bet_type: BetType
    scope: FactorScope
    default_weight: float
    max_points: float
    data_sources: Tuple[str, ...]
    default_data_source: str
    market_edge: bool = False
    implemented: bool = True

    @property
    def scope_key(self) -> Tuple[str, BetType, str]:
        return (self.sport, self.bet_type, self.key)


def _d(key, name, description, bet_type, scope, weight, max_points, sources,
       market_edge=False, implemented=True) -> FactorDefinition:
    return FactorDefinition(
        key=key,
        name=name,
        description=description,
        sport=SPORT_ID_NBA,
        bet_type=bet_type,
        scope=scope,
        default_weight=weight,
        max_points=max_points,
        data_sources=tuple(sources),
        default_data_source=sources[0],
        market_edge=market_edge,
        implemented=implemented,
    )


_T, _S = BetType.TOTAL, BetType.SPREAD
_G, _M, _TM = FactorScope.GLOBAL, FactorScope.MATCHUP, FactorScope.TEAM

NBA_DEFINITIONS: Tuple[FactorDefinition, ...] = (
    # --- Totals ---
    _d("paceIndex", "Pace Index", "Expected game pace vs league pace",
       _T, _M, 20, 2.0, ["team_pace"]),
    _d("offForm", "Offensive Form", "Last-10 offensive rating vs league",
       _T, _M, 20, 2.0, ["team_ratings"]),
    _d("defErosion", "Defensive Erosion", "Defensive rating slippage and injuries",
       _T, _M, 30, 2.0, ["team_ratings", "injuries"]),
    _d("threeEnv", "3PT Environment", "Three-point volume and variance",
       _T, _M, 20, 1.0, ["shooting_splits"]),
    _d("whistleEnv", "Free-Throw Environment", "Free-throw rate environment",
       _T, _M, 20, 1.0, ["shooting_splits"]),
    _d("restAdvantage", "Rest Advantage", "Rest days and back-to-backs",
       _T, _M, 20, 2.0, ["schedule"]),
    _d("injuryAvailability", "Injury Availability", "Scoring lost to absences",
       _T, _M, 20, 2.0, ["injury_research"]),
    _d("lineMovement", "Line Movement", "Opening-to-current total movement",
       _T, _G, 0, 1.0, ["odds_history"], implemented=False),
    _d("edgeVsMarket", "Edge vs Market", "Predicted total vs market total",
       _T, _G, MARKET_EDGE_WEIGHT, 5.0, ["market_odds"], market_edge=True),
    # --- Spread ---
    _d("netRatingDiff", "Net Rating Differential", "Pace-scaled net rating gap",
       _S, _M, 30, 2.0, ["team_ratings", "team_pace"]),
    _d("turnoverDiff", "Turnover Differential", "Ball security gap",
       _S, _M, 15, 1.0, ["four_factors"]),
    _d("reboundingDiff", "Rebounding Differential", "Total rebounding rate gap",
       _S, _M, 15, 1.0, ["four_factors"]),
    _d("shootingMomentum", "Shooting Efficiency & Momentum", "Shooting quality and scoring trend",
       _S, _TM, 15, 1.0, ["shooting_splits", "recent_form"]),
    _d("homeAwaySplits", "Home/Away Splits", "Road form vs home form",
       _S, _TM, 10, 1.0, ["venue_splits"]),
    _d("paceMismatch", "Pace Mismatch", "Tempo control",
       _S, _M, 10, 0.5, ["team_pace"]),
    _d("fourFactorsDiff", "Four Factors Differential", "Weighted four-factor composite",
       _S, _M, 25, 2.0, ["four_factors"]),
    _d("momentumIndex", "Momentum Index", "Streak and last-10 record",
       _S, _TM, 10, 1.0, ["recent_form"]),
    _d("defensivePressure", "Defensive Pressure", "Steals and blocks",
       _S, _TM, 10, 1.0, ["box_score_averages"]),
    _d("assistEfficiency", "Assist Efficiency", "Assist-to-turnover ratio",
       _S, _TM, 10, 1.0, ["box_score_averages"]),
    _d("injuryAvailability", "Injury Availability", "Strength lost to absences",
       _S, _M, 20, 2.0, ["injury_research"]),
    _d("lineMovement", "Line Movement", "Opening-to-current spread movement",
       _S, _G, 0, 1.0, ["odds_history"], implemented=False),
    _d("edgeVsMarketSpread", "Edge vs Market - Spread", "Predicted margin vs market spread",
       _S, _G, MARKET_EDGE_WEIGHT, 5.0, ["market_odds"], market_edge=True),
)


class FactorCatalog:
    """Read-only registry keyed by ``(sport, bet_type, key)``.

    Moneyline lookups resolve to the SPREAD scope.
    """

    def __init__(self, definitions: Iterable[FactorDefinition]):
        self._ordered: List[FactorDefinition] = []
        self._index: Dict[Tuple[str, BetType, str], FactorDefinition] = {}
        for definition in definitions:
            self._validate(definition)
            self._index[definition.scope_key] = definition
            self._ordered.append(definition)

    def _validate(self, definition: FactorDefinition) -> None:
        if definition.scope_key in self._index:
            raise ValueError(
                f"Duplicate factor key {definition.key!r} in scope "
                f"({definition.sport}, {definition.bet_type.value})"
            )
        if definition.market_edge and definition.default_weight != MARKET_EDGE_WEIGHT:
            raise ValueError(
                f"Market-edge factor {definition.key!r} must carry weight "
                f"{MARKET_EDGE_WEIGHT:g}, got {definition.default_weight!r}"
            )
        if definition.max_points <= 0:
            raise ValueError(
                f"Factor {definition.key!r} max_points must be > 0, got {definition.max_points!r}"
            )
        if definition.default_data_source not in definition.data_sources:
            raise ValueError(
                f"Factor {definition.key!r} default data source "
                f"{definition.default_data_source!r} is not one of {definition.data_sources}"
            )

    @staticmethod
    def _scope(bet_type: BetType) -> BetType:
        return BetType.SPREAD if bet_type is BetType.MONEYLINE else bet_type

    def get(self, sport: str, bet_type: BetType, key: str) -> Optional[FactorDefinition]:
        return self._index.get((sport, self._scope(bet_type), key))

    def for_scope(self, sport: str, bet_type: BetType) -> List[FactorDefinition]:
        """Definitions for one scope, in catalog order."""
        scope = self._scope(bet_type)
        return [d for d in self._ordered if d.sport == sport and d.bet_type is scope]

    def market_edge_for(self, sport: str, bet_type: BetType) -> Optional[FactorDefinition]:
        for definition in self.for_scope(sport, bet_type):
            if definition.market_edge:
                return definition
        return None

    def data_requirements(self, sport: str, bet_type: BetType, keys: Iterable[str]) -> frozenset:
        """Union of data-source tags needed by ``keys``."""
        tags = set()
        for key in keys:
            definition = self.get(sport, bet_type, key)
            if definition is not None:
                tags.update(definition.data_sources)
        return frozenset(tags)

    def __len__(self) -> int:
        return len(self._ordered)


def is_market_edge(key: str) -> bool:
    return key in MARKET_EDGE_KEYS


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_catalog: Optional[FactorCatalog] = None


def get_catalog() -> FactorCatalog:
    global _catalog
    if _catalog is None:
        _catalog = FactorCatalog(NBA_DEFINITIONS)
        logger.debug("Factor catalog loaded with %d definitions", len(_catalog))
    return _catalog

"""
Pydantic request/response schemas for the engine's JSON surfaces.

Inputs (profiles, team statistics, market lines) are validated here and
converted into the engine's frozen dataclasses; outputs are built from an
:class:`~capper_engine.pick_engine.EvaluationResult` for dashboards and
pick history.  Keys accept both ``snake_case`` and the ``camelCase`` used
by profile stores.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from capper_engine.data_bundle import (
    Bundle,
    BundleAvailable,
    BundleUnavailable,
    DataBundle,
    MarketSnapshot,
    MatchupContext,
    TeamStats,
)
from capper_engine.core.league_config import SPORT_ID_NBA
from capper_engine.core.odds_math import STANDARD_PRICE
from capper_engine.factors.base import BetType, FactorComputationResult
from capper_engine.factors.injury import ImpactProvider, InjuryImpact
from capper_engine.pick_engine import EvaluationResult, Pick
from capper_engine.services.catalog import FactorCatalog, get_catalog
from capper_engine.services.prediction_heads import PredictionHead
from capper_engine.services.profiles import CapperProfile, FactorConfig
from capper_engine.services.reconciler import MarketEdgeResult


def _check_american(v: Optional[float]) -> Optional[float]:
    if v is None:
        return v
    if -100 < v < 100:
        raise ValueError(f"{v} is not valid American odds. Must be >= +100 or <= -100.")
    return v


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class FactorConfigIn(BaseModel):
    """One factor entry of a stored capper profile."""

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., min_length=1)
    enabled: bool = True
    weight: float = Field(0.0, ge=0, le=100)
    data_source: Optional[str] = Field(None, alias="dataSource")
    max_points: Optional[float] = Field(None, gt=0, alias="maxPoints")

    @model_validator(mode="after")
    def disabled_means_zero(self) -> "FactorConfigIn":
        if not self.enabled:
            self.weight = 0.0
        return self

    def to_config(self, sport: str, bet_type: BetType, catalog: FactorCatalog) -> FactorConfig:
        """Fill unset source / ceiling from the catalog."""
        definition = catalog.get(sport, bet_type, self.key)
        data_source = self.data_source or (definition.default_data_source if definition else "")
        max_points = self.max_points or (definition.max_points if definition else 1.0)
        return FactorConfig(
            key=self.key,
            enabled=self.enabled,
            weight=self.weight,
            data_source=data_source,
            max_points=max_points,
        )


class CapperProfileIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    capper_id: str = Field(..., min_length=1, alias="capperId")
    sport: str = SPORT_ID_NBA
    bet_type: BetType = Field(..., alias="betType")
    factors: List[FactorConfigIn]
    profile_id: str = Field("", alias="profileId")
    name: str = ""
    description: str = ""
    is_active: bool = Field(True, alias="isActive")
    is_default: bool = Field(False, alias="isDefault")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @field_validator("factors")
    @classmethod
    def unique_keys(cls, v: List[FactorConfigIn]) -> List[FactorConfigIn]:
        keys = [f.key for f in v]
        dupes = sorted({k for k in keys if keys.count(k) > 1})
        if dupes:
            raise ValueError(f"duplicate factor keys: {', '.join(dupes)}")
        return v

    def to_profile(self, catalog: Optional[FactorCatalog] = None) -> CapperProfile:
        catalog = catalog or get_catalog()
        return CapperProfile(
            capper_id=self.capper_id,
            sport=self.sport,
            bet_type=self.bet_type,
            factors=[f.to_config(self.sport, self.bet_type, catalog) for f in self.factors],
            profile_id=self.profile_id,
            name=self.name,
            description=self.description,
            is_active=self.is_active,
            is_default=self.is_default,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


# ---------------------------------------------------------------------------
# Evaluation request
# ---------------------------------------------------------------------------

class TeamStatsIn(BaseModel):
    team: str = ""
    pace: Optional[float] = None
    pace_last10: Optional[float] = None
    ortg: Optional[float] = None
    ortg_last10: Optional[float] = None
    drtg: Optional[float] = None
    three_par: Optional[float] = None
    opp_three_par: Optional[float] = None
    three_pct_last10: Optional[float] = None
    ftr: Optional[float] = None
    opp_ftr: Optional[float] = None
    efg_pct: Optional[float] = None
    tov_pct: Optional[float] = None
    oreb_pct: Optional[float] = None
    dreb_pct: Optional[float] = None
    assists: Optional[float] = None
    turnovers: Optional[float] = None
    steals: Optional[float] = None
    blocks: Optional[float] = None
    ppg_last3: Optional[float] = None
    ppg_last10: Optional[float] = None
    wins_last10: Optional[int] = Field(None, ge=0, le=10)
    losses_last10: Optional[int] = Field(None, ge=0, le=10)
    streak: Optional[int] = None
    home_net_rating: Optional[float] = None
    road_net_rating: Optional[float] = None
    rest_days: Optional[int] = Field(None, ge=0)
    is_back_to_back: bool = False
    travel_miles: Optional[float] = Field(None, ge=0)
    injury_defense_impact: Optional[float] = Field(None, ge=0, le=1)

    def to_stats(self) -> TeamStats:
        return TeamStats(**self.model_dump())


class MarketIn(BaseModel):
    total_line: Optional[float] = Field(None, gt=0)
    over_odds: int = STANDARD_PRICE
    under_odds: int = STANDARD_PRICE
    home_spread: Optional[float] = None
    away_spread_odds: int = STANDARD_PRICE
    home_spread_odds: int = STANDARD_PRICE
    home_moneyline: Optional[int] = None
    away_moneyline: Optional[int] = None

    @field_validator(
        "over_odds", "under_odds", "away_spread_odds", "home_spread_odds",
        "home_moneyline", "away_moneyline",
    )
    @classmethod
    def validate_american_odds(cls, v: Optional[int]) -> Optional[int]:
        return _check_american(v)

    def to_snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(**self.model_dump())


class InjuryIn(BaseModel):
    away: float = 0.0
    home: float = 0.0
    summary: str = ""


class EvaluationRequest(BaseModel):
    """Everything needed to evaluate one matchup.

    A request without both team blocks evaluates against an unavailable
    bundle (league-average baseline, neutral factors).
    """

    game_id: str = Field(..., min_length=1)
    away_team: str = Field(..., min_length=1)
    home_team: str = Field(..., min_length=1)
    sport: str = SPORT_ID_NBA
    altitude_venue: bool = False
    away: Optional[TeamStatsIn] = None
    home: Optional[TeamStatsIn] = None
    market: MarketIn = Field(default_factory=MarketIn)
    injury: Optional[InjuryIn] = None
    profiles: List[CapperProfileIn] = Field(default_factory=list)
    bankroll: Optional[float] = Field(None, gt=0)

    @field_validator("profiles")
    @classmethod
    def one_profile_per_bet_type(cls, v: List[CapperProfileIn]) -> List[CapperProfileIn]:
        seen = set()
        for profile in v:
            if profile.bet_type in seen:
                raise ValueError(f"more than one profile for {profile.bet_type.value}")
            seen.add(profile.bet_type)
        return v

    def to_context(self) -> MatchupContext:
        return MatchupContext(
            game_id=self.game_id,
            away_team=self.away_team,
            home_team=self.home_team,
            sport=self.sport,
            altitude_venue=self.altitude_venue,
        )

    def to_bundle(self) -> Bundle:
        if self.away is None or self.home is None:
            return BundleUnavailable("team statistics missing from request")
        return BundleAvailable(DataBundle(away=self.away.to_stats(), home=self.home.to_stats()))

    def to_profiles(self, catalog: Optional[FactorCatalog] = None) -> Dict[BetType, CapperProfile]:
        return {p.bet_type: p.to_profile(catalog) for p in self.profiles}

    def injury_provider(self) -> Optional[ImpactProvider]:
        """Provider returning the request's fixed impact estimate, if any."""
        if self.injury is None:
            return None
        impact = InjuryImpact(self.injury.away, self.injury.home, self.injury.summary)

        async def provider(ctx: MatchupContext) -> InjuryImpact:
            return impact

        return provider


# ---------------------------------------------------------------------------
# Evaluation output
# ---------------------------------------------------------------------------

class FactorResultOut(BaseModel):
    key: str
    name: str
    bet_type: BetType
    signal: float
    score_a: float
    score_b: float
    weight: float
    weighted_points: float
    favoured_side: Optional[str]
    status: str
    rationale: str
    caps_applied: bool
    cap_reason: Optional[str]
    fallbacks: List[str]
    raw_values: Dict[str, float]

    @classmethod
    def from_result(cls, r: FactorComputationResult) -> "FactorResultOut":
        return cls(
            key=r.key,
            name=r.name,
            bet_type=r.bet_type,
            signal=round(r.signal, 4),
            score_a=round(r.score_a, 4),
            score_b=round(r.score_b, 4),
            weight=r.weight,
            weighted_points=round(r.weighted_points, 4),
            favoured_side=r.favoured_side,
            status=r.status.value,
            rationale=r.rationale,
            caps_applied=r.caps_applied,
            cap_reason=r.cap_reason,
            fallbacks=list(r.fallbacks),
            raw_values={k: float(v) for k, v in r.raw_values.items()},
        )


class MarketEdgeOut(BaseModel):
    key: str
    bet_type: BetType
    predicted_line: float
    market_line: float
    edge_pts: float
    signal: float
    score_a: float
    score_b: float
    weight: float
    caps_applied: bool
    rationale: str

    @classmethod
    def from_edge(cls, e: MarketEdgeResult) -> "MarketEdgeOut":
        return cls(
            key=e.key,
            bet_type=e.bet_type,
            predicted_line=round(e.predicted_line, 2),
            market_line=e.market_line,
            edge_pts=round(e.edge_pts, 2),
            signal=round(e.signal, 4),
            score_a=round(e.score_a, 4),
            score_b=round(e.score_b, 4),
            weight=e.weight,
            caps_applied=e.caps_applied,
            rationale=e.rationale,
        )


class HeadOut(BaseModel):
    bet_type: BetType
    selection: str
    side: Optional[str]
    true_line: Optional[float]
    market_line: Optional[float]
    deviation: float
    win_probability: float
    ev_percentage: float
    offered_odds: Optional[int]
    structural_share: float
    passed: bool
    threshold_reason: str

    @classmethod
    def from_head(cls, h: PredictionHead) -> "HeadOut":
        return cls(
            bet_type=h.bet_type,
            selection=h.selection,
            side=h.side,
            true_line=None if h.true_line is None else round(h.true_line, 4),
            market_line=h.market_line,
            deviation=round(h.deviation, 4),
            win_probability=round(h.win_probability, 4),
            ev_percentage=round(h.ev_percentage, 2),
            offered_odds=h.offered_odds,
            structural_share=round(h.structural_share, 4),
            passed=h.passed,
            threshold_reason=h.threshold_reason,
        )


class PickOut(BaseModel):
    bet_type: BetType
    selection: str
    odds: int
    ev_percentage: float
    win_probability: float
    kelly_fraction: float
    stake: float
    units: float
    thin_edge: bool

    @classmethod
    def from_pick(cls, p: Pick) -> "PickOut":
        return cls(
            bet_type=p.bet_type,
            selection=p.selection,
            odds=p.odds,
            ev_percentage=round(p.expected_value * 100.0, 2),
            win_probability=round(p.win_probability, 4),
            kelly_fraction=round(p.kelly_fraction, 5),
            stake=p.stake,
            units=p.units,
            thin_edge=p.thin_edge,
        )


class EvaluationOut(BaseModel):
    game_id: str
    verdict: str
    pass_reason: Optional[str]
    pick: Optional[PickOut]
    heads: List[HeadOut]
    factors: Dict[str, List[FactorResultOut]]
    edges: Dict[str, MarketEdgeOut]
    confidence: Dict[str, float]
    home_score: float
    away_score: float
    true_spread: float
    true_total: float
    home_win_prob: float
    bundle_available: bool
    bankroll: float
    evaluated_at: datetime

    @classmethod
    def from_result(cls, r: EvaluationResult) -> "EvaluationOut":
        pred = r.prediction
        return cls(
            game_id=r.game_id,
            verdict=r.verdict,
            pass_reason=r.pass_reason,
            pick=PickOut.from_pick(r.pick) if r.pick else None,
            heads=[HeadOut.from_head(h) for h in r.heads],
            factors={bt.value: [FactorResultOut.from_result(f) for f in fs] for bt, fs in r.factors.items()},
            edges={bt.value: MarketEdgeOut.from_edge(e) for bt, e in r.edges.items()},
            confidence={bt.value: round(c, 3) for bt, c in r.confidence.items()},
            home_score=round(pred.home_score, 2),
            away_score=round(pred.away_score, 2),
            true_spread=round(pred.true_spread, 2),
            true_total=round(pred.true_total, 2),
            home_win_prob=round(pred.home_win_prob, 4),
            bundle_available=r.bundle_available,
            bankroll=r.bankroll,
            evaluated_at=r.evaluated_at,
        )

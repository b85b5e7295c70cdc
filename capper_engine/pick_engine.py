"""
Pick engine — end-to-end evaluation of one matchup.

Pipeline::

    profiles ─► normalize ─► orchestrator (TOTAL, SPREAD)
                                   │
    bundle ─► score model ─► baseline ─► reconciler ─► heads ─► gates
                                                          │
                                              select best ─► Kelly stake

Moneyline reuses the SPREAD profile's factor points.  Output is a single
:class:`EvaluationResult`: either a pick with its stake, or PASS with the
reasons every head failed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from capper_engine.core.kelly import kelly_fraction, stake_to_units, units_to_dollars
from capper_engine.core.league_config import LeagueConfig
from capper_engine.core.odds_math import american_to_decimal
from capper_engine.core.signal_math import clamp, is_finite
from capper_engine.data_bundle import Bundle, BundleAvailable, MarketSnapshot, MatchupContext
from capper_engine.factors.base import BetType, FactorComputationResult
from capper_engine.factors.injury import ImpactProvider
from capper_engine.services.catalog import FactorCatalog, get_catalog
from capper_engine.services.orchestrator import FactorOrchestrator, OrchestratorResult
from capper_engine.services.prediction_heads import (
    PredictionHead,
    moneyline_head,
    no_pick_reason,
    select_best,
    spread_head,
    total_head,
)
from capper_engine.services.profiles import CapperProfile, FactorConfig, default_profile
from capper_engine.services.reconciler import MarketEdgeResult, edge_confidence, reconcile
from capper_engine.services.score_model import ScoreModel, ScorePrediction
from capper_engine.services.weights import normalize
from capper_engine.settings import EngineSettings, get_settings

logger = logging.getLogger(__name__)

_MIN_UNITS = 0.5
_FACTOR_BET_TYPES = (BetType.TOTAL, BetType.SPREAD)


@dataclass
class Pick:
    bet_type: BetType
    selection: str
    odds: int
    expected_value: float
    win_probability: float
    kelly_fraction: float
    stake: float
    units: float
    thin_edge: bool = False


@dataclass
class EvaluationResult:
    game_id: str
    verdict: str
    pass_reason: Optional[str]
    pick: Optional[Pick]
    heads: List[PredictionHead]
    factors: Dict[BetType, List[FactorComputationResult]]
    edges: Dict[BetType, MarketEdgeResult]
    prediction: ScorePrediction
    confidence: Dict[BetType, float]
    bundle_available: bool
    bankroll: float
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_pick(self) -> bool:
        return self.pick is not None


class PickEngine:
    """Runs the whole pipeline for one matchup at a time.

    Evaluations share no mutable state, so one engine may serve many
    matchups concurrently.
    """

    def __init__(
        self,
        league: Optional[LeagueConfig] = None,
        *,
        settings: Optional[EngineSettings] = None,
        catalog: Optional[FactorCatalog] = None,
        impact_provider: Optional[ImpactProvider] = None,
        orchestrator: Optional[FactorOrchestrator] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.league = league or LeagueConfig.nba()
        self.settings = settings or get_settings()
        self.catalog = catalog or get_catalog()
        self.log = log or logger
        self.orchestrator = orchestrator or FactorOrchestrator(
            self.league,
            catalog=self.catalog,
            impact_provider=impact_provider,
            impact_timeout_s=self.settings.injury_timeout_s,
            log=self.log,
        )
        self.score_model = ScoreModel(self.league)

    # ------------------------------------------------------------------ #

    def _configs(
        self,
        ctx: MatchupContext,
        profiles: Mapping[BetType, CapperProfile],
        bet_type: BetType,
    ) -> List[FactorConfig]:
        profile = profiles.get(bet_type)
        if profile is None:
            profile = default_profile(
                "default", ctx.sport, bet_type,
                catalog=self.catalog, budget=self.settings.weight_budget,
            )
        return normalize(profile.factors, self.settings.weight_budget)

    async def evaluate(
        self,
        ctx: MatchupContext,
        bundle: Bundle,
        market: MarketSnapshot,
        profiles: Optional[Mapping[BetType, CapperProfile]] = None,
        bankroll: Optional[float] = None,
    ) -> EvaluationResult:
        profiles = profiles or {}
        bankroll = self.settings.starting_bankroll if bankroll is None else bankroll

        total_run, spread_run = await asyncio.gather(*(
            self.orchestrator.evaluate(ctx, self._configs(ctx, profiles, bt), bundle, bt)
            for bt in _FACTOR_BET_TYPES
        ))
        runs: Dict[BetType, OrchestratorResult] = {
            BetType.TOTAL: total_run,
            BetType.SPREAD: spread_run,
        }

        if isinstance(bundle, BundleAvailable):
            prediction = self.score_model.predict(bundle.data, ctx)
        else:
            prediction = self.score_model.from_baseline(total_run.baseline)

        total_pts = total_run.weighted_points
        spread_pts = spread_run.weighted_points

        edges: Dict[BetType, MarketEdgeResult] = {}
        predicted_total = clamp(
            prediction.true_total + total_pts, self.league.total_floor, self.league.total_ceiling,
        )
        predicted_margin = prediction.away_margin + spread_pts
        if is_finite(market.total_line):
            edges[BetType.TOTAL] = reconcile(
                total_pts, market.total_line, prediction.true_total,
                bet_type=BetType.TOTAL, league=self.league,
            )
            predicted_total = edges[BetType.TOTAL].predicted_line
        if is_finite(market.home_spread):
            edges[BetType.SPREAD] = reconcile(
                spread_pts, market.home_spread, prediction.away_margin,
                bet_type=BetType.SPREAD, league=self.league,
            )
            predicted_margin = edges[BetType.SPREAD].predicted_line

        heads = [
            spread_head(
                predicted_margin, spread_pts, market, prediction.sigma_spread,
                league=self.league, away_team=ctx.away_team, home_team=ctx.home_team,
            ),
            total_head(
                predicted_total, total_pts, market, prediction.sigma_total,
                league=self.league,
            ),
            moneyline_head(
                predicted_margin, spread_pts, market, prediction.sigma_spread,
                league=self.league, away_team=ctx.away_team, home_team=ctx.home_team,
            ),
        ]

        confidence = {
            bt: edge_confidence(runs[bt].results, edges.get(bt)) for bt in _FACTOR_BET_TYPES
        }

        best = select_best(heads)
        if best is None:
            pick, verdict, pass_reason = None, "PASS", no_pick_reason(heads)
        else:
            pick = self.size(best, bankroll)
            verdict = f"Bet {pick.units:.1f}u {pick.selection} @ {pick.odds:+d}"
            pass_reason = None

        result = EvaluationResult(
            game_id=ctx.game_id,
            verdict=verdict,
            pass_reason=pass_reason,
            pick=pick,
            heads=heads,
            factors={bt: runs[bt].results for bt in _FACTOR_BET_TYPES},
            edges=edges,
            prediction=prediction,
            confidence=confidence,
            bundle_available=isinstance(bundle, BundleAvailable),
            bankroll=bankroll,
        )
        self.log.info(
            "%s @ %s: %s", ctx.away_team, ctx.home_team, verdict if pick else f"PASS ({pass_reason})",
            extra={"game_id": ctx.game_id},
        )
        return result

    def evaluate_sync(
        self,
        ctx: MatchupContext,
        bundle: Bundle,
        market: MarketSnapshot,
        profiles: Optional[Mapping[BetType, CapperProfile]] = None,
        bankroll: Optional[float] = None,
    ) -> EvaluationResult:
        return asyncio.run(self.evaluate(ctx, bundle, market, profiles, bankroll))

    # ------------------------------------------------------------------ #

    def size(self, head: PredictionHead, bankroll: float) -> Pick:
        """Fractional-Kelly stake for a passing head.

        A positive stake that rounds below half a unit is still bet at the
        half-unit minimum and flagged as a thin edge.
        """
        s = self.settings
        f = kelly_fraction(
            head.win_probability, american_to_decimal(head.offered_odds),
            fraction=s.kelly_fraction, max_fraction=s.max_kelly_fraction,
        )
        stake = max(0.0, bankroll) * f
        units = stake_to_units(stake, bankroll, unit_pct=s.unit_bankroll_pct, max_units=s.max_units)
        thin = stake > 0 and units < _MIN_UNITS
        if thin:
            units = _MIN_UNITS
            stake = units_to_dollars(units, bankroll, unit_pct=s.unit_bankroll_pct)
        return Pick(
            bet_type=head.bet_type,
            selection=head.selection,
            odds=int(head.offered_odds),
            expected_value=head.expected_value,
            win_probability=head.win_probability,
            kelly_fraction=f,
            stake=round(stake, 2),
            units=units,
            thin_edge=thin,
        )

"""
Factor orchestrator — computes a profile's enabled factors against one bundle.

Responsibilities:

    - Compute only enabled keys; market-edge keys are left to the reconciler.
    - Isolate failures: an exception inside one factor becomes a neutral
      ``ERROR`` result and never aborts sibling factors.
    - Attach each factor's configured weight to its result.
    - Await the asynchronous injury factor after every synchronous factor,
      under a timeout, with the same isolation.
    - Always return a well-formed result set, including a league-average
      baseline for callers whose bundle is unavailable.

Diagnostics go through an injectable :class:`logging.Logger`, so callers
and tests choose the sink.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from capper_engine.core.league_config import LeagueConfig
from capper_engine.data_bundle import (
    Bundle,
    BundleAvailable,
    BundleUnavailable,
    DataBundle,
    MatchupContext,
)
from capper_engine.factors import ASYNC_FACTOR_KEYS, FACTOR_TABLES
from capper_engine.factors.base import (
    BetType,
    FactorComputationResult,
    FactorFn,
    FactorStatus,
    neutral_result,
)
from capper_engine.factors.injury import ImpactProvider, injury_availability
from capper_engine.services.catalog import FactorCatalog, get_catalog, is_market_edge
from capper_engine.services.profiles import FactorConfig

logger = logging.getLogger(__name__)

DEFAULT_IMPACT_TIMEOUT_S = 8.0


@dataclass(frozen=True)
class DefaultBaseline:
    """League-average prior used when no team-specific baseline exists."""

    total: float
    away_margin: float

    @classmethod
    def from_league(cls, league: LeagueConfig) -> "DefaultBaseline":
        return cls(
            total=2.0 * league.averages.points_per_team,
            away_margin=-league.home_advantage_pts,
        )


@dataclass
class OrchestratorResult:
    bet_type: BetType
    results: List[FactorComputationResult]
    baseline: DefaultBaseline
    bundle_available: bool
    data_requirements: frozenset = field(default_factory=frozenset)

    @property
    def weighted_points(self) -> float:
        """Σ weighted points, signed toward over / away."""
        return sum(r.weighted_points for r in self.results)

    @property
    def errors(self) -> List[FactorComputationResult]:
        return [r for r in self.results if r.status is FactorStatus.ERROR]

    def by_key(self) -> Dict[str, FactorComputationResult]:
        return {r.key: r for r in self.results}


class FactorOrchestrator:
    """Runs enabled factors for one bet type.

    Args:
        league: League constants (default baseline).
        catalog: Factor catalog for names and data requirements.
        impact_provider: Async source of injury impact; ``None`` leaves the
            injury factor neutral with status ``UNAVAILABLE``.
        impact_timeout_s: Timeout for the provider call.
        factor_tables: Override of the key → function tables.
        log: Diagnostics sink (defaults to the module logger).
    """

    def __init__(
        self,
        league: Optional[LeagueConfig] = None,
        *,
        catalog: Optional[FactorCatalog] = None,
        impact_provider: Optional[ImpactProvider] = None,
        impact_timeout_s: float = DEFAULT_IMPACT_TIMEOUT_S,
        factor_tables: Optional[Mapping[BetType, Mapping[str, FactorFn]]] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.league = league or LeagueConfig.nba()
        self.catalog = catalog or get_catalog()
        self.impact_provider = impact_provider
        self.impact_timeout_s = impact_timeout_s
        self.factor_tables = factor_tables or FACTOR_TABLES
        self.log = log or logger

    # ------------------------------------------------------------------ #

    def data_requirements(self, bet_type: BetType, keys: Sequence[str]) -> frozenset:
        return self.catalog.data_requirements(self.league.sport_id, bet_type, keys)

    def _name(self, bet_type: BetType, key: str) -> str:
        definition = self.catalog.get(self.league.sport_id, bet_type, key)
        return definition.name if definition else key

    async def evaluate(
        self,
        ctx: MatchupContext,
        configs: Sequence[FactorConfig],
        bundle: Bundle,
        bet_type: BetType,
    ) -> OrchestratorResult:
        """Compute every enabled, non-market-edge factor in ``configs``.

        Results come back in profile order, each carrying its configured
        weight.  No exception raised inside a factor escapes this method.
        """
        enabled = [c for c in configs if c.enabled and not is_market_edge(c.key)]
        baseline = DefaultBaseline.from_league(self.league)
        requirements = self.data_requirements(bet_type, [c.key for c in enabled])

        if not enabled:
            self.log.info(
                "No enabled factors for %s %s", ctx.game_id, bet_type.value,
                extra={"game_id": ctx.game_id, "bet_type": bet_type.value},
            )
            return OrchestratorResult(bet_type, [], baseline, isinstance(bundle, BundleAvailable), requirements)

        if isinstance(bundle, BundleUnavailable):
            self.log.warning(
                "Bundle unavailable for %s (%s); returning neutral factors",
                ctx.game_id, bundle.reason,
                extra={"game_id": ctx.game_id, "bet_type": bet_type.value},
            )
            results = [
                neutral_result(
                    c.key, self._name(bet_type, c.key), bet_type,
                    FactorStatus.UNAVAILABLE, f"unavailable: {bundle.reason}",
                ).with_weight(c.weight)
                for c in enabled
            ]
            return OrchestratorResult(bet_type, results, baseline, False, requirements)

        if not isinstance(bundle, BundleAvailable):
            raise TypeError(f"Unsupported bundle type {type(bundle).__name__}")

        slots: Dict[str, FactorComputationResult] = {}
        deferred: List[FactorConfig] = []
        for config in enabled:
            if config.key in ASYNC_FACTOR_KEYS:
                deferred.append(config)
                continue
            slots[config.key] = self._compute_sync(ctx, config, bundle.data, bet_type)

        for config in deferred:
            slots[config.key] = await self._compute_async(ctx, config, bet_type)

        results = [slots[c.key] for c in enabled]
        for result in results:
            self.log.debug(
                "%s %s signal=%.3f a=%.2f b=%.2f w=%.2f [%s]",
                ctx.game_id, result.key, result.signal, result.score_a,
                result.score_b, result.weight, result.status.value,
            )
        self.log.info(
            "Computed %d %s factors for %s (%d errors)",
            len(results), bet_type.value, ctx.game_id,
            sum(1 for r in results if r.status is FactorStatus.ERROR),
            extra={"game_id": ctx.game_id, "bet_type": bet_type.value},
        )
        return OrchestratorResult(bet_type, results, baseline, True, requirements)

    def evaluate_sync(
        self,
        ctx: MatchupContext,
        configs: Sequence[FactorConfig],
        bundle: Bundle,
        bet_type: BetType,
    ) -> OrchestratorResult:
        """Blocking wrapper around :meth:`evaluate` for synchronous callers."""
        return asyncio.run(self.evaluate(ctx, configs, bundle, bet_type))

    # ------------------------------------------------------------------ #

    def _failure(
        self,
        ctx: MatchupContext,
        config: FactorConfig,
        bet_type: BetType,
        message: str,
    ) -> FactorComputationResult:
        self.log.warning(
            "Factor %s failed for %s: %s", config.key, ctx.game_id, message,
            extra={"factor_key": config.key, "bet_type": bet_type.value, "game_id": ctx.game_id},
        )
        return neutral_result(
            config.key, self._name(bet_type, config.key), bet_type,
            FactorStatus.ERROR, f"error: {message}",
        ).with_weight(config.weight)

    def _compute_sync(
        self,
        ctx: MatchupContext,
        config: FactorConfig,
        data: DataBundle,
        bet_type: BetType,
    ) -> FactorComputationResult:
        fn = self.factor_tables.get(bet_type, {}).get(config.key)
        if fn is None:
            self.log.warning(
                "Factor %s has no %s implementation", config.key, bet_type.value,
                extra={"factor_key": config.key, "bet_type": bet_type.value, "game_id": ctx.game_id},
            )
            return neutral_result(
                config.key, self._name(bet_type, config.key), bet_type,
                FactorStatus.NOT_IMPLEMENTED, "not implemented",
            ).with_weight(config.weight)
        try:
            result = fn(data)
        except Exception as exc:
            return self._failure(ctx, config, bet_type, f"{type(exc).__name__}: {exc}")
        return result.with_weight(config.weight)

    async def _compute_async(
        self,
        ctx: MatchupContext,
        config: FactorConfig,
        bet_type: BetType,
    ) -> FactorComputationResult:
        if self.impact_provider is None:
            return neutral_result(
                config.key, self._name(bet_type, config.key), bet_type,
                FactorStatus.UNAVAILABLE, "no impact provider configured",
            ).with_weight(config.weight)
        try:
            result = await asyncio.wait_for(
                injury_availability(ctx, self.impact_provider, bet_type),
                timeout=self.impact_timeout_s,
            )
        except asyncio.TimeoutError:
            return self._failure(ctx, config, bet_type, f"timed out after {self.impact_timeout_s:g}s")
        except Exception as exc:
            return self._failure(ctx, config, bet_type, f"{type(exc).__name__}: {exc}")
        return result.with_weight(config.weight)

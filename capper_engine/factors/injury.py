"""
Injury / availability factor — the one asynchronous, externally sourced factor.

The impact estimate comes from an opaque provider (news research, an AI
summariser, a lineup feed).  The engine only relies on its contract: an
awaitable returning an :class:`InjuryImpact` with each side's missing share
of team strength.  Values are clamped to ``[0, 1]`` here, so an unbounded
provider can never push the signal outside its range.

Timeouts and provider failures are handled by the orchestrator, which
awaits this factor after every synchronous factor has finished.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable

from capper_engine.core.signal_math import clamp
from capper_engine.data_bundle import MatchupContext
from capper_engine.factors.base import (
    BetType,
    FactorComputationResult,
    bad_input_result,
    build_result,
    invalid_inputs,
)

INJURY_KEY = "injuryAvailability"
INJURY_NAME = "Injury Availability"


@dataclass(frozen=True)
class InjuryImpact:
    """Share of each team's strength unavailable for this game (0-1)."""

    away: float = 0.0
    home: float = 0.0
    summary: str = ""


ImpactProvider = Callable[[MatchupContext], Awaitable[InjuryImpact]]


def injury_result(impact: InjuryImpact, bet_type: BetType) -> FactorComputationResult:
    """Score a provider's impact estimate for one bet type.

    TOTAL: absences drain scoring, ``delta = −(away + home)`` (under).
    SPREAD: the healthier side is favoured, ``delta = home − away``.
    """
    raw = {"away_impact": impact.away, "home_impact": impact.home}
    bad = invalid_inputs(raw)
    if bad:
        return bad_input_result(INJURY_KEY, INJURY_NAME, bet_type, bad, raw)

    away = clamp(impact.away, 0.0, 1.0)
    home = clamp(impact.home, 0.0, 1.0)
    raw.update(away_impact=away, home_impact=home)

    if bet_type is BetType.TOTAL:
        delta, scale = -(away + home), 0.3
    else:
        delta, scale = home - away, 0.25

    note = impact.summary or f"Impact away {away:.2f}, home {home:.2f}"
    return build_result(
        INJURY_KEY, INJURY_NAME, bet_type, delta,
        scale=scale, safety_cap=2.0, max_points=2.0,
        raw_values=raw,
        rationale=note,
    )


async def injury_availability(
    ctx: MatchupContext,
    provider: ImpactProvider,
    bet_type: BetType,
) -> FactorComputationResult:
    impact = await provider(ctx)
    return injury_result(impact, bet_type)

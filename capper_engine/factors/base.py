"""
Shared factor contract — result type, status tags and result builders.

Every factor in the library is a pure function ``DataBundle -> FactorComputationResult``
that follows the same recipe:

    1. Read its statistics through :class:`StatReader` (league fallbacks
       are recorded, never silently invented).
    2. Validate: all inputs finite, ratings > 0, rates ≥ 0.  Violations
       return :func:`bad_input_result` instead of raising.
    3. Derive a scalar delta and hand it to :func:`build_result`, which
       applies the safety cap, the ``tanh`` squash and the
       single-positive-score split.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from capper_engine.core.signal_math import (
    directional_scores,
    is_finite,
    is_saturated,
    normalize_delta,
)
from capper_engine.data_bundle import DataBundle


class BetType(str, Enum):
    TOTAL = "TOTAL"
    SPREAD = "SPREAD"
    MONEYLINE = "MONEYLINE"

    @property
    def sides(self) -> Tuple[str, str]:
        """Labels for ``(score_a, score_b)``."""
        if self is BetType.TOTAL:
            return ("over", "under")
        return ("away", "home")


class FactorStatus(str, Enum):
    OK = "ok"
    BAD_INPUT = "bad_input"
    ERROR = "error"
    UNAVAILABLE = "unavailable"
    NOT_IMPLEMENTED = "not_implemented"


@dataclass(frozen=True)
class FactorComputationResult:
    """One factor's output for one evaluation.  Never mutated after creation.

    ``score_a`` / ``score_b`` are the directional point scores (over/under
    for totals, away/home for spreads); at most one is non-zero.  ``weight``
    is attached by the orchestrator and is not baked into the signal.
    """

    key: str
    name: str
    bet_type: BetType
    signal: float = 0.0
    score_a: float = 0.0
    score_b: float = 0.0
    raw_values: Dict[str, float] = field(default_factory=dict)
    rationale: str = ""
    caps_applied: bool = False
    cap_reason: Optional[str] = None
    status: FactorStatus = FactorStatus.OK
    fallbacks: Tuple[str, ...] = ()
    weight: float = 0.0

    @property
    def side_a(self) -> str:
        return self.bet_type.sides[0]

    @property
    def side_b(self) -> str:
        return self.bet_type.sides[1]

    @property
    def net_points(self) -> float:
        """Points signed toward side A (over / away)."""
        return self.score_a - self.score_b

    @property
    def weighted_points(self) -> float:
        """Contribution to aggregation: ``net_points × weight / 100``."""
        return self.net_points * self.weight / 100.0

    @property
    def favoured_side(self) -> Optional[str]:
        if self.score_a > 0:
            return self.side_a
        if self.score_b > 0:
            return self.side_b
        return None

    @property
    def is_neutral(self) -> bool:
        return self.score_a == 0.0 and self.score_b == 0.0

    def with_weight(self, weight: float) -> FactorComputationResult:
        return replace(self, weight=weight)


FactorFn = Callable[[DataBundle], FactorComputationResult]


# ---------------------------------------------------------------------------
# Stat access with league fallbacks
# ---------------------------------------------------------------------------

class StatReader:
    """Reads team statistics, substituting fallbacks for missing values.

    Every substitution is remembered as ``"<side>.<field>"`` so the result
    can report which inputs were league-average stand-ins.
    """

    def __init__(self, bundle: DataBundle):
        self.bundle = bundle
        self.league = bundle.league
        self._fallbacks: List[str] = []

    def _read(self, side: str, name: str, default: float) -> float:
        team = self.bundle.away if side == "away" else self.bundle.home
        value = getattr(team, name)
        if value is None:
            self._fallbacks.append(f"{side}.{name}")
            return default
        return value

    def away(self, name: str, default: float) -> float:
        return self._read("away", name, default)

    def home(self, name: str, default: float) -> float:
        return self._read("home", name, default)

    def both(self, name: str, default: float) -> Tuple[float, float]:
        """``(away, home)`` values of one statistic."""
        return self.away(name, default), self.home(name, default)

    @property
    def fallbacks(self) -> Tuple[str, ...]:
        return tuple(self._fallbacks)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def invalid_inputs(
    values: Mapping[str, float],
    *,
    positive: Iterable[str] = (),
    non_negative: Iterable[str] = (),
) -> List[str]:
    """Names of inputs that are non-finite or outside their domain."""
    bad = [name for name, value in values.items() if not is_finite(value)]
    bad += [n for n in positive if n not in bad and values[n] <= 0]
    bad += [n for n in non_negative if n not in bad and values[n] < 0]
    return bad


# ---------------------------------------------------------------------------
# Result builders
# ---------------------------------------------------------------------------

def neutral_result(
    key: str,
    name: str,
    bet_type: BetType,
    status: FactorStatus,
    rationale: str,
    raw_values: Optional[Dict[str, float]] = None,
) -> FactorComputationResult:
    """Zero-signal result carrying a status tag and a note."""
    return FactorComputationResult(
        key=key,
        name=name,
        bet_type=bet_type,
        raw_values=dict(raw_values or {}),
        rationale=rationale,
        status=status,
    )


def bad_input_result(
    key: str,
    name: str,
    bet_type: BetType,
    invalid: List[str],
    raw_values: Dict[str, float],
) -> FactorComputationResult:
    return neutral_result(
        key, name, bet_type,
        FactorStatus.BAD_INPUT,
        f"bad_input: {', '.join(invalid)}",
        {k: v for k, v in raw_values.items() if is_finite(v)},
    )


def build_result(
    key: str,
    name: str,
    bet_type: BetType,
    delta: float,
    *,
    scale: float,
    safety_cap: float,
    max_points: float,
    raw_values: Dict[str, float],
    rationale: str,
    fallbacks: Tuple[str, ...] = (),
) -> FactorComputationResult:
    """Turn a factor delta into a finished result.

    ``delta > 0`` argues for side A (over / away).
    """
    signal, cap_hit = normalize_delta(delta, scale=scale, safety_cap=safety_cap)
    score_a, score_b = directional_scores(signal, max_points)

    cap_reason = None
    if cap_hit:
        cap_reason = f"delta capped at ±{safety_cap:g}"
    elif is_saturated(signal):
        cap_reason = "signal saturated"

    values = dict(raw_values)
    values["delta"] = delta
    return FactorComputationResult(
        key=key,
        name=name,
        bet_type=bet_type,
        signal=signal,
        score_a=score_a,
        score_b=score_b,
        raw_values=values,
        rationale=rationale,
        caps_applied=cap_reason is not None,
        cap_reason=cap_reason,
        fallbacks=fallbacks,
    )

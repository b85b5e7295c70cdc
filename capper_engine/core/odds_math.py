"""Odds mathematics — price conversion, vig removal, expected value.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The pillars exposed are:

1. **Odds conversion** — American ↔ decimal ↔ implied probability.
2. **Vig removal** — proportional two-outcome normalisation.
3. **Expected value** — per-unit EV and the worst-case slippage test used
   by the prediction-head gates.

Design decisions
----------------
* American odds arrive as ``int`` or ``float`` from odds feeds; anything
  with ``|odds| < 100`` is a data error and raises.
* Vig removal is proportional (divide by the overround).  Moneyline heads
  only need one fair probability to anchor the logit deviation, and
  proportional removal keeps that anchor symmetric between the two sides.
* Slippage is measured in decimal-price space (``price − 0.03``) so the
  test is well defined on both sides of even money.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor.  Values below indicate a parsing error.
_MIN_ODDS_MAGNITUDE: Final[int] = 100

#: Standard two-way price used when a feed omits the juice.
STANDARD_PRICE: Final[int] = -110

#: Worst-case decimal-price move for the slippage gate ("three cents").
DEFAULT_SLIPPAGE: Final[float] = 0.03


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (stake-inclusive) odds.

    Examples::

        american_to_decimal(-110) → 1.9091
        american_to_decimal(+150) → 2.5000

    Raises:
        ValueError: If ``|american| < 100``.
    """
    if abs(american) < _MIN_ODDS_MAGNITUDE:
        raise ValueError(
            f"Invalid American odds {american!r}: magnitude must be ≥ 100."
        )
    if american > 0:
        return american / 100.0 + 1.0
    return 100.0 / abs(american) + 1.0


def implied_prob(american: int | float) -> float:
    """Vig-inclusive implied probability of an American price.

    Examples::

        implied_prob(-110) → 0.5238
        implied_prob(+150) → 0.4000
    """
    return 1.0 / american_to_decimal(american)


def decimal_to_american(decimal_odds: float) -> int:
    """Nearest American integer for a decimal price (display only).

    Raises:
        ValueError: If ``decimal_odds <= 1.0``.
    """
    if decimal_odds <= 1.0:
        raise ValueError(f"Decimal odds {decimal_odds!r} must be > 1.0.")
    if decimal_odds >= 2.0:
        return round((decimal_odds - 1.0) * 100)
    return round(-100.0 / (decimal_odds - 1.0))


# ---------------------------------------------------------------------------
# Vig removal
# ---------------------------------------------------------------------------


def remove_vig(odds_a: int | float, odds_b: int | float) -> tuple[float, float]:
    """Fair probabilities for a two-way market (proportional method).

    When the raw implied probabilities already sum to ≤ 1 (no overround)
    they are returned unchanged.

    Examples::

        remove_vig(-110, -110)  →  (0.5, 0.5)
        remove_vig(-200, +170)  →  (0.6429, 0.3571)
    """
    p_a = implied_prob(odds_a)
    p_b = implied_prob(odds_b)
    total = p_a + p_b
    if total <= 1.0:
        return p_a, p_b
    return p_a / total, p_b / total


# ---------------------------------------------------------------------------
# Expected value
# ---------------------------------------------------------------------------


def expected_value_decimal(win_prob: float, decimal_odds: float) -> float:
    """Per-unit EV: ``p · (decimal − 1) − (1 − p)``."""
    return win_prob * (decimal_odds - 1.0) - (1.0 - win_prob)


def expected_value(win_prob: float, american: int | float) -> float:
    """Per-unit expected value of a bet at an American price.

    Args:
        win_prob: Model probability that the selection wins, in ``[0, 1]``.
        american: Offered American odds.

    Returns:
        EV per unit staked (``0.05`` means +5%).

    Examples::

        expected_value(0.55, -110)  →  0.0500
        expected_value(0.50, -110)  → -0.0455
    """
    if not (0.0 <= win_prob <= 1.0):
        raise ValueError(f"win_prob must be in [0, 1], got {win_prob!r}.")
    return expected_value_decimal(win_prob, american_to_decimal(american))


@dataclass(frozen=True)
class SlippageResult:
    """EV at the offered price and at the worst-case price."""

    ev_current: float
    ev_worst: float
    worst_decimal_odds: float

    @property
    def passes(self) -> bool:
        return self.ev_worst > 0.0


def slippage_test(
    win_prob: float,
    american: int | float,
    *,
    slippage: float = DEFAULT_SLIPPAGE,
) -> SlippageResult:
    """Does the edge survive a worst-case price move?

    The decimal price is reduced by ``slippage`` (floored just above 1.0)
    and EV recomputed; the test passes when that worst-case EV is still
    strictly positive.

    Examples::

        slippage_test(0.56, -110).passes  →  True
        slippage_test(0.53, -110).passes  →  False
    """
    decimal_odds = american_to_decimal(american)
    worst = max(decimal_odds - slippage, 1.0 + 1e-9)
    return SlippageResult(
        ev_current=expected_value_decimal(win_prob, decimal_odds),
        ev_worst=expected_value_decimal(win_prob, worst),
        worst_decimal_odds=worst,
    )

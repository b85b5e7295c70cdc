"""Kelly criterion sizing — the single source of truth for stake math.

All functions here are **pure**: no I/O, no logging.
Import from this module; never reimplement Kelly locally in services.

The functions cover the sizing steps applied to a selected pick:

1. :func:`kelly_fraction` — fractional Kelly bankroll share for a win/loss bet.
2. :func:`kelly_stake` — the same share expressed in currency.
3. :func:`stake_to_units` — discrete unit size for display and pick history.

Design decisions
----------------
* **Fractional Kelly** is applied as a *multiplier* (default 0.25, quarter
  Kelly) on the full Kelly fraction.  Edge estimates from a factor model
  carry real uncertainty, and over-betting is punished asymmetrically.
* The sizer clamps at zero itself.  Gating upstream should already have
  rejected negative-EV heads, but a non-positive Kelly fraction always
  means "no bet" here.
* A hard cap (:data:`MAX_KELLY_FRACTION`) bounds any single stake
  irrespective of edge.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

import math
from typing import Final

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Default fractional multiplier (quarter Kelly).
DEFAULT_KELLY_FRACTION: Final[float] = 0.25

#: Hard cap on the bankroll share risked on one pick.
MAX_KELLY_FRACTION: Final[float] = 0.05

#: One unit = 1% of bankroll by convention.
DEFAULT_UNIT_PCT: Final[float] = 1.0

#: Units are reported in half-unit steps.
_UNIT_STEP: Final[float] = 0.5


# ---------------------------------------------------------------------------
# Fractional Kelly
# ---------------------------------------------------------------------------


def full_kelly(win_prob: float, decimal_odds: float) -> float:
    """Unclipped full Kelly fraction ``f* = (b·p − q) / b``.

    ``b`` is the profit per unit (decimal odds minus one), ``q = 1 − p``.
    May be negative for a negative-EV bet.

    Raises:
        ValueError: If ``win_prob`` is not in ``(0, 1)`` or
            ``decimal_odds <= 1.0``.
    """
    if not (0.0 < win_prob < 1.0):
        raise ValueError(
            f"win_prob must be in (0, 1), got {win_prob!r}. "
            "Check upstream probability clipping."
        )
    if decimal_odds <= 1.0:
        raise ValueError(
            f"decimal_odds must be > 1.0 (no profit is possible), got {decimal_odds!r}."
        )
    b = decimal_odds - 1.0
    return (b * win_prob - (1.0 - win_prob)) / b


def kelly_fraction(
    win_prob: float,
    decimal_odds: float,
    *,
    fraction: float = DEFAULT_KELLY_FRACTION,
    max_fraction: float = MAX_KELLY_FRACTION,
) -> float:
    """Fractional Kelly bankroll share for a simple win/loss outcome.

    Args:
        win_prob: Model probability of winning, in ``(0, 1)``.
        decimal_odds: Decimal price.  Use
            :func:`~capper_engine.core.odds_math.american_to_decimal`.
        fraction: Multiplier on full Kelly (``0.25`` = quarter Kelly).
        max_fraction: Hard cap on the output.

    Returns:
        Share of bankroll in ``[0, max_fraction]``.  0.0 when full Kelly
        is non-positive.

    Examples::

        kelly_fraction(0.55, 1.909)                →  0.0137
        kelly_fraction(0.55, 1.909, fraction=1.0)  →  0.05  (capped)
        kelly_fraction(0.45, 1.909)                →  0.0
    """
    if fraction < 0.0:
        raise ValueError(f"fraction must be ≥ 0, got {fraction!r}.")
    f_star = full_kelly(win_prob, decimal_odds)
    if f_star <= 0.0:
        return 0.0
    return min(f_star * fraction, max_fraction)


def kelly_stake(
    win_prob: float,
    decimal_odds: float,
    bankroll: float,
    *,
    fraction: float = DEFAULT_KELLY_FRACTION,
    max_fraction: float = MAX_KELLY_FRACTION,
) -> float:
    """Stake in currency: ``bankroll × max(0, f*) × fraction`` (capped).

    Never negative.  A non-positive bankroll yields 0.0.

    Examples::

        kelly_stake(0.55, 1.909, 1000.0)  →  13.74
    """
    if bankroll <= 0.0:
        return 0.0
    return bankroll * kelly_fraction(
        win_prob, decimal_odds, fraction=fraction, max_fraction=max_fraction
    )


# ---------------------------------------------------------------------------
# Utility: unit conversion
# ---------------------------------------------------------------------------


def stake_to_units(
    stake: float,
    bankroll: float,
    *,
    unit_pct: float = DEFAULT_UNIT_PCT,
    max_units: float = 5.0,
) -> float:
    """Convert a stake into discrete units.

    One unit is ``unit_pct`` percent of bankroll.  The result is rounded
    *down* to the nearest half unit and capped at ``max_units``.

    Examples::

        stake_to_units(13.74, 1000.0)  →  1.0
        stake_to_units(27.0, 1000.0)   →  2.5
        stake_to_units(90.0, 1000.0)   →  5.0   (capped)
    """
    if stake <= 0.0 or bankroll <= 0.0:
        return 0.0
    if unit_pct <= 0.0:
        raise ValueError(f"unit_pct must be > 0, got {unit_pct!r}.")
    raw_units = stake / (bankroll * unit_pct / 100.0)
    stepped = math.floor(raw_units / _UNIT_STEP + 1e-9) * _UNIT_STEP
    return min(stepped, max_units)


def units_to_dollars(units: float, bankroll: float, *, unit_pct: float = DEFAULT_UNIT_PCT) -> float:
    """Inverse of :func:`stake_to_units` (before rounding).

    Examples::

        units_to_dollars(2.5, 1000.0)  →  25.0
    """
    return units * unit_pct / 100.0 * bankroll

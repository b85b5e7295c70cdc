"""Signal primitives — the single source of truth for factor normalisation.

Every factor routes its raw delta through the same three steps::

    capped  = clamp(delta, -safety_cap, +safety_cap)
    signal  = clamp(squash(capped / scale), -1, 1)
    a, b    = directional_scores(signal, max_points)

Design decisions
----------------
* ``squash`` is ``numpy.tanh``: odd, ``squash(0) == 0`` and bounded by
  ±1, so a single outlier can never dominate the aggregation.
* The safety cap runs *before* the squash.  ``tanh`` itself is numerically
  stable, but the cap keeps the recorded raw values interpretable and
  flags pathological inputs through ``caps_applied``.
* Directional scores obey the single-positive-score rule: a factor never
  argues for both outcomes at once.

All functions are **pure**: no I/O, no logging.  NaN/Infinity must be
rejected by the caller before invocation.
"""

from __future__ import annotations

import math
import numbers
from typing import Final, Tuple

import numpy as np

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Signal magnitude at or above which a factor is reported as saturated.
SATURATION_THRESHOLD: Final[float] = 0.99

#: Ordinary factors live in [-1, 1].
SIGNAL_BOUND: Final[float] = 1.0


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def clamp(x: float, lo: float, hi: float) -> float:
    """Bound ``x`` to ``[lo, hi]``.

    Raises:
        ValueError: If ``lo > hi``.
    """
    if lo > hi:
        raise ValueError(f"clamp bounds inverted: lo={lo!r} > hi={hi!r}")
    return max(lo, min(hi, x))


def squash(x: float) -> float:
    """Saturating odd transform: ``tanh(x)``.

    ``squash(0) == 0`` and ``squash(±inf) → ±1``.
    """
    return float(np.tanh(x))


def is_finite(*values: float) -> bool:
    """True when every value is a real, finite number.

    Accepts numpy scalars (``np.int64``, ``np.float32``); rejects ``bool``
    and ``None``.
    """
    for value in values:
        if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
            return False
        if not math.isfinite(value):
            return False
    return True


def normalize_delta(
    delta: float,
    *,
    scale: float,
    safety_cap: float,
    bound: float = SIGNAL_BOUND,
) -> Tuple[float, bool]:
    """Convert a raw delta into a bounded signal.

    Args:
        delta: Factor-specific raw delta (e.g. expected pace minus league pace).
        scale: Delta that maps to ``tanh(1) ≈ 0.76``.  Must be > 0.
        safety_cap: Symmetric outlier cap applied before squashing.
        bound: Final clamp on the signal.

    Returns:
        ``(signal, cap_hit)`` where ``cap_hit`` is True when the safety cap
        truncated the delta.

    Examples::

        normalize_delta(4.0, scale=8.0, safety_cap=30.0)  →  (0.4621, False)
        normalize_delta(90.0, scale=8.0, safety_cap=30.0) →  (0.9989, True)
    """
    if scale <= 0.0:
        raise ValueError(f"scale must be > 0, got {scale!r}")
    capped = clamp(delta, -safety_cap, safety_cap)
    signal = clamp(squash(capped / scale), -bound, bound)
    return signal, capped != delta


def directional_scores(signal: float, max_points: float) -> Tuple[float, float]:
    """Split a signal into ``(score_a, score_b)`` with at most one non-zero.

    ``signal > 0`` credits side A, ``signal < 0`` credits side B, zero
    credits neither.

    Examples::

        directional_scores(0.4621, 2.0)  →  (0.9242, 0.0)
        directional_scores(-0.5, 1.0)    →  (0.0, 0.5)
    """
    if signal > 0.0:
        return abs(signal) * max_points, 0.0
    if signal < 0.0:
        return 0.0, abs(signal) * max_points
    return 0.0, 0.0


def is_saturated(signal: float, bound: float = SIGNAL_BOUND) -> bool:
    return abs(signal) >= SATURATION_THRESHOLD * bound


def sigmoid(x: float) -> float:
    """Logistic link ``1 / (1 + e^-x)``, numerically stable for large |x|."""
    if x >= 0.0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def logit(p: float) -> float:
    """Inverse of :func:`sigmoid`.

    Raises:
        ValueError: If ``p`` is not in ``(0, 1)``.
    """
    if not (0.0 < p < 1.0):
        raise ValueError(f"logit requires p in (0, 1), got {p!r}")
    return math.log(p / (1.0 - p))

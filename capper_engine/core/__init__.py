"""Core mathematics and league configuration for the capper decision engine.

This package contains pure building blocks shared by every factor, head
and sizer:

- ``signal_math``   — clamp, saturating squash, single-positive-score split
- ``odds_math``     — price conversion, vig removal, EV and slippage
- ``kelly``         — fractional Kelly stake and unit conversion
- ``league_config`` — per-league anchors, variance and gate thresholds

Nothing in this package imports from ``capper_engine.services`` or
``capper_engine.factors``.  All modules are side-effect-free and
unit-testable in isolation.
"""

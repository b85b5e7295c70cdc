"""
Environment configuration for the engine.

Values come from the process environment (a local ``.env`` is loaded
first).  Every setting has a string default, so an empty environment runs
with the standard NBA setup.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class EngineSettings:
    weight_budget: float = 250.0
    kelly_fraction: float = 0.25
    max_kelly_fraction: float = 0.05
    unit_bankroll_pct: float = 1.0      # one unit = 1% of bankroll
    max_units: float = 5.0
    starting_bankroll: float = 1000.0
    injury_timeout_s: float = 8.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineSettings":
        settings = cls(
            weight_budget=float(os.getenv("WEIGHT_BUDGET", "250")),
            kelly_fraction=float(os.getenv("KELLY_FRACTION", "0.25")),
            max_kelly_fraction=float(os.getenv("MAX_KELLY_FRACTION", "0.05")),
            unit_bankroll_pct=float(os.getenv("UNIT_BANKROLL_PCT", "1.0")),
            max_units=float(os.getenv("MAX_UNITS", "5")),
            starting_bankroll=float(os.getenv("STARTING_BANKROLL", "1000")),
            injury_timeout_s=float(os.getenv("INJURY_TIMEOUT_S", "8.0")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
        if settings.weight_budget <= 0:
            raise ValueError(f"WEIGHT_BUDGET must be > 0, got {settings.weight_budget!r}")
        if not 0 <= settings.kelly_fraction <= 1:
            raise ValueError(f"KELLY_FRACTION must be in [0, 1], got {settings.kelly_fraction!r}")
        return settings


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    global _settings
    if _settings is None:
        _settings = EngineSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None

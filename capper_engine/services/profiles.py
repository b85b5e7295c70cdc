"""
Capper profiles — per-(capper, sport, bet type) factor configuration.

A :class:`CapperProfile` is supplied by an external store; the engine never
persists it.  Profiles are keyed by factor key and must be unique by key.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from capper_engine.core.league_config import SPORT_ID_NBA
from capper_engine.factors.base import BetType
from capper_engine.services.catalog import FactorCatalog, get_catalog


@dataclass
class FactorConfig:
    """One factor's settings inside a profile.

    Invariant after normalization: ``enabled=False ⇒ weight == 0``.
    """

    key: str
    enabled: bool
    weight: float
    data_source: str
    max_points: float


@dataclass
class CapperProfile:
    capper_id: str
    sport: str
    bet_type: BetType
    factors: List[FactorConfig]
    profile_id: str = ""
    name: str = ""
    description: str = ""
    is_active: bool = True
    is_default: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        seen = set()
        for config in self.factors:
            if config.key in seen:
                raise ValueError(
                    f"Profile {self.profile_id or self.capper_id!r} lists factor "
                    f"{config.key!r} more than once"
                )
            seen.add(config.key)

    def enabled_keys(self) -> List[str]:
        return [c.key for c in self.factors if c.enabled]

    def weights(self) -> Dict[str, float]:
        return {c.key: c.weight for c in self.factors}

    def get(self, key: str) -> Optional[FactorConfig]:
        for config in self.factors:
            if config.key == key:
                return config
        return None


def default_profile_id(capper_id: str, sport: str, bet_type: BetType) -> str:
    return f"{capper_id}-{sport}-{bet_type.value}-default".lower()


def default_profile(
    capper_id: str,
    sport: str = SPORT_ID_NBA,
    bet_type: BetType = BetType.TOTAL,
    *,
    catalog: Optional[FactorCatalog] = None,
    budget: float = 250.0,
) -> CapperProfile:
    """Profile with every implemented catalog factor enabled at its default.

    Weights are normalized to ``budget`` before returning.
    """
    from capper_engine.services.weights import normalize

    catalog = catalog or get_catalog()
    definitions = catalog.for_scope(sport, bet_type)
    if not definitions:
        raise ValueError(f"No catalog factors for ({sport}, {bet_type.value})")

    configs = [
        FactorConfig(
            key=d.key,
            enabled=d.implemented,
            weight=d.default_weight if d.implemented else 0.0,
            data_source=d.default_data_source,
            max_points=d.max_points,
        )
        for d in definitions
    ]
    now = datetime.now(timezone.utc)
    return CapperProfile(
        capper_id=capper_id,
        sport=sport,
        bet_type=bet_type,
        factors=normalize(configs, budget),
        profile_id=default_profile_id(capper_id, sport, bet_type),
        name=f"{capper_id} {bet_type.value.title()} Default",
        description="All implemented factors at catalog default weights",
        is_active=True,
        is_default=True,
        created_at=now,
        updated_at=now,
    )

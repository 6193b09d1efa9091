"""Rank tier ladder and per-tier XP multipliers.

Two lookups live here:

* ``tier_multiplier`` maps a tier *label* to the XP multiplier used when a
  run is scored. Higher tiers need proportionally more runs per XP point.
* ``tier_range_for_percentile`` maps a skill *percentile* to the tier's
  point range. This is the authoritative source for the progress-points
  clamp; the label handed to the engine is only echoed for display.

Both are pure and never raise on unexpected input.
"""

from dataclasses import dataclass
from typing import Final, Protocol

from aimrank.shared.utils.logging import get_logger

logger = get_logger(__name__)

UNRANKED: Final[str] = "Unranked"

TIER_MULTIPLIERS: Final[dict[str, float]] = {
    "Bronze": 1.00,
    "Silver": 0.95,
    "Gold": 0.90,
    "Platinum": 0.85,
    "Diamond": 0.80,
    "Master": 0.70,
    "Grandmaster": 0.60,
    "Champion": 0.50,
    UNRANKED: 1.00,
}

# Applied when the caller hands us a label that is not in the table.
DEFAULT_TIER_MULTIPLIER: Final[float] = 1.00


@dataclass(frozen=True)
class TierRange:
    """Point range of one rung of the ladder.

    ``max_percentile`` is exclusive; ``None`` marks the open-ended top tier.
    """

    tier: str
    min_points: int
    max_points: int
    min_percentile: float | None
    max_percentile: float | None


UNRANKED_RANGE: Final[TierRange] = TierRange(
    tier=UNRANKED,
    min_points=0,
    max_points=0,
    min_percentile=None,
    max_percentile=None,
)

# Ordered lowest to highest.
RANK_LADDER: Final[tuple[TierRange, ...]] = (
    TierRange("Bronze", 0, 600, 0.0, 0.20),
    TierRange("Silver", 600, 1200, 0.20, 0.40),
    TierRange("Gold", 1200, 1800, 0.40, 0.60),
    TierRange("Platinum", 1800, 2400, 0.60, 0.80),
    TierRange("Diamond", 2400, 2700, 0.80, 0.90),
    TierRange("Master", 2700, 2910, 0.90, 0.97),
    TierRange("Grandmaster", 2910, 2970, 0.97, 0.99),
    TierRange("Champion", 2970, 3000, 0.99, None),
)


class TierRangeResolver(Protocol):
    """Anything that turns a skill percentile into a tier range."""

    def __call__(self, percentile: float | None) -> TierRange: ...


def tier_multiplier(tier: str | None) -> float:
    """XP multiplier for a tier label, falling back to 1.00 for unknown labels."""
    multiplier = TIER_MULTIPLIERS.get(tier) if tier is not None else None
    if multiplier is None:
        logger.warning(
            "unknown_tier_label",
            tier=tier,
            fallback_multiplier=DEFAULT_TIER_MULTIPLIER,
        )
        return DEFAULT_TIER_MULTIPLIER
    return multiplier


def tier_range_for_percentile(percentile: float | None) -> TierRange:
    """Resolve the ladder rung for a skill percentile (0-1).

    An absent percentile is ``Unranked`` with a zero-width range.
    """
    if percentile is None:
        return UNRANKED_RANGE

    for rung in RANK_LADDER:
        if rung.max_percentile is None or percentile < rung.max_percentile:
            return rung
    return RANK_LADDER[-1]


def all_rank_tiers() -> list[TierRange]:
    """Every ranked rung, lowest first (Unranked excluded)."""
    return list(RANK_LADDER)


__all__ = [
    "DEFAULT_TIER_MULTIPLIER",
    "RANK_LADDER",
    "TIER_MULTIPLIERS",
    "TierRange",
    "TierRangeResolver",
    "UNRANKED",
    "UNRANKED_RANGE",
    "all_rank_tiers",
    "tier_multiplier",
    "tier_range_for_percentile",
]

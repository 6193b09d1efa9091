"""XP and progress-point arithmetic: stateless, deterministic, no I/O.

Every run earns a flat amount of XP, adjusted by how far the run's
percentile sits above or below the player's recent baseline, scaled down
for higher tiers. Progress points are pulled a fixed fraction of the way
toward a target derived from measured skill, plus a push from the XP just
earned, then clamped to the current tier's range with a small overflow band.
"""

import math
from collections.abc import Sequence
from typing import Final

from .tiers import TierRange, tier_multiplier

BASE_XP: Final[int] = 4
IMPROVEMENT_BONUS_RANGE: Final[tuple[float, float]] = (-5.0, 20.0)

XP_MAX: Final[int] = 1000
OVERFLOW_MAX: Final[int] = 1200

SKILL_POINTS_SCALE: Final[int] = 3000
# Target used when the ranking subsystem has no skill percentile yet.
DEFAULT_TARGET_POINTS: Final[int] = 0

RUBBERBAND_FACTOR: Final[float] = 0.05
ADDITIVE_MULTIPLIER: Final[int] = 2
OVERFLOW_ALLOWANCE: Final[int] = 60

# History entries 1..10 (newest excluded) form the baseline.
BASELINE_HISTORY_WINDOW: Final[int] = 10
RECENT_RUNS_PREVIEW_LIMIT: Final[int] = 5


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def round_half_up(value: float) -> int:
    """Round .5 toward positive infinity (``round`` would use banker's rounding)."""
    return math.floor(value + 0.5)


def resolve_baseline_percentile(
    recent_percentiles: Sequence[float],
    p_now: float,
) -> float:
    """Mean of the runs preceding the newest one, or ``p_now`` with no history.

    ``recent_percentiles`` is newest first and is expected to include the run
    being scored at index 0.
    """
    previous = list(recent_percentiles[1 : BASELINE_HISTORY_WINDOW + 1])
    if not previous:
        return p_now
    return sum(previous) / len(previous)


def compute_run_xp_gain(p_now: float, p_base: float, tier: str | None) -> int:
    """XP earned by a single run. Always at least 1.

    >>> compute_run_xp_gain(0.8, 0.5, "Gold")
    22
    >>> compute_run_xp_gain(0.3, 0.6, "Bronze")
    1
    """
    delta_pct = (p_now - p_base) * 100
    improve_xp = clamp(delta_pct, *IMPROVEMENT_BONUS_RANGE)
    multiplier = tier_multiplier(tier)
    return max(1, round_half_up((BASE_XP + improve_xp) * multiplier))


def compute_skill_target_points(skill_percentile: float | None) -> int:
    """Points the category should converge to given measured skill."""
    if skill_percentile is None:
        return DEFAULT_TARGET_POINTS
    return round_half_up(skill_percentile * SKILL_POINTS_SCALE)


def apply_anchor(
    current_points: float,
    target_points: float,
    xp_gain: int,
    tier_range: TierRange,
) -> float:
    """Next (unrounded) progress-point value.

    Moves ``RUBBERBAND_FACTOR`` of the remaining distance toward the target,
    adds ``xp_gain * ADDITIVE_MULTIPLIER``, then clamps to
    ``[min_points, max_points + OVERFLOW_ALLOWANCE]``.
    """
    rubberband = (target_points - current_points) * RUBBERBAND_FACTOR
    additive_gain = xp_gain * ADDITIVE_MULTIPLIER
    return clamp(
        current_points + rubberband + additive_gain,
        tier_range.min_points,
        tier_range.max_points + OVERFLOW_ALLOWANCE,
    )


def clamp_xp(xp: int) -> int:
    return int(clamp(xp, 0, OVERFLOW_MAX))


def recent_run_xp_gains(
    recent_percentiles: Sequence[float],
    tier: str | None,
    limit: int = RECENT_RUNS_PREVIEW_LIMIT,
) -> list[int]:
    """XP each of the newest ``limit`` runs earned, newest first.

    Run ``i`` is scored against the mean of the up-to-10 runs that came
    before it (``recent_percentiles[i + 1 : i + 11]``).
    """
    gains: list[int] = []
    for index, p_now in enumerate(recent_percentiles[:limit]):
        p_base = resolve_baseline_percentile(recent_percentiles[index:], p_now)
        gains.append(compute_run_xp_gain(p_now, p_base, tier))
    return gains


__all__ = [
    "ADDITIVE_MULTIPLIER",
    "BASELINE_HISTORY_WINDOW",
    "BASE_XP",
    "DEFAULT_TARGET_POINTS",
    "IMPROVEMENT_BONUS_RANGE",
    "OVERFLOW_ALLOWANCE",
    "OVERFLOW_MAX",
    "RECENT_RUNS_PREVIEW_LIMIT",
    "RUBBERBAND_FACTOR",
    "SKILL_POINTS_SCALE",
    "XP_MAX",
    "apply_anchor",
    "clamp",
    "clamp_xp",
    "compute_run_xp_gain",
    "compute_skill_target_points",
    "recent_run_xp_gains",
    "resolve_baseline_percentile",
    "round_half_up",
]

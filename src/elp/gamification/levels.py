"""Level computation.

Levels are a pure function of lifetime points: every 100 points is one level,
starting at level 1. This module is the only place the formula lives.
"""

from __future__ import annotations

POINTS_PER_LEVEL = 100


def compute_level(total_points: int) -> int:
    """Level for a lifetime points total: ``total // 100 + 1``."""
    if total_points < 0:
        msg = f"total_points must be non-negative, got {total_points}"
        raise ValueError(msg)
    return total_points // POINTS_PER_LEVEL + 1


def level_progress(total_points: int) -> dict:
    """Level info for progress bars.

    ``next_level_at`` is the cumulative total at which the next level starts.
    """
    level = compute_level(total_points)
    level_start = (level - 1) * POINTS_PER_LEVEL
    return {
        "level": level,
        "points_into_level": total_points - level_start,
        "points_for_level": POINTS_PER_LEVEL,
        "next_level": level + 1,
        "next_level_at": level * POINTS_PER_LEVEL,
    }

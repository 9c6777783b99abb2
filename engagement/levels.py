"""Engagement level classification."""

from __future__ import annotations

from engagement.models import EngagementLevel, LevelInfo

# (inclusive lower bound, level), checked from the top down
_LEVEL_THRESHOLDS: list[tuple[int, EngagementLevel]] = [
    (80, EngagementLevel.EXCELLENT),
    (60, EngagementLevel.GOOD),
    (40, EngagementLevel.AVERAGE),
    (20, EngagementLevel.LOW),
]

_LEVEL_DISPLAY: dict[EngagementLevel, LevelInfo] = {
    EngagementLevel.EXCELLENT: LevelInfo(
        EngagementLevel.EXCELLENT, "Excellent engagement", "star", "green"
    ),
    EngagementLevel.GOOD: LevelInfo(
        EngagementLevel.GOOD, "Good engagement", "thumbs-up", "blue"
    ),
    EngagementLevel.AVERAGE: LevelInfo(
        EngagementLevel.AVERAGE, "Average engagement", "ok-hand", "yellow"
    ),
    EngagementLevel.LOW: LevelInfo(
        EngagementLevel.LOW, "Low engagement", "warning", "orange"
    ),
    EngagementLevel.POOR: LevelInfo(
        EngagementLevel.POOR, "Poor engagement", "cross", "red"
    ),
}

# Best first; used to compare levels.
LEVEL_ORDER: list[EngagementLevel] = [
    EngagementLevel.EXCELLENT,
    EngagementLevel.GOOD,
    EngagementLevel.AVERAGE,
    EngagementLevel.LOW,
    EngagementLevel.POOR,
]


def engagement_level(total: float) -> EngagementLevel:
    """Return the :class:`EngagementLevel` for a 0–100 *total*.

    ==========  =========
    Total       Level
    ==========  =========
    80 and up   Excellent
    60–79       Good
    40–59       Average
    20–39       Low
    below 20    Poor
    ==========  =========
    """
    for lower_bound, level in _LEVEL_THRESHOLDS:
        if total >= lower_bound:
            return level
    return EngagementLevel.POOR


def classify(total: float) -> LevelInfo:
    """Return the level for *total* together with its display metadata."""
    return _LEVEL_DISPLAY[engagement_level(total)]

"""Engagement scorer: weighted 0–100 score from a bundle of engagement factors."""

from __future__ import annotations

import logging
import math
from dataclasses import replace

from engagement.factors import normalize_factors
from engagement.levels import engagement_level
from engagement.models import EngagementFactors, EngagementScore, ScoreBreakdown
from engagement.rules.insights import generate_insights
from engagement.rules.recommendations import generate_recommendations

logger = logging.getLogger(__name__)

# Category caps; they sum to exactly 100.
TIME_CAP = 30
INTERACTION_CAP = 30
ACTION_CAP = 25
LOYALTY_CAP = 15

# Tier tables: (inclusive lower bound, points), checked from the top down.
_DURATION_TIERS = [(600, 15), (300, 12), (180, 9), (60, 6), (30, 3)]
_DURATION_FLOOR = 1
_AVG_PAGE_TIME_TIERS = [(60, 10), (30, 7), (15, 4)]
_AVG_PAGE_TIME_FLOOR = 1
_DOWNLOAD_TIERS = [(3, 10), (2, 7), (1, 5)]
_PRINT_TIERS = [(2, 5), (1, 3)]
_PREVIOUS_VISIT_TIERS = [(5, 5), (3, 4), (2, 3), (1, 2)]
_SESSION_TIERS = [(5, 5), (3, 4), (2, 3), (1, 1)]

_RAPID_BOUNCE_PENALTY = 5
_DEEP_ENGAGEMENT_BONUS = 5
_NDA_POINTS = 5
_FEEDBACK_POINTS = 5
_RETURNING_POINTS = 5

# Points available to each scaled ratio.
_COMPLETION_POINTS = 15
_SCROLL_POINTS = 10
_PAGE_RATIO_POINTS = 5


def calculate_score(factors: EngagementFactors) -> EngagementScore:
    """Score one visitor's engagement with a document.

    The four category sub-scores are computed independently, each clamped to
    its cap after every bonus and penalty has been applied, then summed:

    ===========  ===  ==============================================
    Category     Cap  Inputs
    ===========  ===  ==============================================
    Time         30   duration, time per page, bounce/deep flags
    Interaction  30   completion rate, scroll depth, page ratio
    Action       25   downloads, prints, NDA, feedback
    Loyalty      15   returning flag, previous visits, sessions
    ===========  ===  ==============================================

    Out-of-range inputs are clamped rather than rejected, so this never
    raises for an :class:`~engagement.models.EngagementFactors` instance.

    Args:
        factors: The visitor's engagement factors.

    Returns:
        An immutable :class:`~engagement.models.EngagementScore` with level,
        insights and recommendations attached.
    """
    factors = normalize_factors(factors)
    breakdown = ScoreBreakdown(
        time=time_score(factors),
        interaction=interaction_score(factors),
        action=action_score(factors),
        loyalty=loyalty_score(factors),
    )
    total = _clamp(breakdown.total, 0, 100)
    score = EngagementScore(
        total=total,
        breakdown=breakdown,
        level=engagement_level(total),
    )
    score = replace(
        score,
        insights=tuple(generate_insights(factors, score)),
        recommendations=tuple(generate_recommendations(factors, score)),
    )
    logger.debug("Scored factors %r -> %d (%s)", factors, total, score.level.value)
    return score


def time_score(factors: EngagementFactors) -> int:
    """Time-based sub-score (0–30) from an already normalised bundle."""
    score = _tier(factors.view_duration, _DURATION_TIERS, _DURATION_FLOOR)
    score += _tier(factors.avg_time_per_page, _AVG_PAGE_TIME_TIERS, _AVG_PAGE_TIME_FLOOR)
    if factors.rapid_bounce:
        score -= _RAPID_BOUNCE_PENALTY
    if factors.deep_engagement:
        score += _DEEP_ENGAGEMENT_BONUS
    return _clamp(score, 0, TIME_CAP)


def interaction_score(factors: EngagementFactors) -> int:
    """Interaction sub-score (0–30) from an already normalised bundle."""
    completion_rate = factors.completion_rate or 0
    score = math.floor(completion_rate * _COMPLETION_POINTS / 100)
    score += math.floor(factors.avg_scroll_depth * _SCROLL_POINTS / 100)
    if factors.total_pages:
        score += math.floor(
            min(factors.pages_viewed * _PAGE_RATIO_POINTS / factors.total_pages,
                _PAGE_RATIO_POINTS)
        )
    return _clamp(score, 0, INTERACTION_CAP)


def action_score(factors: EngagementFactors) -> int:
    """Action sub-score (0–25) from an already normalised bundle."""
    score = _tier(factors.downloads, _DOWNLOAD_TIERS)
    score += _tier(factors.prints, _PRINT_TIERS)
    if factors.nda_accepted:
        score += _NDA_POINTS
    if factors.feedback_submitted:
        score += _FEEDBACK_POINTS
    return _clamp(score, 0, ACTION_CAP)


def loyalty_score(factors: EngagementFactors) -> int:
    """Loyalty sub-score (0–15) from an already normalised bundle."""
    score = _RETURNING_POINTS if factors.is_returning_visitor else 0
    score += _tier(factors.previous_visits, _PREVIOUS_VISIT_TIERS)
    score += _tier(factors.total_sessions, _SESSION_TIERS)
    return _clamp(score, 0, LOYALTY_CAP)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _tier(value: float, tiers: list[tuple[int, int]], default: int = 0) -> int:
    """Return the points of the first tier whose lower bound *value* reaches."""
    for lower_bound, points in tiers:
        if value >= lower_bound:
            return points
    return default


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))

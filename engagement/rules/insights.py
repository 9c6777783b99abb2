"""Insight generation: human-readable observations about a visitor's engagement."""

from __future__ import annotations

from engagement.factors import normalize_factors
from engagement.models import EngagementFactors, EngagementScore
from engagement.rules.base import Rule, evaluate

INSIGHT_RULES: list[Rule] = [
    Rule(
        "long_visit",
        lambda f, s: f.view_duration >= 600,
        "Exceptional time investment - viewer read through the document at length",
    ),
    Rule(
        "short_visit",
        lambda f, s: f.view_duration < 30,
        "Very short visit - content may not be engaging enough",
    ),
    Rule(
        "rapid_bounce",
        lambda f, s: f.rapid_bounce,
        "Left almost immediately - the visit may have been accidental",
    ),
    Rule(
        "near_complete",
        lambda f, s: f.completion_rate >= 90,
        "Viewer read through almost the entire document",
    ),
    Rule(
        "early_exit",
        lambda f, s: f.completion_rate < 25,
        "Viewer only saw the first few pages - consider improving early content",
    ),
    Rule(
        "skimmed",
        lambda f, s: f.completion_rate < 50 and f.view_duration < 60,
        "Viewer may not have engaged with the full content",
    ),
    Rule(
        "deep_scroll",
        lambda f, s: f.avg_scroll_depth >= 80,
        "Deep scroll engagement - thoroughly reviewing content",
    ),
    Rule(
        "downloaded",
        lambda f, s: f.downloads > 0,
        "Downloaded the document - strong purchase intent",
    ),
    Rule(
        "offline_copy",
        lambda f, s: (f.downloads > 0 or f.prints > 0) and f.completion_rate < 100,
        "Downloaded or printed before reading every page - likely kept for offline reference",
    ),
    Rule(
        "nda_accepted",
        lambda f, s: f.nda_accepted,
        "Accepted NDA - committed to confidentiality, signaling serious intent",
    ),
    Rule(
        "feedback",
        lambda f, s: f.feedback_submitted,
        "Left feedback - open to a conversation",
    ),
    Rule(
        "loyal_returner",
        lambda f, s: f.is_returning_visitor and f.previous_visits >= 3,
        "Highly engaged returning visitor - excellent lead quality",
    ),
    Rule(
        "sustained_interest",
        lambda f, s: f.is_returning_visitor and f.total_sessions >= 2,
        "Came back across multiple sessions - shows sustained interest",
    ),
    Rule(
        "passive_reader",
        lambda f, s: s.breakdown.time >= 20 and s.breakdown.action == 0,
        "Spent real time on the document but took no action on it",
    ),
]


def generate_insights(factors: EngagementFactors, score: EngagementScore) -> list[str]:
    """Return observations for *factors*, in :data:`INSIGHT_RULES` order.

    Args:
        factors: The visitor's engagement factors (normalised here if raw).
        score: The visitor's score; rules may inspect its breakdown.

    Returns:
        A new list, empty when no rule fires.
    """
    return evaluate(INSIGHT_RULES, normalize_factors(factors), score)

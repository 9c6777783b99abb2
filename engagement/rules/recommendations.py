"""Recommendation generation: suggested follow-ups for a visitor's engagement."""

from __future__ import annotations

from engagement.factors import normalize_factors
from engagement.models import EngagementFactors, EngagementScore
from engagement.rules.base import Rule, evaluate

_LOW_ENGAGEMENT = 40
_HIGH_ENGAGEMENT = 70
_OUTREACH_THRESHOLD = 60

RECOMMENDATION_RULES: list[Rule] = [
    Rule(
        "personal_follow_up",
        lambda f, s: s.total < _LOW_ENGAGEMENT,
        "Follow up with a personalized email to re-engage",
    ),
    Rule(
        "restructure",
        lambda f, s: s.total < _LOW_ENGAGEMENT,
        "Consider A/B testing the document structure",
    ),
    Rule(
        "front_load",
        lambda f, s: f.completion_rate < 50,
        "Highlight key information earlier in the document",
    ),
    Rule(
        "table_of_contents",
        lambda f, s: f.completion_rate < 50,
        "Add a table of contents for easier navigation",
    ),
    Rule(
        "call_to_action",
        lambda f, s: f.downloads == 0 and f.prints == 0,
        "Add clear call-to-action buttons",
    ),
    Rule(
        "surface_download",
        lambda f, s: f.downloads == 0 and f.prints == 0,
        "Make download and print options more prominent",
    ),
    Rule(
        "prioritize_lead",
        lambda f, s: s.total >= _HIGH_ENGAGEMENT,
        "Excellent engagement - prioritize this lead for follow-up",
    ),
    Rule(
        "request_nda",
        lambda f, s: s.total >= _HIGH_ENGAGEMENT and not f.nda_accepted,
        "Consider requesting an NDA for next steps",
    ),
    Rule(
        "send_download",
        lambda f, s: s.total >= _HIGH_ENGAGEMENT and f.downloads == 0,
        "Send a downloadable version of the document",
    ),
    Rule(
        "sales_outreach",
        lambda f, s: f.nda_accepted and s.total >= _OUTREACH_THRESHOLD,
        "NDA accepted with strong engagement - prioritize for sales outreach",
    ),
    Rule(
        "send_updates",
        lambda f, s: f.is_returning_visitor,
        "Send an updated version or additional resources",
    ),
    Rule(
        "schedule_call",
        lambda f, s: f.is_returning_visitor,
        "Schedule a call to discuss further",
    ),
]


def generate_recommendations(
    factors: EngagementFactors, score: EngagementScore
) -> list[str]:
    """Return suggested follow-ups, in :data:`RECOMMENDATION_RULES` order.

    Args:
        factors: The visitor's engagement factors (normalised here if raw).
        score: The visitor's score.

    Returns:
        A new list, empty when no rule fires.
    """
    return evaluate(RECOMMENDATION_RULES, normalize_factors(factors), score)

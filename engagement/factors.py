"""Clamping of raw engagement factors into the scorer's input domain."""

from __future__ import annotations

import math
from dataclasses import replace

from engagement.models import EngagementFactors


def _non_negative(value: float | None) -> float:
    """Return *value*, or ``0`` if it is missing, negative or not finite."""
    if value is None:
        return 0
    # ints are always finite and may be too large to convert to float
    if not isinstance(value, int) and not math.isfinite(value):
        return 0
    return max(value, 0)


def _percentage(value: float | None) -> float:
    return min(_non_negative(value), 100)


def normalize_factors(factors: EngagementFactors) -> EngagementFactors:
    """Return a copy of *factors* with every value inside its valid range.

    Negative or non-finite numbers become ``0``, percentages are capped at
    100 and *pages_viewed* is capped at *total_pages* when the page count is
    known. A missing *completion_rate* is derived from the page ratio.
    Applying this twice gives the same result as applying it once.
    """
    total_pages = _non_negative(factors.total_pages)
    pages_viewed = _non_negative(factors.pages_viewed)
    if total_pages:
        pages_viewed = min(pages_viewed, total_pages)

    if factors.completion_rate is None:
        completion_rate = pages_viewed * 100 / total_pages if total_pages else 0
    else:
        completion_rate = _percentage(factors.completion_rate)

    return replace(
        factors,
        view_duration=_non_negative(factors.view_duration),
        avg_time_per_page=_non_negative(factors.avg_time_per_page),
        total_sessions=_non_negative(factors.total_sessions),
        pages_viewed=pages_viewed,
        total_pages=total_pages,
        completion_rate=completion_rate,
        avg_scroll_depth=_percentage(factors.avg_scroll_depth),
        downloads=_non_negative(factors.downloads),
        prints=_non_negative(factors.prints),
        previous_visits=_non_negative(factors.previous_visits),
        feedback_submitted=bool(factors.feedback_submitted),
        nda_accepted=bool(factors.nda_accepted),
        is_returning_visitor=bool(factors.is_returning_visitor),
        rapid_bounce=bool(factors.rapid_bounce),
        deep_engagement=bool(factors.deep_engagement),
    )

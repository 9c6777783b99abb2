"""Shared pytest fixtures for all engagement tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from engagement.models import EngagementFactors, SessionSummary


TS = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Factor fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def maximal_factors() -> EngagementFactors:
    """Every category at its cap."""
    return EngagementFactors(
        view_duration=700,
        avg_time_per_page=90,
        total_sessions=6,
        pages_viewed=10,
        total_pages=10,
        completion_rate=100,
        avg_scroll_depth=100,
        downloads=3,
        prints=2,
        feedback_submitted=True,
        nda_accepted=True,
        is_returning_visitor=True,
        previous_visits=6,
        rapid_bounce=False,
        deep_engagement=True,
    )


@pytest.fixture
def minimal_factors() -> EngagementFactors:
    """A visitor who opened the link and did nothing."""
    return EngagementFactors(pages_viewed=0, total_pages=10)


@pytest.fixture
def typical_factors() -> EngagementFactors:
    """A first-time visitor who read about half the document."""
    return EngagementFactors(
        view_duration=200,
        avg_time_per_page=40,
        total_sessions=1,
        pages_viewed=5,
        total_pages=10,
        completion_rate=50,
        avg_scroll_depth=60,
        downloads=1,
    )


# ---------------------------------------------------------------------------
# Session summary fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def visitor_summaries(
    maximal_factors, minimal_factors, typical_factors
) -> list[SessionSummary]:
    """Three visitors with clearly distinct scores (100, typical, 2)."""
    return [
        SessionSummary("fp_min", minimal_factors, last_visit_at=TS),
        SessionSummary("fp_max", maximal_factors, email="max@example.com", last_visit_at=TS),
        SessionSummary("fp_mid", typical_factors, last_visit_at=TS),
    ]

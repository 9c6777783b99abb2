"""Engagement leaderboard: ranks a document's visitors by engagement score."""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from engagement.factors import normalize_factors
from engagement.models import (
    EngagementFactors,
    EngagementScore,
    LeaderboardEntry,
    LeaderboardSummary,
    SessionSummary,
)
from engagement.scorer import calculate_score

logger = logging.getLogger(__name__)

HIGH_ENGAGEMENT_THRESHOLD = 70


def build_leaderboard(
    sessions: Iterable[SessionSummary], limit: int | None = None
) -> list[LeaderboardEntry]:
    """Score every visitor and return the top *limit* entries.

    Each summary is scored independently with
    :func:`~engagement.scorer.calculate_score`. Entries are ordered by:

    1. total score, highest first;
    2. ``factors.total_sessions``, highest first;
    3. ``last_visit_at``, most recent first (missing timestamps last);
    4. ``visitor_id``, ascending.

    The final key makes the order fully deterministic even for identical
    scores and activity.

    Args:
        sessions: Pre-grouped summaries, one per visitor.
        limit: Maximum entries to return. ``None`` returns every visitor;
            negative values are treated as ``0``.

    Returns:
        Ranked entries with 1-based :attr:`~LeaderboardEntry.rank`.
    """
    scored = []
    for summary in sessions:
        factors = normalize_factors(summary.factors)
        scored.append((summary, factors, calculate_score(factors)))
    scored.sort(key=lambda item: _sort_key(*item))
    if limit is not None:
        scored = scored[: max(limit, 0)]

    entries = [
        LeaderboardEntry(
            rank=rank,
            visitor_id=summary.visitor_id,
            score=score,
            visits=int(factors.total_sessions),
            total_duration=factors.view_duration,
            pages_viewed=int(factors.pages_viewed),
            email=summary.email,
            last_visit_at=summary.last_visit_at,
        )
        for rank, (summary, factors, score) in enumerate(scored, start=1)
    ]
    logger.debug("Built leaderboard with %d entries (limit=%r).", len(entries), limit)
    return entries


def summarize_leaderboard(
    entries: list[LeaderboardEntry],
    high_engagement_threshold: int = HIGH_ENGAGEMENT_THRESHOLD,
) -> LeaderboardSummary:
    """Return the average score and high-engagement/returning counts for *entries*.

    The average is rounded half up, and is ``0`` for an empty leaderboard.
    """
    if not entries:
        return LeaderboardSummary(average_score=0, high_engagement=0, returning=0)

    totals = np.array([entry.score.total for entry in entries], dtype=float)
    visits = np.array([entry.visits for entry in entries])
    return LeaderboardSummary(
        average_score=int(np.floor(totals.mean() + 0.5)),
        high_engagement=int(np.count_nonzero(totals >= high_engagement_threshold)),
        returning=int(np.count_nonzero(visits > 1)),
    )


def _sort_key(
    summary: SessionSummary, factors: EngagementFactors, score: EngagementScore
) -> tuple:
    last_visit = summary.last_visit_at
    return (
        -score.total,
        -factors.total_sessions,
        last_visit is None,
        -last_visit.timestamp() if last_visit is not None else 0.0,
        summary.visitor_id,
    )

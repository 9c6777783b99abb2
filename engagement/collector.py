"""Session factor collector: turns raw view events into engagement factors."""

from __future__ import annotations

import logging
import math
import threading
from datetime import datetime

import numpy as np

from engagement.models import (
    ActionType,
    EngagementFactors,
    SessionSummary,
    VisitorActivity,
)

logger = logging.getLogger(__name__)

# Defaults for the collector-defined behaviour flags
DEFAULT_RAPID_BOUNCE_SECONDS = 10
DEFAULT_DEEP_ENGAGEMENT_SECONDS = 300


class SessionFactorCollector:
    """Thread-safe in-memory store of visitor activity per document.

    Events are recorded as they arrive from the document viewer and folded
    into one :class:`~engagement.models.VisitorActivity` per
    ``(document_id, visitor_id)``. :meth:`build_factors` and
    :meth:`get_session_summaries` then derive the
    :class:`~engagement.models.EngagementFactors` the scorer consumes:

    ====================  ===============================================
    Factor                Derivation
    ====================  ===============================================
    view_duration         sum of page dwell times
    avg_time_per_page     view_duration / distinct pages viewed
    avg_scroll_depth      mean of per-page maximum scroll depth
    total_sessions        recorded sessions (at least 1 once active)
    previous_visits       total_sessions - 1
    rapid_bounce          view_duration / total_sessions < bounce limit
    deep_engagement       view_duration >= deep engagement limit
    ====================  ===============================================

    Args:
        rapid_bounce_seconds: Average session length below which a visit
            counts as a rapid bounce.
        deep_engagement_seconds: Total viewing time from which a visitor
            counts as deeply engaged.
    """

    def __init__(
        self,
        rapid_bounce_seconds: float = DEFAULT_RAPID_BOUNCE_SECONDS,
        deep_engagement_seconds: float = DEFAULT_DEEP_ENGAGEMENT_SECONDS,
    ) -> None:
        self._rapid_bounce_seconds = rapid_bounce_seconds
        self._deep_engagement_seconds = deep_engagement_seconds
        self._lock = threading.RLock()
        self._documents: dict[str, dict[str, VisitorActivity]] = {}

    # ------------------------------------------------------------------
    # Event recording
    # ------------------------------------------------------------------

    def record_session(
        self,
        document_id: str,
        visitor_id: str,
        timestamp: datetime,
        email: str | None = None,
    ) -> None:
        """Record the start of a new visit by *visitor_id*.

        Args:
            document_id: The viewed document.
            visitor_id: Visitor fingerprint.
            timestamp: When the session started.
            email: Visitor email, if the link asked for one.

        Raises:
            ValueError: If either identifier is empty.
        """
        with self._lock:
            activity = self._get_or_create(document_id, visitor_id)
            activity.session_starts.append(timestamp)
            if email:
                activity.email = email

    def record_page_view(
        self,
        document_id: str,
        visitor_id: str,
        page_number: int,
        duration: float,
        scroll_depth: float,
    ) -> None:
        """Record time spent on one page and how far down it was scrolled.

        Durations for the same page accumulate across views; only the
        deepest scroll position per page is kept.

        Args:
            document_id: The viewed document.
            visitor_id: Visitor fingerprint.
            page_number: 1-based page number.
            duration: Seconds spent on the page.
            scroll_depth: Scroll depth reached, 0–100.

        Raises:
            ValueError: If an identifier is empty, *page_number* is below 1,
                *duration* is negative or not finite, or *scroll_depth* is
                outside [0, 100].
        """
        if page_number < 1:
            raise ValueError(f"page_number must be at least 1, got {page_number!r}")
        if not math.isfinite(duration) or duration < 0:
            raise ValueError(f"duration must be a non-negative number, got {duration!r}")
        if not 0 <= scroll_depth <= 100:
            raise ValueError(
                f"scroll_depth must be between 0 and 100, got {scroll_depth!r}"
            )
        with self._lock:
            activity = self._get_or_create(document_id, visitor_id)
            activity.page_durations[page_number] = (
                activity.page_durations.get(page_number, 0.0) + duration
            )
            activity.page_scroll_depths[page_number] = max(
                activity.page_scroll_depths.get(page_number, 0.0), scroll_depth
            )

    def record_action(self, document_id: str, visitor_id: str, action: ActionType) -> None:
        """Record a download, print, NDA acceptance or feedback submission.

        Raises:
            ValueError: If an identifier is empty or *action* is unknown.
        """
        action = ActionType(action)
        with self._lock:
            activity = self._get_or_create(document_id, visitor_id)
            if action == ActionType.DOWNLOAD:
                activity.downloads += 1
            elif action == ActionType.PRINT:
                activity.prints += 1
            elif action == ActionType.NDA:
                activity.nda_accepted = True
            elif action == ActionType.FEEDBACK:
                activity.feedback_submitted = True

    def record_download(self, document_id: str, visitor_id: str) -> None:
        self.record_action(document_id, visitor_id, ActionType.DOWNLOAD)

    def record_print(self, document_id: str, visitor_id: str) -> None:
        self.record_action(document_id, visitor_id, ActionType.PRINT)

    def record_nda_accepted(self, document_id: str, visitor_id: str) -> None:
        self.record_action(document_id, visitor_id, ActionType.NDA)

    def record_feedback(self, document_id: str, visitor_id: str) -> None:
        self.record_action(document_id, visitor_id, ActionType.FEEDBACK)

    # ------------------------------------------------------------------
    # Factor derivation
    # ------------------------------------------------------------------

    def build_factors(
        self, document_id: str, visitor_id: str, total_pages: int
    ) -> EngagementFactors:
        """Return the engagement factors for one visitor of *document_id*.

        Args:
            document_id: The document.
            visitor_id: Visitor fingerprint.
            total_pages: Page count of the document (``0`` if unknown).

        Raises:
            KeyError: If the visitor has no recorded activity on the document.
        """
        with self._lock:
            activity = self._documents.get(document_id, {}).get(visitor_id)
            if activity is None:
                raise KeyError(
                    f"No activity for visitor {visitor_id!r} on document {document_id!r}"
                )
            return self._derive_factors(activity, total_pages)

    def get_session_summaries(
        self, document_id: str, total_pages: int
    ) -> list[SessionSummary]:
        """Return one :class:`~engagement.models.SessionSummary` per visitor.

        Returns:
            Summaries in no particular order; empty for an unknown document.
        """
        with self._lock:
            visitors = list(self._documents.get(document_id, {}).values())
            return [
                SessionSummary(
                    visitor_id=activity.visitor_id,
                    factors=self._derive_factors(activity, total_pages),
                    email=activity.email,
                    last_visit_at=(
                        max(activity.session_starts) if activity.session_starts else None
                    ),
                )
                for activity in visitors
            ]

    def get_document_ids(self) -> list[str]:
        """Return the IDs of every document with recorded activity, sorted."""
        with self._lock:
            return sorted(self._documents)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_or_create(self, document_id: str, visitor_id: str) -> VisitorActivity:
        if not document_id:
            raise ValueError("document_id must be non-empty")
        if not visitor_id:
            raise ValueError("visitor_id must be non-empty")
        visitors = self._documents.setdefault(document_id, {})
        if visitor_id not in visitors:
            visitors[visitor_id] = VisitorActivity(visitor_id=visitor_id)
            logger.debug(
                "New visitor %r on document %r.", visitor_id, document_id
            )
        return visitors[visitor_id]

    def _derive_factors(
        self, activity: VisitorActivity, total_pages: int
    ) -> EngagementFactors:
        view_duration = float(sum(activity.page_durations.values()))
        pages_viewed = len(activity.page_durations)
        total_sessions = max(len(activity.session_starts), 1)
        previous_visits = total_sessions - 1

        avg_time_per_page = view_duration / pages_viewed if pages_viewed else 0.0
        avg_scroll_depth = (
            float(np.mean(list(activity.page_scroll_depths.values())))
            if activity.page_scroll_depths
            else 0.0
        )

        return EngagementFactors(
            view_duration=view_duration,
            avg_time_per_page=avg_time_per_page,
            total_sessions=total_sessions,
            pages_viewed=pages_viewed,
            total_pages=total_pages,
            avg_scroll_depth=avg_scroll_depth,
            downloads=activity.downloads,
            prints=activity.prints,
            feedback_submitted=activity.feedback_submitted,
            nda_accepted=activity.nda_accepted,
            is_returning_visitor=previous_visits > 0,
            previous_visits=previous_visits,
            rapid_bounce=view_duration / total_sessions < self._rapid_bounce_seconds,
            deep_engagement=view_duration >= self._deep_engagement_seconds,
        )

"""Core domain dataclasses shared across all engagement modules."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class EngagementLevel(str, Enum):
    """The five engagement categories, best first."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    LOW = "Low"
    POOR = "Poor"


class TrendDirection(str, Enum):
    """Direction of change between two engagement totals."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class ActionType(str, Enum):
    """Visitor actions recorded by the session factor collector."""

    DOWNLOAD = "download"
    PRINT = "print"
    NDA = "nda"
    FEEDBACK = "feedback"


# camelCase names sent by the web client, mapped onto field names.
_CAMEL_CASE_KEYS = {
    "viewDuration": "view_duration",
    "avgTimePerPage": "avg_time_per_page",
    "totalSessions": "total_sessions",
    "pagesViewed": "pages_viewed",
    "totalPages": "total_pages",
    "completionRate": "completion_rate",
    "avgScrollDepth": "avg_scroll_depth",
    "feedbackSubmitted": "feedback_submitted",
    "ndaAccepted": "nda_accepted",
    "isReturningVisitor": "is_returning_visitor",
    "previousVisits": "previous_visits",
    "rapidBounce": "rapid_bounce",
    "deepEngagement": "deep_engagement",
}


@dataclass(frozen=True)
class EngagementFactors:
    """Raw behavioural facts for one visitor of one document.

    Every field defaults to its zero value so a partially populated bundle
    can always be scored.

    Attributes:
        view_duration: Total seconds spent viewing the document.
        avg_time_per_page: Average dwell time per viewed page, in seconds.
        total_sessions: Number of distinct sessions with the document.
        pages_viewed: Distinct pages the visitor opened.
        total_pages: Pages in the document; ``0`` if unknown.
        completion_rate: Percentage 0–100. ``None`` means "derive it from
            *pages_viewed* / *total_pages*".
        avg_scroll_depth: Average per-page maximum scroll depth, 0–100.
        downloads: Number of downloads.
        prints: Number of prints.
        feedback_submitted: Whether the visitor left feedback.
        nda_accepted: Whether the visitor accepted the link's NDA.
        is_returning_visitor: Whether the visitor has been here before.
        previous_visits: Prior visits, excluding the current one.
        rapid_bounce: Set by the collector when the visit was too short to
            be genuine.
        deep_engagement: Set by the collector for unusually long, sustained
            sessions.
    """

    view_duration: float = 0
    avg_time_per_page: float = 0
    total_sessions: int = 0
    pages_viewed: int = 0
    total_pages: int = 0
    completion_rate: float | None = None
    avg_scroll_depth: float = 0
    downloads: int = 0
    prints: int = 0
    feedback_submitted: bool = False
    nda_accepted: bool = False
    is_returning_visitor: bool = False
    previous_visits: int = 0
    rapid_bounce: bool = False
    deep_engagement: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EngagementFactors:
        """Build factors from a wire payload.

        Accepts snake_case field names or the camelCase names used by the
        web client. Unknown keys are ignored and missing keys keep their
        defaults.

        Raises:
            ValueError: If a numeric field holds something that is not a
                number.
        """
        kinds = {f.name: f.type for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, raw in data.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in kinds or raw is None:
                continue
            if kinds[name] == "bool":
                if isinstance(raw, str):
                    values[name] = raw.strip().lower() in ("true", "1", "yes")
                else:
                    values[name] = bool(raw)
            elif isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
                raise ValueError(f"{key} must be a number, got {raw!r}")
            else:
                try:
                    values[name] = float(raw)
                except ValueError:
                    raise ValueError(f"{key} must be a number, got {raw!r}") from None
        return cls(**values)


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-category sub-scores. Caps: time 30, interaction 30, action 25, loyalty 15."""

    time: int = 0
    interaction: int = 0
    action: int = 0
    loyalty: int = 0

    @property
    def total(self) -> int:
        return self.time + self.interaction + self.action + self.loyalty

    def to_dict(self) -> dict[str, int]:
        return {
            "time": self.time,
            "interaction": self.interaction,
            "action": self.action,
            "loyalty": self.loyalty,
        }


@dataclass(frozen=True)
class LevelInfo:
    """An engagement level with its display metadata.

    Only *level* is a business contract; *label*, *icon* and *color* are
    presentation keys and may be re-themed freely.
    """

    level: EngagementLevel
    label: str
    icon: str
    color: str

    def to_dict(self) -> dict[str, str]:
        return {
            "level": self.level.value,
            "label": self.label,
            "icon": self.icon,
            "color": self.color,
        }


@dataclass(frozen=True)
class EngagementScore:
    """Result of scoring one :class:`EngagementFactors` bundle.

    Attributes:
        total: Overall score, 0–100.
        breakdown: The four category sub-scores.
        level: Category derived from *total* alone.
        insights: Observations in rule-declaration order.
        recommendations: Suggested follow-ups in rule-declaration order.
    """

    total: int
    breakdown: ScoreBreakdown
    level: EngagementLevel
    insights: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "level": self.level.value,
            "breakdown": self.breakdown.to_dict(),
            "insights": list(self.insights),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class Trend:
    """Two-point comparison of engagement totals.

    Attributes:
        direction: :attr:`TrendDirection.STABLE` when there is no baseline.
        delta: ``current - previous`` (``0`` without a baseline).
        percentage: *delta* relative to *previous*, in percent; ``0.0`` when
            there is no baseline or the baseline is zero.
    """

    direction: TrendDirection
    delta: int
    percentage: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction.value,
            "delta": self.delta,
            "percentage": round(self.percentage, 2),
        }


@dataclass(frozen=True)
class SessionSummary:
    """Pre-grouped engagement facts for one visitor of one document.

    Attributes:
        visitor_id: Visitor fingerprint (or email when no fingerprint exists).
        factors: The visitor's aggregated engagement factors.
        email: Visitor email, if the link collected one.
        last_visit_at: Start of the visitor's most recent session (UTC).
    """

    visitor_id: str
    factors: EngagementFactors
    email: str | None = None
    last_visit_at: datetime | None = None


@dataclass(frozen=True)
class LeaderboardEntry:
    """A ranked visitor on a document's engagement leaderboard."""

    rank: int
    visitor_id: str
    score: EngagementScore
    visits: int
    total_duration: float
    pages_viewed: int
    email: str | None = None
    last_visit_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "visitor_id": self.visitor_id,
            "email": self.email,
            "visits": self.visits,
            "total_duration": self.total_duration,
            "pages_viewed": self.pages_viewed,
            "last_visit_at": (
                self.last_visit_at.isoformat() if self.last_visit_at else None
            ),
            "score": self.score.to_dict(),
        }


@dataclass(frozen=True)
class LeaderboardSummary:
    """Headline numbers shown beneath a leaderboard."""

    average_score: int
    high_engagement: int
    returning: int

    def to_dict(self) -> dict[str, int]:
        return {
            "average_score": self.average_score,
            "high_engagement": self.high_engagement,
            "returning": self.returning,
        }


@dataclass
class VisitorActivity:
    """Mutable per-visitor accumulator owned by the session factor collector.

    Attributes:
        visitor_id: Visitor fingerprint.
        email: Most recently supplied email, if any.
        session_starts: Start time of every recorded session.
        page_durations: Total dwell seconds per page number.
        page_scroll_depths: Maximum scroll depth (0–100) per page number.
        downloads: Download count.
        prints: Print count.
        nda_accepted: Whether the NDA was accepted in any session.
        feedback_submitted: Whether feedback was left in any session.
    """

    visitor_id: str
    email: str | None = None
    session_starts: list[datetime] = field(default_factory=list)
    page_durations: dict[int, float] = field(default_factory=dict)
    page_scroll_depths: dict[int, float] = field(default_factory=dict)
    downloads: int = 0
    prints: int = 0
    nda_accepted: bool = False
    feedback_submitted: bool = False

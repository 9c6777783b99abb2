"""gRPC servicer: the entry point for all inbound calls from the web application.

Messages are ``google.protobuf.Struct`` values, so the service is registered
through a generic handler instead of generated stubs.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

import grpc
from google.protobuf import json_format
from google.protobuf.struct_pb2 import Struct

from engagement.collector import SessionFactorCollector
from engagement.history import ScoreHistory
from engagement.leaderboard import (
    HIGH_ENGAGEMENT_THRESHOLD,
    build_leaderboard,
    summarize_leaderboard,
)
from engagement.levels import classify
from engagement.models import ActionType, EngagementFactors, EngagementScore
from engagement.scorer import calculate_score
from engagement.trend import calculate_trend

logger = logging.getLogger(__name__)

SERVICE_NAME = "engagement.EngagementService"

_LEADERBOARD_WARN_THRESHOLD_MS = 200


class EngagementServicer:
    """Implements ``engagement.EngagementService``.

    Register it with :func:`add_to_server`.

    Args:
        collector: The :class:`~engagement.collector.SessionFactorCollector`.
        history: The :class:`~engagement.history.ScoreHistory` used for trends.
        default_limit: Leaderboard size when a request does not give one.
        high_engagement_threshold: Score from which a leaderboard visitor
            counts as highly engaged.
    """

    def __init__(
        self,
        collector: SessionFactorCollector,
        history: ScoreHistory,
        default_limit: int = 10,
        high_engagement_threshold: int = HIGH_ENGAGEMENT_THRESHOLD,
    ) -> None:
        self._collector = collector
        self._history = history
        self._default_limit = default_limit
        self._high_engagement_threshold = high_engagement_threshold

    # ------------------------------------------------------------------
    # Event recording
    # ------------------------------------------------------------------

    def RecordSession(self, request: Struct, context: Any) -> Struct:
        """Record the start of a visit.

        Request keys: ``document_id``, ``visitor_id``, optional ``email`` and
        ``timestamp`` (seconds since the epoch; defaults to now).
        """
        data = _to_dict(request)
        try:
            self._collector.record_session(
                str(data.get("document_id", "")),
                str(data.get("visitor_id", "")),
                _parse_timestamp(data.get("timestamp")),
                email=data.get("email") or None,
            )
        except ValueError as exc:
            return _fail(context, grpc.StatusCode.INVALID_ARGUMENT, str(exc))
        except Exception:
            logger.exception("Error recording session: %r", data)
            return _fail(context, grpc.StatusCode.INTERNAL, "Internal error recording session.")
        return Struct()

    def RecordPageView(self, request: Struct, context: Any) -> Struct:
        """Record dwell time and scroll depth for one page."""
        data = _to_dict(request)
        try:
            self._collector.record_page_view(
                str(data.get("document_id", "")),
                str(data.get("visitor_id", "")),
                page_number=int(data.get("page_number", 0)),
                duration=float(data.get("duration", 0)),
                scroll_depth=float(data.get("scroll_depth", 0)),
            )
        except (TypeError, ValueError) as exc:
            return _fail(context, grpc.StatusCode.INVALID_ARGUMENT, str(exc))
        except Exception:
            logger.exception("Error recording page view: %r", data)
            return _fail(context, grpc.StatusCode.INTERNAL, "Internal error recording page view.")
        return Struct()

    def RecordAction(self, request: Struct, context: Any) -> Struct:
        """Record a download, print, NDA acceptance or feedback submission."""
        data = _to_dict(request)
        try:
            self._collector.record_action(
                str(data.get("document_id", "")),
                str(data.get("visitor_id", "")),
                ActionType(data.get("action")),
            )
        except ValueError as exc:
            return _fail(context, grpc.StatusCode.INVALID_ARGUMENT, str(exc))
        except Exception:
            logger.exception("Error recording action: %r", data)
            return _fail(context, grpc.StatusCode.INTERNAL, "Internal error recording action.")
        return Struct()

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def ScoreFactors(self, request: Struct, context: Any) -> Struct:
        """Score a caller-supplied factor bundle (request key ``factors``)."""
        data = _to_dict(request)
        try:
            factors = EngagementFactors.from_dict(data.get("factors") or {})
            score = calculate_score(factors)
        except (AttributeError, ValueError) as exc:
            return _fail(context, grpc.StatusCode.INVALID_ARGUMENT, str(exc))
        except Exception:
            logger.exception("Error scoring factors: %r", data)
            return _fail(context, grpc.StatusCode.INTERNAL, "Internal error scoring factors.")
        return _to_struct(_score_dict(score))

    def ScoreVisitor(self, request: Struct, context: Any) -> Struct:
        """Score one visitor from recorded activity and attach the trend.

        Request keys: ``document_id``, ``visitor_id``, ``total_pages``.
        """
        data = _to_dict(request)
        document_id = str(data.get("document_id", ""))
        visitor_id = str(data.get("visitor_id", ""))
        try:
            factors = self._collector.build_factors(
                document_id, visitor_id, int(data.get("total_pages", 0))
            )
        except KeyError:
            return _fail(
                context,
                grpc.StatusCode.NOT_FOUND,
                f"No activity for visitor {visitor_id!r} on document {document_id!r}",
            )
        except (TypeError, ValueError) as exc:
            return _fail(context, grpc.StatusCode.INVALID_ARGUMENT, str(exc))
        except Exception:
            logger.exception("Error building factors for visitor=%r", visitor_id)
            return _fail(context, grpc.StatusCode.INTERNAL, "Internal error scoring visitor.")

        score = calculate_score(factors)
        previous = self._history.record(document_id, visitor_id, score.total)
        trend = calculate_trend(score.total, previous)
        return _to_struct({"score": _score_dict(score), "trend": trend.to_dict()})

    def GetLeaderboard(self, request: Struct, context: Any) -> Struct:
        """Return the top visitors of a document with summary numbers.

        Request keys: ``document_id``, ``total_pages``, optional ``limit``.
        """
        data = _to_dict(request)
        document_id = str(data.get("document_id", ""))
        if not document_id:
            return _fail(
                context, grpc.StatusCode.INVALID_ARGUMENT, "document_id must be non-empty"
            )

        start_ms = time.monotonic() * 1000
        try:
            limit = int(data.get("limit", self._default_limit))
            summaries = self._collector.get_session_summaries(
                document_id, int(data.get("total_pages", 0))
            )
            entries = build_leaderboard(summaries, limit)
            summary = summarize_leaderboard(entries, self._high_engagement_threshold)
        except (TypeError, ValueError) as exc:
            return _fail(context, grpc.StatusCode.INVALID_ARGUMENT, str(exc))
        except Exception:
            logger.exception("Unexpected error building leaderboard for %r", document_id)
            return _fail(context, grpc.StatusCode.INTERNAL, "Internal error building leaderboard.")
        finally:
            elapsed_ms = time.monotonic() * 1000 - start_ms
            if elapsed_ms > _LEADERBOARD_WARN_THRESHOLD_MS:
                logger.warning(
                    "GetLeaderboard for document=%r took %.1fms", document_id, elapsed_ms
                )
            else:
                logger.debug(
                    "GetLeaderboard for document=%r took %.1fms", document_id, elapsed_ms
                )

        return _to_struct(
            {
                "entries": [
                    {**entry.to_dict(), "score": _score_dict(entry.score)}
                    for entry in entries
                ],
                "summary": summary.to_dict(),
            }
        )

    def ListDocuments(self, request: Struct, context: Any) -> Struct:
        """Return the IDs of all documents with recorded activity."""
        try:
            document_ids = self._collector.get_document_ids()
        except Exception:
            logger.exception("Error listing documents")
            return _fail(context, grpc.StatusCode.INTERNAL, "Internal error listing documents.")
        return _to_struct({"document_ids": document_ids})


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

METHOD_NAMES = (
    "RecordSession",
    "RecordPageView",
    "RecordAction",
    "ScoreFactors",
    "ScoreVisitor",
    "GetLeaderboard",
    "ListDocuments",
)


def add_to_server(servicer: EngagementServicer, server: grpc.Server) -> None:
    """Register *servicer*'s methods on *server* under :data:`SERVICE_NAME`."""
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=Struct.FromString,
            response_serializer=Struct.SerializeToString,
        )
        for name in METHOD_NAMES
    }
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )


# ---------------------------------------------------------------------------
# Message helpers
# ---------------------------------------------------------------------------


def _to_dict(message: Struct) -> dict[str, Any]:
    return json_format.MessageToDict(message)


def _to_struct(data: dict[str, Any]) -> Struct:
    return json_format.ParseDict(data, Struct())


def _score_dict(score: EngagementScore) -> dict[str, Any]:
    """Serialise *score* with the display metadata of its level."""
    return {**score.to_dict(), "display": classify(score.total).to_dict()}


def _fail(context: Any, code: grpc.StatusCode, details: str) -> Struct:
    context.set_code(code)
    context.set_details(details)
    return Struct()


def _parse_timestamp(value: Any) -> datetime:
    """Convert seconds since the epoch to a UTC-aware ``datetime``; ``None`` means now.

    Raises:
        ValueError: If *value* is not a number.
    """
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"timestamp must be seconds since the epoch, got {value!r}")
    return datetime.fromtimestamp(value, tz=timezone.utc)

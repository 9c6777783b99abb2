"""Tests for EngagementServicer (gRPC service layer)."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import grpc
import pytest
from google.protobuf import json_format
from google.protobuf.struct_pb2 import Struct

from engagement.collector import SessionFactorCollector
from engagement.history import ScoreHistory
from engagement.service import EngagementServicer, _parse_timestamp


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

TS = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _request(**fields) -> Struct:
    return json_format.ParseDict(fields, Struct())


def _response(message: Struct) -> dict:
    return json_format.MessageToDict(message)


def _make_context() -> MagicMock:
    """Return a mock gRPC context."""
    ctx = MagicMock()
    ctx.set_code = MagicMock()
    ctx.set_details = MagicMock()
    return ctx


def _make_servicer(mock_collector: bool = False) -> EngagementServicer:
    collector = MagicMock() if mock_collector else SessionFactorCollector()
    return EngagementServicer(collector=collector, history=ScoreHistory())


def _record_reader(servicer: EngagementServicer, visitor_id: str, pages: int) -> None:
    ctx = _make_context()
    servicer.RecordSession(
        _request(document_id="doc", visitor_id=visitor_id, timestamp=TS.timestamp()), ctx
    )
    for page in range(1, pages + 1):
        servicer.RecordPageView(
            _request(
                document_id="doc",
                visitor_id=visitor_id,
                page_number=page,
                duration=45,
                scroll_depth=90,
            ),
            ctx,
        )
    ctx.set_code.assert_not_called()


# ---------------------------------------------------------------------------
# Event recording
# ---------------------------------------------------------------------------


class TestRecordSession:
    def test_calls_record_session(self) -> None:
        servicer = _make_servicer(mock_collector=True)
        request = _request(
            document_id="doc", visitor_id="fp1", email="a@example.com", timestamp=TS.timestamp()
        )
        servicer.RecordSession(request, _make_context())
        servicer._collector.record_session.assert_called_once_with(
            "doc", "fp1", TS, email="a@example.com"
        )

    def test_returns_empty_struct(self) -> None:
        servicer = _make_servicer()
        result = servicer.RecordSession(_request(document_id="doc", visitor_id="fp1"), _make_context())
        assert isinstance(result, Struct)
        assert _response(result) == {}

    def test_missing_visitor_sets_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        servicer.RecordSession(_request(document_id="doc"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)

    def test_bad_timestamp_sets_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        servicer.RecordSession(
            _request(document_id="doc", visitor_id="fp1", timestamp="yesterday"), ctx
        )
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)

    def test_store_error_sets_internal_status(self) -> None:
        servicer = _make_servicer(mock_collector=True)
        servicer._collector.record_session.side_effect = RuntimeError("boom")
        ctx = _make_context()
        servicer.RecordSession(_request(document_id="doc", visitor_id="fp1"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INTERNAL)


class TestRecordPageView:
    def test_converts_numbers(self) -> None:
        servicer = _make_servicer(mock_collector=True)
        request = _request(
            document_id="doc", visitor_id="fp1", page_number=3, duration=12.5, scroll_depth=40
        )
        servicer.RecordPageView(request, _make_context())
        servicer._collector.record_page_view.assert_called_once_with(
            "doc", "fp1", page_number=3, duration=12.5, scroll_depth=40.0
        )

    def test_invalid_scroll_sets_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        servicer.RecordPageView(
            _request(document_id="doc", visitor_id="fp1", page_number=1, duration=5, scroll_depth=150),
            ctx,
        )
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)


class TestRecordAction:
    def test_records_download(self) -> None:
        servicer = _make_servicer()
        servicer.RecordAction(
            _request(document_id="doc", visitor_id="fp1", action="download"), _make_context()
        )
        factors = servicer._collector.build_factors("doc", "fp1", total_pages=1)
        assert factors.downloads == 1

    def test_unknown_action_sets_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        servicer.RecordAction(_request(document_id="doc", visitor_id="fp1", action="share"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScoreFactors:
    def test_scores_camel_case_payload(self) -> None:
        servicer = _make_servicer()
        request = _request(
            factors={
                "viewDuration": 700,
                "avgTimePerPage": 90,
                "totalSessions": 6,
                "pagesViewed": 10,
                "totalPages": 10,
                "completionRate": 100,
                "avgScrollDepth": 100,
                "downloads": 3,
                "prints": 2,
                "feedbackSubmitted": True,
                "ndaAccepted": True,
                "isReturningVisitor": True,
                "previousVisits": 6,
                "rapidBounce": False,
                "deepEngagement": True,
            }
        )
        result = _response(servicer.ScoreFactors(request, _make_context()))
        assert result["total"] == 100
        assert result["level"] == "Excellent"
        assert result["breakdown"] == {"time": 30, "interaction": 30, "action": 25, "loyalty": 15}

    def test_missing_factors_scores_floor(self) -> None:
        servicer = _make_servicer()
        result = _response(servicer.ScoreFactors(_request(), _make_context()))
        assert result["total"] == 2
        assert result["level"] == "Poor"

    def test_bad_factor_sets_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        servicer.ScoreFactors(_request(factors={"downloads": "many"}), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)

    def test_scoring_error_sets_internal(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        with patch("engagement.service.calculate_score", side_effect=RuntimeError("boom")):
            with patch("engagement.service.logger") as mock_logger:
                servicer.ScoreFactors(_request(factors={"downloads": 1}), ctx)
                mock_logger.exception.assert_called_once()
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INTERNAL)

    def test_includes_level_display(self) -> None:
        servicer = _make_servicer()
        result = _response(servicer.ScoreFactors(_request(), _make_context()))
        assert result["display"] == {
            "level": "Poor",
            "label": "Poor engagement",
            "icon": "cross",
            "color": "red",
        }


class TestScoreVisitor:
    def test_first_score_is_stable(self) -> None:
        servicer = _make_servicer()
        _record_reader(servicer, "fp1", pages=4)
        result = _response(
            servicer.ScoreVisitor(
                _request(document_id="doc", visitor_id="fp1", total_pages=10), _make_context()
            )
        )
        assert 0 <= result["score"]["total"] <= 100
        assert result["trend"] == {"direction": "stable", "delta": 0, "percentage": 0}

    def test_trend_after_more_reading(self) -> None:
        servicer = _make_servicer()
        _record_reader(servicer, "fp1", pages=2)
        request = _request(document_id="doc", visitor_id="fp1", total_pages=10)
        first = _response(servicer.ScoreVisitor(request, _make_context()))
        _record_reader(servicer, "fp1", pages=10)
        second = _response(servicer.ScoreVisitor(request, _make_context()))
        assert second["score"]["total"] > first["score"]["total"]
        assert second["trend"]["direction"] == "improving"
        assert second["trend"]["delta"] == second["score"]["total"] - first["score"]["total"]

    def test_unknown_visitor_sets_not_found(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        servicer.ScoreVisitor(_request(document_id="doc", visitor_id="ghost"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.NOT_FOUND)


class TestGetLeaderboard:
    def test_ranked_entries_and_summary(self) -> None:
        servicer = _make_servicer()
        _record_reader(servicer, "fp_light", pages=1)
        _record_reader(servicer, "fp_heavy", pages=10)
        result = _response(
            servicer.GetLeaderboard(_request(document_id="doc", total_pages=10), _make_context())
        )
        assert [e["visitor_id"] for e in result["entries"]] == ["fp_heavy", "fp_light"]
        assert [e["rank"] for e in result["entries"]] == [1, 2]
        assert set(result["summary"]) == {"average_score", "high_engagement", "returning"}
        top_score = result["entries"][0]["score"]
        assert top_score["display"]["level"] == top_score["level"]

    def test_limit(self) -> None:
        servicer = _make_servicer()
        _record_reader(servicer, "fp1", pages=1)
        _record_reader(servicer, "fp2", pages=2)
        result = _response(
            servicer.GetLeaderboard(
                _request(document_id="doc", total_pages=10, limit=1), _make_context()
            )
        )
        assert len(result["entries"]) == 1

    def test_unknown_document_is_empty(self) -> None:
        servicer = _make_servicer()
        result = _response(
            servicer.GetLeaderboard(_request(document_id="nope", total_pages=10), _make_context())
        )
        assert result.get("entries", []) == []
        assert result["summary"]["average_score"] == 0

    def test_empty_document_id_sets_invalid_argument(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        servicer.GetLeaderboard(_request(), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)

    def test_collector_error_sets_internal(self) -> None:
        servicer = _make_servicer(mock_collector=True)
        servicer._collector.get_session_summaries.side_effect = RuntimeError("crash")
        ctx = _make_context()
        servicer.GetLeaderboard(_request(document_id="doc"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INTERNAL)

    def test_slow_response_logs_warning(self) -> None:
        servicer = _make_servicer()
        with patch("engagement.service._LEADERBOARD_WARN_THRESHOLD_MS", -1):
            with patch("engagement.service.logger") as mock_logger:
                servicer.GetLeaderboard(_request(document_id="doc"), _make_context())
                mock_logger.warning.assert_called_once()


class TestListDocuments:
    def test_lists_documents_with_activity(self) -> None:
        servicer = _make_servicer()
        ctx = _make_context()
        servicer.RecordSession(_request(document_id="doc_b", visitor_id="fp1"), ctx)
        servicer.RecordSession(_request(document_id="doc_a", visitor_id="fp1"), ctx)
        result = _response(servicer.ListDocuments(_request(), ctx))
        assert result == {"document_ids": ["doc_a", "doc_b"]}

    def test_collector_error_sets_internal(self) -> None:
        servicer = _make_servicer(mock_collector=True)
        servicer._collector.get_document_ids.side_effect = RuntimeError("crash")
        ctx = _make_context()
        servicer.ListDocuments(_request(), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INTERNAL)


# ---------------------------------------------------------------------------
# Timestamp helper tests
# ---------------------------------------------------------------------------


class TestParseTimestamp:
    def test_converts_seconds(self) -> None:
        result = _parse_timestamp(1717243200)  # 2024-06-01 12:00:00 UTC
        assert result == TS
        assert result.tzinfo == timezone.utc

    def test_none_is_now(self) -> None:
        before = datetime.now(timezone.utc)
        assert _parse_timestamp(None) >= before

    @pytest.mark.parametrize("value", ["2024-06-01", True, [1]])
    def test_rejects_non_numbers(self, value) -> None:
        with pytest.raises(ValueError):
            _parse_timestamp(value)

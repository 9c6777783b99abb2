"""Thin gRPC client for ``engagement.EngagementService``."""

from __future__ import annotations

import logging
from typing import Any

import grpc
from google.protobuf import json_format
from google.protobuf.struct_pb2 import Struct

from engagement.service import METHOD_NAMES, SERVICE_NAME

logger = logging.getLogger(__name__)


class EngagementClient:
    """Calls the engagement service with plain dictionaries.

    Args:
        channel: An open :class:`grpc.Channel` to the service.
        timeout_seconds: Deadline applied to every call.
    """

    def __init__(self, channel: grpc.Channel, timeout_seconds: float = 5.0) -> None:
        self._timeout = timeout_seconds
        self._methods = {
            name: channel.unary_unary(
                f"/{SERVICE_NAME}/{name}",
                request_serializer=Struct.SerializeToString,
                response_deserializer=Struct.FromString,
            )
            for name in METHOD_NAMES
        }

    def call(self, method: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Invoke *method* with *payload* and return the response as a dict.

        Raises:
            KeyError: If *method* is not part of the service.
            grpc.RpcError: If the call fails.
        """
        request = json_format.ParseDict(payload or {}, Struct())
        logger.debug("Calling %s", method)
        response = self._methods[method](request, timeout=self._timeout)
        return json_format.MessageToDict(response)

    def record_session(self, document_id: str, visitor_id: str, **extra: Any) -> None:
        self.call("RecordSession", {"document_id": document_id, "visitor_id": visitor_id, **extra})

    def record_page_view(
        self,
        document_id: str,
        visitor_id: str,
        page_number: int,
        duration: float,
        scroll_depth: float,
    ) -> None:
        self.call(
            "RecordPageView",
            {
                "document_id": document_id,
                "visitor_id": visitor_id,
                "page_number": page_number,
                "duration": duration,
                "scroll_depth": scroll_depth,
            },
        )

    def record_action(self, document_id: str, visitor_id: str, action: str) -> None:
        self.call(
            "RecordAction",
            {"document_id": document_id, "visitor_id": visitor_id, "action": action},
        )

    def score_factors(self, factors: dict[str, Any]) -> dict[str, Any]:
        return self.call("ScoreFactors", {"factors": factors})

    def score_visitor(
        self, document_id: str, visitor_id: str, total_pages: int
    ) -> dict[str, Any]:
        return self.call(
            "ScoreVisitor",
            {"document_id": document_id, "visitor_id": visitor_id, "total_pages": total_pages},
        )

    def get_leaderboard(
        self, document_id: str, total_pages: int, limit: int | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"document_id": document_id, "total_pages": total_pages}
        if limit is not None:
            payload["limit"] = limit
        return self.call("GetLeaderboard", payload)

    def list_documents(self) -> list[str]:
        return self.call("ListDocuments").get("document_ids", [])

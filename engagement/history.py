"""Score history: remembers each visitor's last total for trend comparison."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class ScoreHistory:
    """Thread-safe map of ``(document_id, visitor_id)`` to the last recorded total."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._totals: dict[tuple[str, str], int] = {}

    def record(self, document_id: str, visitor_id: str, total: int) -> int | None:
        """Store *total* as the latest score and return the one it replaces.

        Returns:
            The previously recorded total, or ``None`` on the first score.
        """
        key = (document_id, visitor_id)
        with self._lock:
            previous = self._totals.get(key)
            self._totals[key] = total
        logger.debug(
            "Score for visitor %r on %r: %r -> %d", visitor_id, document_id, previous, total
        )
        return previous

    def previous(self, document_id: str, visitor_id: str) -> int | None:
        """Return the last recorded total, or ``None`` if there is none."""
        with self._lock:
            return self._totals.get((document_id, visitor_id))

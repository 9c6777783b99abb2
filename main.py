"""Entry point: wires all components and starts the gRPC server."""

from __future__ import annotations

import logging
import signal
import sys
from concurrent import futures

import grpc

import config
from engagement.collector import SessionFactorCollector
from engagement.history import ScoreHistory
from engagement.service import EngagementServicer, add_to_server

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_server(
    collector: SessionFactorCollector,
    history: ScoreHistory,
    address: str | None = None,
) -> tuple[grpc.Server, int]:
    """Construct and configure the gRPC server with all dependencies wired.

    Args:
        collector: The :class:`~engagement.collector.SessionFactorCollector`.
        history: The :class:`~engagement.history.ScoreHistory`.
        address: ``host:port`` to bind; defaults to the configured address.
            Port ``0`` picks a free port.

    Returns:
        A configured but not-yet-started :class:`grpc.Server` and the port
        it is bound to.
    """
    servicer = EngagementServicer(
        collector=collector,
        history=history,
        default_limit=config.LEADERBOARD_DEFAULT_LIMIT,
        high_engagement_threshold=config.HIGH_ENGAGEMENT_THRESHOLD,
    )

    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.GRPC_MAX_WORKERS)
    )
    add_to_server(servicer, server)
    port = server.add_insecure_port(
        address or f"{config.GRPC_SERVER_HOST}:{config.GRPC_SERVER_PORT}"
    )
    return server, port


def main() -> None:
    """Initialise all components and start the gRPC server.

    Startup sequence:
    1. Create the session factor collector and score history.
    2. Build the gRPC server.
    3. Register ``SIGTERM``/``SIGINT`` shutdown handlers.
    4. Start serving.
    """
    collector = SessionFactorCollector(
        rapid_bounce_seconds=config.RAPID_BOUNCE_SECONDS,
        deep_engagement_seconds=config.DEEP_ENGAGEMENT_SECONDS,
    )
    history = ScoreHistory()

    server, port = build_server(collector, history)

    def handle_shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s - shutting down.", sig_name)
        server.stop(grace=config.SHUTDOWN_GRACE_SECONDS)
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    server.start()
    logger.info(
        "Engagement gRPC server listening on %s:%d", config.GRPC_SERVER_HOST, port
    )
    server.wait_for_termination()


if __name__ == "__main__":
    main()

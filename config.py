"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.
"""

import os

from engagement import leaderboard

# ---------------------------------------------------------------------------
# gRPC server (the web application connects to us on this address)
# ---------------------------------------------------------------------------

GRPC_SERVER_HOST: str = os.getenv("GRPC_SERVER_HOST", "0.0.0.0")
GRPC_SERVER_PORT: int = int(os.getenv("GRPC_SERVER_PORT", "50061"))

# Thread pool size for the gRPC server.  Each concurrent RPC occupies one
# thread, so this caps concurrent request handling.
GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "10"))

# Seconds in-flight RPCs get to finish on SIGTERM/SIGINT.
SHUTDOWN_GRACE_SECONDS: int = int(os.getenv("SHUTDOWN_GRACE_SECONDS", "5"))

# ---------------------------------------------------------------------------
# Session factor collection
# ---------------------------------------------------------------------------

# Average session length (seconds) below which a visit is a rapid bounce.
RAPID_BOUNCE_SECONDS: float = float(os.getenv("RAPID_BOUNCE_SECONDS", "10"))

# Total viewing time (seconds) from which a visitor is deeply engaged.
DEEP_ENGAGEMENT_SECONDS: float = float(os.getenv("DEEP_ENGAGEMENT_SECONDS", "300"))

# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------

LEADERBOARD_DEFAULT_LIMIT: int = int(os.getenv("LEADERBOARD_DEFAULT_LIMIT", "10"))
# Score from which a visitor counts as "high engagement" in the summary.
HIGH_ENGAGEMENT_THRESHOLD: int = int(
    os.getenv("HIGH_ENGAGEMENT_THRESHOLD", str(leaderboard.HIGH_ENGAGEMENT_THRESHOLD))
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

"""Configuration for the course creator service."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ============================================================================
# Application
# ============================================================================

APP_NAME = os.getenv("APP_NAME", "ts-multi-agents")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_port(env_var: str, default: int) -> int:
    """Get port from environment or return default."""
    try:
        return int(os.getenv(env_var, default))
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid {env_var}, using default {default}"
        )
        return default


def get_bool(env_var: str, default: bool = False) -> bool:
    value = os.getenv(env_var)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Backend API server port
BACKEND_PORT = get_port("PORT", get_port("PORT_BACKEND", 3000))


def get_cors_origins() -> list[str]:
    """Allowed CORS origins; every origin when FRONTEND_ORIGINS is unset."""
    origins = os.getenv("FRONTEND_ORIGINS", "")
    parsed = [o.strip() for o in origins.split(",") if o.strip()]
    return parsed or ["*"]


# ============================================================================
# Pipeline / Streaming
# ============================================================================

DEFAULT_MAX_ITERATIONS = int(os.getenv("DEFAULT_MAX_ITERATIONS", "3"))

# Seconds between SSE keep-alive comments
KEEPALIVE_INTERVAL_SECONDS = float(os.getenv("KEEPALIVE_INTERVAL_SECONDS", "15.0"))

# Keep consuming the run after the observer disconnects
DRAIN_ON_DISCONNECT = get_bool("DRAIN_ON_DISCONNECT", False)

# Session state key forwarded to observers as an out-of-band snapshot
SNAPSHOT_STATE_KEY = os.getenv("SNAPSHOT_STATE_KEY", "judge_output")

DEFAULT_QUERY = "Create a course on the history of Coffee."

# ============================================================================
# YAML configuration paths
# ============================================================================

AGENTS_CONFIG_PATH = os.getenv(
    "AGENTS_CONFIG_PATH", str(PROJECT_ROOT / "config" / "agents.yaml")
)
PROVIDERS_CONFIG_PATH = os.getenv(
    "PROVIDERS_CONFIG_PATH", str(PROJECT_ROOT / "config" / "providers.yaml")
)
SEARCH_CONFIG_PATH = os.getenv(
    "SEARCH_CONFIG_PATH", str(PROJECT_ROOT / "config" / "search.yaml")
)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API server and CLI."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

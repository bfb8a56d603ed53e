"""Centralized configuration — every tunable in one place.

Environment variables override defaults. Import anywhere:

    from settings import settings

All values are frozen at startup. To change, update .env and restart.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (one level above backend/)
_project_root = Path(__file__).resolve().parent.parent
load_dotenv(_project_root / ".env")

MIN_PORT = 1024  # exclusive
MAX_PORT = 65535


# ── Helpers ───────────────────────────────────────────────────────────────

def _env(key: str, default: str = "") -> str:
    return os.getenv(key, default)


def _env_int(key: str, default: int = 0) -> int:
    return int(os.getenv(key, str(default)))


def _env_float(key: str, default: float = 0.0) -> float:
    return float(os.getenv(key, str(default)))


def validate_port(port: int) -> int:
    """Return *port* unchanged, or raise ValueError if it is not listenable."""
    if port <= MIN_PORT or port > MAX_PORT:
        raise ValueError(f"Port must be in range of {MIN_PORT} < port < {MAX_PORT + 1}")
    return port


# ── Settings ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    """Application settings.  Immutable after creation."""

    # ── Server ────────────────────────────────────────────────────
    HOST: str = _env("HOST", "0.0.0.0")
    PORT: int = _env_int("PORT", 8080)
    LOG_LEVEL: str = _env("LOG_LEVEL", "INFO")

    # ── Deferred processing ───────────────────────────────────────
    # Seconds between accepting a submission and storing its hash.
    TASK_DELAY_SECONDS: float = _env_float("TASK_DELAY_SECONDS", 5.0)
    # Upper bound on concurrently sleeping/hashing tasks.  Extra tasks
    # queue; their delay still counts from the moment they were accepted.
    TASK_WORKERS: int = _env_int("TASK_WORKERS", 64)

    # ── Shutdown ──────────────────────────────────────────────────
    # Longest the drain waits between checks when no task completes.
    DRAIN_POLL_INTERVAL: float = _env_float("DRAIN_POLL_INTERVAL", 0.1)
    # Time given to the farewell response to flush before the listener stops.
    SHUTDOWN_GRACE_SECONDS: float = _env_float("SHUTDOWN_GRACE_SECONDS", 1.0)


settings = Settings()

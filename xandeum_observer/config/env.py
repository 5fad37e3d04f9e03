"""
Environment variable loading for the observer.

- OBSERVER_API_URL: backend base URL (falls back to VITE_API_URL, the name the
  dashboard build uses, then http://localhost:3001)
- OBSERVER_HTTP_TIMEOUT_SEC: per-request timeout; unset means no timeout
- OBSERVER_POLL_INTERVAL_SEC: snapshot polling interval (default 30)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is xandeum_observer/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_POLL_INTERVAL_SEC = 30.0


def load_observer_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides the process env."""
    load_dotenv(_ENV_PATH, override=False)


def get_api_url() -> str:
    """
    Resolve the backend base URL.
    Order: OBSERVER_API_URL > VITE_API_URL > http://localhost:3001.
    """
    load_observer_env()
    url = (os.getenv("OBSERVER_API_URL") or os.getenv("VITE_API_URL") or "").strip()
    return (url or DEFAULT_API_URL).rstrip("/")


def _float_env(name: str) -> float | None:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    return value if value > 0 else None


def get_http_timeout_sec() -> float | None:
    """Return OBSERVER_HTTP_TIMEOUT_SEC, or None (no timeout) when unset or non-positive."""
    load_observer_env()
    return _float_env("OBSERVER_HTTP_TIMEOUT_SEC")


def get_poll_interval_sec() -> float:
    """Return OBSERVER_POLL_INTERVAL_SEC; default 30 seconds."""
    load_observer_env()
    value = _float_env("OBSERVER_POLL_INTERVAL_SEC")
    return value if value is not None else DEFAULT_POLL_INTERVAL_SEC

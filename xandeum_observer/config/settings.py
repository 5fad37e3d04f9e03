"""
Application settings.

Typed view over the environment (see config.env) used by the client,
the pipeline and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

from xandeum_observer.config.env import (
    get_api_url,
    get_http_timeout_sec,
    get_poll_interval_sec,
)


@dataclass(frozen=True)
class Settings:
    """Observer configuration resolved from the environment."""

    api_url: str
    http_timeout_sec: float | None
    """None disables request timeouts; a hung request settles to "no data" only when it returns."""
    poll_interval_sec: float


def get_settings() -> Settings:
    """Return the current application settings (re-reads the environment on every call)."""
    return Settings(
        api_url=get_api_url(),
        http_timeout_sec=get_http_timeout_sec(),
        poll_interval_sec=get_poll_interval_sec(),
    )

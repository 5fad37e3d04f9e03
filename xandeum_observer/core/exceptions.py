"""
Application-level exceptions.

Only the backend client raises these; scoring services catch them at the
call site, log, and fall back to "no data" defaults.
"""

from __future__ import annotations


class ObserverError(Exception):
    """Base class for observer errors."""


class BackendUnavailableError(ObserverError):
    """Backend request failed: transport error, non-2xx status, or an {"error": ...} body."""

    def __init__(self, path: str, reason: str, status_code: int | None = None) -> None:
        self.path = path
        self.reason = reason
        self.status_code = status_code
        suffix = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{path}: {reason}{suffix}")


class InvalidPayloadError(ObserverError):
    """Backend returned JSON that does not match the expected shape."""

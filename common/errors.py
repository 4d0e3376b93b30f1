from __future__ import annotations

"""
Error taxonomy shared by the feed clients, the Earth-imagery cache and the gateway.

- ConfigurationError: a required credential or coordinate is missing.
- UpstreamError: a remote provider failed (network, timeout, status, payload).
- ApiError: raised at the HTTP boundary; rendered as {"message", "error"}.
"""

from typing import Optional


class ConfigurationError(ValueError):
    """A required setting (API key, studio coordinates) is not configured."""


class UpstreamError(RuntimeError):
    """A remote feed could not be fetched or returned an unusable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, error: str):
        super().__init__(f"{status_code}: {message} ({error})")
        self.status_code = int(status_code)
        self.message = message
        self.error = error

    def to_body(self) -> dict:
        return {"message": self.message, "error": self.error}

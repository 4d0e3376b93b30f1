from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Query, Request

from common.errors import ApiError


@dataclass(frozen=True)
class Access:
    """Outcome of the API-key check for one request."""
    demo_mode: bool = False


class ApiKeyGuard:
    """
    Checks the `fccApiKey` query parameter.

    The full key grants normal access; the (optional) demo key grants demo mode,
    in which feeds serve canned data and the Earth-imagery cache never fetches.
    """

    def __init__(self, api_key: Optional[str], demo_api_key: Optional[str] = None):
        self.api_key = api_key or None
        self.demo_api_key = demo_api_key or None

    def check(self, provided: Optional[str]) -> Access:
        if not provided:
            raise ApiError(401, "Please provide an API key in the fccApiKey query parameter", "API key is required")
        if self.api_key and hmac.compare_digest(provided.encode(), self.api_key.encode()):
            return Access(demo_mode=False)
        if self.demo_api_key and hmac.compare_digest(provided.encode(), self.demo_api_key.encode()):
            return Access(demo_mode=True)
        raise ApiError(403, "The provided API key is not valid", "Invalid API key")


def require_access(request: Request, fccApiKey: Optional[str] = Query(None)) -> Access:
    """FastAPI dependency; the guard lives on app.state."""
    return request.app.state.guard.check(fccApiKey)
